"""
Per-run prefetch cache for payment method and product metadata.

One cache instance lives for one report computation. Every identifier is
fetched at most once; a failed lookup is cached as the sentinel so the
report degrades to an "unknown" label instead of failing.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from app.schemas.sales import PaymentMethod
from app.services.pdv_service import PdvApiError, PdvService

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_PAYMENT_METHOD = "Desconhecido"
UNKNOWN_PRODUCT = "Produto Desconhecido"


class MetadataCache(Generic[T]):

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[T]],
        sentinel: Callable[[Optional[str]], T],
        entity: str,
        concurrency: int = 10,
    ):
        self._fetch = fetch
        self._sentinel = sentinel
        self._entity = entity
        self._concurrency = max(1, concurrency)
        self._values: Dict[str, T] = {}

    def peek(self, key: Optional[str]) -> T:
        """Cached value or the sentinel, without touching the network"""
        if key and key in self._values:
            return self._values[key]
        return self._sentinel(key)

    async def prefetch(self, keys: Iterable[Optional[str]]) -> None:
        """Resolve all distinct missing keys concurrently (bounded)"""
        missing: List[str] = []
        for key in keys:
            if key and key not in self._values and key not in missing:
                missing.append(key)
        if not missing:
            return

        semaphore = asyncio.Semaphore(self._concurrency)

        async def load(key: str) -> None:
            async with semaphore:
                self._values[key] = await self._load(key)

        await asyncio.gather(*(load(key) for key in missing))

    async def _load(self, key: str) -> T:
        try:
            return await self._fetch(key)
        except PdvApiError as e:
            logger.warning(
                "Could not fetch %s %s (status %s), using placeholder",
                self._entity, key, e.status_code,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed %s %s: %s, using placeholder", self._entity, key, e)
        return self._sentinel(key)


def _unknown_method(method_id: Optional[str]) -> PaymentMethod:
    return PaymentMethod(id=method_id or "", display_name=UNKNOWN_PAYMENT_METHOD)


def payment_method_cache(
    pdv: PdvService, access_token: str, concurrency: int = 10
) -> MetadataCache[PaymentMethod]:
    """Cache bound to GET /pagamento/meios-pagamento/{id}"""

    async def fetch(method_id: str) -> PaymentMethod:
        data = await pdv.get_payment_method(access_token, method_id)
        return PaymentMethod(
            id=str(data.get("id") or method_id),
            display_name=data.get("nome") or UNKNOWN_PAYMENT_METHOD,
            fiscal_payment_form=data.get("formaPagamentoFiscal"),
        )

    return MetadataCache(fetch, _unknown_method, "payment method", concurrency)


def product_name_cache(
    pdv: PdvService, access_token: str, concurrency: int = 10
) -> MetadataCache[str]:
    """Cache bound to GET /cardapio/produtos/{id}"""

    async def fetch(product_id: str) -> str:
        data = await pdv.get_product(access_token, product_id)
        return data.get("nome") or UNKNOWN_PRODUCT

    return MetadataCache(fetch, lambda _key: UNKNOWN_PRODUCT, "product", concurrency)
