"""
PDV API Service
"""
from typing import List, Dict, Any, Optional
import httpx

from app.utils.periods import Period
from app.utils.timezone_helpers import to_upstream_iso

SALES_PATH = "/api/v1/operacao-pdv/vendas"
SALE_DETAIL_PATH = "/api/v1/operacao-pdv/vendas/{sale_id}"
PAYMENT_METHOD_PATH = "/api/v1/pagamento/meios-pagamento/{method_id}"
PRODUCT_PATH = "/api/v1/cardapio/produtos/{product_id}"


class PdvApiError(Exception):
    """Non-success answer (or no answer) from the PDV backend"""

    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"PDV API error {status_code}: {detail}")


class ExternalApiNotConfigured(Exception):
    """EXTERNAL_API_BASE_URL is not set"""


class PdvService:
    """Service for reading sales data from the PDV backend"""

    def __init__(self, base_url: str, http_client: httpx.AsyncClient):
        if not base_url:
            raise ExternalApiNotConfigured("External API base URL is not configured")
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client

    def _headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    async def _get(self, access_token: str, path: str, params: Any = None) -> Dict[str, Any]:
        try:
            response = await self.http_client.get(
                f"{self.base_url}{path}",
                headers=self._headers(access_token),
                params=params,
            )
        except httpx.HTTPError as e:
            raise PdvApiError(502, str(e)) from e

        if response.is_error:
            raise PdvApiError(response.status_code, response.text)
        try:
            return response.json()
        except ValueError as e:
            raise PdvApiError(502, f"Invalid JSON from {path}: {e}") from e

    async def list_sales(
        self,
        access_token: str,
        period: Period,
        statuses: List[str],
        limit: int,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """
        List sales for a period, one page at a time

        Args:
            access_token: Bearer token forwarded from the caller
            period: Resolved period; unbounded sends no date filter
            statuses: Status filter, sent as repeated ``status`` params
            limit: Page size
            offset: Row offset of the page

        Returns:
            Page with ``items`` and, when the backend provides them,
            ``count``, ``totalPages`` and ``limit``
        """
        params: List[tuple] = []
        if period.is_bounded:
            params.append(("periodoInicial", to_upstream_iso(period.start)))
            params.append(("periodoFinal", to_upstream_iso(period.end)))
        for status in statuses:
            params.append(("status", status))
        params.append(("limit", str(limit)))
        params.append(("offset", str(offset)))

        return await self._get(access_token, SALES_PATH, params=params)

    async def get_sale(self, access_token: str, sale_id: str) -> Dict[str, Any]:
        """Get a single sale with payments and product lines"""
        return await self._get(access_token, SALE_DETAIL_PATH.format(sale_id=sale_id))

    async def get_payment_method(self, access_token: str, method_id: str) -> Dict[str, Any]:
        """Get payment method metadata (nome, formaPagamentoFiscal)"""
        return await self._get(access_token, PAYMENT_METHOD_PATH.format(method_id=method_id))

    async def get_product(self, access_token: str, product_id: str) -> Dict[str, Any]:
        """Get a product (only ``nome`` is used)"""
        return await self._get(access_token, PRODUCT_PATH.format(product_id=product_id))
