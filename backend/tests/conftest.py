from __future__ import annotations

import re
from typing import Any

import httpx
import pytest
import respx

from app.config import Settings

BASE_URL = "http://pdv.test"
SALES_URL = f"{BASE_URL}/api/v1/operacao-pdv/vendas"


def sale_payload(
    sale_id: str,
    payments: list[dict[str, Any]] | None = None,
    products: list[dict[str, Any]] | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Sale detail as the PDV backend returns it."""
    body: dict[str, Any] = {
        "id": sale_id,
        "status": "FINALIZADA",
        "dataFinalizacao": "2024-05-15T15:00:00.000Z",
        "troco": 0,
        "pagamentos": payments or [],
        "produtosLancados": products or [],
    }
    body.update(fields)
    return body


def payment(method_id: str, valor: float, **fields: Any) -> dict[str, Any]:
    body = {"id": f"pg-{method_id}-{valor}", "valor": valor, "meioPagamentoId": method_id, "cancelado": False}
    body.update(fields)
    return body


def product_line(product_id: str, quantidade: int, valor_final: float) -> dict[str, Any]:
    return {"produtoId": product_id, "quantidade": quantidade, "valorFinal": valor_final}


class FakePdvBackend:
    """In-memory PDV backend answering the four read endpoints."""

    def __init__(self) -> None:
        self.pages: list[list[str]] = []
        self.page_meta: dict[str, Any] = {}
        self.listing_status = 200
        self.listing_body: str | None = None
        self.fail_from_page: int | None = None
        self.rows: list[str] | None = None
        self.max_limit: int | None = None
        self.ignore_offset = False
        self.raw_bodies: dict[str, str] = {}
        self.details: dict[str, Any] = {}
        self.methods: dict[str, Any] = {}
        self.products: dict[str, Any] = {}
        self.calls: list[tuple[str, httpx.Request]] = []

    def calls_to(self, kind: str) -> list[httpx.Request]:
        return [request for k, request in self.calls if k == kind]

    def add_sale(self, body: dict[str, Any]) -> None:
        """Add a sale detail and list its id on a single page."""
        self.details[body["id"]] = body
        if not self.pages:
            self.pages.append([])
        self.pages[0].append(body["id"])

    def listing(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(("listing", request))
        if self.listing_status != 200:
            return httpx.Response(self.listing_status, text="upstream unavailable")
        if self.listing_body is not None:
            return httpx.Response(200, text=self.listing_body)
        limit = int(request.url.params["limit"])
        offset = 0 if self.ignore_offset else int(request.url.params["offset"])
        if self.rows is not None:
            # Row-addressed listing, page size capped like a real backend
            if self.max_limit is not None:
                limit = min(limit, self.max_limit)
            ids = self.rows[offset:offset + limit]
            return httpx.Response(200, json={"items": [{"id": i} for i in ids], **self.page_meta})
        index = offset // limit
        if self.fail_from_page is not None and index >= self.fail_from_page:
            return httpx.Response(500, text="boom")
        ids = self.pages[index] if index < len(self.pages) else []
        return httpx.Response(200, json={"items": [{"id": i} for i in ids], **self.page_meta})

    def _lookup(self, kind: str, store: dict[str, Any], request: httpx.Request) -> httpx.Response:
        self.calls.append((kind, request))
        key = request.url.path.rsplit("/", 1)[-1]
        if key in self.raw_bodies:
            return httpx.Response(200, text=self.raw_bodies[key])
        body = store.get(key)
        if body is None:
            return httpx.Response(404, text="not found")
        if isinstance(body, int):
            return httpx.Response(body, text="error")
        return httpx.Response(200, json=body)

    def detail(self, request: httpx.Request) -> httpx.Response:
        return self._lookup("detail", self.details, request)

    def method(self, request: httpx.Request) -> httpx.Response:
        return self._lookup("method", self.methods, request)

    def product(self, request: httpx.Request) -> httpx.Response:
        return self._lookup("product", self.products, request)

    def handle(self, request: httpx.Request) -> httpx.Response:
        """Dispatcher for httpx.MockTransport."""
        path = request.url.path
        if path == "/api/v1/operacao-pdv/vendas":
            return self.listing(request)
        if path.startswith("/api/v1/operacao-pdv/vendas/"):
            return self.detail(request)
        if path.startswith("/api/v1/pagamento/meios-pagamento/"):
            return self.method(request)
        if path.startswith("/api/v1/cardapio/produtos/"):
            return self.product(request)
        return httpx.Response(404)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        EXTERNAL_API_BASE_URL=BASE_URL,
        SALES_PAGE_SIZE=2,
        SALE_DETAIL_CONCURRENCY=3,
        METADATA_CONCURRENCY=2,
        LOCAL_TIMEZONE="America/Sao_Paulo",
    )


@pytest.fixture
def backend() -> FakePdvBackend:
    fake = FakePdvBackend()
    fake.methods = {
        "cash": {"id": "cash", "nome": "Dinheiro", "formaPagamentoFiscal": "dinheiro"},
        "card": {"id": "card", "nome": "Cartão de Crédito", "formaPagamentoFiscal": "cartao_credito"},
    }
    fake.products = {
        "p1": {"id": "p1", "nome": "Café"},
        "p2": {"id": "p2", "nome": "Pão de Queijo"},
    }
    return fake


@pytest.fixture
def pdv_mock(backend: FakePdvBackend):
    """respx router wired to the fake backend."""
    with respx.mock(assert_all_called=False) as mock:
        mock.get(SALES_URL).mock(side_effect=backend.listing)
        mock.get(url__regex=rf"{re.escape(SALES_URL)}/[^/?]+$").mock(side_effect=backend.detail)
        mock.get(url__regex=rf"{re.escape(BASE_URL)}/api/v1/pagamento/meios-pagamento/[^/?]+$").mock(
            side_effect=backend.method
        )
        mock.get(url__regex=rf"{re.escape(BASE_URL)}/api/v1/cardapio/produtos/[^/?]+$").mock(
            side_effect=backend.product
        )
        yield mock
