"""
Sales report service.

One report run: list every finalized sale id for the period, fetch the
details, re-validate finalization locally, resolve metadata once per id and
fold the result into the dashboard aggregates. Nothing is kept between runs.
"""
import asyncio
import logging
import math
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from app.config import Settings, settings as default_settings
from app.schemas.sales import (
    DashboardReport,
    PaymentMethodsReport,
    ReportPeriod,
    Sale,
    SaleListPage,
    SalesEvolutionReport,
    TopProductsReport,
)
from app.services.metadata_cache import payment_method_cache, product_name_cache
from app.services.pdv_service import PdvApiError, PdvService
from app.services.summary_service import (
    aggregate_payment_methods,
    aggregate_sales_evolution,
    aggregate_top_products,
    filter_finalized,
)
from app.utils.periods import Period

logger = logging.getLogger(__name__)


def page_stride(page: SaleListPage, page_size: int) -> int:
    """Rows per page as the backend applies them (it may cap the requested limit)"""
    return page.limit if page.limit and page.limit > 0 else page_size


def total_pages_from_first_page(page: SaleListPage, page_size: int) -> Optional[int]:
    """
    Page count announced by the first listing page.
    Prefers totalPages, then ceil(count / limit), then "single page" when the
    page came back short. None means the count is unknown.
    """
    if page.total_pages is not None:
        return page.total_pages
    if page.count is not None and page.limit:
        return math.ceil(page.count / page.limit)
    if len(page.items) < page_stride(page, page_size):
        return 1
    return None


async def fetch_all_sale_ids(
    pdv: PdvService,
    access_token: str,
    period: Period,
    statuses: List[str],
    page_size: int = 100,
) -> List[str]:
    """
    Walk the sales listing to the end and return every id in page order.

    Any failed page aborts the whole fetch: a partial id set would silently
    under-report revenue. Offsets advance by the limit the backend reports
    on the first page. A page that brings no new id ends the walk.
    """
    sale_ids: List[str] = []
    seen = set()
    total_pages: Optional[int] = None
    stride = page_size
    page_index = 0

    while total_pages is None or page_index < total_pages:
        data = await pdv.list_sales(
            access_token,
            period,
            statuses,
            limit=stride,
            offset=page_index * stride,
        )
        try:
            page = SaleListPage.model_validate(data)
        except ValidationError as e:
            raise PdvApiError(502, f"Malformed sales listing page {page_index}: {e}") from e

        new_ids = []
        for item in page.items:
            if item.id not in seen:
                seen.add(item.id)
                new_ids.append(item.id)
        sale_ids.extend(new_ids)
        logger.debug("Fetched sales page %d (%d ids, %d new)", page_index, len(page.items), len(new_ids))

        if page_index == 0:
            stride = page_stride(page, page_size)
            total_pages = total_pages_from_first_page(page, page_size)
        elif page.items and not new_ids:
            logger.warning(
                "Sales page %d repeated earlier ids, backend is not honoring offset; stopping",
                page_index,
            )
            break
        elif total_pages is None and len(page.items) < stride:
            # No page count from the backend: stop on the first short page
            total_pages = page_index + 1

        page_index += 1

    return sale_ids


async def fetch_sale_details(
    pdv: PdvService,
    access_token: str,
    sale_ids: Sequence[str],
    concurrency: int = 20,
) -> List[Sale]:
    """
    Fetch sale details concurrently, at most ``concurrency`` in flight.
    A sale that cannot be fetched or parsed is logged and left out.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def fetch_one(sale_id: str) -> Optional[Sale]:
        async with semaphore:
            try:
                data = await pdv.get_sale(access_token, sale_id)
            except PdvApiError as e:
                logger.warning("Could not fetch details for sale %s (status %s)", sale_id, e.status_code)
                return None
        try:
            return Sale.model_validate(data)
        except ValidationError as e:
            logger.warning("Malformed details for sale %s: %s", sale_id, e)
            return None

    results = await asyncio.gather(*(fetch_one(sale_id) for sale_id in sale_ids))
    sales = [sale for sale in results if sale is not None]
    if len(sales) < len(sale_ids):
        logger.warning("Dropped %d of %d sales without readable details", len(sale_ids) - len(sales), len(sale_ids))
    return sales


class SalesReportService:
    """Builds dashboard reports for one caller (bearer token)"""

    def __init__(self, pdv: PdvService, access_token: str, settings: Optional[Settings] = None):
        self.pdv = pdv
        self.access_token = access_token
        self.settings = settings or default_settings

    async def load_sales(self, period: Period) -> Tuple[List[Sale], int]:
        """
        Finalized sales for the period and the number rejected locally.
        Raises PdvApiError when the id listing fails.
        """
        sale_ids = await fetch_all_sale_ids(
            self.pdv,
            self.access_token,
            period,
            [self.settings.FINALIZED_STATUS],
            page_size=self.settings.SALES_PAGE_SIZE,
        )
        if not sale_ids:
            return [], 0

        details = await fetch_sale_details(
            self.pdv,
            self.access_token,
            sale_ids,
            concurrency=self.settings.SALE_DETAIL_CONCURRENCY,
        )
        return filter_finalized(details, self.settings.FINALIZED_STATUS)

    async def _payment_methods(self, sales: List[Sale]) -> PaymentMethodsReport:
        cache = payment_method_cache(self.pdv, self.access_token, self.settings.METADATA_CONCURRENCY)
        await cache.prefetch(
            p.payment_method_id for sale in sales for p in sale.payments if not p.is_canceled
        )
        return aggregate_payment_methods(sales, cache.peek)

    async def _top_products(self, sales: List[Sale], limit: int) -> TopProductsReport:
        cache = product_name_cache(self.pdv, self.access_token, self.settings.METADATA_CONCURRENCY)
        await cache.prefetch(item.product_id for sale in sales for item in sale.line_items)
        return aggregate_top_products(sales, cache.peek, limit)

    def _evolution(self, sales: List[Sale], period: Period) -> SalesEvolutionReport:
        return aggregate_sales_evolution(sales, period, self.settings.LOCAL_TIMEZONE)

    async def payment_methods_report(self, period: Period) -> PaymentMethodsReport:
        sales, _rejected = await self.load_sales(period)
        return await self._payment_methods(sales)

    async def top_products_report(self, period: Period, limit: int) -> TopProductsReport:
        sales, _rejected = await self.load_sales(period)
        return await self._top_products(sales, limit)

    async def sales_evolution_report(self, period: Period) -> SalesEvolutionReport:
        sales, _rejected = await self.load_sales(period)
        return self._evolution(sales, period)

    async def dashboard_report(self, period: Period, limit: int) -> DashboardReport:
        """All aggregates from a single listing and detail fetch"""
        sales, rejected = await self.load_sales(period)
        payment_methods, top_products = await asyncio.gather(
            self._payment_methods(sales),
            self._top_products(sales, limit),
        )
        return DashboardReport(
            period=ReportPeriod(start=period.start, end=period.end),
            sales_considered=len(sales),
            sales_rejected=rejected,
            payment_methods=payment_methods,
            top_products=top_products,
            evolution=self._evolution(sales, period),
        )
