"""
Dashboard API Endpoints
"""
from typing import Optional
from datetime import datetime
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query

from app.config import Settings, get_settings
from app.dependencies import get_sales_report_service
from app.schemas.sales import (
    DashboardReport,
    PaymentMethodsReport,
    SalesEvolutionReport,
    TopProductsReport,
)
from app.services.pdv_service import PdvApiError
from app.services.sales_report_service import SalesReportService
from app.utils.periods import Period, resolve_period

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])

PERIOD_DESCRIPTION = (
    "Period preset: today, yesterday, last_7_days, last_30_days, last_60_days, "
    "last_90_days, current_month, last_month, all (dashboard aliases hoje, semana, "
    "30dias, mes... also accepted)"
)


def get_period(
    period: str = Query("today", description=PERIOD_DESCRIPTION),
    start_date: Optional[datetime] = Query(None, description="Custom start, used together with end_date (no offset means local time)"),
    end_date: Optional[datetime] = Query(None, description="Custom end, used together with start_date (no offset means local time)"),
    settings: Settings = Depends(get_settings),
) -> Period:
    return resolve_period(period, start_date, end_date, timezone_str=settings.LOCAL_TIMEZONE)


def _upstream_failure(e: PdvApiError) -> HTTPException:
    logger.error("Sales listing failed: %s", e)
    status_code = e.status_code if 400 <= e.status_code < 600 else status.HTTP_502_BAD_GATEWAY
    return HTTPException(
        status_code=status_code,
        detail=f"Error fetching sales for period. {e.detail}".strip(),
    )


def _check_limit(limit: Optional[int], settings: Settings) -> int:
    if limit is None:
        return settings.DEFAULT_TOP_PRODUCTS_LIMIT
    if limit > settings.MAX_TOP_PRODUCTS_LIMIT:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"limit must be at most {settings.MAX_TOP_PRODUCTS_LIMIT}",
        )
    return limit


@router.get("/payment-methods", response_model=PaymentMethodsReport)
async def get_payment_methods(
    period: Period = Depends(get_period),
    service: SalesReportService = Depends(get_sales_report_service),
):
    """
    Net revenue per payment method, cash change taken off cash payments.
    """
    try:
        return await service.payment_methods_report(period)
    except PdvApiError as e:
        raise _upstream_failure(e)


@router.get("/top-products", response_model=TopProductsReport)
async def get_top_products(
    limit: Optional[int] = Query(None, ge=1, description="Number of top products to return"),
    period: Period = Depends(get_period),
    service: SalesReportService = Depends(get_sales_report_service),
    settings: Settings = Depends(get_settings),
):
    """
    Best-selling products by quantity.
    """
    limit = _check_limit(limit, settings)
    try:
        return await service.top_products_report(period, limit)
    except PdvApiError as e:
        raise _upstream_failure(e)


@router.get("/sales-evolution", response_model=SalesEvolutionReport)
async def get_sales_evolution(
    period: Period = Depends(get_period),
    service: SalesReportService = Depends(get_sales_report_service),
):
    """
    Daily revenue over the period, days without sales included as 0.
    """
    try:
        return await service.sales_evolution_report(period)
    except PdvApiError as e:
        raise _upstream_failure(e)


@router.get("/summary", response_model=DashboardReport)
async def get_summary(
    limit: Optional[int] = Query(None, ge=1, description="Number of top products to return"),
    period: Period = Depends(get_period),
    service: SalesReportService = Depends(get_sales_report_service),
    settings: Settings = Depends(get_settings),
):
    """
    Payment methods, top products and evolution from a single fetch.
    """
    limit = _check_limit(limit, settings)
    try:
        return await service.dashboard_report(period, limit)
    except PdvApiError as e:
        raise _upstream_failure(e)
