"""
Sales summary aggregation.
Single-pass folds over validated sale details: revenue per payment method
(cash change netted out), best-selling products and daily evolution.
All functions are pure; metadata comes in through resolver callables.
"""
import logging
from collections import defaultdict
from datetime import timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from app.schemas.sales import (
    PaymentMethod,
    PaymentMethodAggregate,
    PaymentMethodsReport,
    ProductAggregate,
    Sale,
    SalesEvolutionPoint,
    SalesEvolutionReport,
    TopProductsReport,
)
from app.utils.apportion import apportion_adjustment
from app.utils.periods import Period
from app.utils.timezone_helpers import local_date

logger = logging.getLogger(__name__)


def is_sale_finalized(sale: Sale, finalized_status: str = "FINALIZADA") -> bool:
    """
    Re-check finalization from the detail record itself.
    The listing filter is not trusted: a canceled sale, a sale without a
    finalization date or one carrying another status is rejected.
    """
    if sale.canceled_at is not None:
        return False
    if sale.finalized_at is None:
        return False
    if sale.status is not None and sale.status != finalized_status:
        return False
    return True


def filter_finalized(sales: Iterable[Sale], finalized_status: str = "FINALIZADA") -> Tuple[List[Sale], int]:
    """Keep finalized sales; returns (valid, rejected_count)"""
    valid: List[Sale] = []
    rejected = 0
    for sale in sales:
        if is_sale_finalized(sale, finalized_status):
            valid.append(sale)
        else:
            rejected += 1
            logger.warning(
                "Sale %s listed as %s but detail says status=%s finalized_at=%s canceled_at=%s",
                sale.id, finalized_status, sale.status, sale.finalized_at, sale.canceled_at,
            )
    if rejected:
        logger.info("Finalization check rejected %d of %d sales", rejected, rejected + len(valid))
    return valid, rejected


def net_payment_amounts(sale: Sale, resolve_method: Callable[[Optional[str]], PaymentMethod]) -> List[Tuple[PaymentMethod, float]]:
    """
    Net amount of each non-canceled payment of a sale.
    Change (troco) is taken off the cash payments only, proportionally to
    their amounts; other payments keep their full amount.
    """
    active = [p for p in sale.payments if not p.is_canceled]
    methods = [resolve_method(p.payment_method_id) for p in active]

    cash_total = sum(p.amount for p, m in zip(active, methods) if m.is_cash)
    if sale.change_given > 0 and cash_total > 0:
        weights = [(p.amount if m.is_cash else 0.0, p.amount) for p, m in zip(active, methods)]
        amounts = apportion_adjustment(sale.change_given, weights)
    else:
        amounts = [p.amount for p in active]

    return list(zip(methods, amounts))


def aggregate_payment_methods(
    sales: Iterable[Sale],
    resolve_method: Callable[[Optional[str]], PaymentMethod],
) -> PaymentMethodsReport:
    """
    Net revenue and payment count per payment method name, sorted by revenue.
    Each payment line counts as one transaction for its method.
    """
    revenue: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    grand_total = 0.0

    for sale in sales:
        for method, net_amount in net_payment_amounts(sale, resolve_method):
            revenue[method.display_name] += net_amount
            counts[method.display_name] += 1
            grand_total += net_amount

    methods = [
        PaymentMethodAggregate(
            method_name=name,
            net_revenue=total,
            transaction_count=counts[name],
            percent_of_total=(total / grand_total * 100) if grand_total > 0 else 0.0,
        )
        for name, total in revenue.items()
    ]
    methods.sort(key=lambda m: (-m.net_revenue, m.method_name))
    return PaymentMethodsReport(methods=methods, grand_total=grand_total)


def aggregate_top_products(
    sales: Iterable[Sale],
    resolve_name: Callable[[Optional[str]], str],
    limit: int,
) -> TopProductsReport:
    """
    Quantity and revenue per product, ranked by quantity.
    Products are bucketed by resolved name, so two ids sharing a name merge.
    """
    quantities: Dict[str, int] = defaultdict(int)
    revenue: Dict[str, float] = defaultdict(float)

    for sale in sales:
        for item in sale.line_items:
            name = resolve_name(item.product_id)
            quantities[name] += item.quantity
            revenue[name] += item.final_value

    ranked = sorted(quantities.items(), key=lambda kv: (-kv[1], kv[0]))
    products = [
        ProductAggregate(
            rank=i,
            product_name=name,
            total_quantity=qty,
            total_revenue=revenue[name],
        )
        for i, (name, qty) in enumerate(ranked[:max(0, limit)], start=1)
    ]
    return TopProductsReport(products=products, total_unique_products=len(quantities))


def sale_value(sale: Sale) -> float:
    """valorFinal, or the paid amount net of change when the backend omits it"""
    if sale.final_value is not None:
        return sale.final_value
    paid = sum(p.amount for p in sale.payments if not p.is_canceled)
    return max(0.0, paid - sale.change_given)


def aggregate_sales_evolution(
    sales: Iterable[Sale],
    period: Period,
    timezone_str: Optional[str],
) -> SalesEvolutionReport:
    """
    Revenue per local calendar day of finalization.
    Every day of a bounded period is present (0 when nothing sold); an
    unbounded period spans the first to the last sale day.
    """
    daily: Dict = defaultdict(float)
    for sale in sales:
        if sale.finalized_at is None:
            continue
        daily[local_date(sale.finalized_at, timezone_str)] += sale_value(sale)

    if period.is_bounded:
        first = local_date(period.start, timezone_str)
        last = local_date(period.end, timezone_str)
    elif daily:
        first, last = min(daily), max(daily)
    else:
        return SalesEvolutionReport(points=[], total=0.0)

    points: List[SalesEvolutionPoint] = []
    day = first
    while day <= last:
        points.append(SalesEvolutionPoint(
            date=day.isoformat(),
            value=daily.get(day, 0.0),
            label=day.strftime("%d/%m"),
        ))
        day += timedelta(days=1)

    return SalesEvolutionReport(points=points, total=sum(p.value for p in points))
