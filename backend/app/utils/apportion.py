"""
Proportional apportionment of a shared adjustment across sibling records.
"""
from typing import List, Sequence, Tuple


def apportion_adjustment(adjustment: float, items: Sequence[Tuple[float, float]]) -> List[float]:
    """
    Distribute ``adjustment`` across ``items`` proportionally to their weight
    and subtract each share from the item's value.

    Args:
        adjustment: Total amount to take off (e.g. cash change given back)
        items: ``(weight, value)`` pairs

    Returns:
        Adjusted values in input order, each clamped at 0. Without clamping
        they sum to ``sum(values) - adjustment``. A non-positive adjustment
        or total weight returns the values unchanged.
    """
    values = [value for _weight, value in items]
    total_weight = sum(weight for weight, _value in items if weight > 0)
    if adjustment <= 0 or total_weight <= 0:
        return values

    adjusted = []
    for weight, value in items:
        share = adjustment * (weight / total_weight) if weight > 0 else 0.0
        adjusted.append(max(0.0, value - share))
    return adjusted
