"""
Reporting period presets.

Resolves a named period (or explicit bounds) into an inclusive local-time
``[start, end]`` pair. Unknown presets and "all" resolve to an unbounded
period, meaning no date filter is sent upstream.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import NamedTuple, Optional

from app.utils.timezone_helpers import as_local, get_zone, local_now


class PeriodPreset(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    LAST_60_DAYS = "last_60_days"
    LAST_90_DAYS = "last_90_days"
    CURRENT_MONTH = "current_month"
    LAST_MONTH = "last_month"
    ALL = "all"


# Labels used by the PDV dashboard
PRESET_ALIASES = {
    "hoje": PeriodPreset.TODAY,
    "ontem": PeriodPreset.YESTERDAY,
    "semana": PeriodPreset.LAST_7_DAYS,
    "30dias": PeriodPreset.LAST_30_DAYS,
    "60dias": PeriodPreset.LAST_60_DAYS,
    "90dias": PeriodPreset.LAST_90_DAYS,
    "mes": PeriodPreset.CURRENT_MONTH,
    "mes_passado": PeriodPreset.LAST_MONTH,
    "todos": PeriodPreset.ALL,
}

_TRAILING_DAYS = {
    PeriodPreset.LAST_7_DAYS: 7,
    PeriodPreset.LAST_30_DAYS: 30,
    PeriodPreset.LAST_60_DAYS: 60,
    PeriodPreset.LAST_90_DAYS: 90,
}


class Period(NamedTuple):
    """Inclusive instant pair; both None means no date filter."""
    start: Optional[datetime]
    end: Optional[datetime]

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None


UNBOUNDED = Period(None, None)


def parse_preset(value: Optional[str]) -> Optional[PeriodPreset]:
    """Map a preset name or dashboard alias to a PeriodPreset, None if unknown."""
    if not value:
        return None
    key = value.strip().lower()
    if key in PRESET_ALIASES:
        return PRESET_ALIASES[key]
    try:
        return PeriodPreset(key.replace("-", "_"))
    except ValueError:
        return None


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=23, minute=59, second=59, microsecond=999000)


def resolve_period(
    preset: Optional[str],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
    timezone_str: Optional[str] = None,
) -> Period:
    """
    Resolve a reporting period.

    Args:
        preset: Preset name (``today``, ``last_7_days``...) or dashboard alias
        start: Explicit start, used together with ``end``; naive values are
            read as local time
        end: Explicit end, used together with ``start``
        now: Reference instant, defaults to the current time
        timezone_str: Local time zone the day boundaries are computed in

    Returns:
        Period with inclusive bounds, or an unbounded Period for "all" and
        unknown presets. Never raises.
    """
    if start is not None and end is not None:
        return Period(as_local(start, timezone_str), as_local(end, timezone_str))

    kind = parse_preset(preset)
    if kind is None or kind == PeriodPreset.ALL:
        return UNBOUNDED

    tz = get_zone(timezone_str)
    if now is None:
        now = local_now(timezone_str)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    else:
        now = now.astimezone(tz)

    if kind == PeriodPreset.TODAY:
        return Period(start_of_day(now), end_of_day(now))

    if kind == PeriodPreset.YESTERDAY:
        yesterday = now - timedelta(days=1)
        return Period(start_of_day(yesterday), end_of_day(yesterday))

    if kind in _TRAILING_DAYS:
        # Window includes today, so N days back is N - 1 days before today
        first = now - timedelta(days=_TRAILING_DAYS[kind] - 1)
        return Period(start_of_day(first), end_of_day(now))

    first_of_month = start_of_day(now.replace(day=1))
    if kind == PeriodPreset.CURRENT_MONTH:
        if now.month == 12:
            next_month = first_of_month.replace(year=now.year + 1, month=1)
        else:
            next_month = first_of_month.replace(month=now.month + 1)
        return Period(first_of_month, end_of_day(next_month - timedelta(days=1)))

    # LAST_MONTH
    last_day_prev = first_of_month - timedelta(days=1)
    return Period(start_of_day(last_day_prev.replace(day=1)), end_of_day(last_day_prev))
