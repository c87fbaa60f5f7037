"""
Timezone conversion helpers for local-time period boundaries.
Periods are computed in the store's local time and sent upstream in UTC.
"""
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def get_zone(timezone_str: Optional[str]) -> ZoneInfo:
    """Return a ZoneInfo for the given name, UTC when empty."""
    return ZoneInfo(timezone_str) if timezone_str else ZoneInfo("UTC")


def local_now(timezone_str: Optional[str]) -> datetime:
    """Current aware datetime in the given time zone."""
    return datetime.now(get_zone(timezone_str))


def utc_to_local(utc_dt: datetime, timezone_str: str | None) -> datetime:
    """Python-side conversion of a UTC datetime to a local datetime."""
    tz = get_zone(timezone_str)
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=ZoneInfo("UTC"))
    return utc_dt.astimezone(tz)


def local_date(dt: datetime, timezone_str: str | None) -> date:
    """Calendar date of an instant as seen in the given time zone."""
    return utc_to_local(dt, timezone_str).date()


def as_local(dt: datetime, timezone_str: Optional[str]) -> datetime:
    """Attach the local zone to a naive datetime; aware values are kept."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=get_zone(timezone_str))
    return dt


def to_upstream_iso(dt: datetime) -> str:
    """
    Format an instant the way the PDV backend expects it:
    UTC, millisecond precision, trailing Z (e.g. 2024-05-01T03:00:00.000Z).
    Naive datetimes are treated as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
