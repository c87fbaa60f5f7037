from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.utils.periods import UNBOUNDED, Period, PeriodPreset, parse_preset, resolve_period
from app.utils.timezone_helpers import to_upstream_iso

SP = "America/Sao_Paulo"
TZ = ZoneInfo(SP)
NOW = datetime(2024, 5, 15, 10, 30, tzinfo=TZ)


def _bounds(period: Period) -> tuple[tuple, tuple]:
    return (
        (period.start.year, period.start.month, period.start.day, period.start.hour, period.start.minute),
        (period.end.year, period.end.month, period.end.day, period.end.hour, period.end.minute),
    )


def test_today_spans_local_midnight_to_last_millisecond() -> None:
    period = resolve_period("today", now=NOW, timezone_str=SP)
    assert period.start == datetime(2024, 5, 15, 0, 0, 0, 0, tzinfo=TZ)
    assert period.end == datetime(2024, 5, 15, 23, 59, 59, 999000, tzinfo=TZ)


def test_yesterday() -> None:
    period = resolve_period("yesterday", now=NOW, timezone_str=SP)
    assert _bounds(period) == ((2024, 5, 14, 0, 0), (2024, 5, 14, 23, 59))


@pytest.mark.parametrize(
    "preset, first_day",
    [
        ("last_7_days", 9),
        ("last_30_days", 16),
    ],
)
def test_trailing_windows_include_today(preset: str, first_day: int) -> None:
    period = resolve_period(preset, now=NOW, timezone_str=SP)
    assert period.start.day == first_day
    assert period.start.hour == 0
    assert period.end == datetime(2024, 5, 15, 23, 59, 59, 999000, tzinfo=TZ)


def test_last_90_days_crosses_months() -> None:
    period = resolve_period("last_90_days", now=NOW, timezone_str=SP)
    assert (period.start.month, period.start.day) == (2, 16)


def test_current_month_runs_to_end_of_month() -> None:
    period = resolve_period("current_month", now=NOW, timezone_str=SP)
    assert _bounds(period) == ((2024, 5, 1, 0, 0), (2024, 5, 31, 23, 59))


def test_current_month_in_december() -> None:
    period = resolve_period("current_month", now=datetime(2024, 12, 10, tzinfo=TZ), timezone_str=SP)
    assert _bounds(period) == ((2024, 12, 1, 0, 0), (2024, 12, 31, 23, 59))


def test_last_month_handles_leap_february() -> None:
    period = resolve_period("last_month", now=datetime(2024, 3, 10, tzinfo=TZ), timezone_str=SP)
    assert _bounds(period) == ((2024, 2, 1, 0, 0), (2024, 2, 29, 23, 59))


@pytest.mark.parametrize(
    "alias, preset",
    [
        ("hoje", PeriodPreset.TODAY),
        ("semana", PeriodPreset.LAST_7_DAYS),
        ("30dias", PeriodPreset.LAST_30_DAYS),
        ("60dias", PeriodPreset.LAST_60_DAYS),
        ("90dias", PeriodPreset.LAST_90_DAYS),
        ("mes", PeriodPreset.CURRENT_MONTH),
        ("todos", PeriodPreset.ALL),
        ("last-7-days", PeriodPreset.LAST_7_DAYS),
        ("TODAY", PeriodPreset.TODAY),
    ],
)
def test_dashboard_aliases(alias: str, preset: PeriodPreset) -> None:
    assert parse_preset(alias) == preset
    assert resolve_period(alias, now=NOW, timezone_str=SP) == resolve_period(preset.value, now=NOW, timezone_str=SP)


@pytest.mark.parametrize("preset", ["all", "todos", "next_century", "", None])
def test_all_and_unknown_presets_apply_no_filter(preset: str | None) -> None:
    period = resolve_period(preset, now=NOW, timezone_str=SP)
    assert period == UNBOUNDED
    assert not period.is_bounded


def test_explicit_bounds_win_over_preset() -> None:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end = datetime(2024, 1, 31, tzinfo=timezone.utc)
    assert resolve_period("today", start, end, now=NOW, timezone_str=SP) == Period(start, end)


def test_naive_explicit_bounds_are_local_time() -> None:
    period = resolve_period("today", datetime(2024, 5, 13), datetime(2024, 5, 13, 23, 59, 59, 999000), timezone_str=SP)
    assert period.start == datetime(2024, 5, 13, tzinfo=TZ)
    assert to_upstream_iso(period.start) == "2024-05-13T03:00:00.000Z"
    assert to_upstream_iso(period.end) == "2024-05-14T02:59:59.999Z"


def test_single_explicit_bound_is_ignored() -> None:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    period = resolve_period("today", start=start, now=NOW, timezone_str=SP)
    assert period.start.day == 15


def test_naive_now_is_read_as_local_time() -> None:
    period = resolve_period("today", now=datetime(2024, 5, 15, 1, 0), timezone_str=SP)
    assert period.start == datetime(2024, 5, 15, tzinfo=TZ)


def test_upstream_iso_format_is_utc_with_milliseconds() -> None:
    period = resolve_period("today", now=NOW, timezone_str=SP)
    assert to_upstream_iso(period.start) == "2024-05-15T03:00:00.000Z"
    assert to_upstream_iso(period.end) == "2024-05-16T02:59:59.999Z"
    assert to_upstream_iso(datetime(2024, 5, 15, 12, 0)) == "2024-05-15T12:00:00.000Z"
