"""Date range derivation: previous-period ranges and filter presets.

Nothing here reads the system clock; callers pass `today` explicitly so the
results are deterministic.
"""

from __future__ import annotations

from datetime import date, timedelta

import pandas as pd

from performance_reports.aggregate.periods import SUNDAY, period_start
from performance_reports.models import DateRange, Granularity, ReportFilters, as_calendar_date

# day/week comparisons fall back to a fixed shift rather than a calendar unit
FALLBACK_SHIFT_DAYS = 30

_CALENDAR_OFFSETS = {
    Granularity.MONTH: pd.DateOffset(months=1),
    Granularity.QUARTER: pd.DateOffset(months=3),
    Granularity.YEAR: pd.DateOffset(years=1),
}

QUICK_PRESETS = ("today", "week", "month", "quarter", "year", "30days")


def _shift_back(day: date, granularity: Granularity) -> date:
    """Move `day` back by one unit of `granularity`.

    Calendar units clamp to the end of the target month (Mar 31 -> Feb 28).
    """
    offset = _CALENDAR_OFFSETS.get(granularity)
    if offset is None:
        return day - timedelta(days=FALLBACK_SHIFT_DAYS)
    return (pd.Timestamp(day) - offset).date()


def previous_range(
    date_from: date,
    date_to: date,
    granularity: Granularity | str,
) -> DateRange:
    """Return the range immediately preceding `[date_from, date_to]`.

    Month, quarter and year shift both bounds back by one calendar unit; day
    and week shift both bounds back by 30 days.

    Args:
        date_from: First day of the current range.
        date_to: Last day of the current range.
        granularity: Granularity the report is grouped by.

    Returns:
        `DateRange` for the previous period.
    """
    g = Granularity(granularity)
    current = DateRange(date_from=date_from, date_to=date_to)
    return DateRange(
        date_from=_shift_back(current.date_from, g),
        date_to=_shift_back(current.date_to, g),
    )


def quick_range(preset: str, today: date, week_start: int = SUNDAY) -> DateRange:
    """Return the range for a quick filter preset ending on `today`.

    Args:
        preset: One of `QUICK_PRESETS`.
        today: Current date supplied by the caller's clock.
        week_start: Weekday weeks start on for the 'week' preset.

    Raises:
        ValueError: if `preset` is not recognised.
    """
    today = as_calendar_date(today)

    if preset == "today":
        start = today
    elif preset == "30days":
        start = today - timedelta(days=FALLBACK_SHIFT_DAYS)
    elif preset in ("week", "month", "quarter", "year"):
        start = period_start(today, preset, week_start)
    else:
        raise ValueError(f"Unknown quick range preset: {preset!r}")

    return DateRange(date_from=start, date_to=today)


def default_filters(
    today: date,
    lookback_days: int = FALLBACK_SHIFT_DAYS,
    granularity: Granularity | str = Granularity.MONTH,
) -> ReportFilters:
    """Return the initial filter state: the last `lookback_days` days up to today."""
    today = as_calendar_date(today)
    return ReportFilters(
        date_from=today - timedelta(days=lookback_days),
        date_to=today,
        granularity=Granularity(granularity),
    )
