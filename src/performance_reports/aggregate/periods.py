"""Period key derivation.

`period_key` maps a timestamp to the display label of the calendar bucket it
falls in; `period_start` maps it to the first day of that bucket, which is the
chronological sort key for labels of one granularity. Buckets are pandas
periods, so the engine can derive starts for a whole column at once with
`period_starts`.
"""

from __future__ import annotations

from datetime import date, datetime

import pandas as pd

from performance_reports.models import Granularity, as_calendar_date

# datetime.weekday() numbering
MONDAY = 0
SUNDAY = 6

# Fixed English abbreviations; strftime("%b") would follow the process locale
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# pandas weekly periods are anchored on their last day
_WEEK_ANCHORS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")

_PERIOD_FREQ = {
    Granularity.DAY: "D",
    Granularity.MONTH: "M",
    Granularity.QUARTER: "Q",
    Granularity.YEAR: "Y",
}


def period_freq(granularity: Granularity | str, week_start: int = SUNDAY) -> str:
    """Return the pandas period frequency for a granularity.

    Args:
        granularity: Bucketing granularity.
        week_start: Weekday weeks start on (0=Monday ... 6=Sunday).

    Returns:
        Frequency string such as 'M' or 'W-SAT' (Sunday-start weeks).
    """
    g = Granularity(granularity)
    if g is Granularity.WEEK:
        return f"W-{_WEEK_ANCHORS[(week_start - 1) % 7]}"
    return _PERIOD_FREQ[g]


def period_starts(
    stamps: pd.Series,
    granularity: Granularity | str,
    week_start: int = SUNDAY,
) -> pd.Series:
    """Return the first calendar day of the period of every timestamp.

    Args:
        stamps: datetime64 Series of naive UTC timestamps.
        granularity: Bucketing granularity.
        week_start: Weekday weeks start on, used for weekly buckets.

    Returns:
        Series of `date` objects aligned with `stamps`.
    """
    freq = period_freq(granularity, week_start)
    return stamps.dt.to_period(freq).dt.start_time.dt.date


def period_start(
    ts: datetime | date,
    granularity: Granularity | str,
    week_start: int = SUNDAY,
) -> date:
    """Return the first calendar day of the period containing `ts`.

    Args:
        ts: Timestamp or date; aware timestamps are read on the UTC calendar.
        granularity: Bucketing granularity.
        week_start: Weekday weeks start on, used for weekly buckets.

    Returns:
        `date` marking the start of the bucket.
    """
    freq = period_freq(granularity, week_start)
    day = pd.Timestamp(as_calendar_date(ts))
    return day.to_period(freq).start_time.date()


def quarter_of(day: date) -> int:
    return (day.month - 1) // 3 + 1


def format_period(start: date, granularity: Granularity | str) -> str:
    """Return the display label for a bucket starting on `start`."""
    g = Granularity(granularity)
    month = MONTH_ABBR[start.month - 1]

    if g is Granularity.DAY:
        return f"{month} {start.day:02d}, {start.year}"
    if g is Granularity.WEEK:
        return f"Week of {month} {start.day:02d}, {start.year}"
    if g is Granularity.MONTH:
        return f"{month} {start.year}"
    if g is Granularity.QUARTER:
        return f"Q{quarter_of(start)} {start.year}"
    return f"{start.year}"


def period_key(
    ts: datetime | date,
    granularity: Granularity | str,
    week_start: int = SUNDAY,
) -> str:
    """Return the canonical period label for `ts` at `granularity`.

    Examples (Sunday week start):
        day -> 'Jan 05, 2025', week -> 'Week of Jan 05, 2025',
        month -> 'Jan 2025', quarter -> 'Q1 2025', year -> '2025'.
    """
    return format_period(period_start(ts, granularity, week_start), granularity)
