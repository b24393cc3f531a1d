"""Totals rollup and period-over-period trend comparison."""

from __future__ import annotations

from typing import Iterable

from performance_reports.models import MetricSummary, PeriodBucket, Totals, Trend
from performance_reports.variants import ReportVariant


def rollup(rows: Iterable[PeriodBucket]) -> Totals:
    """Reduce report rows into portfolio-wide totals.

    Args:
        rows: Rows produced by `aggregate`.

    Returns:
        `Totals` with summed counts and the arithmetic mean of the row ratios.
        Every field is 0 for an empty row set.
    """
    rows = list(rows)
    if not rows:
        return Totals()

    return Totals(
        total_activity=sum(r.activity_count for r in rows),
        total_closed=sum(r.closed_count for r in rows),
        total_active_events=sum(r.active_event_count for r in rows),
        avg_ratio=sum(r.ratio for r in rows) / len(rows),
    )


def trend(current: float, previous: float) -> Trend:
    """Compare `current` with `previous`.

    A zero `previous` yields no change and no improvement; this covers both
    "no prior data" and "nothing happened before".
    """
    if previous == 0:
        return Trend(percentage_change=0.0, is_improvement=False)

    change = (current - previous) / previous * 100.0
    return Trend(percentage_change=abs(change), is_improvement=current > previous)


def build_metrics(current: Totals, previous: Totals, variant: ReportVariant) -> list[MetricSummary]:
    """Return the summary cards for a report variant, each with its trend."""
    labels = variant.metric_labels
    return [
        MetricSummary(
            label=labels.activity,
            value=current.total_activity,
            format="number",
            trend=trend(current.total_activity, previous.total_activity),
        ),
        MetricSummary(
            label=labels.closed,
            value=current.total_closed,
            format="number",
            trend=trend(current.total_closed, previous.total_closed),
        ),
        MetricSummary(
            label=labels.active_events,
            value=current.total_active_events,
            format="number",
            trend=trend(current.total_active_events, previous.total_active_events),
        ),
        MetricSummary(
            label=labels.ratio,
            value=current.avg_ratio,
            format="percent",
            trend=trend(current.avg_ratio, previous.avg_ratio),
        ),
    ]
