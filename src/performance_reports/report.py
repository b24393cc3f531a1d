"""Report orchestration.

Runs the full data flow for one filter state: aggregate the current range,
derive and aggregate the previous range, roll both up and compare them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from performance_reports.aggregate.buckets import aggregate
from performance_reports.aggregate.periods import SUNDAY
from performance_reports.aggregate.ranges import previous_range
from performance_reports.aggregate.rollup import build_metrics, rollup
from performance_reports.models import (
    ActivityRecord,
    Actor,
    DateRange,
    EventRecord,
    MetricSummary,
    PeriodBucket,
    ReportFilters,
    Totals,
)
from performance_reports.variants import AGENTS, ReportVariant

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceReport:
    """Everything the rendering and export collaborators need for one filter state.

    Attributes:
        variant: Variant the report was built with.
        filters: Filter state the report answers.
        previous_range: Range the trends compare against.
        rows: Current-period rows.
        previous_rows: Previous-period rows.
        totals: Rollup of `rows`.
        previous_totals: Rollup of `previous_rows`.
        metrics: Summary metrics with trends.
    """
    variant: ReportVariant
    filters: ReportFilters
    previous_range: DateRange
    rows: tuple[PeriodBucket, ...]
    previous_rows: tuple[PeriodBucket, ...]
    totals: Totals
    previous_totals: Totals
    metrics: tuple[MetricSummary, ...]


def build_report(
    activities: Iterable[ActivityRecord | Mapping[str, Any]],
    events: Iterable[EventRecord | Mapping[str, Any]],
    actors: Iterable[Actor | Mapping[str, Any]],
    filters: ReportFilters,
    variant: ReportVariant = AGENTS,
    week_start: int = SUNDAY,
    ignore_unknown_actors: bool = False,
) -> PerformanceReport:
    """Build the current and previous-period view for `filters`.

    Args:
        activities: Activity records.
        events: Event records with flat actor ids.
        actors: Actor directory.
        filters: Date range, granularity and search text.
        variant: Report variant supplying taxonomy and labels.
        week_start: Weekday weeks start on.
        ignore_unknown_actors: Drop records of actors missing from `actors`.

    Returns:
        Immutable `PerformanceReport`.
    """
    # inputs may be one-shot iterators; both passes need them
    activities = list(activities)
    events = list(events)
    actors = list(actors)

    current = filters.date_range
    previous = previous_range(current.date_from, current.date_to, filters.granularity)

    def _run(date_range: DateRange) -> list[PeriodBucket]:
        return aggregate(
            activities,
            events,
            actors,
            date_range,
            filters.granularity,
            variant.taxonomy,
            search=filters.search,
            week_start=week_start,
            ignore_unknown_actors=ignore_unknown_actors,
        )

    rows = _run(current)
    previous_rows = _run(previous)
    totals = rollup(rows)
    previous_totals = rollup(previous_rows)

    log.info(
        "%s: %d rows (previous %s..%s: %d rows)",
        variant.title,
        len(rows),
        previous.date_from,
        previous.date_to,
        len(previous_rows),
    )

    return PerformanceReport(
        variant=variant,
        filters=filters,
        previous_range=previous,
        rows=tuple(rows),
        previous_rows=tuple(previous_rows),
        totals=totals,
        previous_totals=previous_totals,
        metrics=tuple(build_metrics(totals, previous_totals, variant)),
    )
