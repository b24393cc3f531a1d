"""Bucketing & join engine.

Activities and events are stacked into one long pandas frame, filtered to
the requested range, tagged with the `(actor_id, period_start)` key of the
bucket they fall in and summed per key. Stacking before grouping gives every
actor the union of periods from both sources, with the missing source's
counts defaulting to 0. A bucket becomes a row only when it holds an
activity or an active event.

Expectations:
- Input: sequences of `ActivityRecord` / `EventRecord` / `Actor` (or plain
  mappings, validated on entry).
- Output: list of `PeriodBucket`, sorted by actor name then period start.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from performance_reports.aggregate.periods import SUNDAY, format_period, period_starts
from performance_reports.errors import UnknownActorError
from performance_reports.models import (
    ActivityRecord,
    Actor,
    DateRange,
    EventRecord,
    Granularity,
    PeriodBucket,
)
from performance_reports.variants import Taxonomy

log = logging.getLogger(__name__)

KEY = ["actor_id", "period_start"]
COUNT_COLUMNS = [
    "activity_count",
    "enquiry_count",
    "closed_count",
    "event_count",
    "active_event_count",
]
FRAME_COLUMNS = ["actor_id", "ts"] + COUNT_COLUMNS


def _coerce(records: Iterable[Any], model: Any) -> list[Any]:
    """Validate plain mappings into `model`; pass model instances through."""
    return [r if isinstance(r, model) else model.model_validate(r) for r in records]


def conversion_ratio(closed: int, total: int) -> float:
    """Return closed/total as a percentage rounded to one decimal (0 when total is 0)."""
    if total <= 0:
        return 0.0
    return round(closed / total * 100.0, 1)


def matches_search(name: str, search: str | None) -> bool:
    """Case-insensitive substring match of `search` in an actor display name.

    An empty or whitespace-only search matches every name.
    """
    if not search or not search.strip():
        return True
    return search.strip().casefold() in name.casefold()


def sort_buckets(rows: Iterable[PeriodBucket]) -> list[PeriodBucket]:
    """Sort rows by actor display name, actor id, then period start.

    Raises:
        ValueError: if the rows were produced with more than one granularity;
            period labels of different granularities do not order together.
    """
    rows = list(rows)
    granularities = {r.granularity for r in rows}
    if len(granularities) > 1:
        names = ", ".join(sorted(g.value for g in granularities))
        raise ValueError(f"Cannot order rows of mixed granularities: {names}")

    return sorted(
        rows,
        key=lambda r: (r.actor_name.casefold(), r.actor_name, r.actor_id, r.period_start),
    )


def _activity_frame(activities: Sequence[ActivityRecord], taxonomy: Taxonomy) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "actor_id": a.actor_id,
                "ts": a.created_at,
                "activity_count": 1,
                "enquiry_count": int(a.classification in taxonomy.enquiry_labels),
                "closed_count": int(a.classification == taxonomy.closed_label),
                "event_count": 0,
                "active_event_count": 0,
            }
            for a in activities
        ],
        columns=FRAME_COLUMNS,
    )


def _event_frame(events: Sequence[EventRecord], taxonomy: Taxonomy) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "actor_id": e.actor_id,
                "ts": e.occurs_at,
                "activity_count": 0,
                "enquiry_count": 0,
                "closed_count": 0,
                "event_count": 1,
                "active_event_count": int(e.status in taxonomy.active_event_statuses),
            }
            for e in events
        ],
        columns=FRAME_COLUMNS,
    )


def _check_actors(
    pdf: pd.DataFrame,
    directory: Mapping[str, Actor],
    ignore_unknown: bool,
) -> pd.DataFrame:
    """Reject (or drop, when asked) records whose actor is not in the directory."""
    known = pdf["actor_id"].isin(list(directory))
    if known.all():
        return pdf

    unknown = set(pdf.loc[~known, "actor_id"])
    if not ignore_unknown:
        raise UnknownActorError(unknown)

    log.warning(
        "Ignoring %d in-range records from %d unknown actors",
        int((~known).sum()),
        len(unknown),
    )
    return pdf[known]


def aggregate(
    activities: Iterable[ActivityRecord | Mapping[str, Any]],
    events: Iterable[EventRecord | Mapping[str, Any]],
    actors: Iterable[Actor | Mapping[str, Any]],
    date_range: DateRange,
    granularity: Granularity | str,
    taxonomy: Taxonomy,
    search: str | None = None,
    week_start: int = SUNDAY,
    ignore_unknown_actors: bool = False,
) -> list[PeriodBucket]:
    """Return per-actor, per-period rows for the records inside `date_range`.

    Args:
        activities: Activity records (leads, tasks, ...).
        events: Event records with flat actor ids (site visits, inspections, ...).
        actors: Actor directory supplying display names.
        date_range: Inclusive calendar-day range to report on.
        granularity: Bucketing granularity.
        taxonomy: Classification/status sets for the sub-metrics.
        search: Optional case-insensitive actor name filter.
        week_start: Weekday weeks start on, for weekly buckets.
        ignore_unknown_actors: Drop, instead of rejecting, in-range records
            whose actor id is not in `actors`.

    Returns:
        Sorted list of `PeriodBucket`; actors without in-range records yield
        no rows, and a period holding only inactive events yields no row.

    Raises:
        pydantic.ValidationError: if a mapping record fails validation.
        UnknownActorError: if in-range records reference unknown actors and
            `ignore_unknown_actors` is False.
    """
    g = Granularity(granularity)
    directory = {a.id: a for a in _coerce(actors, Actor)}

    frames = [
        f
        for f in (
            _activity_frame(_coerce(activities, ActivityRecord), taxonomy),
            _event_frame(_coerce(events, EventRecord), taxonomy),
        )
        if not f.empty
    ]
    if not frames:
        log.debug("No records for %s..%s", date_range.date_from, date_range.date_to)
        return []

    pdf = pd.concat(frames, ignore_index=True)
    pdf["ts"] = pd.to_datetime(pdf["ts"])

    # -----------------------------
    # Range filter (UTC calendar days, inclusive)
    # -----------------------------
    day = pdf["ts"].dt.normalize()
    pdf = pdf[day.between(pd.Timestamp(date_range.date_from), pd.Timestamp(date_range.date_to))]
    pdf = _check_actors(pdf, directory, ignore_unknown_actors)

    # -----------------------------
    # Search filter (by actor identity only)
    # -----------------------------
    selected = [
        actor_id for actor_id, actor in directory.items()
        if matches_search(actor.display_name, search)
    ]
    pdf = pdf[pdf["actor_id"].isin(selected)]
    if pdf.empty:
        log.debug("No in-range records for %s..%s", date_range.date_from, date_range.date_to)
        return []

    # -----------------------------
    # Group per (actor, period)
    # -----------------------------
    pdf = pdf.assign(period_start=period_starts(pdf["ts"], g, week_start))
    grouped = pdf.groupby(KEY, sort=False)[COUNT_COLUMNS].sum().reset_index()

    # inactive events are counted but never make a row on their own
    grouped = grouped[(grouped["activity_count"] > 0) | (grouped["active_event_count"] > 0)]

    rows = []
    for rec in grouped.to_dict("records"):
        actor = directory[rec["actor_id"]]
        activity_count = int(rec["activity_count"])
        closed_count = int(rec["closed_count"])
        rows.append(
            PeriodBucket(
                actor_id=actor.id,
                actor_name=actor.display_name,
                granularity=g,
                period_key=format_period(rec["period_start"], g),
                period_start=rec["period_start"],
                activity_count=activity_count,
                enquiry_count=int(rec["enquiry_count"]),
                closed_count=closed_count,
                event_count=int(rec["event_count"]),
                active_event_count=int(rec["active_event_count"]),
                ratio=conversion_ratio(closed_count, activity_count),
            )
        )

    log.info(
        "Aggregated %d rows for %d actors (granularity=%s, range=%s..%s)",
        len(rows),
        grouped["actor_id"].nunique(),
        g.value,
        date_range.date_from,
        date_range.date_to,
    )
    return sort_buckets(rows)
