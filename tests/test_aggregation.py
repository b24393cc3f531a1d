from __future__ import annotations

import logging
from datetime import date, datetime

import pytest
from pydantic import ValidationError

from performance_reports.aggregate.buckets import aggregate, conversion_ratio, sort_buckets
from performance_reports.aggregate.periods import MONDAY
from performance_reports.errors import UnknownActorError
from performance_reports.models import ActivityRecord, Actor, DateRange, EventRecord
from performance_reports.variants import LEAD_TAXONOMY

JANUARY = DateRange(date_from=date(2025, 1, 1), date_to=date(2025, 1, 31))
ACTORS = [
    Actor(id="A", display_name="Sarah Smith"),
    Actor(id="B", display_name="John Doe"),
    Actor(id="C", display_name="alice Wong"),
]


def _act(actor: str, ts: datetime, label: str) -> ActivityRecord:
    return ActivityRecord(actor_id=actor, created_at=ts, classification=label)


def _evt(actor: str, ts: datetime, status: str) -> EventRecord:
    return EventRecord(actor_id=actor, occurs_at=ts, status=status)


def test_january_scenario_single_row() -> None:
    activities = [
        _act("A", datetime(2025, 1, 3, 10), "New"),
        _act("A", datetime(2025, 1, 15, 12), "New"),
        _act("A", datetime(2025, 1, 28, 9), "Closed"),
    ]
    events = [
        _evt("A", datetime(2025, 1, 10, 11), "confirmed"),
        _evt("A", datetime(2025, 1, 20, 16), "cancelled"),
    ]
    rows = aggregate(activities, events, ACTORS, JANUARY, "month", LEAD_TAXONOMY)

    assert len(rows) == 1
    row = rows[0]
    assert row.actor_id == "A"
    assert row.period_key == "Jan 2025"
    assert row.activity_count == 3
    assert row.enquiry_count == 2
    assert row.closed_count == 1
    assert row.event_count == 2
    assert row.active_event_count == 1
    assert row.ratio == 33.3


def test_union_of_periods_from_both_sources() -> None:
    q1 = DateRange(date_from=date(2025, 1, 1), date_to=date(2025, 3, 31))
    activities = [_act("A", datetime(2025, 1, 5), "New")]
    events = [_evt("A", datetime(2025, 2, 5), "pending"), _evt("A", datetime(2025, 3, 5), "cancelled")]

    rows = aggregate(activities, events, ACTORS, q1, "month", LEAD_TAXONOMY)

    # the cancelled-only March period has nothing to report
    assert [r.period_key for r in rows] == ["Jan 2025", "Feb 2025"]
    feb = rows[1]
    assert (feb.activity_count, feb.closed_count, feb.active_event_count, feb.ratio) == (0, 0, 1, 0.0)


def test_every_row_has_an_activity_or_active_event() -> None:
    activities = [_act("A", datetime(2025, 1, 3), "Closed")]
    events = [
        _evt("B", datetime(2025, 1, 4), "cancelled"),
        _evt("B", datetime(2025, 1, 6), "cancelled"),
        _evt("C", datetime(2025, 1, 7), "confirmed"),
    ]

    rows = aggregate(activities, events, ACTORS, JANUARY, "month", LEAD_TAXONOMY)

    assert [r.actor_id for r in rows] == ["C", "A"]
    assert all(r.activity_count > 0 or r.active_event_count > 0 for r in rows)


def test_inactive_events_still_counted_alongside_activity() -> None:
    activities = [_act("A", datetime(2025, 1, 3), "New")]
    events = [_evt("A", datetime(2025, 1, 4), "cancelled")]

    (row,) = aggregate(activities, events, ACTORS, JANUARY, "month", LEAD_TAXONOMY)

    assert (row.activity_count, row.event_count, row.active_event_count) == (1, 1, 0)


def test_weekly_buckets_follow_week_start() -> None:
    # Sunday Jan 5 and Monday Jan 6 2025
    activities = [_act("A", datetime(2025, 1, 5, 9), "New"), _act("A", datetime(2025, 1, 6, 9), "New")]

    sunday = aggregate(activities, [], ACTORS, JANUARY, "week", LEAD_TAXONOMY)
    monday = aggregate(activities, [], ACTORS, JANUARY, "week", LEAD_TAXONOMY, week_start=MONDAY)

    assert [(r.period_key, r.activity_count) for r in sunday] == [("Week of Jan 05, 2025", 2)]
    assert [r.period_key for r in monday] == ["Week of Dec 30, 2024", "Week of Jan 06, 2025"]


def test_rows_are_sparse() -> None:
    activities = [_act("A", datetime(2025, 1, 2), "New"), _act("A", datetime(2025, 1, 9), "New")]
    rows = aggregate(activities, [], ACTORS, JANUARY, "week", LEAD_TAXONOMY)
    assert [r.period_key for r in rows] == ["Week of Dec 29, 2024", "Week of Jan 05, 2025"]
    assert all(r.actor_id == "A" for r in rows)


def test_actor_without_in_range_records_has_no_rows() -> None:
    activities = [_act("B", datetime(2024, 12, 31, 23, 59), "Closed")]
    events = [_evt("B", datetime(2025, 2, 1), "confirmed")]
    assert aggregate(activities, events, ACTORS, JANUARY, "month", LEAD_TAXONOMY) == []


def test_range_bounds_are_inclusive() -> None:
    activities = [_act("A", datetime(2025, 1, 1, 0, 0), "New"), _act("A", datetime(2025, 1, 31, 23, 59), "New")]
    rows = aggregate(activities, [], ACTORS, JANUARY, "day", LEAD_TAXONOMY)
    assert [r.period_key for r in rows] == ["Jan 01, 2025", "Jan 31, 2025"]


def test_search_filters_by_actor_name_only() -> None:
    activities = [_act("A", datetime(2025, 1, 3), "New")] + [
        _act("B", datetime(2025, 1, d), "Closed") for d in range(1, 20)
    ]
    rows = aggregate(activities, [], ACTORS, JANUARY, "month", LEAD_TAXONOMY, search="smi")
    assert {r.actor_name for r in rows} == {"Sarah Smith"}


def test_search_is_case_insensitive_and_blank_means_all() -> None:
    activities = [_act("A", datetime(2025, 1, 3), "New"), _act("B", datetime(2025, 1, 4), "New")]
    assert {r.actor_id for r in aggregate(activities, [], ACTORS, JANUARY, "month", LEAD_TAXONOMY, search="  DOE ")} == {"B"}
    assert len(aggregate(activities, [], ACTORS, JANUARY, "month", LEAD_TAXONOMY, search="   ")) == 2


def test_sorted_by_name_then_period() -> None:
    activities = [
        _act("A", datetime(2025, 2, 3), "New"),
        _act("A", datetime(2025, 1, 3), "New"),
        _act("B", datetime(2025, 1, 3), "New"),
        _act("C", datetime(2025, 1, 3), "New"),
    ]
    rng = DateRange(date_from=date(2025, 1, 1), date_to=date(2025, 2, 28))
    rows = aggregate(activities, [], ACTORS, rng, "month", LEAD_TAXONOMY)
    assert [(r.actor_name, r.period_key) for r in rows] == [
        ("alice Wong", "Jan 2025"),
        ("John Doe", "Jan 2025"),
        ("Sarah Smith", "Jan 2025"),
        ("Sarah Smith", "Feb 2025"),
    ]


def test_aggregate_is_idempotent() -> None:
    activities = [_act("A", datetime(2025, 1, 3), "Closed"), _act("B", datetime(2025, 1, 9), "New")]
    events = [_evt("B", datetime(2025, 1, 12), "pending")]
    first = aggregate(activities, events, ACTORS, JANUARY, "week", LEAD_TAXONOMY)
    second = aggregate(activities, events, ACTORS, JANUARY, "week", LEAD_TAXONOMY)
    assert first == second
    assert [r.model_dump() for r in first] == [r.model_dump() for r in second]


def test_accepts_plain_mappings() -> None:
    rows = aggregate(
        [{"actorId": "A", "createdAt": "2025-01-03T10:00:00", "classification": "Closed"}],
        [{"actorId": "A", "occursAt": "2025-01-04T10:00:00Z", "status": "confirmed"}],
        [{"id": "A", "name": "Sarah Smith"}],
        JANUARY,
        "month",
        LEAD_TAXONOMY,
    )
    assert rows[0].ratio == 100.0
    assert rows[0].active_event_count == 1


def test_record_without_actor_is_rejected() -> None:
    with pytest.raises(ValidationError):
        aggregate(
            [{"createdAt": "2025-01-03T10:00:00", "classification": "New"}],
            [],
            ACTORS,
            JANUARY,
            "month",
            LEAD_TAXONOMY,
        )


def test_unknown_actor_is_rejected() -> None:
    activities = [_act("Z", datetime(2025, 1, 3), "New")]
    with pytest.raises(UnknownActorError) as exc:
        aggregate(activities, [], ACTORS, JANUARY, "month", LEAD_TAXONOMY)
    assert exc.value.actor_ids == frozenset({"Z"})


def test_unknown_actor_outside_range_is_not_an_error() -> None:
    activities = [_act("Z", datetime(2024, 6, 3), "New"), _act("A", datetime(2025, 1, 3), "New")]
    rows = aggregate(activities, [], ACTORS, JANUARY, "month", LEAD_TAXONOMY)
    assert [r.actor_id for r in rows] == ["A"]


def test_unknown_actor_can_be_ignored(caplog: pytest.LogCaptureFixture) -> None:
    activities = [_act("Z", datetime(2025, 1, 3), "New"), _act("A", datetime(2025, 1, 3), "New")]
    with caplog.at_level(logging.WARNING, logger="performance_reports.aggregate.buckets"):
        rows = aggregate(activities, [], ACTORS, JANUARY, "month", LEAD_TAXONOMY, ignore_unknown_actors=True)
    assert [r.actor_id for r in rows] == ["A"]
    assert "unknown actors" in caplog.text


def test_sort_buckets_rejects_mixed_granularities() -> None:
    activities = [_act("A", datetime(2025, 1, 3), "New")]
    monthly = aggregate(activities, [], ACTORS, JANUARY, "month", LEAD_TAXONOMY)
    quarterly = aggregate(activities, [], ACTORS, JANUARY, "quarter", LEAD_TAXONOMY)
    with pytest.raises(ValueError):
        sort_buckets(monthly + quarterly)


def test_conversion_ratio() -> None:
    assert conversion_ratio(0, 0) == 0.0
    assert conversion_ratio(1, 3) == 33.3
    assert conversion_ratio(2, 3) == 66.7
    assert conversion_ratio(5, 5) == 100.0
