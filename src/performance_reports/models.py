"""Pydantic models for input records, report rows and summary metrics.

Input records (activities, events, actors) are validated on entry so that a
record without an actor id or timestamp is rejected instead of silently
dropped. Output models are frozen; nothing is mutated after construction.

Timestamps follow a single UTC policy: timezone-aware values are converted to
UTC and stored naive, naive values are taken to already be UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Granularity(str, Enum):
    """Calendar unit used to bucket timestamps."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


def to_utc_naive(ts: datetime) -> datetime:
    """Return `ts` as a naive UTC datetime.

    Args:
        ts: Naive (assumed UTC) or timezone-aware datetime.

    Returns:
        Naive datetime on the UTC wall clock.
    """
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


def as_calendar_date(value: Any) -> Any:
    """Collapse datetimes to their UTC calendar day; pass anything else through."""
    if isinstance(value, datetime):
        return to_utc_naive(value).date()
    return value


def _id_to_str(value: Any) -> Any:
    # CSV/JSON dumps frequently carry numeric ids
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


# =========================================================
# INPUT RECORDS
# =========================================================

class ActivityRecord(BaseModel):
    """A time-stamped sales activity (e.g. a lead) attributed to one actor.

    Attributes:
        id: Optional source identifier.
        actor_id: Id of the actor who owns the activity.
        created_at: When the activity was created.
        classification: Taxonomy label (e.g. 'New', 'Closed').
    """
    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)
    id: str | None = None
    actor_id: str = Field(..., min_length=1, validation_alias=AliasChoices("actor_id", "actorId"))
    created_at: datetime = Field(..., validation_alias=AliasChoices("created_at", "createdAt"))
    classification: str

    @field_validator("id", "actor_id", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> Any:
        return _id_to_str(v)

    @field_validator("created_at")
    @classmethod
    def _normalize_ts(cls, v: datetime) -> datetime:
        return to_utc_naive(v)


class EventRecord(BaseModel):
    """A scheduled event (e.g. a site visit) booked by one actor.

    The actor reference must already be flat; nested "booked-by" objects are
    resolved by the loaders before validation.
    """
    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)
    id: str | None = None
    actor_id: str = Field(..., min_length=1, validation_alias=AliasChoices("actor_id", "actorId"))
    occurs_at: datetime = Field(..., validation_alias=AliasChoices("occurs_at", "occursAt"))
    status: str

    @field_validator("id", "actor_id", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> Any:
        return _id_to_str(v)

    @field_validator("occurs_at")
    @classmethod
    def _normalize_ts(cls, v: datetime) -> datetime:
        return to_utc_naive(v)


class Actor(BaseModel):
    """Entry of the actor directory."""
    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)
    id: str = Field(..., min_length=1)
    display_name: str = Field(
        ..., validation_alias=AliasChoices("display_name", "displayName", "name")
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return _id_to_str(v)


# =========================================================
# RANGES & FILTERS
# =========================================================

class DateRange(BaseModel):
    """Inclusive calendar-day range.

    Attributes:
        date_from: First day in the range.
        date_to: Last day in the range (inclusive).
    """
    model_config = ConfigDict(extra="forbid", frozen=True)
    date_from: date
    date_to: date

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _collapse_datetimes(cls, v: Any) -> Any:
        return as_calendar_date(v)

    @model_validator(mode="after")
    def _check_order(self) -> DateRange:
        if self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self

    def contains(self, ts: datetime | date) -> bool:
        """Return True when the UTC calendar day of `ts` lies in the range."""
        return self.date_from <= as_calendar_date(ts) <= self.date_to


class ReportFilters(BaseModel):
    """Filter state supplied by the filter surface."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    date_from: date
    date_to: date
    granularity: Granularity = Granularity.MONTH
    search: str | None = None

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _collapse_datetimes(cls, v: Any) -> Any:
        return as_calendar_date(v)

    @model_validator(mode="after")
    def _check_order(self) -> ReportFilters:
        if self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self

    @property
    def date_range(self) -> DateRange:
        return DateRange(date_from=self.date_from, date_to=self.date_to)


# =========================================================
# OUTPUTS
# =========================================================

class PeriodBucket(BaseModel):
    """One report row: an actor's records within one period.

    Attributes:
        actor_id: Actor id.
        actor_name: Actor display name at aggregation time.
        granularity: Granularity the period key was derived with.
        period_key: Display label of the period (e.g. 'Jan 2025').
        period_start: First calendar day of the period; chronological sort key.
        activity_count: In-range activities in the period.
        enquiry_count: Activities whose classification counts as an enquiry.
        closed_count: Activities carrying the closed label.
        event_count: In-range events in the period, any status.
        active_event_count: Events whose status counts as an active booking.
        ratio: closed_count / activity_count * 100, one decimal, 0 without activity.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)
    actor_id: str
    actor_name: str
    granularity: Granularity
    period_key: str
    period_start: date
    activity_count: int = Field(..., ge=0)
    enquiry_count: int = Field(..., ge=0)
    closed_count: int = Field(..., ge=0)
    event_count: int = Field(..., ge=0)
    active_event_count: int = Field(..., ge=0)
    ratio: float = Field(..., ge=0, le=100)


class Totals(BaseModel):
    """Portfolio-wide rollup of a row set."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    total_activity: int = Field(0, ge=0)
    total_closed: int = Field(0, ge=0)
    total_active_events: int = Field(0, ge=0)
    avg_ratio: float = Field(0.0, ge=0)


class Trend(BaseModel):
    """Magnitude and direction of change against the previous period."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    percentage_change: float = Field(..., ge=0)
    is_improvement: bool


class MetricSummary(BaseModel):
    """A labelled metric handed to rendering/export collaborators."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    label: str
    value: float
    format: Literal["number", "percent", "currency"] = "number"
    trend: Trend | None = None
