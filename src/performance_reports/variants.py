"""Report variants: taxonomies, metric labels and column metadata.

The bucketing engine is the same for every report; a variant only decides
which activity classifications count as enquiries or closures, which event
statuses count as active bookings, and how the results are labelled.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal, Mapping

from performance_reports.errors import UnknownVariantError


@dataclass(frozen=True)
class Taxonomy:
    """Classification and status sets that drive the per-bucket sub-metrics.

    Attributes:
        enquiry_labels: Activity classifications counted as enquiries.
        closed_label: Terminal activity classification counted as closed.
        active_event_statuses: Event statuses counted as active bookings.
    """
    enquiry_labels: frozenset[str]
    closed_label: str
    active_event_statuses: frozenset[str]


@dataclass(frozen=True)
class ColumnConfig:
    """Export/display metadata for one report column."""
    key: str
    header: str
    format: Literal["number", "percent", "currency", "date"] | None = None
    align: Literal["left", "center", "right"] = "left"


@dataclass(frozen=True)
class MetricLabels:
    activity: str
    closed: str
    active_events: str
    ratio: str


@dataclass(frozen=True)
class ReportVariant:
    """A named parameterisation of the engine."""
    key: str
    title: str
    description: str
    taxonomy: Taxonomy
    metric_labels: MetricLabels
    columns: tuple[ColumnConfig, ...]


def taxonomy_from_mapping(data: Mapping[str, Any]) -> Taxonomy:
    """Build a `Taxonomy` from JSON-like data.

    Expected keys: `enquiry_labels` (list of str), `closed_label` (str) and
    `active_event_statuses` (list of str).

    Raises:
        ValueError: if a key is missing or has the wrong shape.
    """
    missing = {"enquiry_labels", "closed_label", "active_event_statuses"} - set(data)
    if missing:
        raise ValueError(f"Taxonomy is missing keys: {', '.join(sorted(missing))}")

    closed = data["closed_label"]
    if not isinstance(closed, str) or not closed.strip():
        raise ValueError("closed_label must be a non-empty string")

    def _labels(key: str) -> frozenset[str]:
        value = data[key]
        if isinstance(value, str) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"{key} must be a list of strings")
        return frozenset(v.strip() for v in value)

    return Taxonomy(
        enquiry_labels=_labels("enquiry_labels"),
        closed_label=closed.strip(),
        active_event_statuses=_labels("active_event_statuses"),
    )


# =========================================================
# BUILT-IN VARIANTS
# =========================================================

LEAD_TAXONOMY = Taxonomy(
    enquiry_labels=frozenset({"New", "Assigned", "Follow up"}),
    closed_label="Closed",
    active_event_statuses=frozenset({"confirmed", "pending"}),
)


def _columns(actor_header: str, activity: str, enquiry: str, closed: str,
             events: str, active: str, ratio: str) -> tuple[ColumnConfig, ...]:
    return (
        ColumnConfig("actor_name", actor_header),
        ColumnConfig("period_key", "Period"),
        ColumnConfig("activity_count", activity, "number", "right"),
        ColumnConfig("enquiry_count", enquiry, "number", "right"),
        ColumnConfig("closed_count", closed, "number", "right"),
        ColumnConfig("event_count", events, "number", "right"),
        ColumnConfig("active_event_count", active, "number", "right"),
        ColumnConfig("ratio", ratio, "percent", "right"),
    )


AGENTS = ReportVariant(
    key="agents",
    title="Agent Performance Report",
    description="Track leads, enquiries, and conversion metrics for all agents",
    taxonomy=LEAD_TAXONOMY,
    metric_labels=MetricLabels(
        activity="Total Leads",
        closed="Leads Closed",
        active_events="Site Bookings",
        ratio="Avg Conversion",
    ),
    columns=_columns("Agent", "Leads Added", "Enquiries", "Leads Closed",
                     "Site Visits", "Site Bookings", "Conversion Rate"),
)

TEAM_LEADS = ReportVariant(
    key="team-leads",
    title="Team Lead Report",
    description="Team performance, closures and approved site bookings",
    taxonomy=Taxonomy(
        enquiry_labels=LEAD_TAXONOMY.enquiry_labels,
        closed_label=LEAD_TAXONOMY.closed_label,
        active_event_statuses=frozenset({"confirmed"}),
    ),
    metric_labels=MetricLabels(
        activity="Total Leads",
        closed="Total Leads Closed",
        active_events="Bookings Approved",
        ratio="Avg Close Rate",
    ),
    columns=_columns("Team Lead", "Leads", "Open Enquiries", "Leads Closed",
                     "Site Visits", "Bookings Approved", "Close Rate"),
)

CONTRACTORS = ReportVariant(
    key="contractors",
    title="Contractor Report",
    description="Task throughput and inspections per contractor",
    taxonomy=Taxonomy(
        enquiry_labels=frozenset({"Created", "In Progress"}),
        closed_label="Approved",
        active_event_statuses=frozenset({"scheduled", "confirmed"}),
    ),
    metric_labels=MetricLabels(
        activity="Tasks Created",
        closed="Tasks Approved",
        active_events="Inspections Scheduled",
        ratio="Avg Approval Rate",
    ),
    columns=_columns("Contractor", "Tasks Created", "Open Tasks", "Tasks Approved",
                     "Inspections", "Inspections Scheduled", "Approval Rate"),
)

VARIANTS: dict[str, ReportVariant] = {v.key: v for v in (AGENTS, TEAM_LEADS, CONTRACTORS)}


def get_variant(key: str) -> ReportVariant:
    """Return the registered variant for `key`.

    Raises:
        UnknownVariantError: if no variant is registered under `key`.
    """
    try:
        return VARIANTS[key]
    except KeyError:
        raise UnknownVariantError(
            f"Unknown report variant {key!r}; expected one of: {', '.join(sorted(VARIANTS))}"
        ) from None


def with_taxonomy(variant: ReportVariant, taxonomy: Taxonomy) -> ReportVariant:
    """Return a copy of `variant` using a caller-supplied taxonomy."""
    return replace(variant, taxonomy=taxonomy)
