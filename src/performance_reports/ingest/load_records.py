"""Load activity, event and actor dumps into validated models.

Host applications export records with their own field names (`addedBy`,
`propertyStatus`, `bookedBy`, `_id`, ...). Each loader picks the first known
source key for every model field, flattens nested actor references, drops
unknown keys and validates the result. The first invalid record aborts the
load with `RecordValidationError`; records are never silently skipped.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Mapping, Sequence

import pandas as pd
from pydantic import BaseModel, ValidationError

from performance_reports.errors import RecordValidationError
from performance_reports.models import ActivityRecord, Actor, EventRecord

log = logging.getLogger(__name__)

ACTIVITY_FIELDS: dict[str, tuple[str, ...]] = {
    "id": ("id", "_id"),
    "actor_id": ("actor_id", "actorId", "addedBy"),
    "created_at": ("created_at", "createdAt"),
    "classification": ("classification", "propertyStatus"),
}

EVENT_FIELDS: dict[str, tuple[str, ...]] = {
    "id": ("id", "_id"),
    "actor_id": ("actor_id", "actorId", "bookedBy"),
    "occurs_at": ("occurs_at", "occursAt", "date"),
    "status": ("status",),
}

ACTOR_FIELDS: dict[str, tuple[str, ...]] = {
    "id": ("id", "_id"),
    "display_name": ("display_name", "displayName", "name"),
}

DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")


def resolve_actor_ref(value: Any) -> str | None:
    """Flatten an actor reference to its id.

    Accepts a plain id (str or int) or a mapping carrying `_id` or `id`,
    e.g. a populated `bookedBy` user object.

    Returns:
        The id as a string, or None when no id can be found.
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        return resolve_actor_ref(value.get("_id", value.get("id")))
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def read_records(path: Path) -> list[dict[str, Any]]:
    """Read raw records from a CSV or JSON file.

    CSV cells are read as strings and empty cells are dropped. JSON must hold
    a list of objects, optionally wrapped as `{"data": [...]}`.

    Raises:
        RecordValidationError: if the JSON payload is not a list of objects.
        ValueError: for unsupported file extensions.
    """
    suffix = path.suffix.lower()

    if suffix == ".csv":
        pdf = pd.read_csv(path, dtype=str, keep_default_na=False)
        return [
            {k: v for k, v in rec.items() if v != ""}
            for rec in pdf.to_dict(orient="records")
        ]

    if suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict) and "data" in data:
            data = data["data"]
        if not isinstance(data, list) or not all(isinstance(d, dict) for d in data):
            raise RecordValidationError(f"{path}: expected a list of objects")
        return data

    raise ValueError(f"Unsupported record file type: {path.suffix or path.name}")


def _project(raw: Mapping[str, Any], fields: Mapping[str, Sequence[str]]) -> dict[str, Any]:
    """Map source keys onto model fields; the first present source key wins."""
    out: dict[str, Any] = {}
    for field, sources in fields.items():
        for src in sources:
            if src in raw and raw[src] is not None:
                out[field] = raw[src]
                break
    return out


def _combine_date_time(raw: Mapping[str, Any], doc: dict[str, Any]) -> None:
    """Join a separate `time` column onto a date-only `occurs_at` value."""
    occurs = doc.get("occurs_at")
    time = raw.get("time")
    if isinstance(occurs, str) and isinstance(time, str):
        if DATE_ONLY_RE.match(occurs.strip()) and TIME_RE.match(time.strip()):
            hh, rest = time.strip().split(":", 1)
            doc["occurs_at"] = f"{occurs.strip()}T{int(hh):02d}:{rest}"


def _validate_all(
    path: Path,
    raws: list[dict[str, Any]],
    model: type[BaseModel],
    fields: Mapping[str, Sequence[str]],
) -> list[Any]:
    out = []
    for i, raw in enumerate(raws):
        doc = _project(raw, fields)
        if "actor_id" in doc:
            doc["actor_id"] = resolve_actor_ref(doc["actor_id"])
        if model is EventRecord:
            _combine_date_time(raw, doc)
        try:
            out.append(model.model_validate(doc))
        except ValidationError as e:
            raise RecordValidationError(
                f"{path}: record {i} is not a valid {model.__name__}: {e}"
            ) from e

    log.info("Loaded %d %s records from %s", len(out), model.__name__, path)
    return out


def _with_override(fields: dict[str, tuple[str, ...]], field: str, source: str | None) -> dict[str, tuple[str, ...]]:
    if not source:
        return fields
    return {**fields, field: (source, *fields[field])}


def load_activities(
    path: Path,
    actor_field: str | None = None,
    classification_field: str | None = None,
) -> list[ActivityRecord]:
    """Load and validate activity records.

    Args:
        path: CSV or JSON file.
        actor_field: Source key holding the owning actor, tried first.
        classification_field: Source key holding the classification, tried first.
    """
    fields = _with_override(ACTIVITY_FIELDS, "actor_id", actor_field)
    fields = _with_override(fields, "classification", classification_field)
    return _validate_all(path, read_records(path), ActivityRecord, fields)


def load_events(path: Path, actor_field: str | None = None) -> list[EventRecord]:
    """Load and validate event records, resolving nested booked-by references.

    Args:
        path: CSV or JSON file.
        actor_field: Source key holding the booking actor, tried first.
    """
    fields = _with_override(EVENT_FIELDS, "actor_id", actor_field)
    return _validate_all(path, read_records(path), EventRecord, fields)


def load_actors(path: Path) -> list[Actor]:
    """Load and validate the actor directory."""
    return _validate_all(path, read_records(path), Actor, ACTOR_FIELDS)
