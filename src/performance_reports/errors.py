"""Exception types raised by the reporting core and its loaders."""

from __future__ import annotations


class ReportError(Exception):
    """Base class for report-level failures."""


class UnknownActorError(ReportError, ValueError):
    """Raised when in-range records reference actors missing from the directory."""

    def __init__(self, actor_ids: set[str]) -> None:
        self.actor_ids = frozenset(actor_ids)
        listed = ", ".join(sorted(self.actor_ids))
        super().__init__(f"Records reference unknown actor ids: {listed}")


class UnknownVariantError(ReportError, KeyError):
    """Raised when a report variant key is not registered."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown report variant"


class RecordValidationError(ReportError, ValueError):
    """Raised when a loaded record fails schema validation."""
