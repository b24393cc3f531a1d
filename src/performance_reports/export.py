"""Tabular export boundary.

Converts report rows into a pandas DataFrame keyed by display headers and
writes a CSV with a short title block. Values are written raw; number and
currency styling belongs to the spreadsheet collaborator.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd

from performance_reports.aggregate.periods import format_period
from performance_reports.models import Granularity, PeriodBucket, ReportFilters
from performance_reports.report import PerformanceReport
from performance_reports.variants import ColumnConfig

log = logging.getLogger(__name__)


def rows_to_frame(rows: Iterable[PeriodBucket], columns: Sequence[ColumnConfig]) -> pd.DataFrame:
    """Return rows as a DataFrame with one column per `ColumnConfig`, in order.

    Args:
        rows: Report rows.
        columns: Column metadata; `key` selects the row field, `header`
            becomes the column name.

    Returns:
        pandas.DataFrame (empty, with headers, when there are no rows).
    """
    keys = [c.key for c in columns]
    records = [r.model_dump(mode="json", include=set(keys)) for r in rows]
    pdf = pd.DataFrame(records, columns=keys)
    return pdf.rename(columns={c.key: c.header for c in columns})


def date_range_label(date_from: date, date_to: date) -> str:
    """Return e.g. 'Jan 01, 2025 - Jan 31, 2025'."""
    return f"{format_period(date_from, Granularity.DAY)} - {format_period(date_to, Granularity.DAY)}"


def filters_label(filters: ReportFilters) -> str:
    parts = [f"Group by: {filters.granularity.value}"]
    if filters.search:
        parts.append(f"Search: {filters.search}")
    return ", ".join(parts)


def export_file_name(title: str, today: date, suffix: str = ".csv") -> str:
    """Return the default export file name, e.g. 'Agent_Performance_Report_2025-01-31.csv'."""
    stem = re.sub(r"\s+", "_", title.strip())
    return f"{stem}_{today.isoformat()}{suffix}"


def write_report_csv(report: PerformanceReport, path: Path) -> Path:
    """Write the current-period rows of `report` to `path` as CSV.

    The file starts with the report title, date range and filter lines and a
    blank line, followed by the table.

    Returns:
        The path written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    pdf = rows_to_frame(report.rows, report.variant.columns)
    filters = report.filters

    with path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(f"{report.variant.title}\n")
        fh.write(f"Date Range: {date_range_label(filters.date_from, filters.date_to)}\n")
        fh.write(f"Filters: {filters_label(filters)}\n")
        fh.write("\n")
        pdf.to_csv(fh, index=False)

    log.info("Wrote %d rows to %s", len(pdf), path)
    return path
