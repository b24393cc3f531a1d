"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads the reporting defaults from environment variables (validating the
variant, granularity, lookback and week start values).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

from performance_reports.aggregate.periods import MONDAY, SUNDAY
from performance_reports.models import Granularity
from performance_reports.variants import VARIANTS

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

WEEK_STARTS = {"sunday": SUNDAY, "monday": MONDAY}


@dataclass(frozen=True)
class Settings:
    """Container for reporting configuration read from the environment.

    Attributes:
        data_dir: Directory the CLI resolves relative record paths against.
        output_dir: Directory exports are written to.
        log_path: Optional log file.
        variant: Default report variant key.
        granularity: Default grouping granularity.
        lookback_days: Length of the default date range, ending today.
        week_start: Weekday weeks start on (0=Monday ... 6=Sunday).
    """
    data_dir: Path
    output_dir: Path
    log_path: Path | None
    variant: str
    granularity: Granularity
    lookback_days: int
    week_start: int


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if a variable holds a value outside its allowed set.
    """
    data_dir = Path(os.getenv("REPORTS_DATA_DIR", "data"))
    output_dir = Path(os.getenv("REPORTS_OUTPUT_DIR", "reports_out"))
    log_path_raw = os.getenv("REPORTS_LOG_PATH", "").strip()
    variant = os.getenv("REPORTS_VARIANT", "agents").strip()
    granularity_raw = os.getenv("REPORTS_GRANULARITY", "month").strip().lower()
    lookback_raw = os.getenv("REPORTS_LOOKBACK_DAYS", "30").strip()
    week_start_raw = os.getenv("REPORTS_WEEK_START", "sunday").strip().lower()

    if variant not in VARIANTS:
        raise RuntimeError(
            f"REPORTS_VARIANT={variant!r} is not a known variant "
            f"(expected one of: {', '.join(sorted(VARIANTS))})."
        )

    try:
        granularity = Granularity(granularity_raw)
    except ValueError:
        raise RuntimeError(
            f"REPORTS_GRANULARITY={granularity_raw!r} is invalid "
            f"(expected one of: {', '.join(g.value for g in Granularity)})."
        ) from None

    if not lookback_raw.isdigit():
        raise RuntimeError(
            f"REPORTS_LOOKBACK_DAYS must be a non-negative integer, got {lookback_raw!r}."
        )

    if week_start_raw not in WEEK_STARTS:
        raise RuntimeError(
            f"REPORTS_WEEK_START={week_start_raw!r} is invalid (expected 'sunday' or 'monday')."
        )

    return Settings(
        data_dir=data_dir,
        output_dir=output_dir,
        log_path=Path(log_path_raw) if log_path_raw else None,
        variant=variant,
        granularity=granularity,
        lookback_days=int(lookback_raw),
        week_start=WEEK_STARTS[week_start_raw],
    )
