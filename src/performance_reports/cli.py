"""Command-line interface for building performance reports.

Provides subcommands: `report` and `previous-range`. Each command is
implemented as a `cmd_*` function that accepts an argparse namespace, the
settings and the current date.
"""
from __future__ import annotations

import argparse
import json
import logging
from datetime import date
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from performance_reports.aggregate.ranges import default_filters, previous_range
from performance_reports.config import Settings, get_settings
from performance_reports.errors import ReportError
from performance_reports.export import date_range_label, export_file_name, write_report_csv
from performance_reports.ingest.load_records import load_activities, load_actors, load_events
from performance_reports.logging_config import configure_logging
from performance_reports.models import Granularity, ReportFilters
from performance_reports.report import build_report
from performance_reports.variants import VARIANTS, get_variant, taxonomy_from_mapping, with_taxonomy

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _iso_date(value: str) -> date:
    """argparse type for YYYY-MM-DD dates."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}; expected YYYY-MM-DD") from None


def _resolve(path: str, data_dir: Path) -> Path:
    """Return `path` as given when it exists or is absolute, else relative to `data_dir`."""
    p = Path(path)
    if p.is_absolute() or p.exists():
        return p
    return data_dir / p


def _filters_from_args(args: argparse.Namespace, settings: Settings, today: date) -> ReportFilters:
    """Build filters from CLI flags, filling gaps from the configured defaults."""
    granularity = Granularity(args.granularity) if args.granularity else settings.granularity
    # the lookback window ends at --to when given, else today
    defaults = default_filters(args.date_to or today, settings.lookback_days, granularity)

    return ReportFilters(
        date_from=args.date_from or defaults.date_from,
        date_to=defaults.date_to,
        granularity=granularity,
        search=args.search or None,
    )


# --------------------------------------------------
# REPORT
# --------------------------------------------------
def cmd_report(args: argparse.Namespace, settings: Settings, today: date) -> Path:
    """Build a report from record files and write its CSV export.

    Args:
        args: argparse namespace with record paths and filter flags.
        settings: Loaded settings.
        today: Current date from the caller's clock.

    Returns:
        Path of the written export.
    """
    variant = get_variant(args.variant or settings.variant)
    if args.taxonomy:
        mapping = json.loads(Path(args.taxonomy).read_text(encoding="utf-8"))
        variant = with_taxonomy(variant, taxonomy_from_mapping(mapping))

    filters = _filters_from_args(args, settings, today)

    activities = load_activities(_resolve(args.activities, settings.data_dir))
    events = load_events(
        _resolve(args.events, settings.data_dir),
        actor_field=args.events_actor_field,
    )
    actors = load_actors(_resolve(args.actors, settings.data_dir))

    report = build_report(
        activities,
        events,
        actors,
        filters,
        variant=variant,
        week_start=settings.week_start,
        ignore_unknown_actors=args.ignore_unknown_actors,
    )

    log.info(
        "%s | %s vs %s",
        variant.title,
        date_range_label(filters.date_from, filters.date_to),
        date_range_label(report.previous_range.date_from, report.previous_range.date_to),
    )
    for m in report.metrics:
        direction = "up" if m.trend and m.trend.is_improvement else "down"
        change = m.trend.percentage_change if m.trend else 0.0
        log.info("%s: %.1f (%s %.1f%%)", m.label, m.value, direction, change)

    out_dir = Path(args.out) if args.out else settings.output_dir
    return write_report_csv(report, out_dir / export_file_name(variant.title, today))


# --------------------------------------------------
# PREVIOUS RANGE
# --------------------------------------------------
def cmd_previous_range(args: argparse.Namespace) -> None:
    """Print the previous-period range for the given range and granularity."""
    prev = previous_range(args.date_from, args.date_to, args.granularity)
    print(f"{prev.date_from.isoformat()} {prev.date_to.isoformat()}")


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    granularities = [g.value for g in Granularity]

    p = argparse.ArgumentParser(prog="performance-reports")
    p.add_argument("--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_report = sub.add_parser("report")
    p_report.add_argument("--activities", required=True)
    p_report.add_argument("--events", required=True)
    p_report.add_argument("--actors", required=True)
    p_report.add_argument("--from", dest="date_from", type=_iso_date, default=None)
    p_report.add_argument("--to", dest="date_to", type=_iso_date, default=None)
    p_report.add_argument("--granularity", choices=granularities, default=None)
    p_report.add_argument("--search", default=None)
    p_report.add_argument("--variant", choices=sorted(VARIANTS), default=None)
    p_report.add_argument("--taxonomy", default=None, help="JSON file overriding the variant taxonomy")
    p_report.add_argument("--events-actor-field", default=None)
    p_report.add_argument("--ignore-unknown-actors", action="store_true")
    p_report.add_argument("--out", default=None)

    p_prev = sub.add_parser("previous-range")
    p_prev.add_argument("--from", dest="date_from", type=_iso_date, required=True)
    p_prev.add_argument("--to", dest="date_to", type=_iso_date, required=True)
    p_prev.add_argument("--granularity", choices=granularities, default="month")

    return p


def main(argv: list[str] | None = None, clock: Callable[[], date] = date.today) -> int:
    """CLI entry point: parse args, configure logging and dispatch commands.

    Args:
        argv: Argument list (defaults to `sys.argv[1:]`).
        clock: Source of the current date.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_path, logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.cmd == "report":
            cmd_report(args, settings, clock())
        elif args.cmd == "previous-range":
            cmd_previous_range(args)
        else:
            return 2
    except (ReportError, ValidationError, ValueError, OSError) as e:
        log.error("%s failed: %s", args.cmd, e)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
