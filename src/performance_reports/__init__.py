"""performance_reports package.

Contains modules for loading time-stamped activity and event records,
bucketing them per actor and calendar period, rolling the buckets up into
portfolio totals, and comparing those totals with the equivalent previous
period.

Architecture:
- Records are validated with Pydantic models on entry
- pandas does the (actor, period) grouping and the tabular export
- Report variants inject the classification/status taxonomy
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
