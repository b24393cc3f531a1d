"""Period aggregation helpers.

This package contains the routines that turn validated activity and event
records into per-actor, per-period rows, derive the comparable previous
range, and reduce row sets into totals and period-over-period trends. All
functions are pure: the current date is always passed in by the caller.
"""
