"""Cleanup cadence.

The external scheduler fires the daily run at a fixed UTC hour and the
monthly run at the same hour on the first of each month. These helpers
compute when the next run is due so that stats can report it.
"""

from datetime import datetime, timedelta

from storeguard.utils.clock import as_utc

DEFAULT_CLEANUP_HOUR_UTC = 3


def next_daily_run(now: datetime, hour: int = DEFAULT_CLEANUP_HOUR_UTC) -> datetime:
    """First daily run strictly after ``now``."""
    now = as_utc(now)
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def next_monthly_run(now: datetime, hour: int = DEFAULT_CLEANUP_HOUR_UTC) -> datetime:
    """First monthly run (1st of the month) strictly after ``now``."""
    now = as_utc(now)
    candidate = now.replace(day=1, hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        if candidate.month == 12:
            candidate = candidate.replace(year=candidate.year + 1, month=1)
        else:
            candidate = candidate.replace(month=candidate.month + 1)
    return candidate


def start_of_month(now: datetime) -> datetime:
    return as_utc(now).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
