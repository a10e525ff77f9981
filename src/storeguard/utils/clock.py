"""UTC time helpers.

Some drivers (SQLite in particular) hand back naive datetimes even for
``DateTime(timezone=True)`` columns. Everything stored by Storeguard is UTC,
so naive values are re-attached to UTC before any comparison.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
