"""Timestamp helpers.

Datetimes may come back from a provider without tzinfo; everything the
state machines compare is normalised to aware UTC first.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def not_before(previous: datetime | None, now: datetime | None = None) -> datetime:
    """Timestamp for a new ledger entry, never earlier than the previous entry."""
    now = as_utc(now) or utcnow()
    previous = as_utc(previous)
    if previous is not None and previous > now:
        return previous
    return now
