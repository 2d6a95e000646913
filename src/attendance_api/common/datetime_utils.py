from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Current time as an aware UTC datetime.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by MySQL drivers) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    """UTC datetime without tzinfo, the form MySQL DATETIME columns store."""
    return as_utc(value).replace(tzinfo=None)
