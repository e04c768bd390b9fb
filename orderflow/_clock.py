"""
Clock — injectable source of "now".

Quote expiry and ledger ordering depend on time, so every component
takes a `Clock` instead of calling datetime.now() directly.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta


type Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(moment: datetime) -> datetime:
    """Naive values are read as UTC; SQLite drops tzinfo on the way back."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


class FrozenClock:
    """Manually advanced clock for tests and replays."""

    __slots__ = ("_now",)

    def __init__(self, start: datetime | None = None) -> None:
        self._now = as_utc(start) if start is not None else utcnow()

    def __call__(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


__all__ = ("Clock", "utcnow", "as_utc", "FrozenClock")
