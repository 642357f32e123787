"""Time sources for session expiry.

The guard, the session store and the flow engine take a clock instead
of calling ``datetime.now`` so tests can pin and advance time.
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything with a ``now()`` returning a timezone-aware UTC datetime."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    __slots__ = ()

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """A clock that only moves when told to.

    Usage::

        clock = FixedClock(datetime(2024, 1, 1, tzinfo=UTC))
        clock.advance(timedelta(days=8))
    """

    __slots__ = ("_now",)

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now if now is not None else datetime.now(UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> datetime:
        self._now = self._now + delta
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now
