"""Clock abstractions used by the scheduling engine.

Every component that needs "now" takes a clock with a ``now_utc()``
method instead of calling :func:`datetime.now` directly, so tests can
pin and advance time deterministically.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol implemented by clock providers."""

    def now_utc(self) -> datetime:
        """Return current UTC time as an aware datetime."""
        ...


class MasterClock:
    """Wall-clock source providing timezone-aware timestamps."""

    def now_utc(self) -> datetime:
        """Return current UTC time as an aware datetime."""
        return datetime.now(timezone.utc)

    def seconds_since(self, dt: datetime) -> float:
        """Return non-negative seconds elapsed since the given timestamp."""
        self._ensure_aware(dt)
        delta = self.now_utc() - dt.astimezone(timezone.utc)
        return max(0.0, delta.total_seconds())

    @staticmethod
    def _ensure_aware(dt: datetime) -> None:
        if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
            raise ValueError("Datetime must be timezone-aware")


class ControllableMasterClock(MasterClock):
    """Deterministic clock used for tests.

    Time advances only when :meth:`advance` or :meth:`set` is called.
    """

    def __init__(self, epoch: datetime | None = None) -> None:
        if epoch is None:
            epoch = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self._ensure_aware(epoch)
        self._current = epoch.astimezone(timezone.utc)
        self._lock = Lock()

    def now_utc(self) -> datetime:
        with self._lock:
            return self._current

    def advance(self, delta: timedelta | float) -> datetime:
        """Advance the clock by ``delta`` (timedelta or seconds, non-negative)."""
        if not isinstance(delta, timedelta):
            delta = timedelta(seconds=delta)
        if delta < timedelta(0):
            raise ValueError("delta must be non-negative")
        with self._lock:
            self._current += delta
            return self._current

    def set(self, instant: datetime) -> None:
        self._ensure_aware(instant)
        with self._lock:
            self._current = instant.astimezone(timezone.utc)
