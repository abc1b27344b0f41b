"""
Injectable clocks for the reminder poller and the streak engine.

Wall-clock time (SystemClock) is separated from a manually advanced clock
(ManualClock) so temporal behavior can be verified without waiting on real timers.
All times are naive datetimes in the user's local clock.
"""

import threading
from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source of the current local time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Local wall-clock time."""

    def now(self) -> datetime:
        return datetime.now()


class ManualClock:
    """
    Clock that only moves when told to.

    Tests and demos advance it explicitly; the scheduler reads it on every tick.
    """

    def __init__(self, start: datetime) -> None:
        self._lock = threading.Lock()
        self._now = start

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._now = moment

    def advance(self, *, minutes: float = 0, seconds: float = 0) -> datetime:
        """
        Move the clock forward.

        Returns:
            The new current time.
        """
        delta = timedelta(minutes=minutes, seconds=seconds)
        if delta <= timedelta(0):
            raise ValueError("advance() requires a positive duration")

        with self._lock:
            self._now = self._now + delta
            return self._now
