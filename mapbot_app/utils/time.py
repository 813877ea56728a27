"""
Clock utilities for monotonic durations vs wall-clock timestamps.

This module provides the injectable clock used by every bounded loop in the
system. Production code runs on ``SystemClock``; tests drive a ``ManualClock``
whose ``sleep`` advances simulated time instead of blocking.
"""

import time
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol


class Clock(Protocol):
    """Monotonic time source with a suspension point."""

    def now(self) -> float:
        """Current monotonic time in seconds."""
        ...

    def sleep(self, seconds: float) -> None:
        """Suspend the caller for ``seconds``."""
        ...


class SystemClock:
    """Clock backed by ``time.monotonic`` and ``time.sleep``."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class ManualClock:
    """
    Deterministic clock for simulations and tests.

    ``sleep`` advances the simulated time immediately. Listeners registered
    with ``on_advance`` are called after every advance with the new time, which
    lets fakes of external systems apply scheduled state changes.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._listeners: list[Callable[[float], None]] = []
        self.sleep_calls: list[float] = []

    def now(self) -> float:
        return self._now

    def sleep(self, seconds: float) -> None:
        self.sleep_calls.append(seconds)
        self.advance(seconds)

    def advance(self, seconds: float) -> None:
        """Move simulated time forward by ``seconds``."""
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        self._now += seconds
        for listener in list(self._listeners):
            listener(self._now)

    def on_advance(self, listener: Callable[[float], None]) -> None:
        """Register a callback invoked with the new time after each advance."""
        self._listeners.append(listener)

    @property
    def total_slept(self) -> float:
        return sum(self.sleep_calls)


_default_clock: Clock = SystemClock()


def get_default_clock() -> Clock:
    """Return the process default clock (a ``SystemClock``)."""
    return _default_clock


def resolve_clock(clock: Optional[Clock]) -> Clock:
    """Return ``clock`` or the default clock when ``None``."""
    return clock if clock is not None else _default_clock


def utc_now() -> datetime:
    """Wall-clock time as an aware UTC datetime, for record timestamps only."""
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """Format a datetime as ISO 8601 with a ``Z`` suffix for UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.isoformat().replace('+00:00', 'Z')
