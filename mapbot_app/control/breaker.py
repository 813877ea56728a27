"""
Consecutive failure circuit breaker.

Every task and the device protocol report failures here. Failures decay:
an error reported more than ``reset_timeout`` seconds after the previous one
starts a new count. When the count reaches ``max_consecutive`` the breaker
trips, invokes its trip action once and stays tripped until ``reset()``.
"""

from typing import Callable, Optional

import structlog

from ..utils.time import Clock, resolve_clock
from .models import ErrorState

logger = structlog.get_logger(__name__)


class ErrorCircuitBreaker:
    """Halts automation after too many consecutive failures."""

    def __init__(
        self,
        max_consecutive: int = 10,
        reset_timeout: float = 120.0,
        clock: Optional[Clock] = None,
        on_trip: Optional[Callable[[str], None]] = None
    ) -> None:
        if max_consecutive < 1:
            raise ValueError("max_consecutive must be at least 1")

        self.max_consecutive = max_consecutive
        self.reset_timeout = reset_timeout
        self.clock = resolve_clock(clock)
        self.on_trip = on_trip

        self._count = 0
        self._last_error_at = self.clock.now()
        self._tripped = False
        self._trip_reason: Optional[str] = None

    def report_error(self, reason: str = "") -> bool:
        """
        Record a failure.

        Args:
            reason: Short description of what failed, for logging

        Returns:
            True if the breaker is tripped after this report
        """
        now = self.clock.now()

        if now - self._last_error_at > self.reset_timeout:
            if self._count:
                logger.debug("Resetting error count after quiet period", previous_count=self._count)
            self._count = 0

        self._count += 1
        self._last_error_at = now

        logger.warning(
            "Error reported",
            reason=reason,
            error_count=self._count,
            max_consecutive=self.max_consecutive
        )

        if self._count >= self.max_consecutive and not self._tripped:
            self._trip(reason)

        return self._tripped

    def reset(self) -> None:
        """Clear the failure count after an operation judged successful."""
        if self._count > 0:
            logger.debug("Resetting error count", previous_count=self._count)

        self._count = 0
        self._last_error_at = self.clock.now()

        if self._tripped:
            logger.info("Circuit breaker re-armed", trip_reason=self._trip_reason)
        self._tripped = False
        self._trip_reason = None

    def _trip(self, reason: str) -> None:
        self._tripped = True
        self._trip_reason = (
            f"Maximum consecutive errors reached ({self.max_consecutive})"
            + (f": {reason}" if reason else "")
        )

        logger.critical(
            "Circuit breaker tripped, stopping automation",
            error_count=self._count,
            reason=self._trip_reason
        )

        if self.on_trip is not None:
            self.on_trip(self._trip_reason)

    @property
    def count(self) -> int:
        return self._count

    @property
    def tripped(self) -> bool:
        return self._tripped

    @property
    def trip_reason(self) -> Optional[str]:
        return self._trip_reason

    @property
    def state(self) -> ErrorState:
        return ErrorState(
            count=self._count,
            last_error_at=self._last_error_at,
            max_consecutive=self.max_consecutive,
            reset_timeout=self.reset_timeout,
            tripped=self._tripped,
            trip_reason=self._trip_reason,
        )
