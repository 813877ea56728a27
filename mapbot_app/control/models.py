"""
Immutable snapshots of the control primitives' internal state.
"""

from dataclasses import dataclass
from typing import Optional

from ..game.models import Position


@dataclass(frozen=True)
class StuckState:
    """Point-in-time view of a StuckDetector."""

    baseline: Optional[Position]
    count: int
    threshold: int
    minimum_movement_distance: float

    @property
    def is_stuck(self) -> bool:
        return self.count >= self.threshold


@dataclass(frozen=True)
class ErrorState:
    """Point-in-time view of the ErrorCircuitBreaker."""

    count: int
    last_error_at: float
    max_consecutive: int
    reset_timeout: float
    tripped: bool = False
    trip_reason: Optional[str] = None
