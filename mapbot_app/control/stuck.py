"""
No-progress detection over successive position samples.
"""

from typing import Iterable, Optional

import structlog

from ..game.models import Position
from .models import StuckState

logger = structlog.get_logger(__name__)

DEFAULT_IMMOBILIZING_CONDITIONS = frozenset({"frozen", "stunned", "trapped", "petrified"})


class StuckDetector:
    """
    Counts consecutive updates in which the subject did not move.

    Owned by the task that expects movement; reset whenever that task starts
    a new objective.
    """

    def __init__(
        self,
        threshold: int = 10,
        minimum_movement_distance: float = 5.0,
        immobilizing_conditions: Iterable[str] = DEFAULT_IMMOBILIZING_CONDITIONS
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")

        self.threshold = threshold
        self.minimum_movement_distance = minimum_movement_distance
        self.immobilizing_conditions = frozenset(c.lower() for c in immobilizing_conditions)

        self._baseline: Optional[Position] = None
        self._count = 0

    def update(self, position: Position, status_flags: Iterable[str] = ()) -> bool:
        """
        Record a position sample.

        Args:
            position: Current position of the subject
            status_flags: Active status conditions on the subject

        Returns:
            True once the subject has not moved for ``threshold`` consecutive updates
        """
        if self._baseline is None:
            self._baseline = position
            return False

        if self.is_immobilized(status_flags):
            self._baseline = position
            self._count = 0
            return False

        distance = self._baseline.distance_to(position)
        if distance < self.minimum_movement_distance:
            self._count += 1
            if self._count >= self.threshold:
                logger.warning(
                    "Stuck detected",
                    ticks_without_movement=self._count,
                    distance=round(distance, 1)
                )
                return True
        else:
            self._count = 0

        self._baseline = position
        return False

    def is_immobilized(self, status_flags: Iterable[str]) -> bool:
        """Whether any active status prevents movement."""
        return any(flag.lower() in self.immobilizing_conditions for flag in status_flags)

    def reset(self) -> None:
        """Clear baseline and counter."""
        self._baseline = None
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def state(self) -> StuckState:
        return StuckState(
            baseline=self._baseline,
            count=self._count,
            threshold=self.threshold,
            minimum_movement_distance=self.minimum_movement_distance,
        )
