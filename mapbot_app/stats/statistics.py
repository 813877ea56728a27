"""
Run statistics.

Counts instances, loot and stuck events over the life of one engine, and
tracks which instance areas are finished so their portals are not re-entered.
"""

from typing import Any, Optional

import structlog

from ..utils.time import Clock, resolve_clock

logger = structlog.get_logger(__name__)


class RunStatistics:
    """Counters and timers for one automation session."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock = resolve_clock(clock)
        self.started_at = self.clock.now()

        self.instances_started = 0
        self.instances_completed = 0
        self.items_looted = 0
        self.loot_value = 0.0
        self.stuck_events = 0

        self.finished_area_ids: set[str] = set()
        self.current_area_id: Optional[str] = None
        self.instance_started_at: Optional[float] = None
        self._completion_seconds: list[float] = []

    def record_instance_started(self, area_id: str) -> bool:
        """
        Record entering an instance area.

        Re-entering the current instance keeps its original start time.

        Returns:
            True if this is a new instance
        """
        if area_id == self.current_area_id:
            logger.debug("Re-entered current instance", area_id=area_id)
            return False

        self.instances_started += 1
        self.current_area_id = area_id
        self.instance_started_at = self.clock.now()
        logger.info("Instance started", area_id=area_id, instances_started=self.instances_started)
        return True

    def record_instance_completed(self) -> None:
        """Mark the current instance finished so its portal is not reused."""
        if self.current_area_id is None:
            return

        elapsed = self.instance_elapsed()
        self.instances_completed += 1
        self.finished_area_ids.add(self.current_area_id)
        self._completion_seconds.append(elapsed)

        logger.info(
            "Instance completed",
            area_id=self.current_area_id,
            elapsed_seconds=round(elapsed, 1),
            instances_completed=self.instances_completed
        )

        self.current_area_id = None
        self.instance_started_at = None

    def record_item_looted(self, value: Optional[float] = None) -> None:
        self.items_looted += 1
        if value:
            self.loot_value += value

    def record_stuck(self) -> None:
        self.stuck_events += 1

    def is_finished(self, area_id: Optional[str]) -> bool:
        return area_id is not None and area_id in self.finished_area_ids

    def instance_elapsed(self) -> float:
        """Seconds since the current instance was first entered, 0 if none."""
        if self.instance_started_at is None:
            return 0.0
        return self.clock.now() - self.instance_started_at

    @property
    def uptime_seconds(self) -> float:
        return self.clock.now() - self.started_at

    @property
    def instances_per_hour(self) -> float:
        hours = self.uptime_seconds / 3600.0
        if hours < 0.01:
            return 0.0
        return round(self.instances_completed / hours, 2)

    @property
    def completion_rate(self) -> float:
        if self.instances_started == 0:
            return 0.0
        return round(self.instances_completed / self.instances_started * 100, 1)

    @property
    def average_instance_seconds(self) -> float:
        if not self._completion_seconds:
            return 0.0
        return sum(self._completion_seconds) / len(self._completion_seconds)

    def summary(self) -> dict[str, Any]:
        return {
            "uptime_seconds": round(self.uptime_seconds, 1),
            "instances_started": self.instances_started,
            "instances_completed": self.instances_completed,
            "instances_per_hour": self.instances_per_hour,
            "completion_rate": self.completion_rate,
            "average_instance_seconds": round(self.average_instance_seconds, 1),
            "items_looted": self.items_looted,
            "loot_value": round(self.loot_value, 2),
            "stuck_events": self.stuck_events,
        }
