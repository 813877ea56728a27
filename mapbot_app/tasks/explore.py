"""Moving through an instance toward unexplored ground."""

from typing import Optional

from ..control.breaker import ErrorCircuitBreaker
from ..control.stuck import StuckDetector
from ..errors import FailureKind
from ..game.interfaces import ActionExecutor
from ..stats.statistics import RunStatistics
from .base import Task, TaskResult
from .context import ExecutionContext


class ExploreTask(Task):
    """Walks toward the next exploration target while watching for stalls."""

    name = "explore"

    def __init__(
        self,
        actions: ActionExecutor,
        breaker: ErrorCircuitBreaker,
        stuck_detector: StuckDetector,
        stats: RunStatistics
    ):
        super().__init__(breaker)
        self.actions = actions
        self.stuck_detector = stuck_detector
        self.stats = stats
        self._area_id: Optional[str] = None

    def can_execute(self, ctx: ExecutionContext) -> bool:
        return ctx.in_instance and ctx.exploration_target is not None

    def run(self, ctx: ExecutionContext) -> TaskResult:
        if ctx.area.area_id != self._area_id:
            self.stuck_detector.reset()
            self._area_id = ctx.area.area_id

        if self.stuck_detector.update(ctx.position, ctx.status_flags):
            self.stats.record_stuck()
            self.stuck_detector.reset()
            return self.fail(
                f"No movement progress near ({ctx.position.x:.0f}, {ctx.position.y:.0f})",
                FailureKind.TIMEOUT,
            )

        result = self.actions.move_towards(ctx.exploration_target)
        if not result.ok:
            return self.fail(f"Move failed: {result.value}", FailureKind.TRANSIENT_ACTION_FAILURE)

        return TaskResult.in_progress(f"Exploring ({ctx.exploration_percent:.0f}%)")
