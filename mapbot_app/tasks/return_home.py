"""
Leaving an instance through a portal.

Runs whenever the current instance should be left: the inventory is full,
health is low, the instance is complete or its time limit is up. Only a
complete or timed out instance is recorded as finished; after a retreat for
health or inventory space its portal stays resumable.
"""

from typing import Optional

from ..config.defaults import ExitParams
from ..control.breaker import ErrorCircuitBreaker
from ..errors import PollTimeoutError, TransientActionError
from ..game.interfaces import ActionExecutor, StateQuery
from ..game.models import ObjectKind, WorldObject
from ..stats.statistics import RunStatistics
from ..utils.time import Clock, resolve_clock
from ..utils.wait import wait_for
from .base import Task, TaskResult
from .context import ExecutionContext

_FINISHING_REASONS = frozenset({"instance_complete", "time_limit"})


class ReturnToSafeAreaTask(Task):
    """Opens a portal and takes it back to the safe area."""

    name = "return_to_safe_area"

    def __init__(
        self,
        query: StateQuery,
        actions: ActionExecutor,
        breaker: ErrorCircuitBreaker,
        stats: RunStatistics,
        params: Optional[ExitParams] = None,
        clock: Optional[Clock] = None
    ):
        super().__init__(breaker)
        self.query = query
        self.actions = actions
        self.stats = stats
        self.params = params or ExitParams()
        self.clock = resolve_clock(clock)

    def can_execute(self, ctx: ExecutionContext) -> bool:
        return ctx.should_leave_instance

    def run(self, ctx: ExecutionContext) -> TaskResult:
        reason = ctx.leave_reason
        self.logger.info("Leaving instance", reason=reason, area_id=ctx.area.area_id)

        portal = self._nearby_portal()
        if portal is None:
            self.actions.press_key(self.params.portal_key)
            spawned = wait_for(
                lambda: self._nearby_portal() is not None,
                interval=0.1,
                timeout=self.params.portal_spawn_timeout,
                description="portal to spawn",
                clock=self.clock
            )
            if not spawned:
                raise PollTimeoutError(
                    "Portal did not appear",
                    description="portal to spawn",
                    timeout=self.params.portal_spawn_timeout,
                )
            portal = self._nearby_portal()

        result = self.actions.interact(portal)
        if not result.ok:
            raise TransientActionError(
                "Failed to take portal",
                action="interact",
                result_code=result.value,
                context={"portal": portal.name},
            )

        arrived = wait_for(
            lambda: self.query.area().is_safe,
            interval=0.1,
            timeout=self.params.transition_timeout,
            description="arrival in safe area",
            clock=self.clock
        )
        if not arrived:
            raise PollTimeoutError(
                "Did not arrive in safe area",
                description="arrival in safe area",
                timeout=self.params.transition_timeout,
            )

        if reason in _FINISHING_REASONS:
            self.stats.record_instance_completed()
        return TaskResult.success(f"Returned to safe area ({reason})")

    def _nearby_portal(self) -> Optional[WorldObject]:
        portal = self.query.find_object(ObjectKind.PORTAL)
        if portal is None or not portal.targetable:
            return None
        if self.query.position().distance_to(portal.position) > self.params.portal_search_radius:
            return None
        return portal
