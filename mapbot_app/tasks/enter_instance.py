"""Entering an instance through its portal."""

from typing import Optional

from ..config.defaults import InstanceParams
from ..control.breaker import ErrorCircuitBreaker
from ..errors import NotReadyError, PollTimeoutError, TransientActionError
from ..game.interfaces import ActionExecutor, StateQuery
from ..prices.loot import LootFilter
from ..stats.statistics import RunStatistics
from ..utils.time import Clock, resolve_clock
from ..utils.wait import wait_for
from .base import Task, TaskResult
from .context import ExecutionContext


class EnterInstanceTask(Task):
    """Walks to a resumable portal and takes it."""

    name = "enter_instance"

    def __init__(
        self,
        query: StateQuery,
        actions: ActionExecutor,
        breaker: ErrorCircuitBreaker,
        stats: RunStatistics,
        loot_filter: LootFilter,
        params: Optional[InstanceParams] = None,
        clock: Optional[Clock] = None
    ):
        super().__init__(breaker)
        self.query = query
        self.actions = actions
        self.stats = stats
        self.loot_filter = loot_filter
        self.params = params or InstanceParams()
        self.clock = resolve_clock(clock)

    def can_execute(self, ctx: ExecutionContext) -> bool:
        return ctx.in_safe_area and ctx.has_portal

    def run(self, ctx: ExecutionContext) -> TaskResult:
        portal = ctx.portal
        if portal is None:
            raise NotReadyError("No portal to enter", precondition="resumable portal")

        if ctx.position.distance_to(portal.position) > self.params.portal_proximity:
            self.actions.move_towards(portal.position)
            return TaskResult.in_progress("Approaching portal")

        result = self.actions.interact(portal)
        if not result.ok:
            raise TransientActionError(
                "Failed to enter portal",
                action="interact",
                result_code=result.value,
                context={"portal": portal.name},
            )

        entered = wait_for(
            lambda: self.query.area().is_instance,
            interval=0.1,
            timeout=self.params.enter_timeout,
            description="instance to load",
            clock=self.clock
        )
        if not entered:
            raise PollTimeoutError(
                "Instance did not load",
                description="instance to load",
                timeout=self.params.enter_timeout,
            )

        area = self.query.area()
        if self.stats.record_instance_started(area.area_id):
            self.loot_filter.reset_instance()
        return TaskResult.success(f"Entered {area.name or area.area_id}")
