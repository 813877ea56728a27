"""Picking up valuable ground items inside an instance."""

from typing import Optional

from ..config.defaults import LootParams
from ..control.breaker import ErrorCircuitBreaker
from ..errors import FailureKind
from ..game.interfaces import ActionExecutor, StateQuery
from ..prices.loot import LootFilter
from ..stats.statistics import RunStatistics
from ..utils.time import Clock, resolve_clock
from ..utils.wait import wait_for
from .base import Task, TaskResult
from .context import ExecutionContext


class LootTask(Task):
    """
    Collects the most valuable loot candidate.

    An item that cannot be picked up is ignored for the rest of the instance
    so the task does not retry it forever.
    """

    name = "loot"

    def __init__(
        self,
        query: StateQuery,
        actions: ActionExecutor,
        breaker: ErrorCircuitBreaker,
        loot_filter: LootFilter,
        stats: RunStatistics,
        params: Optional[LootParams] = None,
        clock: Optional[Clock] = None
    ):
        super().__init__(breaker)
        self.query = query
        self.actions = actions
        self.loot_filter = loot_filter
        self.stats = stats
        self.params = params or LootParams()
        self.clock = resolve_clock(clock)

    def can_execute(self, ctx: ExecutionContext) -> bool:
        return ctx.in_instance and not ctx.inventory_full and bool(ctx.loot_candidates)

    def run(self, ctx: ExecutionContext) -> TaskResult:
        target = ctx.loot_candidates[0]

        if ctx.position.distance_to(target.position) > self.params.pickup_range:
            self.actions.move_towards(target.position)
            return TaskResult.in_progress(f"Approaching {target.item.name}")

        result = self.actions.pick_up(target)
        if not result.ok:
            self.loot_filter.ignore(target.object_id)
            return self.fail(
                f"Failed to pick up {target.item.name}: {result.value}",
                FailureKind.TRANSIENT_ACTION_FAILURE,
                report=False,
            )

        collected = wait_for(
            lambda: all(ground.object_id != target.object_id for ground in self.query.ground_items()),
            interval=0.05,
            timeout=self.params.pickup_timeout,
            description=f"{target.item.name} to be picked up",
            clock=self.clock
        )
        if not collected:
            self.loot_filter.ignore(target.object_id)
            return self.fail(f"{target.item.name} still on the ground", FailureKind.TIMEOUT, report=False)

        value = self.loot_filter.value_of(target.item)
        self.stats.record_item_looted(value)
        self.logger.info("Item looted", item=target.item.name, value=value)
        return TaskResult.success(f"Picked up {target.item.name}")
