"""Stops the session once enough instances are completed."""

from typing import Callable

from ..control.breaker import ErrorCircuitBreaker
from .base import Task, TaskResult
from .context import ExecutionContext


class SessionLimitTask(Task):
    """Invokes the stop callback from the safe area when the instance limit is reached."""

    name = "session_limit"

    def __init__(self, breaker: ErrorCircuitBreaker, on_limit: Callable[[str], None]):
        super().__init__(breaker)
        self.on_limit = on_limit

    def can_execute(self, ctx: ExecutionContext) -> bool:
        return ctx.in_safe_area and ctx.session_limit_reached

    def run(self, ctx: ExecutionContext) -> TaskResult:
        reason = f"Instance limit reached ({ctx.instances_completed} completed)"
        self.logger.info("Session limit reached", instances_completed=ctx.instances_completed)
        self.on_limit(reason)
        return TaskResult.success(reason)
