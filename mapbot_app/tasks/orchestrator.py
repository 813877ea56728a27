"""
Priority ordered cooperative task scheduler.

Registration order is priority. Each pass builds one fresh execution
context, scans the registered tasks in order and runs the routine of the
first task whose predicate holds. Predicates of later tasks are not
evaluated once a task is selected.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..control.breaker import ErrorCircuitBreaker
from ..errors import ControlError, FailureKind
from ..logging.config import get_task_logger, log_transition
from ..utils.time import Clock, resolve_clock
from .base import Task, TaskResult
from .context import ExecutionContext

logger = get_task_logger(__name__)


@dataclass(frozen=True)
class RegisteredTask:
    """A task and its fixed registration position."""
    position: int
    task: Task


class TickKind(str, Enum):
    """What happened during one orchestrator pass."""
    RAN = "ran"              # A task routine was run
    IDLE = "idle"            # No task was eligible
    HALTED = "halted"        # Circuit breaker tripped, nothing evaluated
    FAILED = "failed"        # The context or a predicate raised


@dataclass(frozen=True)
class TickOutcome:
    """Result of one orchestrator pass."""
    kind: TickKind
    task_name: Optional[str] = None
    result: Optional[TaskResult] = None

    @property
    def halted(self) -> bool:
        return self.kind == TickKind.HALTED


class Orchestrator:
    """Selects and runs at most one task per pass."""

    def __init__(
        self,
        context_provider: Callable[[], ExecutionContext],
        breaker: ErrorCircuitBreaker,
        max_task_seconds: float = 60.0,
        clock: Optional[Clock] = None
    ):
        self.context_provider = context_provider
        self.breaker = breaker
        self.max_task_seconds = max_task_seconds
        self.clock = resolve_clock(clock)

        self._tasks: list[RegisteredTask] = []
        self._current: Optional[RegisteredTask] = None
        self._selected_at = 0.0
        self._passes = 0

    @property
    def tasks(self) -> tuple[RegisteredTask, ...]:
        return tuple(self._tasks)

    @property
    def current_task(self) -> Optional[Task]:
        return self._current.task if self._current else None

    @property
    def passes(self) -> int:
        return self._passes

    def register(self, task: Task) -> RegisteredTask:
        """Append a task at the lowest priority."""
        registered = RegisteredTask(position=len(self._tasks), task=task)
        self._tasks.append(registered)
        logger.debug("Task registered", task=task.name, position=registered.position)
        return registered

    def execute(self) -> TickOutcome:
        """Run one pass."""
        if self.breaker.tripped:
            return TickOutcome(TickKind.HALTED)

        self._passes += 1

        try:
            ctx = self.context_provider()
        except Exception as e:
            self._report_unexpected("context", e)
            return TickOutcome(TickKind.FAILED)

        for registered in self._tasks:
            task = registered.task
            try:
                eligible = task.can_execute(ctx)
            except Exception as e:
                self._report_unexpected(f"{task.name}.can_execute", e)
                return TickOutcome(
                    TickKind.FAILED,
                    task_name=task.name,
                    result=TaskResult.failed(str(e), FailureKind.UNEXPECTED),
                )

            if eligible:
                self._select(registered)
                return TickOutcome(TickKind.RAN, task_name=task.name, result=self._run(task, ctx))

        self._select(None)
        return TickOutcome(TickKind.IDLE)

    def _select(self, registered: Optional[RegisteredTask]) -> None:
        now = self.clock.now()

        if registered is not self._current:
            log_transition(
                logger,
                "Task transition",
                self._current.task.name if self._current else None,
                registered.task.name if registered else None,
                task_position=registered.position if registered else None,
            )
            self._current = registered
            self._selected_at = now
            return

        if registered is not None and now - self._selected_at > self.max_task_seconds:
            logger.warning(
                "Task exceeded maximum duration",
                task=registered.task.name,
                elapsed_seconds=round(now - self._selected_at, 1),
                max_task_seconds=self.max_task_seconds
            )
            self.breaker.report_error(f"{registered.task.name} exceeded {self.max_task_seconds}s")
            self._selected_at = now

    def _run(self, task: Task, ctx: ExecutionContext) -> TaskResult:
        try:
            return task.run(ctx)
        except ControlError as e:
            logger.warning(
                "Task step failed",
                task=task.name,
                error=str(e),
                failure=e.kind.value,
                context=e.context
            )
            self.breaker.report_error(f"{task.name}: {e}")
            return TaskResult.failed(str(e), e.kind)
        except Exception as e:
            self._report_unexpected(f"{task.name}.run", e)
            return TaskResult.failed(str(e), FailureKind.UNEXPECTED)

    def _report_unexpected(self, where: str, error: Exception) -> None:
        logger.error(
            "Unexpected error during orchestrator pass",
            where=where,
            error=str(error),
            error_type=type(error).__name__,
            exc_info=True
        )
        self.breaker.report_error(f"{where}: {error}")
