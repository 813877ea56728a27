"""Base classes for orchestrated tasks."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..control.breaker import ErrorCircuitBreaker
from ..device.models import ProtocolResult, ProtocolStatus
from ..errors import FailureKind
from ..logging.config import get_task_logger

if TYPE_CHECKING:
    from .context import ExecutionContext


class TaskStatus(str, Enum):
    """Outcome of one task routine invocation."""
    SUCCESS = "success"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskResult:
    """Result of a task routine."""
    status: TaskStatus
    message: str = ""
    failure: Optional[FailureKind] = None

    @classmethod
    def success(cls, message: str = "") -> "TaskResult":
        return cls(TaskStatus.SUCCESS, message)

    @classmethod
    def in_progress(cls, message: str = "") -> "TaskResult":
        return cls(TaskStatus.IN_PROGRESS, message)

    @classmethod
    def failed(cls, message: str, failure: FailureKind = FailureKind.UNEXPECTED) -> "TaskResult":
        return cls(TaskStatus.FAILED, message, failure)

    @property
    def ok(self) -> bool:
        return self.status == TaskStatus.SUCCESS


class Task(ABC):
    """
    A unit of behaviour the orchestrator can select.

    ``can_execute`` must not have side effects: the orchestrator evaluates it
    for every task ahead of the selected one on every pass. ``run`` performs
    one bounded step and may be re-invoked on the next pass.
    """

    name = "task"

    def __init__(self, breaker: ErrorCircuitBreaker):
        self.breaker = breaker
        self.logger = get_task_logger(type(self).__module__).bind(task=self.name)

    @abstractmethod
    def can_execute(self, ctx: "ExecutionContext") -> bool:
        pass

    @abstractmethod
    def run(self, ctx: "ExecutionContext") -> TaskResult:
        pass

    def fail(self, message: str, failure: FailureKind, report: bool = True) -> TaskResult:
        """Build a failed result, reporting it to the circuit breaker."""
        self.logger.warning("Task failed", reason=message, failure=failure.value)
        if report:
            self.breaker.report_error(f"{self.name}: {message}")
        return TaskResult.failed(message, failure)

    def from_protocol(self, result: ProtocolResult) -> TaskResult:
        """
        Translate a non-successful protocol result.

        ``ERROR`` results were already reported by the protocol itself.
        """
        if result.pending:
            return TaskResult.in_progress(result.message)
        return self.fail(
            result.message,
            result.failure_kind or FailureKind.UNEXPECTED,
            report=result.status != ProtocolStatus.ERROR,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
