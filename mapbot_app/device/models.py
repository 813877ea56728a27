"""
Device protocol data models.

Results are returned by value from every public protocol operation; nothing
raises across the protocol boundary.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

from ..errors import FailureKind
from ..game.models import ActionResult


class DeviceState(str, Enum):
    """Apparatus workflow states."""
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    LOADING = "loading"
    ACTIVATING = "activating"
    FAILED = "failed"


TERMINAL_STATES = frozenset({DeviceState.CLOSED, DeviceState.FAILED})


class ProtocolStatus(str, Enum):
    """Outcome of a single protocol operation."""
    SUCCESS = "success"
    IN_PROGRESS = "in_progress"      # Non-terminal, retry on a later tick
    NOT_READY = "not_ready"
    NOT_FOUND = "not_found"
    ACTION_FAILED = "action_failed"
    TIMEOUT = "timeout"
    ERROR = "error"


_FAILURE_KINDS = {
    ProtocolStatus.NOT_READY: FailureKind.NOT_READY,
    ProtocolStatus.NOT_FOUND: FailureKind.NOT_READY,
    ProtocolStatus.ACTION_FAILED: FailureKind.TRANSIENT_ACTION_FAILURE,
    ProtocolStatus.TIMEOUT: FailureKind.TIMEOUT,
    ProtocolStatus.ERROR: FailureKind.UNEXPECTED,
}


@dataclass(frozen=True)
class ProtocolResult:
    """Result of a device or storage operation."""
    status: ProtocolStatus
    message: str = ""
    action_result: Optional[ActionResult] = None

    @property
    def ok(self) -> bool:
        return self.status == ProtocolStatus.SUCCESS

    @property
    def pending(self) -> bool:
        return self.status == ProtocolStatus.IN_PROGRESS

    @property
    def failure_kind(self) -> Optional[FailureKind]:
        return _FAILURE_KINDS.get(self.status)

    @classmethod
    def success(cls, message: str = "") -> "ProtocolResult":
        return cls(ProtocolStatus.SUCCESS, message)

    @classmethod
    def in_progress(cls, message: str = "") -> "ProtocolResult":
        return cls(ProtocolStatus.IN_PROGRESS, message)

    @classmethod
    def not_ready(cls, message: str) -> "ProtocolResult":
        return cls(ProtocolStatus.NOT_READY, message)

    @classmethod
    def not_found(cls, message: str) -> "ProtocolResult":
        return cls(ProtocolStatus.NOT_FOUND, message)

    @classmethod
    def action_failed(cls, message: str, action_result: ActionResult) -> "ProtocolResult":
        return cls(ProtocolStatus.ACTION_FAILED, message, action_result)

    @classmethod
    def timeout(cls, message: str) -> "ProtocolResult":
        return cls(ProtocolStatus.TIMEOUT, message)

    @classmethod
    def error(cls, message: str) -> "ProtocolResult":
        return cls(ProtocolStatus.ERROR, message)


class ItemReadiness(str, Enum):
    """Composite status of the primary item in the apparatus."""
    READY = "ready"
    NEED_EXTERNAL_SUPPLY = "need_external_supply"
    DEVICE_NOT_OPEN = "device_not_open"
    INSERTION_FAILED = "insertion_failed"
    ERROR = "error"


@dataclass(frozen=True)
class DeviceSession:
    """
    Transient state of one apparatus workflow.

    Created when the protocol starts interacting with the apparatus and
    discarded once the workflow reaches a terminal state.
    """
    state: DeviceState = DeviceState.CLOSED
    loaded_item_ids: frozenset[int] = frozenset()
    max_slots: int = 6

    def with_state(self, new_state: DeviceState) -> 'DeviceSession':
        """Create a session in a new workflow state."""
        return replace(self, state=new_state)

    def with_loaded(self, item_ids: Iterable[int]) -> 'DeviceSession':
        """Create a session with the confirmed loaded item ids."""
        return replace(self, loaded_item_ids=frozenset(item_ids))

    @property
    def free_slots(self) -> int:
        return max(0, self.max_slots - len(self.loaded_item_ids))
