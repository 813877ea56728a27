"""
Control layer error classifications.

These exceptions describe why a step of a task or of the device protocol
could not proceed. They are raised inside a component and converted into a
status value before crossing its public boundary.
"""

from typing import Any, Dict, Optional

from .kinds import FailureKind


class ControlError(Exception):
    """Base class for control layer failures."""

    kind = FailureKind.UNEXPECTED

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class NotReadyError(ControlError):
    """An operation was invoked before its precondition held."""

    kind = FailureKind.NOT_READY

    def __init__(self, message: str, precondition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.precondition = precondition


class PollTimeoutError(ControlError):
    """A bounded poll ran out of time."""

    kind = FailureKind.TIMEOUT

    def __init__(self, message: str, description: Optional[str] = None,
                 timeout: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.description = description
        self.timeout = timeout


class TransientActionError(ControlError):
    """An issued action reported a failure result code."""

    kind = FailureKind.TRANSIENT_ACTION_FAILURE

    def __init__(self, message: str, action: Optional[str] = None,
                 result_code: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.action = action
        self.result_code = result_code


class SystemicFailureError(ControlError):
    """Too many consecutive failures; automation must halt."""

    kind = FailureKind.SYSTEMIC_FAILURE

    def __init__(self, message: str, error_count: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.error_count = error_count
        self.recoverable = False
