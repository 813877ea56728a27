"""Failure categories reported by value across component boundaries."""

from enum import Enum


class FailureKind(str, Enum):
    """Why an operation did not succeed."""
    NOT_READY = "not_ready"                                   # Precondition unmet, caller sequencing error
    TIMEOUT = "timeout"                                       # Bounded poll timed out
    TRANSIENT_ACTION_FAILURE = "transient_action_failure"     # Action result code indicated failure
    SYSTEMIC_FAILURE = "systemic_failure"                     # Circuit breaker tripped
    EXTERNAL_DATA_UNAVAILABLE = "external_data_unavailable"   # Reference data category fetch failed
    UNEXPECTED = "unexpected"                                 # Unhandled fault caught at an entry point
