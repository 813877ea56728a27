"""
Error classification system for the control layer.

Low-level operations return status values and never raise across component
boundaries. The exception hierarchy below is used inside components, where a
failure is converted to a status at the nearest public entry point, and for
configuration problems that must stop start-up.
"""

from .control import (
    ControlError,
    NotReadyError,
    PollTimeoutError,
    TransientActionError,
    SystemicFailureError,
)
from .external_data import (
    ExternalDataError,
    ExternalDataUnavailableError,
    MalformedReferenceDataError,
)
from .kinds import FailureKind
from .configuration import ConfigurationError

__all__ = [
    # Status taxonomy
    "FailureKind",
    # Control layer
    "ControlError",
    "NotReadyError",
    "PollTimeoutError",
    "TransientActionError",
    "SystemicFailureError",
    # Reference data
    "ExternalDataError",
    "ExternalDataUnavailableError",
    "MalformedReferenceDataError",
    # Configuration
    "ConfigurationError",
]
