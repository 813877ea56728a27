"""Configuration error raised when a settings profile fails validation."""

from typing import Any, Optional


class ConfigurationError(Exception):
    """Settings could not be loaded or did not pass validation."""

    def __init__(self, message: str, errors: Optional[list[Any]] = None,
                 source: Optional[str] = None):
        super().__init__(message)
        self.errors = errors or []
        self.source = source
        self.recoverable = False
