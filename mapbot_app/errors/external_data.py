"""
Reference data error classifications.

Raised while fetching or decoding a category of reference prices. The price
cache catches these per category, logs them and carries on with the rest of
the refresh; callers of the cache never see them.
"""

from typing import Any, Dict, Optional

from .kinds import FailureKind


class ExternalDataError(Exception):
    """Base class for reference feed problems."""

    kind = FailureKind.EXTERNAL_DATA_UNAVAILABLE

    def __init__(self, message: str, category: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.category = category
        self.context = context or {}
        self.allows_degradation = True


class ExternalDataUnavailableError(ExternalDataError):
    """A category could not be fetched (network, HTTP status, timeout)."""

    def __init__(self, message: str, url: Optional[str] = None,
                 status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url
        self.status_code = status_code


class MalformedReferenceDataError(ExternalDataError):
    """A category payload was fetched but does not have the expected shape."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format
