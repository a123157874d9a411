"""
fitbridge exception hierarchy.

All fitbridge exceptions inherit from FitbridgeError.  Only
``SourceFileError`` and ``AuthenticationError`` are meant to abort a sync
run; the rest are contained per record or per chunk by their callers.
"""

from typing import Any


class FitbridgeError(Exception):
    """Base exception class for all fitbridge errors."""


class ConfigurationError(FitbridgeError):
    """Raised for configuration errors (missing keys, invalid values)."""


class APIError(FitbridgeError):
    """Raised for API communication errors (transport failures included)."""


class GoogleFitAPIError(APIError):
    """Raised when the Google Fit API answers with a non-2xx status."""

    def __init__(self, message: str, status: int | None = None, payload: Any = None):
        super().__init__(message)
        self.status = status
        self.payload = payload


class SourceFileError(FitbridgeError):
    """Raised when the health export cannot be opened or is not well-formed XML."""


class AuthenticationError(FitbridgeError):
    """Raised when no usable Google credential can be obtained."""
