"""Core plumbing: configuration, errors, logging, auth, CLI."""

from .config import Config, SyncSettings, get_config, reset_config
from .exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    FitbridgeError,
    GoogleFitAPIError,
    SourceFileError,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "Config",
    "ConfigurationError",
    "FitbridgeError",
    "GoogleFitAPIError",
    "SourceFileError",
    "SyncSettings",
    "get_config",
    "reset_config",
]
