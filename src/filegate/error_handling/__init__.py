"""Error taxonomy and HTTP error handlers."""

from .exceptions import (
    BackendError,
    ConfigurationError,
    FileGatewayError,
    FileTooLargeError,
    InputError,
    NotResolvableError,
    TranscodeError,
    ValidationError,
)

__all__ = [
    "FileGatewayError",
    "ValidationError",
    "FileTooLargeError",
    "InputError",
    "NotResolvableError",
    "TranscodeError",
    "BackendError",
    "ConfigurationError",
]
