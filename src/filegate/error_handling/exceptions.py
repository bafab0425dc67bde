"""
Error taxonomy for the file gateway.
Every error carries the HTTP status it maps to and the error sources
reported back to the client.
"""

from typing import Dict, List, Optional


class FileGatewayError(Exception):
    """Base class for all errors raised by the gateway."""

    status_code: int = 500

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.message = message
        self.path = path

    @property
    def error_sources(self) -> List[Dict[str, str]]:
        return [{"path": self.path, "message": self.message}]


class ValidationError(FileGatewayError):
    """Disallowed file type, extension or request shape."""

    status_code = 400


class FileTooLargeError(ValidationError):
    """File exceeds the configured size limit."""

    status_code = 413


class InputError(FileGatewayError):
    """Neither key nor url (or no files) supplied where one is required."""

    status_code = 400


class NotResolvableError(FileGatewayError):
    """A URL could not be mapped back to a storage key."""

    status_code = 400

    def __init__(self, url: str, message: Optional[str] = None):
        super().__init__(message or f"Invalid file URL: {url}", path="url")
        self.url = url


class TranscodeError(FileGatewayError):
    """HEIC/HEIF decoding or JPEG encoding failed."""

    status_code = 500


class BackendError(FileGatewayError):
    """Wraps any failure of the underlying storage provider."""

    status_code = 502

    def __init__(self, message: str, failed_keys: Optional[List[str]] = None):
        super().__init__(message)
        self.failed_keys = list(failed_keys or [])

    @property
    def error_sources(self) -> List[Dict[str, str]]:
        if not self.failed_keys:
            return super().error_sources
        return [
            {"path": key, "message": self.message} for key in self.failed_keys
        ]


class ConfigurationError(FileGatewayError):
    """The selected storage backend is missing required settings."""

    status_code = 500
