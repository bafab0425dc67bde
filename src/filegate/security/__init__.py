"""Security module for file upload validation."""

from .file_validator import FileValidator, IncomingFile, get_file_validator

__all__ = ["FileValidator", "IncomingFile", "get_file_validator"]
