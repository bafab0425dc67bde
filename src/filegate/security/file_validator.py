"""File validation utilities for uploads."""

import os
import re
from dataclasses import dataclass
from typing import List, Optional

from fastapi import UploadFile

from src.filegate.configs.config import get_config
from src.filegate.error_handling.exceptions import (
    FileTooLargeError,
    InputError,
    ValidationError,
)

OCTET_STREAM = "application/octet-stream"

HEIC_EXTENSIONS = {"heic", "heif"}

HEIC_MIME_TYPES = {
    "image/heic",
    "image/heif",
    "image/heic-sequence",
    "image/heif-sequence",
}

DISALLOWED_MESSAGE = (
    "Only images (jpeg, jpg, png, gif, webp, heic, heif), PDFs, "
    "and DOC/DOCX files are allowed"
)


@dataclass
class IncomingFile:
    """An uploaded file held in memory for the duration of one request."""
    original_name: str
    declared_mime_type: str
    content: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        """Extension including the leading dot, as uploaded."""
        return os.path.splitext(self.original_name)[1]


def file_extension(filename: str) -> str:
    """Lowercased extension without the leading dot."""
    return os.path.splitext(filename)[1].lower().lstrip(".")


def is_heic_mime(mime_type: str) -> bool:
    return (mime_type or "").lower() in HEIC_MIME_TYPES


class FileValidator:
    """Validates uploaded files against the allowed types and size limits."""

    ALLOWED_EXTENSIONS = {
        "jpeg", "jpg", "png", "gif", "webp", "heic", "heif", "pdf", "doc", "docx"
    }

    # MIME types are matched by pattern: image/png, application/pdf,
    # ...wordprocessingml.document and friends
    ALLOWED_MIME_PATTERN = re.compile(r"jpeg|jpg|png|gif|webp|heic|heif|pdf|doc|docx")

    def __init__(self, max_size_bytes: Optional[int] = None, max_files: Optional[int] = None):
        config = get_config()
        self.max_size_bytes = max_size_bytes or config.max_file_size_bytes
        self.max_files = max_files or config.max_files_per_upload

    def is_allowed_extension(self, filename: str) -> bool:
        return file_extension(filename) in self.ALLOWED_EXTENSIONS

    def is_allowed_mime(self, filename: str, mime_type: str) -> bool:
        mime_type = mime_type or ""
        if self.ALLOWED_MIME_PATTERN.search(mime_type):
            return True
        if is_heic_mime(mime_type):
            return True
        # Browsers and some operating systems label HEIC uploads as octet-stream
        return mime_type == OCTET_STREAM and file_extension(filename) in HEIC_EXTENSIONS

    def check_type(self, filename: str, mime_type: str) -> None:
        """
        Accept or reject a file by its name and declared MIME type.

        Raises:
            ValidationError: If the extension or the MIME type is not allowed
        """
        if not (self.is_allowed_extension(filename) and self.is_allowed_mime(filename, mime_type)):
            raise ValidationError(DISALLOWED_MESSAGE, path=filename)

    def check_size(self, filename: str, size: int) -> None:
        if size > self.max_size_bytes:
            raise FileTooLargeError(
                f"File size ({size / 1024 / 1024:.1f} MB) exceeds "
                f"maximum allowed size ({self.max_size_bytes // (1024 * 1024)} MB)",
                path=filename,
            )

    async def validate_file(self, file: UploadFile) -> IncomingFile:
        """
        Validate an uploaded file and read it into memory.

        Args:
            file: The uploaded file to validate

        Returns:
            The validated file with its content

        Raises:
            ValidationError: If validation fails
        """
        if not file.filename:
            raise ValidationError("Filename is required")

        mime_type = file.content_type or OCTET_STREAM
        self.check_type(file.filename, mime_type)

        # Reject on the declared size before reading the body when we can
        if file.size is not None:
            self.check_size(file.filename, file.size)

        content = await file.read()
        self.check_size(file.filename, len(content))

        return IncomingFile(
            original_name=file.filename,
            declared_mime_type=mime_type,
            content=content,
        )

    async def validate_multiple_files(self, files: List[UploadFile]) -> List[IncomingFile]:
        """
        Validate every file of a multi-file upload.
        All files are checked before any of them is processed.

        Raises:
            InputError: If no files were sent
            ValidationError: If there are too many files or any file is invalid
        """
        if not files:
            raise InputError("No files uploaded", path="files")

        if len(files) > self.max_files:
            raise ValidationError(
                f"Too many files. Maximum {self.max_files} files allowed per upload",
                path="files",
            )

        return [await self.validate_file(file) for file in files]


# Global validator instance
_validator_instance = None


def get_file_validator() -> FileValidator:
    """Get the global file validator instance."""
    global _validator_instance
    if _validator_instance is None:
        _validator_instance = FileValidator()
    return _validator_instance
