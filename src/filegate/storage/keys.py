"""Storage key derivation."""

import uuid
from typing import Optional

from src.filegate.schemas.upload import UploadOptions

DEFAULT_FOLDER = "uploads"


def _folder(options: Optional[UploadOptions]) -> str:
    folder = options.folder if options and options.folder else DEFAULT_FOLDER
    return folder.strip("/") or DEFAULT_FOLDER


def object_name(options: Optional[UploadOptions] = None) -> str:
    """The caller's filename, verbatim, or a fresh uuid4."""
    if options and options.filename:
        return options.filename
    return str(uuid.uuid4())


def derive_key(extension: str, options: Optional[UploadOptions] = None) -> str:
    """
    Build `<folder>/<filename><extension>`.

    A caller-supplied filename is used verbatim, so reusing it overwrites the
    previous object. *extension* is the extension of the stored bytes (after
    transcoding), including the leading dot.
    """
    return f"{_folder(options)}/{object_name(options)}{extension}"


def derive_public_id(options: Optional[UploadOptions] = None) -> tuple[str, str]:
    """
    Folder and name for providers that append the format themselves.

    Returns:
        Tuple of (folder, name); the provider's public-ID is `<folder>/<name>`.
    """
    return _folder(options), object_name(options)


def is_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")
