"""HEIC/HEIF to JPEG transcoding."""

import io
import logging
from dataclasses import dataclass

from anyio import to_thread
from PIL import Image
from pillow_heif import register_heif_opener

from src.filegate.error_handling.exceptions import TranscodeError

logger = logging.getLogger(__name__)

register_heif_opener()

HEIC_SUFFIXES = (".heic", ".heif")
JPEG_QUALITY = 100


@dataclass(frozen=True)
class TranscodeResult:
    content: bytes
    mime_type: str
    extension: str  # with the leading dot


def needs_transcode(extension: str, mime_type: str) -> bool:
    """HEIC/HEIF files are stored as JPEG, whatever MIME type they were sent with."""
    return extension.lower() in HEIC_SUFFIXES


def heic_to_jpeg(content: bytes) -> bytes:
    """Decode a HEIC/HEIF container and re-encode its primary image as JPEG."""
    try:
        with Image.open(io.BytesIO(content)) as image:
            buffer = io.BytesIO()
            image.convert("RGB").save(buffer, format="JPEG", quality=JPEG_QUALITY)
            return buffer.getvalue()
    except Exception as e:
        raise TranscodeError(f"HEIC conversion failed: {e}") from e


async def maybe_transcode(content: bytes, extension: str, mime_type: str) -> TranscodeResult:
    """
    Convert HEIC/HEIF payloads to JPEG, pass everything else through.

    Args:
        content: Raw file bytes
        extension: Original extension including the dot (e.g. ".HEIC")
        mime_type: Declared MIME type

    Returns:
        The bytes, MIME type and extension to store

    Raises:
        TranscodeError: If the HEIC payload cannot be decoded or encoded
    """
    if not needs_transcode(extension, mime_type):
        return TranscodeResult(content=content, mime_type=mime_type, extension=extension)

    logger.info("Converting HEIC file to JPEG...")
    converted = await to_thread.run_sync(heic_to_jpeg, content)
    logger.debug(f"HEIC conversion done: {len(content)} -> {len(converted)} bytes")
    return TranscodeResult(content=converted, mime_type="image/jpeg", extension=".jpg")
