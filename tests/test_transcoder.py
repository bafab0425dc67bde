import io

import pytest
from PIL import Image

from src.filegate.error_handling.exceptions import TranscodeError
from src.filegate.media import transcoder
from src.filegate.media.transcoder import maybe_transcode, needs_transcode


@pytest.fixture
def heic_bytes():
    """A small real HEIC image, encoded with pillow-heif."""
    image = Image.new("RGB", (16, 16), (200, 30, 30))
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="HEIF")
    except Exception as e:
        pytest.skip(f"HEIF encoder not available: {e}")
    return buffer.getvalue()


@pytest.mark.parametrize(
    "extension, mime_type, expected",
    [
        (".heic", "image/heic", True),
        (".HEIF", "image/heif", True),
        (".heic", "application/octet-stream", True),
        (".heic", "image/jpeg", True),
        (".jpg", "image/heic", False),
        (".png", "application/octet-stream", False),
        ("", "image/heic", False),
    ],
)
def test_needs_transcode(extension, mime_type, expected):
    assert needs_transcode(extension, mime_type) is expected


async def test_other_formats_pass_through_unchanged():
    result = await maybe_transcode(b"png-bytes", ".png", "image/png")

    assert result.content == b"png-bytes"
    assert result.mime_type == "image/png"
    assert result.extension == ".png"


async def test_heic_is_converted_to_jpeg(heic_bytes):
    result = await maybe_transcode(heic_bytes, ".HEIC", "application/octet-stream")

    assert result.extension == ".jpg"
    assert result.mime_type == "image/jpeg"
    assert result.content.startswith(b"\xff\xd8")
    with Image.open(io.BytesIO(result.content)) as image:
        assert image.format == "JPEG"
        assert image.size == (16, 16)


async def test_undecodable_heic_raises_transcode_error():
    with pytest.raises(TranscodeError, match="HEIC conversion failed"):
        await maybe_transcode(b"definitely not a heic container", ".heic", "image/heic")


async def test_heic_mime_with_other_extension_is_not_converted(monkeypatch):
    def fail(content):
        raise AssertionError("should not transcode")

    monkeypatch.setattr(transcoder, "heic_to_jpeg", fail)
    result = await maybe_transcode(b"jpeg", ".jpg", "image/heic")
    assert result.extension == ".jpg"
    assert result.mime_type == "image/heic"
