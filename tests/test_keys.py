import re

import pytest

from src.filegate.schemas.upload import UploadOptions
from src.filegate.storage.keys import derive_key, derive_public_id, is_url


def test_generated_key_uses_default_folder_and_uuid():
    key = derive_key(".png")

    assert re.fullmatch(r"uploads/[0-9a-f-]{36}\.png", key)


def test_generated_keys_are_unique():
    assert derive_key(".png") != derive_key(".png")


def test_folder_and_filename_are_used_verbatim():
    assert derive_key(".jpg", UploadOptions(folder="/avatars/", filename="user 42")) == "avatars/user 42.jpg"


def test_public_id_has_no_extension():
    assert derive_public_id(UploadOptions(folder="gallery", filename="cover")) == ("gallery", "cover")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("https://cdn.example.com/uploads/a.png", True),
        ("http://cdn.example.com/uploads/a.png", True),
        ("uploads/a.png", False),
        ("ftp://cdn.example.com/a.png", False),
    ],
)
def test_is_url(value, expected):
    assert is_url(value) is expected
