"""Shared fixtures for filegate tests."""

import io
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

import boto3
from botocore.config import Config
import pytest
from fastapi import UploadFile
from moto import mock_aws
from starlette.datastructures import Headers

from src.filegate.error_handling.exceptions import NotResolvableError
from src.filegate.schemas.upload import StorageObjectRef
from src.filegate.security.file_validator import FileValidator
from src.filegate.services.uploads import UploadService
from src.filegate.storage.base import BaseStore

TEST_BUCKET_NAME = "filegate-test"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class InMemoryStore(BaseStore):
    """Storage back-end keeping objects in a dict and recording every call."""

    name = "memory"
    base_url = "https://files.example.com"

    def __init__(self):
        super().__init__()
        self.objects: Dict[str, Tuple[bytes, str]] = {}
        self.calls: List[Tuple[str, object]] = []

    async def put(self, content: bytes, key: str, content_type: str) -> StorageObjectRef:
        self.calls.append(("put", key))
        self.objects[key] = (content, content_type)
        return StorageObjectRef(url=f"{self.base_url}/{key}", key=key)

    async def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        self.objects.pop(key, None)

    async def delete_many(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        self.calls.append(("delete_many", keys))
        for key in keys:
            self.objects.pop(key, None)

    async def sign(self, key: str, expires_in: Optional[int] = None) -> str:
        self.calls.append(("sign", key))
        return f"{self.base_url}/{key}?expires={self._ttl(expires_in)}"

    def resolve_key(self, url: str) -> str:
        if not url.startswith(f"{self.base_url}/"):
            raise NotResolvableError(url)
        return urlparse(url).path[1:]


def make_upload(filename: str, content: bytes = PNG_BYTES, content_type: str = "image/png") -> UploadFile:
    """Build an UploadFile the way FastAPI hands it to a route."""
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        size=len(content),
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def validator():
    return FileValidator(max_size_bytes=30 * 1024 * 1024, max_files=10)


@pytest.fixture
def upload_service(memory_store, validator):
    return UploadService(memory_store, validator=validator)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so no real account is ever touched."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def s3_client(aws_credentials):
    """Mock S3 service with the test bucket.

    Yields:
        boto3 S3 client with the test bucket created.
    """
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1", config=Config(signature_version="s3v4"))
        client.create_bucket(Bucket=TEST_BUCKET_NAME)
        yield client
