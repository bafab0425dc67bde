# filegate/storage/s3.py
import functools
import logging
from abc import abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import unquote, urlparse

import boto3
from anyio import to_thread
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.filegate.error_handling.exceptions import BackendError, NotResolvableError
from src.filegate.schemas.upload import StorageObjectRef
from .base import DEFAULT_SIGNED_URL_TTL, BaseStore

logger = logging.getLogger(__name__)

# DeleteObjects accepts at most this many keys per request
MAX_DELETE_BATCH = 1000

MISSING_KEY_CODES = ("NoSuchKey", "NotFound", "404")


class S3Store(BaseStore):
    """
    Wraps any S3-compatible service.
    Subclasses decide how public URLs are built; everything else
    (writes, deletes, presigning and URL parsing) is shared.
    """

    name = "S3"

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        public_url: Optional[str] = None,
        acl: Optional[str] = None,
        addressing_style: str = "virtual",
        client: Any = None,
        default_ttl: int = DEFAULT_SIGNED_URL_TTL,
    ):
        super().__init__(default_ttl=default_ttl)
        self.bucket = bucket
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self.public_base = public_url.rstrip("/") if public_url else None
        self.acl = acl  # canned ACL applied on every put, e.g. "public-read"
        self._owns_client = client is None
        self.s3 = client or boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            region_name=region or None,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": addressing_style},
                # Failures surface to the caller as-is; no retries here
                retries={"max_attempts": 1, "mode": "standard"},
                connect_timeout=5,
                read_timeout=30,
            ),
        )

    # ---------- helpers ---------- #
    @abstractmethod
    def public_url(self, key: str) -> str:
        """URL under which the object is addressed by this provider."""
        ...

    async def _call(self, fn: Callable[..., Any], **kwargs) -> Any:
        return await to_thread.run_sync(functools.partial(fn, **kwargs))

    # ---------- API ---------- #
    async def put(self, content: bytes, key: str, content_type: str) -> StorageObjectRef:
        params: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": content,
            "ContentType": content_type,
        }
        if self.acl:
            params["ACL"] = self.acl

        try:
            await self._call(self.s3.put_object, **params)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading to {self.name}: {e}")
            raise BackendError(f"{self.name} upload failed: {e}") from e

        logger.info(f"Stored {key} ({len(content)} bytes, {content_type}) in {self.name}")
        return StorageObjectRef(url=self.public_url(key), key=key)

    async def delete(self, key: str) -> None:
        try:
            await self._call(self.s3.delete_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = (e.response.get("Error") or {}).get("Code")
            if code in MISSING_KEY_CODES:
                logger.debug(f"{key} already absent from {self.name}")
                return
            logger.error(f"Error deleting from {self.name}: {e}")
            raise BackendError(f"Failed to delete from {self.name}: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Error deleting from {self.name}: {e}")
            raise BackendError(f"Failed to delete from {self.name}: {e}") from e

    async def delete_many(self, keys: Iterable[str]) -> None:
        unique_keys = list(dict.fromkeys(keys))
        if not unique_keys:
            return

        failed: List[str] = []
        for start in range(0, len(unique_keys), MAX_DELETE_BATCH):
            batch = unique_keys[start:start + MAX_DELETE_BATCH]
            try:
                response = await self._call(
                    self.s3.delete_objects,
                    Bucket=self.bucket,
                    Delete={
                        "Objects": [{"Key": key} for key in batch],
                        "Quiet": True,
                    },
                )
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Error deleting multiple files from {self.name}: {e}")
                raise BackendError(
                    f"Failed to delete multiple files from {self.name}: {e}",
                    failed_keys=unique_keys[start:],
                ) from e
            # Quiet mode only reports the keys that could not be deleted
            failed.extend(err.get("Key", "") for err in response.get("Errors", []))

        if failed:
            logger.error(f"{self.name} could not delete {len(failed)} of {len(unique_keys)} files")
            raise BackendError(
                f"Failed to delete {len(failed)} of {len(unique_keys)} files from {self.name}",
                failed_keys=failed,
            )
        logger.info(f"Deleted {len(unique_keys)} files from {self.name}")

    async def sign(self, key: str, expires_in: Optional[int] = None) -> str:
        try:
            return self.s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=self._ttl(expires_in),
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error generating signed URL: {e}")
            raise BackendError(f"Failed to generate signed URL: {e}") from e

    def resolve_key(self, url: str) -> str:
        """
        Recover the key from a virtual-host, custom-domain or path-style URL.
        """
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise NotResolvableError(url) from e

        host = parsed.hostname or ""
        path = unquote(parsed.path)
        key = ""

        # The public domain may itself start with "<bucket>.", so it is checked first
        if self.public_base and urlparse(self.public_base).hostname == host:
            # https://<public domain>[/<base path>]/<key>
            base_path = unquote(urlparse(self.public_base).path).rstrip("/")
            if path.startswith(f"{base_path}/"):
                key = path[len(base_path) + 1:]
        elif host.startswith(f"{self.bucket}."):
            # https://<bucket>.<endpoint host>/<key>
            key = path[1:]
        else:
            # https://<endpoint host>/<bucket>/<key>
            parts = path.split("/")
            if len(parts) > 2 and parts[1] == self.bucket:
                key = "/".join(parts[2:])

        if not key:
            raise NotResolvableError(url)
        return key

    async def aclose(self) -> None:
        if self._owns_client:
            self.s3.close()
