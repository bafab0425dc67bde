# filegate/storage/cloudinary.py
import functools
import io
import logging
import re
import time
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import unquote, urlparse

import cloudinary.api
import cloudinary.uploader
import cloudinary.utils
from anyio import to_thread
from cloudinary.exceptions import Error as CloudinaryError

from src.filegate.error_handling.exceptions import BackendError, NotResolvableError
from src.filegate.schemas.upload import StorageObjectRef, UploadOptions
from .base import DEFAULT_SIGNED_URL_TTL, BaseStore
from .keys import derive_public_id

logger = logging.getLogger(__name__)

# Admin API delete_resources accepts at most this many public IDs per call
MAX_DELETE_BATCH = 100

IMAGE_RESOURCE = "image"
RAW_RESOURCE = "raw"
# Cloudinary only renders images and PDFs; anything else is stored as a raw file
RAW_EXTENSIONS = (".doc", ".docx")

UPLOAD_MARKER = "upload"
VERSION_SEGMENT = re.compile(r"^v\d+$")
TRAILING_EXTENSION = re.compile(r"\.[^/.]+$")


def resource_type_for(public_id: str) -> str:
    """Raw public-IDs keep their extension, image public-IDs never have one."""
    return RAW_RESOURCE if public_id.lower().endswith(RAW_EXTENSIONS) else IMAGE_RESOURCE


class CloudinaryStore(BaseStore):
    """
    Wraps the Cloudinary media CDN.
    Images and PDFs are `image` resources identified by `<folder>/<name>`
    (no extension, Cloudinary appends the format on delivery). Word
    documents are `raw` resources whose public-ID is `<folder>/<name><ext>`.
    The delivery URL is whatever Cloudinary returns on upload; it embeds a
    version and cannot be rebuilt from the ID.
    Credentials are passed on every call so that no global SDK
    configuration is touched.
    """

    name = "Cloudinary"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        delivery_type: str = "upload",
        default_ttl: int = DEFAULT_SIGNED_URL_TTL,
    ):
        super().__init__(default_ttl=default_ttl)
        self.cloud_name = cloud_name
        self.delivery_type = delivery_type
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }

    # ---------- helpers ---------- #
    def _options(self, key: str, **extra) -> Dict[str, Any]:
        return {
            **self._credentials,
            "resource_type": resource_type_for(key),
            "type": self.delivery_type,
            **extra,
        }

    async def _call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        return await to_thread.run_sync(functools.partial(fn, *args, **kwargs))

    def derive_key(self, extension: str, options: Optional[UploadOptions] = None) -> str:
        folder, name = derive_public_id(options)
        if extension.lower() in RAW_EXTENSIONS:
            return f"{folder}/{name}{extension.lower()}"
        return f"{folder}/{name}"

    # ---------- API ---------- #
    async def put(self, content: bytes, key: str, content_type: str) -> StorageObjectRef:
        try:
            result = await self._call(
                cloudinary.uploader.upload,
                io.BytesIO(content),
                **self._options(key, public_id=key, overwrite=True, invalidate=True),
            )
        except CloudinaryError as e:
            logger.error(f"Error uploading to Cloudinary: {e}")
            raise BackendError(f"Cloudinary upload failed: {e}") from e

        logger.info(f"Stored {result['public_id']} ({len(content)} bytes) in Cloudinary")
        return StorageObjectRef(url=result["secure_url"], key=result["public_id"])

    async def delete(self, key: str) -> None:
        try:
            result = await self._call(
                cloudinary.uploader.destroy, key, **self._options(key, invalidate=True)
            )
        except CloudinaryError as e:
            logger.error(f"Error deleting from Cloudinary: {e}")
            raise BackendError(f"Failed to delete from Cloudinary: {e}") from e

        outcome = (result or {}).get("result")
        if outcome not in ("ok", "not found"):
            raise BackendError(f"Failed to delete from Cloudinary: {outcome}", failed_keys=[key])

    async def delete_many(self, keys: Iterable[str]) -> None:
        public_ids = list(dict.fromkeys(keys))
        if not public_ids:
            return

        # delete_resources works on a single resource type per call
        by_type: Dict[str, List[str]] = {}
        for public_id in public_ids:
            by_type.setdefault(resource_type_for(public_id), []).append(public_id)

        failed: List[str] = []
        done = set()
        for ids in by_type.values():
            for start in range(0, len(ids), MAX_DELETE_BATCH):
                batch = ids[start:start + MAX_DELETE_BATCH]
                try:
                    result = await self._call(
                        cloudinary.api.delete_resources, batch, **self._options(batch[0], invalidate=True)
                    )
                except CloudinaryError as e:
                    logger.error(f"Error deleting multiple files from Cloudinary: {e}")
                    raise BackendError(
                        f"Failed to delete from Cloudinary: {e}",
                        failed_keys=failed + [i for i in public_ids if i not in done],
                    ) from e
                done.update(batch)
                deleted = (result or {}).get("deleted", {})
                failed.extend(
                    public_id for public_id in batch
                    if deleted.get(public_id) not in ("deleted", "not_found")
                )

        if failed:
            logger.error(f"Cloudinary could not delete {len(failed)} of {len(public_ids)} files")
            raise BackendError(
                f"Failed to delete {len(failed)} of {len(public_ids)} files from Cloudinary",
                failed_keys=failed,
            )

    async def sign(self, key: str, expires_in: Optional[int] = None) -> str:
        expires_at = int(time.time()) + self._ttl(expires_in)
        try:
            return cloudinary.utils.private_download_url(
                key, "", **self._options(key, expires_at=expires_at)
            )
        except (CloudinaryError, ValueError) as e:
            logger.error(f"Error generating signed URL: {e}")
            raise BackendError(f"Failed to generate signed URL: {e}") from e

    def resolve_key(self, url: str) -> str:
        """
        Recover the public-ID from a delivery URL such as
        https://res.cloudinary.com/<cloud>/image/upload/v1712/uploads/abc.jpg
        or https://res.cloudinary.com/<cloud>/raw/upload/v1712/docs/report.docx
        """
        try:
            segments = unquote(urlparse(url).path).split("/")
        except ValueError as e:
            raise NotResolvableError(url) from e

        if UPLOAD_MARKER not in segments:
            raise NotResolvableError(url)

        marker = segments.index(UPLOAD_MARKER)
        resource_type = segments[marker - 1] if marker > 0 else ""
        parts = segments[marker + 1:]
        if parts and VERSION_SEGMENT.match(parts[0]):
            parts = parts[1:]

        public_id = "/".join(parts)
        if resource_type != RAW_RESOURCE:
            public_id = TRAILING_EXTENSION.sub("", public_id)
        if not public_id:
            raise NotResolvableError(url)
        return public_id
