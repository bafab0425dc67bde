import asyncio
import logging
from typing import List, Optional

from fastapi import UploadFile

from src.filegate.error_handling.exceptions import BackendError, InputError
from src.filegate.media.transcoder import maybe_transcode
from src.filegate.schemas.upload import StorageObjectRef, UploadOptions
from src.filegate.security.file_validator import FileValidator, IncomingFile, get_file_validator
from src.filegate.storage.base import BaseStore
from src.filegate.storage.keys import DEFAULT_FOLDER, is_url

logger = logging.getLogger("filegate.uploads")


class UploadService:
    """Service class for storing, deleting and signing uploaded files.

    Files are validated, HEIC/HEIF images are transcoded to JPEG and the
    result is written to whichever storage back-end was injected. Delete and
    sign operations accept either a storage key or a URL previously
    returned by an upload.
    """

    def __init__(
        self,
        store: BaseStore,
        validator: Optional[FileValidator] = None,
        default_folder: str = DEFAULT_FOLDER,
        compensate_failed_uploads: bool = True,
    ):
        self.store = store
        self.validator = validator or get_file_validator()
        self.default_folder = default_folder
        self.compensate_failed_uploads = compensate_failed_uploads

    def _options(self, options: Optional[UploadOptions]) -> UploadOptions:
        options = options or UploadOptions()
        return UploadOptions(
            folder=options.folder or self.default_folder,
            filename=options.filename,
        )

    def resolve_key(self, key_or_url: Optional[str]) -> str:
        """Normalise a key or a previously issued URL to a storage key."""
        if not key_or_url:
            raise InputError("File key or URL is required")
        if is_url(key_or_url):
            return self.store.resolve_key(key_or_url)
        return key_or_url

    async def store_file(self, file: IncomingFile, options: Optional[UploadOptions] = None) -> StorageObjectRef:
        """Transcode (when needed) and write an already validated file."""
        result = await maybe_transcode(file.content, file.extension, file.declared_mime_type)
        key = self.store.derive_key(result.extension, self._options(options))
        return await self.store.put(result.content, key, result.mime_type)

    async def upload_single_file(self, file: Optional[UploadFile], options: Optional[UploadOptions] = None) -> StorageObjectRef:
        if file is None:
            raise InputError("No file uploaded", path="file")

        incoming = await self.validator.validate_file(file)
        ref = await self.store_file(incoming, options)
        logger.info(f"Uploaded {incoming.original_name} as {ref.key}")
        return ref

    async def upload_multiple_files(self, files: List[UploadFile], options: Optional[UploadOptions] = None) -> List[StorageObjectRef]:
        """
        Upload several files concurrently.

        Every file is validated before anything is stored. If any transcode or
        write fails the whole batch is rejected and, unless disabled, the files
        that were already stored are deleted again.
        """
        incoming = await self.validator.validate_multiple_files(files)
        # A fixed filename would make every file of the batch overwrite the others
        batch_options = UploadOptions(folder=(options.folder if options else None))

        results = await asyncio.gather(
            *(self.store_file(file, batch_options) for file in incoming),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            stored = [r for r in results if isinstance(r, StorageObjectRef)]
            logger.warning(
                f"{len(failures)} of {len(incoming)} files failed to upload; "
                f"{len(stored)} already stored"
            )
            if stored and self.compensate_failed_uploads:
                await self._discard(stored)
            raise failures[0]

        logger.info(f"Uploaded {len(results)} files")
        return list(results)

    async def _discard(self, refs: List[StorageObjectRef]) -> None:
        try:
            await self.store.delete_many([ref.key for ref in refs])
            logger.info(f"Removed {len(refs)} files of a failed batch upload")
        except BackendError as e:
            # The upload error is what the caller sees; keep the leftovers in the log
            logger.error(f"Could not remove files of a failed batch upload: {e.failed_keys or e}")

    async def delete_file(self, key_or_url: Optional[str]) -> None:
        key = self.resolve_key(key_or_url)
        await self.store.delete(key)
        logger.info(f"Deleted {key}")

    async def delete_multiple_files(self, keys_or_urls: Optional[List[str]]) -> None:
        if not keys_or_urls:
            raise InputError("File keys or URLs are required")
        keys = [self.resolve_key(value) for value in keys_or_urls]
        await self.store.delete_many(keys)

    async def get_signed_url(self, key_or_url: Optional[str], expires_in: Optional[int] = None) -> str:
        key = self.resolve_key(key_or_url)
        return await self.store.sign(key, expires_in)
