# filegate/storage/base.py
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from src.filegate.schemas.upload import StorageObjectRef, UploadOptions
from src.filegate.storage.keys import derive_key

DEFAULT_SIGNED_URL_TTL = 3600


class BaseStore(ABC):
    """
    Contract all storage back-ends must fulfil.
    Every method is a coroutine; blocking SDK calls are pushed to a
    worker thread by the implementations so one slow upload never
    stalls other requests on the same event loop.
    """

    #: Human readable provider name used in error messages and logs.
    name: str = "storage"

    def __init__(self, default_ttl: int = DEFAULT_SIGNED_URL_TTL):
        self.default_ttl = default_ttl

    def derive_key(self, extension: str, options: Optional[UploadOptions] = None) -> str:
        """Storage key for a new object with the given (final) extension."""
        return derive_key(extension, options)

    def _ttl(self, expires_in: Optional[int]) -> int:
        return int(expires_in or self.default_ttl)

    @abstractmethod
    async def put(self, content: bytes, key: str, content_type: str) -> StorageObjectRef:
        """Save *content* under *key*, overwriting any existing object."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Ensure the object is absent. Missing objects are not an error."""
        ...

    @abstractmethod
    async def delete_many(self, keys: Iterable[str]) -> None:
        """Remove several objects in one batch. No-op for an empty set."""
        ...

    @abstractmethod
    async def sign(self, key: str, expires_in: Optional[int] = None) -> str:
        """Return a time-limited URL for the object."""
        ...

    @abstractmethod
    def resolve_key(self, url: str) -> str:
        """
        Map a URL previously returned by put() back to its key.

        Raises:
            NotResolvableError: If the URL does not belong to this store
        """
        ...

    async def aclose(self) -> None:
        """Release client connections. Called once on shutdown."""
        return None
