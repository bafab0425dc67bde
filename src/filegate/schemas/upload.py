from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class UploadOptions(BaseModel):
    """Where and under which name a file is stored."""
    folder: Optional[str] = None
    filename: Optional[str] = None


class StorageObjectRef(BaseModel):
    """Durable reference to a stored object. Both fields resolve to the same object."""
    model_config = ConfigDict(frozen=True)

    url: str
    key: str


class DeleteFileRequest(BaseModel):
    key: Optional[str] = None
    url: Optional[str] = None

    @property
    def key_or_url(self) -> Optional[str]:
        return self.key or self.url


class DeleteFilesRequest(BaseModel):
    keys: Optional[List[str]] = None
    urls: Optional[List[str]] = None

    @property
    def keys_or_urls(self) -> List[str]:
        return self.keys or self.urls or []


class SignedUrlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: Optional[str] = None
    url: Optional[str] = None
    expires_in: Optional[int] = Field(default=None, alias="expiresIn", gt=0)

    @property
    def key_or_url(self) -> Optional[str]:
        return self.key or self.url


class SignedUrlData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    signed_url: str = Field(alias="signedUrl")


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope."""
    success: bool = True
    message: str
    data: Optional[T] = None


class ErrorSource(BaseModel):
    path: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errorSources: List[ErrorSource]
    stack: Optional[str] = None
