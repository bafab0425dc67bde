from .upload import (
    ApiResponse,
    DeleteFileRequest,
    DeleteFilesRequest,
    ErrorResponse,
    ErrorSource,
    SignedUrlData,
    SignedUrlRequest,
    StorageObjectRef,
    UploadOptions,
)

__all__ = [
    "ApiResponse",
    "DeleteFileRequest",
    "DeleteFilesRequest",
    "ErrorResponse",
    "ErrorSource",
    "SignedUrlData",
    "SignedUrlRequest",
    "StorageObjectRef",
    "UploadOptions",
]
