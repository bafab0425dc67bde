import logging
from typing import Annotated, List, Optional

from fastapi import Depends, File, Form, UploadFile
from fastapi.routing import APIRouter

from src.filegate.deps import get_upload_service
from src.filegate.schemas.upload import (
    ApiResponse,
    DeleteFileRequest,
    DeleteFilesRequest,
    ErrorResponse,
    SignedUrlData,
    SignedUrlRequest,
    StorageObjectRef,
    UploadOptions,
)
from src.filegate.services.uploads import UploadService

logger = logging.getLogger("filegate.routes")
router = APIRouter(
    prefix="/upload",
    tags=["upload"],
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)

Service = Annotated[UploadService, Depends(get_upload_service)]


@router.post("/single", response_model=ApiResponse[StorageObjectRef])
async def upload_single_file(
    service: Service,
    file: Annotated[Optional[UploadFile], File(description="The file to upload")] = None,
    folder: Annotated[Optional[str], Form(description="Target folder")] = None,
):
    """
    Upload one file. HEIC/HEIF images are stored as JPEG.
    """
    result = await service.upload_single_file(file, UploadOptions(folder=folder))
    return ApiResponse(message="File uploaded successfully", data=result)


@router.post("/multiple", response_model=ApiResponse[List[StorageObjectRef]])
async def upload_multiple_files(
    service: Service,
    files: Annotated[Optional[List[UploadFile]], File(description="The files to upload")] = None,
    folder: Annotated[Optional[str], Form(description="Target folder")] = None,
):
    """
    Upload several files at once. If any file fails the whole request fails.
    """
    result = await service.upload_multiple_files(files or [], UploadOptions(folder=folder))
    return ApiResponse(message="Files uploaded successfully", data=result)


@router.delete("/delete")
async def delete_file(body: DeleteFileRequest, service: Service):
    """
    Delete a file by key or by the URL returned on upload.
    Deleting a file that no longer exists succeeds.
    """
    await service.delete_file(body.key_or_url)
    return ApiResponse(message="File deleted successfully", data=None)


@router.delete("/delete-multiple")
async def delete_multiple_files(body: DeleteFilesRequest, service: Service):
    """
    Delete several files in one backend request.
    """
    await service.delete_multiple_files(body.keys_or_urls)
    return ApiResponse(message="Files deleted successfully", data=None)


@router.post("/signed-url", response_model=ApiResponse[SignedUrlData])
async def get_signed_url(body: SignedUrlRequest, service: Service):
    """
    Get a time-limited URL for private file access.
    """
    signed_url = await service.get_signed_url(body.key_or_url, body.expires_in)
    return ApiResponse(message="Signed URL generated successfully", data=SignedUrlData(signed_url=signed_url))
