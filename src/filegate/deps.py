from fastapi import Request

from src.filegate.services.uploads import UploadService


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service
