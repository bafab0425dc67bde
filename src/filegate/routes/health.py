import logging

from fastapi import HTTPException, Request
from fastapi.routing import APIRouter

logger = logging.getLogger("filegate.health")
router = APIRouter(
    prefix="/health",
    tags=["health"],
    responses={404: {"description": "Not found"}},
)


@router.get("/")
async def root():
    """
    Root endpoint for the health check.

    Returns:
        dict: A simple message indicating the health check endpoint.
    """
    return {"message": "Health check endpoint. Use /health/live for detailed status."}


@router.get("/ready")
async def readiness_check(request: Request):
    """
    Readiness check endpoint. The service is ready once its storage
    back-end has been constructed.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        logger.error("Readiness check failed: storage back-end not initialised")
        raise HTTPException(status_code=503, detail="Application is not ready")
    return {"message": "ready", "storage_backend": store.name}


@router.get("/live")
async def health_check(request: Request):
    """
    Liveness of the application.

    Returns:
        dict: The health status and the active storage back-end.
    """
    store = getattr(request.app.state, "store", None)
    return {
        "status": "healthy",
        "code": 200,
        "storage_backend": store.name if store else None,
    }
