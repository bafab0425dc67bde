"""
FastAPI exception handlers.
Turns every error into the uniform response envelope:
{success, message, errorSources, stack}.
"""

import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from src.filegate.configs.config import get_config
from src.filegate.error_handling.exceptions import FileGatewayError

logger = logging.getLogger("filegate.errors")


def _stack(exc: BaseException) -> Optional[str]:
    # Only show detailed stack traces outside production
    if get_config().is_production:
        return None
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def error_response(
    exc: BaseException,
    status_code: int,
    message: str,
    error_sources: List[Dict[str, Any]],
) -> JSONResponse:
    if status_code >= 500:
        logger.error(
            f"Server error {status_code}: {message}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
    else:
        logger.warning(f"Client error {status_code}: {message} {error_sources}")

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "errorSources": error_sources,
            "stack": _stack(exc),
        },
    )


async def gateway_error_handler(request: Request, exc: FileGatewayError) -> JSONResponse:
    return error_response(exc, exc.status_code, exc.message, exc.error_sources)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error_sources = [
        {
            "path": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return error_response(exc, 400, "Validation Error", error_sources)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = str(exc.detail)
    return error_response(exc, exc.status_code, message, [{"path": "", "message": message}])


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    message = str(exc) or "Something went wrong!"
    return error_response(exc, 500, message, [{"path": "", "message": message}])


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FileGatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
