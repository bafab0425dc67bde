from contextlib import asynccontextmanager
import logging
import signal
import sys
from typing import Optional

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import asyncio

from src.filegate.configs.config import LogLevel, get_config
from src.filegate.error_handling.handlers import register_exception_handlers
from src.filegate.routes import health, upload
from src.filegate.security.file_validator import FileValidator
from src.filegate.services.uploads import UploadService
from src.filegate.storage import create_store
from src.filegate.storage.base import BaseStore

logger = logging.getLogger(__name__)


def handle_shutdown_signal(signum, frame):
    """Handle shutdown signals"""
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    sys.exit(0)


def configure_logging() -> None:
    level = get_config().filegate_log_level
    # "trace" is a uvicorn level; the standard library stops at debug
    python_level = logging.DEBUG if level == LogLevel.TRACE else getattr(logging, level.value.upper())
    logging.basicConfig(
        level=python_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%d-%m-%Y %H:%M",
    )


def create_app(store: Optional[BaseStore] = None) -> FastAPI:
    """
    Build the application.

    Args:
        store: Storage back-end to use. When omitted, the back-end selected by
            configuration is constructed on startup and closed on shutdown.
    """
    config = get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active_store = store or create_store(config)
        logger.info(f"Storage backend ready: {active_store.name}")

        app.state.store = active_store
        app.state.upload_service = UploadService(
            active_store,
            validator=FileValidator(
                max_size_bytes=config.max_file_size_bytes,
                max_files=config.max_files_per_upload,
            ),
            default_folder=config.default_folder,
            compensate_failed_uploads=config.compensate_failed_uploads,
        )
        try:
            yield
        finally:
            if store is None:
                await active_store.aclose()
                logger.info(f"Storage backend closed: {active_store.name}")
            app.state.store = None

    app = FastAPI(
        title="filegate",
        description="File storage gateway for S3-compatible and media CDN back-ends",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in config.cors_origin.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    api = APIRouter(prefix="/api/v1")
    api.include_router(upload.router)
    app.include_router(api)
    app.include_router(health.router)
    return app


app = create_app()


async def main():
    """
    Main entry point for the FastAPI application.
    """
    configure_logging()
    logger.info("Starting filegate API...")
    signal.signal(signal.SIGINT, handle_shutdown_signal)
    signal.signal(signal.SIGTERM, handle_shutdown_signal)

    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, handle_shutdown_signal)

    config = uvicorn.Config(
        app,
        host=get_config().fastapi_host,
        port=get_config().fastapi_port,
        log_level=get_config().filegate_log_level.value,
        use_colors=True,
        access_log=True,
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Server error: {str(e)}")
        raise


if __name__ == "__main__":
    asyncio.run(main())
