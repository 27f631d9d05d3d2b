"""FastAPI application for the local model processing web interface."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from backend.config.settings import Settings, get_settings
from backend.core.exceptions import InferenceError, ProcessingError
from backend.core.pipeline import Pipeline
from backend.llm.client import OllamaClient
from .dependencies import OllamaClientDep
from .routes import models, process
from .services.processor import DOWNLOADS_URL_PREFIX, PipelineProcessor
from .storage.config import StorageConfig
from .storage.exceptions import StorageException
from .storage.service import StorageService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan: startup and shutdown.

    Startup logs the backend location and verifies nothing; the backend may
    come up after this service. Shutdown closes the inference client's
    connection pool.
    """
    settings: Settings = app.state.settings
    logger.info(
        f"Starting Local Model Processing API: backend={settings.ollama_base_url}, "
        f"default model={settings.default_model}, data_dir={settings.data_dir}"
    )

    try:
        yield
    finally:
        logger.info("Shutting down Local Model Processing API")
        try:
            # Shield from cancellation to ensure clean shutdown
            await asyncio.shield(app.state.client.close())
        except asyncio.CancelledError:
            logger.warning("Inference client close interrupted")


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Configuration; read from the environment when omitted
        transport: Optional httpx transport for the inference client (tests)
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    storage_config = StorageConfig.from_settings(settings)
    storage_config.init()

    client = OllamaClient.from_settings(settings, transport=transport)
    storage = StorageService(storage_config)

    app = FastAPI(
        title="Local Model Processing API",
        description="Forwards text and spreadsheets to a local Ollama server",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.client = client
    app.state.storage = storage
    app.state.processor = PipelineProcessor(Pipeline(client), storage)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(ProcessingError)
    async def processing_error_handler(request: Request, exc: ProcessingError):
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.error_code}: {exc.message}"
        )
        if exc.details:
            logger.debug(f"Error details: {exc.details}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.user_message},
        )

    @app.exception_handler(StorageException)
    async def storage_error_handler(request: Request, exc: StorageException):
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message},
        )

    # Include routers with /api prefix
    app.include_router(process.router, prefix="/api")
    app.include_router(models.router, prefix="/api")

    @app.get("/api/health")
    async def health_check(client: OllamaClientDep):
        """Report whether the inference backend answers its tag listing."""
        try:
            await client.list_models()
        except InferenceError as e:
            logger.warning(f"Health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "error", "ollama": "disconnected", "message": e.user_message},
            )
        return {"status": "ok", "ollama": "connected"}

    app.mount(
        DOWNLOADS_URL_PREFIX,
        StaticFiles(directory=storage_config.download_dir),
        name="downloads",
    )
    if settings.public_dir.is_dir():
        app.mount("/", StaticFiles(directory=settings.public_dir, html=True), name="public")

    return app
