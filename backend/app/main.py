"""
Mom's Yums Backend - FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the services from a Settings object, registers
       middleware, exception handlers and routers.
Who:   uvicorn (uvicorn app.main:app) and the test suite, which calls
       create_app() with its own Settings.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Access Log → GZip → CORS      │
    │                                                          │
    │  Routes:                                                 │
    │   POST /api/extract        recipes / categories / files  │
    │   collections / share      GET /health                   │
    │                                                          │
    │  app.state:                                              │
    │   settings, extraction_service, file_service,            │
    │   recipe_service                                         │
    │                                                          │
    │  Exception Handlers:                                     │
    │   Validation→400  Auth→401  Permission→403  NotFound→404 │
    │   BackendUnavailable→503  FileStorage/Database→500       │
    └──────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import Settings, settings as default_settings
from app.database import dispose_engine
from app.exceptions import (
    AuthenticationError,
    BackendUnavailableError,
    DatabaseError,
    FileStorageError,
    InvalidImageError,
    MomsYumsError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import collections, extract, health, recipes
from app.services.extraction_service import build_extraction_service
from app.services.file_service import FileService
from app.services.recipe_service import RecipeService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-01-15T12:00:00 [INFO] app.services.extraction_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request chatter from third-party clients
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("Mom's Yums Backend %s starting up...", __version__)

    try:
        config.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and the recipe store still work
        logger.error("Configuration error: %s", str(e))

    logger.info("Primary vision backend: %s", config.vision_llm_provider)
    logger.info("Storage directory: %s", Path(config.storage_root).resolve())
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Mom's Yums Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details or None,
            "request_id": request_id_var.get(""),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy onto HTTP responses.

    Every body has the same shape: {error, message, details, request_id}.
    Stack traces are logged, never returned.
    """

    @app.exception_handler(InvalidImageError)
    async def handle_invalid_image(request: Request, exc: InvalidImageError):
        logger.warning("Invalid image: %s | %s", exc.message, exc.context)
        return _error_response(400, "invalid_image", exc.message, exc.context)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        response = _error_response(401, "unauthorized", exc.message)
        response.headers["WWW-Authenticate"] = "Bearer"
        return response

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        return _error_response(403, "forbidden", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(BackendUnavailableError)
    async def handle_backend_unavailable(request: Request, exc: BackendUnavailableError):
        logger.error("Recipe extraction unavailable: %s | %s", exc.message, exc.context)
        return _error_response(503, "backend_unavailable", exc.message, exc.context)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        # The store's own message is reported; nothing is retried
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        details = {"reason": exc.context["reason"]} if "reason" in exc.context else None
        return _error_response(500, "server_error", exc.message, details)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("File storage error: %s | Context: %s", exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(MomsYumsError)
    async def handle_app_error(request: Request, exc: MomsYumsError):
        logger.error("Unhandled application error: %s | %s", exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Assemble the application.

    Args:
        app_settings: Configuration to build the services with; defaults to
                      the environment-backed module singleton.
    """
    config = app_settings or default_settings

    app = FastAPI(
        title="Mom's Yums API",
        description=(
            "Turn photos of handwritten recipe cards into editable recipes, "
            "then save, search and share them."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Services ──────────────────────────────────────────────────────────
    file_service = FileService(config)
    app.state.settings = config
    app.state.file_service = file_service
    app.state.extraction_service = build_extraction_service(config)
    app.state.recipe_service = RecipeService(config, file_service)

    # ── Middleware (last added runs first) ────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(extract.router)
    app.include_router(recipes.router)
    app.include_router(collections.router)
    app.include_router(health.router)

    return app


# uvicorn entry point: `uvicorn app.main:app`
app = create_app()
