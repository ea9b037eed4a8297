"""FastAPI application entry point and lifespan management.

Configures CORS, registers API routers, maps the record-management error
taxonomy onto JSON responses, and manages the application lifespan (gateway
construction, per-entity managers, shutdown of pooled HTTP clients). Serves
as the single top-level module that wires together all sub-packages.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from corpus_admin.config import Settings, get_settings
from corpus_admin.errors import AdminError
from corpus_admin.api.v1.router import router as v1_router
from corpus_admin.schemas.common import HealthResponse
from corpus_admin.services.chunk_manager import ChunkManager
from corpus_admin.services.gateway import Gateway, build_gateway
from corpus_admin.services.http_client_manager import close_all_clients
from corpus_admin.services.notifier import Notifier
from corpus_admin.services.source_manager import SourceManager

logger = logging.getLogger(__name__)


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Suppress noisy third-party HTTP loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.storage_path.mkdir(parents=True, exist_ok=True)
    db_path = settings.DATABASE_URL.replace("sqlite:///", "")
    if settings.DATABASE_URL.startswith("sqlite:///") and db_path and db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Runs on startup: build the gateway and one manager per entity type."""
    settings: Settings = app.state.settings
    _setup_logging(settings.LOG_LEVEL)

    owns_gateway = app.state.gateway is None
    if owns_gateway:
        if settings.GATEWAY_BACKEND == "local":
            _ensure_local_dirs(settings)
        app.state.gateway = build_gateway(settings)
    logger.info("Using %s gateway", type(app.state.gateway).__name__)

    notifier = Notifier(limit=settings.NOTIFICATION_LIMIT)
    app.state.notifier = notifier
    app.state.source_manager = SourceManager(app.state.gateway, notifier, settings)
    app.state.chunk_manager = ChunkManager(app.state.gateway, notifier, settings)

    yield  # Application runs here

    app.state.source_manager.teardown()
    app.state.chunk_manager.teardown()
    if owns_gateway:
        await app.state.gateway.aclose()
        app.state.gateway = None
    await close_all_clients()
    logger.info("Shutting down")


def create_app(settings: Settings | None = None, gateway: Gateway | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gateway = gateway

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Titles and tags are often Devanagari; make the charset explicit
    @app.middleware("http")
    async def enforce_utf8_charset(request: Request, call_next):
        response = await call_next(request)
        ct = response.headers.get("content-type", "")
        if ("charset" not in ct) and any(
            t in ct for t in ("application/json", "text/html", "text/plain")
        ):
            response.headers["content-type"] = ct + "; charset=utf-8"
        return response

    @app.exception_handler(AdminError)
    async def admin_error_handler(request: Request, exc: AdminError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.kind, "detail": exc.message},
            media_type="application/json; charset=utf-8",
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)},
            media_type="application/json; charset=utf-8",
        )

    # Health check
    @app.get("/health", tags=["Health"], response_model=HealthResponse)
    async def health():
        return HealthResponse(
            status="healthy",
            version=settings.APP_VERSION,
            gateway=settings.GATEWAY_BACKEND,
            timestamp=datetime.now(timezone.utc),
        )

    # Mount API routes
    app.include_router(v1_router)

    # Uploaded objects of the local gateway
    if settings.GATEWAY_BACKEND == "local":
        app.mount("/storage", StaticFiles(directory=settings.STORAGE_DIR, check_dir=False), name="storage")

    return app


app = create_app()
