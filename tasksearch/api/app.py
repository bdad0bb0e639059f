"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tasksearch import __version__
from tasksearch.api.dependencies import cleanup_dependencies, get_semantic_search_service
from tasksearch.api.routes import admin, embeddings, health, search
from tasksearch.config.settings import get_settings
from tasksearch.errors import InvalidQueryError, ProviderError, StorageUnavailableError
from tasksearch.observability.logging import bind_context, clear_context

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Task search API starting up")
    settings = get_settings()

    service = await get_semantic_search_service()

    if settings.ensure_schema_on_startup:
        ready = await service.init_vector_store()
        if not ready:
            logger.warning("Vector store not ready; semantic search will return 503")
    if settings.start_dispatcher_on_startup:
        await service.start()

    yield

    logger.info("Task search API shutting down")
    await service.stop()
    await cleanup_dependencies()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "search", "description": "Semantic similarity search over tasks"},
        {"name": "embeddings", "description": "Task embedding lifecycle hooks"},
        {"name": "admin", "description": "Vector store init, backfill and diagnostics"},
    ]

    app = FastAPI(
        title="Task Semantic Search API",
        description="""
Natural-language search over tasks using text embeddings stored in pgvector.

## Authentication

Requires `X-API-KEY` header for all requests except `/health`.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    # Add CORS middleware (origins from CORS_ORIGINS env var, comma-separated)
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request logging and correlation ID middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        bind_context(request_id=request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            clear_context()

    # Exception handlers
    @app.exception_handler(InvalidQueryError)
    async def invalid_query_handler(request: Request, exc: InvalidQueryError):
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "error_type": "invalid_query"},
        )

    @app.exception_handler(StorageUnavailableError)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
        if exc.not_initialized:
            detail = "Vector search is not initialized"
        else:
            logger.warning("Vector store unavailable", error=str(exc))
            detail = "Vector store unavailable"
        return JSONResponse(
            status_code=503,
            content={"detail": detail, "error_type": exc.reason},
        )

    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError):
        logger.warning("Embedding provider unavailable", error=str(exc))
        return JSONResponse(
            status_code=503,
            content={
                "detail": "Embedding provider unavailable",
                "error_type": "provider_unavailable",
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(search.router, tags=["search"])
    app.include_router(embeddings.router, tags=["embeddings"])
    app.include_router(admin.router, tags=["admin"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Task Semantic Search API",
            "version": __version__,
            "docs": "/docs",
        }

    return app
