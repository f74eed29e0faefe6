"""FastAPI application entry point.

Artdex API - fan-art catalog with community ratings.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from artdex.routes import api_router
from artdex.services.catalog import CatalogService
from artdex.settings import Settings, get_settings
from artdex.stores.documents import SqlCatalogStore, SqlFavoriteStore, SqlLedgerStore, SqlMarkerStore
from artdex.stores.local import LocalStore, MemoryLocalStore, RedisLocalStore
from artdex.stores.postgres import init_db, close_db, ping_db
from artdex.stores.redis import init_redis, close_redis

logger = logging.getLogger("uvicorn.error")


def build_catalog_service(settings: Settings, redis_ready: bool = False) -> CatalogService:
    """CatalogService over the SQL stores.

    The Redis cache backend is used only when configured and connected;
    otherwise entries live in process memory.
    """
    local_store: LocalStore
    if settings.cache_backend == "redis" and redis_ready:
        local_store = RedisLocalStore(namespace=settings.cache_namespace, ttl_seconds=settings.cache_ttl_seconds)
    else:
        if settings.cache_backend == "redis":
            logger.warning("Redis unavailable, using in-memory cache")
        local_store = MemoryLocalStore()

    return CatalogService(
        SqlCatalogStore(),
        SqlLedgerStore(),
        SqlMarkerStore(),
        SqlFavoriteStore(),
        local_store,
        cache_ttl_seconds=settings.cache_ttl_seconds,
        cache_check_interval_seconds=settings.cache_check_interval_seconds,
        favorites_per_voter=settings.favorites_per_voter,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    settings = get_settings()

    # Initialize database (skip in tests if no DB available)
    try:
        await init_db()
        await ping_db()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    # Initialize Redis only when it backs the cache
    redis_ready = False
    if settings.cache_backend == "redis":
        try:
            await init_redis()
            redis_ready = True
        except Exception:
            logger.exception("Redis init failed")

    # Tests may install their own service before startup
    if getattr(app.state, "catalog_service", None) is None:
        app.state.catalog_service = build_catalog_service(settings, redis_ready=redis_ready)

    yield

    # Shutdown
    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Fan-art catalog, ratings and leaderboards API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc) if settings.debug else "Internal server error",
                    "detail": None,
                }
            },
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    # Include API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "artdex.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
