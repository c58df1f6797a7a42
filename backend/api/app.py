"""FastAPI application factory"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.core.config import get_settings
from api.core.database import get_database_manager, init_database_manager
from api.core.logging import setup_logging
from api.routers import proxy_timers_router, proxy_views_router
from shared.database import DatabaseManager
from shared.migrations.runner import MigrationRunner

logger = logging.getLogger(__name__)

# Track server start time
_start_time: float = 0.0
_db_retry_task: asyncio.Task | None = None


async def _db_retry_loop(db_manager: DatabaseManager) -> None:
    """Background loop to retry DB connection after startup timeout."""
    delay = 5
    max_delay = 60
    while True:
        await asyncio.sleep(delay)
        if db_manager.is_connected:
            return
        try:
            await db_manager.connect()
            logger.info("Database connected (background retry)")
            return
        except asyncio.CancelledError:
            return
        except Exception as e:
            delay = min(delay * 2, max_delay)
            logger.warning(
                f"DB background retry failed: {type(e).__name__}: {e}, next retry in {delay}s"
            )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time, _db_retry_task
    _start_time = time.time()

    settings = get_settings()
    logger.info(f"Starting storefront timer API ({settings.environment})")
    if not settings.shopify_api_secret:
        logger.warning("App proxy secret is not configured; signed requests will be rejected")

    # Wait up to 30s for the pool before accepting requests; otherwise keep
    # retrying in the background and answer 503 until it is up.
    db_manager = init_database_manager(settings.database_url)
    try:
        await asyncio.wait_for(db_manager.connect(), timeout=30)
        if settings.auto_migrate:
            await MigrationRunner(db_manager.pool).run_pending()
    except Exception as e:
        logger.error(f"DB startup failed: {type(e).__name__}: {e}, retrying in background")
        _db_retry_task = asyncio.create_task(_db_retry_loop(db_manager))

    yield

    logger.info("Shutting down storefront timer API")
    if _db_retry_task:
        _db_retry_task.cancel()
    await db_manager.disconnect()


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Every error leaves as ``{"error": ...}``"""
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    settings = get_settings()

    setup_logging(settings)

    app = FastAPI(
        title="Urgency Timer Storefront API",
        description="App proxy endpoints delivering countdown timers to storefronts",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=False,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    app.include_router(proxy_timers_router.router)
    app.include_router(proxy_views_router.router)

    @app.get("/health")
    async def health():
        """Liveness check (no DB dependency)"""
        return {
            "status": "healthy",
            "uptime_seconds": int(time.time() - _start_time),
        }

    @app.get("/status")
    async def status():
        """Readiness / status endpoint including DB health"""
        try:
            db_ok = await get_database_manager().check_health()
        except RuntimeError:
            db_ok = False
        return {
            "service": "urgency-timer-api",
            "version": "1.0.0",
            "uptime_seconds": int(time.time() - _start_time),
            "db_connected": db_ok,
            "environment": settings.environment,
        }

    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        return "pong"

    logger.info("FastAPI application configured")

    return app
