"""Hub Admin - Main FastAPI Application."""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import select

from api.middleware.bouncer import BouncerMiddleware
from api.middleware.rate_limit import limiter
from api.routes import api_router, trap_router
from infrastructure.config import get_settings
from infrastructure.database import close_db, init_db
from infrastructure.database.connection import async_session_maker
from infrastructure.database.models import Workspace
from infrastructure.logging_config import setup_logging
from services.blocklist import BlocklistService
from services.cache import cache
from services.entitlements import EntitlementService
from services.honeypot import HoneypotService
from services.usage_alerts import UsageAlertService
from services.user_data import UserDataService

settings = get_settings()
logger = logging.getLogger(__name__)

HOUR = 3600
DAY = 86400

# Sentry error tracking, initialised at module level so startup errors are captured too
if settings.sentry_dsn:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.redis import RedisIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        integrations=[
            FastApiIntegration(transaction_style="url"),
            SqlalchemyIntegration(),
            RedisIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
    )
    logger.info("Sentry error tracking initialised (env=%s)", settings.environment)


# ----------------------------------------------------------------------
# Background jobs
# ----------------------------------------------------------------------


async def run_usage_alerts() -> None:
    async with async_session_maker() as db:
        summary = await UsageAlertService(db).check_all_workspaces()
    logger.info("Usage alert sweep finished: %s", summary)


async def run_boost_expiry() -> None:
    async with async_session_maker() as db:
        entitlements = EntitlementService(db)
        workspaces = (await db.execute(select(Workspace))).scalars().all()
        expired = 0
        for workspace in workspaces:
            cycle_start = await entitlements.current_cycle_start(workspace)
            if cycle_start is not None:
                expired += await entitlements.expire_cycle_bound_boosts(
                    workspace, started_before=cycle_start
                )
            expired += await entitlements.expire_timed_boosts(workspace)
    if expired:
        logger.info("Expired %d boosts", expired)


async def run_blocklist_sync() -> None:
    async with async_session_maker() as db:
        added = await BlocklistService(db).sync_from_honeypot()
    if added:
        logger.info("Blocklist sync added %d pending entries", added)


async def run_honeypot_cleanup() -> None:
    async with async_session_maker() as db:
        await HoneypotService(db).delete_old(settings.honeypot_retention_days)


async def run_account_deletions() -> None:
    async with async_session_maker() as db:
        processed = await UserDataService(db).process_expired_deletions()
    if processed:
        logger.info("Completed %d scheduled account deletions", processed)


async def _periodic(name: str, interval: int, job: Callable[[], Awaitable[None]]) -> None:
    """Run job every interval seconds; a failed run is logged and retried next time."""
    while True:
        try:
            await job()
        except Exception as e:
            logger.warning("Background job %s failed: %s", name, e, exc_info=True)
        await asyncio.sleep(interval)


BACKGROUND_JOBS = (
    ("usage-alerts", settings.usage_alert_interval_seconds, run_usage_alerts),
    ("boost-expiry", HOUR, run_boost_expiry),
    ("blocklist-sync", settings.blocklist_sync_interval_seconds, run_blocklist_sync),
    ("honeypot-cleanup", DAY, run_honeypot_cleanup),
    ("account-deletions", DAY, run_account_deletions),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # JSON logs in production/staging, human-readable in development.
    setup_logging(
        json_output=not settings.debug and settings.is_production,
        level="DEBUG" if settings.debug else "INFO",
    )

    # Startup
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Environment: %s", settings.environment)

    settings.validate_production_secrets()

    if settings.is_development:
        logger.info("Development mode - initializing database...")
        await init_db()

    await cache.connect()

    tasks = [
        asyncio.create_task(_periodic(name, interval, job), name=name)
        for name, interval, job in BACKGROUND_JOBS
    ]

    logger.info("Application started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down...")
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass

    await cache.disconnect()
    await close_db()
    logger.info("Application stopped.")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Multi-tenant hub administration API",
    version=settings.app_version,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# slowapi: app.state.limiter backs both the middleware's default limit and
# the per-endpoint @limiter.limit decorators.
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

if settings.bouncer_enabled:
    app.add_middleware(BouncerMiddleware, session_factory=async_session_maker)


_MAX_BODY_SIZE = 5 * 1024 * 1024  # 5MB


@app.middleware("http")
async def limit_request_body_size(request: Request, call_next):
    if request.method in ("POST", "PUT", "PATCH"):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > _MAX_BODY_SIZE:
            return JSONResponse(
                status_code=413,
                content={"detail": "Request body too large (max 5MB)"},
            )
    return await call_next(request)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    # Production logs carry only type and a truncated message.
    if settings.is_production:
        logger.error("Unhandled exception: %s: %s", type(exc).__name__, str(exc)[:200])
    else:
        logger.error("Unhandled exception: %s", str(exc), exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Response-Time"] = f"{duration_ms:.1f}ms"

    path = request.url.path
    if not path.startswith("/api/v1/health"):
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            path,
            response.status_code,
            round(duration_ms, 1),
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 1),
                "user_id": getattr(request.state, "user_id", None),
            },
        )
    return response


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    incoming = request.headers.get("X-Request-ID")
    # Only a valid UUID from the caller is kept.
    if incoming:
        try:
            uuid.UUID(incoming)
            request_id = incoming
        except ValueError:
            request_id = str(uuid.uuid4())
    else:
        request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")
# Honeypot traps live where scanners look for them
app.include_router(trap_router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs" if settings.is_development else "disabled",
        "health": "/api/v1/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        workers=settings.workers if not settings.is_development else 1,
    )
