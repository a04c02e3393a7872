"""TypeB - family task and chore management API."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from typeb.core.config import Constants, Settings, settings
from typeb.core.db_client import close_connection, init_db
from typeb.core.errors import classify_error_with_response, status_code_for
from typeb.core.logging import configure_logfire, instrument_fastapi
from typeb.core.redis_client import redis_client
from typeb.core.scheduler import job_status, start_scheduler, stop_scheduler
from typeb.interface.achievement_router import router as achievement_router
from typeb.interface.analytics_router import router as analytics_router
from typeb.interface.auth_router import router as auth_router
from typeb.interface.family_router import router as family_router
from typeb.interface.notification_router import router as notification_router
from typeb.interface.reward_router import router as reward_router
from typeb.interface.task_router import router as task_router
from typeb.interface.validation_router import router as validation_router
from typeb.services import feature_flags


logger = logging.getLogger(__name__)


async def check_redis_connectivity() -> None:
    """Verify Redis connectivity (optional service).

    Only checks if Redis is configured. Logs a warning if unavailable but doesn't fail.
    """
    if not redis_client.is_available:
        logger.info("startup_validation", extra={"service": "redis", "status": "disabled"})
        return

    if await redis_client.ping():
        logger.info("startup_validation", extra={"service": "redis", "status": "ok"})
    else:
        logger.warning("startup_validation", extra={"service": "redis", "status": "unavailable"})


async def validate_startup_configuration() -> None:
    """Validate required credentials and optional service connectivity.

    Exits the process with a clear message when a production credential is missing.
    """
    logger.info("startup_validation_begin")

    try:
        if settings.is_production:
            secret = settings.require_credential("secret_key", "Session signing")
            if secret == Settings.model_fields["secret_key"].default:
                raise ValueError("SECRET_KEY must be changed from its default in production")
        await check_redis_connectivity()
        logger.info("startup_validation_complete", extra={"status": "ok"})
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\nStartup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()

    await validate_startup_configuration()

    await init_db()
    logger.info("Database initialized")

    start_scheduler()
    yield
    stop_scheduler()
    await redis_client.close()
    await close_connection()


app = FastAPI(
    title="typeb",
    description="Family task and chore management",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)


async def service_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Translate service exceptions into the structured error body."""
    response = classify_error_with_response(exc)
    status_code = status_code_for(exc)
    log = logger.error if status_code >= Constants.HTTP_SERVER_ERROR else logger.info
    log(
        "request_failed",
        extra={"path": request.url.path, "code": response.code, "status_code": status_code, "error": str(exc)},
    )
    return JSONResponse(content=response.model_dump(mode="json"), status_code=status_code)


for exception_type in (ValueError, PermissionError, KeyError, RuntimeError, ConnectionError):
    app.add_exception_handler(exception_type, service_error_handler)

# Register routers
app.include_router(auth_router)
app.include_router(family_router)
app.include_router(task_router)
app.include_router(validation_router)
app.include_router(reward_router)
app.include_router(analytics_router)
app.include_router(notification_router)
app.include_router(achievement_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint with cache and scheduler status."""
    failed_jobs = [name for name, status in job_status.items() if status.get("status") == "failed"]
    return JSONResponse(
        content={
            "status": "degraded" if failed_jobs else "healthy",
            "redis": redis_client.get_health_status(),
            "jobs": job_status,
        },
        status_code=200,
    )


@app.get("/flags")
async def get_flags() -> dict[str, bool]:
    """Effective feature flag values."""
    return feature_flags.get_all_flags()
