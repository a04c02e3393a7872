"""Observability setup: stdlib logging routed into Pydantic Logfire.

Modules log through ``logging.getLogger(__name__)`` with snake_case event
names and structured ``extra`` fields::

    logger.info("task_completed", extra={"task_id": task_id, "points": 15})

Service operations are wrapped in spans::

    with span("task_service.complete_task", task_id=task_id):
        ...
"""

import logging

import logfire
from fastapi import FastAPI

from typeb.core.config import settings


logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Configure Logfire and attach it to the root logger.

    Nothing leaves the process unless ``LOGFIRE_TOKEN`` is set; records are
    still printed to the console.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="typeb",
        service_version="0.1.0",
        environment="production" if settings.is_production else "development",
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(level=settings.log_level.upper(), handlers=[logfire.LogfireLoggingHandler()], force=True)
    logger.info("logfire_configured", extra={"log_level": settings.log_level, "remote": bool(settings.logfire_token)})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by the app."""
    logfire.instrument_fastapi(app)
    logger.info("fastapi_instrumented")


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Open a span for a service operation, e.g. ``span("family_service.join_family", family_id=...)``."""
    return logfire.span(name, **attributes)
