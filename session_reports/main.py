"""Session Reports Service - FastAPI Application."""

import os
import time
import uuid

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from session_reports import __version__
from session_reports.config import get_settings
from session_reports.core.lifespan import lifespan
from session_reports.core.logging import configure_logging
from session_reports.routers import health, internal_jobs, metrics

settings = get_settings()
configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)


def before_send(event, hint):
    """
    Filter out 4xx client errors from Sentry events.

    Rejected cron secrets (401/403) and unknown sessions (404) are not
    server faults. Only 5xx errors should be captured.
    """
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]
        status_code = getattr(exc_value, "status_code", None)
        if status_code is not None and 400 <= status_code < 500:
            return None

    response = event.get("contexts", {}).get("response", {})
    status_code = response.get("status_code", 0)
    if 400 <= status_code < 500:
        return None

    return event


# Initialize Sentry (if configured)
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        release=os.environ.get("GIT_SHA", f"session-reports@{__version__}"),
        integrations=[
            # Only ERROR+ become Sentry events
            LoggingIntegration(level=None, event_level="ERROR"),
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
        attach_stacktrace=True,
        before_send=before_send,
    )
    sentry_sdk.set_tag("service", "session-reports")
    sentry_sdk.set_tag("openai_model", settings.openai_model)
    logger.info(
        "Sentry initialized",
        environment=settings.sentry_environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
    )


app = FastAPI(
    title="Session Reports Service",
    description="Asynchronous AI report generation for completed play sessions",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def request_middleware(request: Request, call_next):
    """Add request ID and timing to all requests."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    start_time = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.exception("Request failed", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "retryable": True},
            headers={
                "X-Request-ID": request_id,
                "X-API-Version": __version__,
            },
        )

    duration_ms = (time.perf_counter() - start_time) * 1000
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"
    response.headers["X-API-Version"] = __version__

    if request.url.path != "/metrics":
        logger.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
    return response


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(internal_jobs.router)
app.include_router(metrics.router)  # Metrics endpoint (excluded from OpenAPI)


@app.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "Session Reports Service",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "session_reports.main:app",
        host=settings.service_host,
        port=settings.service_port,
        log_level=settings.log_level.lower(),
    )
