"""Prometheus metrics endpoint for the report job pipeline."""

from fastapi import APIRouter, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

router = APIRouter()

# Run metrics
REPORT_RUNS_TOTAL = Counter(
    "session_reports_runs_total",
    "Total Run Coordinator passes",
    ["mode"],  # live, dry_run
)

REPORT_BATCH_SIZE = Histogram(
    "session_reports_claimed_batch_size",
    "Number of jobs claimed per run",
    buckets=[0, 1, 2, 3, 5, 10],
)

# Job metrics
REPORT_JOB_OUTCOMES = Counter(
    "session_reports_job_outcomes_total",
    "Report job attempt outcomes",
    ["status"],  # DONE, RETRY_SCHEDULED, FAILED, DRY_RUN, ERROR
)

REPORT_JOBS_RECLAIMED = Counter(
    "session_reports_jobs_reclaimed_total",
    "Stale PROCESSING jobs returned to the queue",
)

REPORT_GENERATION_LATENCY = Histogram(
    "session_reports_generation_latency_seconds",
    "Report generator call latency in seconds",
    ["outcome"],  # ok, error, timeout
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 90.0, 120.0],
)

# Service health metrics
SERVICE_UP = Gauge(
    "session_reports_service_up",
    "Service availability (1=up, 0=down)",
    ["component"],
)


def record_run(dry_run: bool, claimed: int):
    """Record one coordinator pass and the size of its claimed batch."""
    REPORT_RUNS_TOTAL.labels(mode="dry_run" if dry_run else "live").inc()
    REPORT_BATCH_SIZE.observe(claimed)


def record_job_outcome(status: str):
    """Record the outcome of one job within a run."""
    REPORT_JOB_OUTCOMES.labels(status=status).inc()


def record_reclaimed(count: int):
    """Record stale jobs reclaimed before a run."""
    if count:
        REPORT_JOBS_RECLAIMED.inc(count)


def observe_generation(outcome: str, seconds: float):
    """Record report generator latency."""
    REPORT_GENERATION_LATENCY.labels(outcome=outcome).observe(seconds)


def set_service_health(component: str, is_up: bool):
    """Set service health status."""
    SERVICE_UP.labels(component=component).set(1 if is_up else 0)


@router.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    This endpoint is excluded from OpenAPI docs.
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
