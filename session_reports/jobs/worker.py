#!/usr/bin/env python
"""
Local report job worker - drains the queue with repeated coordinator runs.

Usage:
    python -m session_reports.jobs.worker [--limit N] [--interval S]
                                          [--max-iterations N] [--dry-run]
                                          [--worker-id ID]

Stops when a run finds nothing to process or the iteration ceiling is hit.
"""

import argparse
import asyncio
import os
import socket
import sys
from typing import Optional

import asyncpg
import structlog

from session_reports import __version__
from session_reports.config import get_settings
from session_reports.core.logging import configure_logging
from session_reports.jobs.coordinator import RunCoordinator, build_coordinator

logger = structlog.get_logger(__name__)


def generate_worker_id() -> str:
    """Generate a unique worker ID: hostname:pid."""
    return f"{socket.gethostname()}:{os.getpid()}"


class WorkerRunner:
    """Polls the queue by invoking the Run Coordinator in a loop."""

    def __init__(
        self,
        coordinator: RunCoordinator,
        worker_id: Optional[str] = None,
        limit: int = 3,
        poll_interval_s: float = 5.0,
        max_iterations: int = 100,
        dry_run: bool = False,
    ):
        self._coordinator = coordinator
        self._worker_id = worker_id or generate_worker_id()
        self._limit = limit
        self._poll_interval_s = poll_interval_s
        self._max_iterations = max_iterations
        self._dry_run = dry_run
        self._running = False

    @property
    def worker_id(self) -> str:
        return self._worker_id

    async def start(self) -> int:
        """Run until idle, stopped, or out of iterations.

        Returns:
            Total number of jobs processed
        """
        self._running = True
        iteration = 0
        total_processed = 0

        logger.info(
            "worker_started",
            worker_id=self._worker_id,
            version=__version__,
            limit=self._limit,
            dry_run=self._dry_run,
        )

        while self._running and iteration < self._max_iterations:
            iteration += 1
            result = await self._coordinator.run(
                self._limit, dry_run=self._dry_run, worker_id=self._worker_id
            )
            total_processed += result.processed
            logger.info(
                "worker_iteration",
                iteration=iteration,
                processed=result.processed,
                succeeded=result.succeeded,
                failed=result.failed,
            )

            # A dry run releases what it claims, so the next pass would see
            # the same jobs again
            if result.processed == 0 or self._dry_run:
                logger.info("worker_idle", worker_id=self._worker_id)
                break

            await asyncio.sleep(self._poll_interval_s)
        else:
            if iteration >= self._max_iterations:
                logger.info(
                    "worker_max_iterations_reached",
                    max_iterations=self._max_iterations,
                )

        self._running = False
        logger.info(
            "worker_stopped",
            worker_id=self._worker_id,
            iterations=iteration,
            total_processed=total_processed,
        )
        return total_processed

    async def stop(self):
        """Stop the worker loop after the current run."""
        self._running = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m session_reports.jobs.worker",
        description="Process queued session report jobs",
    )
    parser.add_argument("--limit", type=int, default=None, help="Jobs claimed per run")
    parser.add_argument(
        "--interval", type=float, default=None, help="Seconds between runs"
    )
    parser.add_argument(
        "--max-iterations", type=int, default=None, help="Run ceiling for this process"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Claim and release without executing"
    )
    parser.add_argument("--worker-id", default=None, help="Override hostname:pid")
    return parser


async def run_worker(args: argparse.Namespace) -> int:
    settings = get_settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not set")

    pool = await asyncpg.create_pool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        ssl="require" if settings.db_ssl_required else None,
        command_timeout=30,
        statement_cache_size=0,
    )
    try:
        runner = WorkerRunner(
            build_coordinator(pool, settings),
            worker_id=args.worker_id,
            limit=args.limit if args.limit is not None else settings.worker_batch_limit,
            poll_interval_s=(
                args.interval
                if args.interval is not None
                else settings.worker_poll_interval_s
            ),
            max_iterations=(
                args.max_iterations
                if args.max_iterations is not None
                else settings.worker_max_iterations
            ),
            dry_run=args.dry_run,
        )
        return await runner.start()
    finally:
        await pool.close()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(get_settings().log_level, console=True)
        asyncio.run(run_worker(args))
    except KeyboardInterrupt:
        logger.info("worker_interrupted")
        return 130
    except Exception as e:
        logger.error("worker_fatal_error", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
