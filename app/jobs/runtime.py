"""
Shared plumbing for background jobs.

- LockedJob: one run at a time per process (is_running) and per deployment
  (Redis SET NX lock). Runs never raise; outcomes are returned as a dict and
  logged.
- run_periodically: fixed-interval scheduler loop with a shorter retry delay
  after a failed run.
- worker_resources: opens the database pool, Redis and the push gateway for a
  standalone worker process.
"""

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from app.config import settings
from app.db.pool import db_pool
from app.infrastructure.observability.logging import (
    bind_job_context,
    clear_job_context,
    get_logger,
    log_job_result,
)
from app.services.push_gateway import push_gateway
from app.services.redis_client import FastRedisClient, fast_redis

logger = get_logger(__name__)

LOCK_KEY_PREFIX = "putrace:job-lock"


class LockedJob:
    """Base class for scheduled jobs; subclasses implement `_execute`."""

    name = "job"

    def __init__(self, lock_client: FastRedisClient | None = None, lock_ttl_seconds: int | None = None):
        self.is_running = False
        self.last_run_time: datetime | None = None
        self.last_result: dict | None = None
        self._lock_client = lock_client or fast_redis
        self._lock_ttl = lock_ttl_seconds or settings.JOB_LOCK_TTL_SECONDS

    @property
    def lock_key(self) -> str:
        return f"{LOCK_KEY_PREFIX}:{self.name}"

    async def _execute(self) -> dict:
        raise NotImplementedError

    async def run_once(self) -> dict:
        if self.is_running:
            logger.warning("Job already running, skipping", job=self.name)
            return {"success": False, "skipped": True, "reason": "already_running"}

        self.is_running = True
        run_id = uuid.uuid4().hex[:12]
        started = time.monotonic()
        bind_job_context(self.name, run_id)

        result: dict = {"success": True, "errors": []}
        acquired = False
        try:
            try:
                acquired = await self._lock_client.acquire_lock(self.lock_key, run_id, self._lock_ttl)
            except Exception as e:
                result.update(success=False, errors=[f"Lock unavailable: {e}"])
                return result

            if not acquired:
                logger.info("Job lock held elsewhere, skipping", lock_key=self.lock_key)
                result.update(skipped=True, reason="locked")
                return result

            try:
                result.update(await self._execute())
                self.last_run_time = datetime.now(UTC)
            except Exception as e:
                logger.error(
                    "Job run failed", error=str(e), error_type=type(e).__name__
                )
                result["success"] = False
                result["errors"].append(f"{type(e).__name__}: {e}")
            return result

        finally:
            if acquired:
                await self._lock_client.release_lock(self.lock_key, run_id)
            self.is_running = False
            self.last_result = result
            log_job_result(self.name, result, time.monotonic() - started)
            clear_job_context()

    def get_job_status(self) -> dict:
        return {
            "job_name": self.name,
            "is_running": self.is_running,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "last_result": self.last_result,
        }


async def run_periodically(
    job: LockedJob,
    interval_seconds: float,
    *,
    retry_delay_seconds: float | None = None,
    max_runs: int | None = None,
) -> None:
    """
    Run `job` forever (or `max_runs` times), sleeping between runs.

    A failed run is retried after `retry_delay_seconds` instead of waiting a
    whole interval.
    """
    retry_delay = retry_delay_seconds if retry_delay_seconds is not None else settings.JOB_RETRY_DELAY_SECONDS
    runs = 0

    logger.info("Job scheduler started", job=job.name, interval_seconds=interval_seconds)
    try:
        while max_runs is None or runs < max_runs:
            result = await job.run_once()
            runs += 1
            if max_runs is not None and runs >= max_runs:
                break
            await asyncio.sleep(interval_seconds if result.get("success") else retry_delay)
    except asyncio.CancelledError:
        logger.info("Job scheduler stopped", job=job.name, runs=runs)
        raise


@asynccontextmanager
async def worker_resources(*, push: bool = False):
    """Open shared clients for a worker process and close them on exit."""
    await db_pool.initialize()
    await fast_redis.initialize()
    if push:
        await push_gateway.initialize()
    try:
        yield
    finally:
        if push:
            await push_gateway.close()
        await fast_redis.close()
        await db_pool.close()
