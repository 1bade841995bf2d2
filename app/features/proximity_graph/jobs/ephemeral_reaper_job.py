"""
Daily sweep of expired presence, short-range tokens, old alerts and lapsed
availability.

Each run removes at most one page per collection; a backlog drains over
consecutive runs.
"""

import asyncio

from app.config import settings
from app.features.proximity_graph.pipeline.ephemeral_reaper import EphemeralReaper
from app.infrastructure.observability.logging import get_logger
from app.jobs.runtime import LockedJob, run_periodically, worker_resources

logger = get_logger(__name__)


class EphemeralReaperJob(LockedJob):
    name = "ephemeral_reaper"

    def __init__(self, reaper: EphemeralReaper | None = None, **kwargs):
        super().__init__(**kwargs)
        self._reaper = reaper or EphemeralReaper()

    async def _execute(self) -> dict:
        return {"deleted": await self._reaper.sweep()}


ephemeral_reaper_job = EphemeralReaperJob()


async def run_ephemeral_reaper_once() -> dict:
    async with worker_resources():
        return await ephemeral_reaper_job.run_once()


async def start_ephemeral_reaper_scheduler() -> None:
    if not settings.REAPER_ENABLED:
        logger.info("Ephemeral reaper scheduler DISABLED", environment=settings.environment)
        return

    async with worker_resources():
        await run_periodically(ephemeral_reaper_job, settings.REAPER_INTERVAL_HOURS * 3600)


if __name__ == "__main__":
    asyncio.run(run_ephemeral_reaper_once())
