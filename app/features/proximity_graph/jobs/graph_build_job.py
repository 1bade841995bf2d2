"""
Periodic proximity graph rebuild.

Runs inside the worker service (`python -m app.jobs.worker graph_build`).
A failed build leaves the previous graph untouched and is retried at the
next trigger.
"""

import asyncio

from app.config import settings
from app.features.proximity_graph.pipeline.graph_builder import GraphBuilder
from app.infrastructure.observability.logging import get_logger
from app.jobs.runtime import LockedJob, run_periodically, worker_resources

logger = get_logger(__name__)


class GraphBuildJob(LockedJob):
    name = "graph_build"

    def __init__(self, builder: GraphBuilder | None = None, **kwargs):
        super().__init__(**kwargs)
        self._builder = builder or GraphBuilder()

    async def _execute(self) -> dict:
        return await self._builder.build()


graph_build_job = GraphBuildJob()


async def run_graph_build_once() -> dict:
    """Single build inside its own worker resources (cron-style trigger)."""
    async with worker_resources():
        return await graph_build_job.run_once()


async def start_graph_build_scheduler() -> None:
    if not settings.GRAPH_BUILD_ENABLED:
        logger.info("Graph build scheduler DISABLED", environment=settings.environment)
        return

    async with worker_resources():
        await run_periodically(graph_build_job, settings.GRAPH_BUILD_INTERVAL_HOURS * 3600)


if __name__ == "__main__":
    asyncio.run(run_graph_build_once())
