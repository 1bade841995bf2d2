"""
Ephemeral reaper: sweep expired presence, short-range tokens, old alerts and
lapsed availability.

Each sweep selects at most `page_size` keys, oldest first. Everything
selected in one run is applied as a single transaction, so a failed commit
leaves the tables untouched and the next run picks the same rows again.
Rows renewed between selection and commit are skipped.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from app.config import settings
from app.db.helpers import DatabaseError
from app.features.proximity_graph.domain import BatchCommitFailure
from app.features.proximity_graph.repository import EphemeralRepository, SweepPlan
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class EphemeralReaper:
    def __init__(
        self,
        repository=EphemeralRepository,
        *,
        page_size: int | None = None,
        alert_retention_days: int | None = None,
    ):
        self._repository = repository
        self._page_size = page_size or settings.REAPER_PAGE_SIZE
        self._alert_retention = timedelta(
            days=alert_retention_days or settings.ALERT_RETENTION_DAYS
        )

    async def plan(self, now: datetime) -> SweepPlan:
        alert_cutoff = now - self._alert_retention
        return SweepPlan(
            now=now,
            alert_cutoff=alert_cutoff,
            presence_user_ids=await self._repository.expired_presence(now, self._page_size),
            short_range_tokens=await self._repository.expired_short_range_tokens(
                now, self._page_size
            ),
            alert_ids=await self._repository.alerts_created_before(alert_cutoff, self._page_size),
            availability_user_ids=await self._repository.expired_availability(
                now, self._page_size
            ),
        )

    async def sweep(self, now: datetime | None = None) -> dict[str, int]:
        """
        Run one capped sweep and return per-collection counts.

        Raises BatchCommitFailure when the batch does not commit.
        """
        now = now or datetime.now(UTC)
        plan = await self.plan(now)

        if plan.is_empty():
            logger.info("Nothing to reap", now=now.isoformat())
            return plan.counts()

        try:
            applied = await self._repository.apply_sweep(plan)
        except DatabaseError as exc:
            raise BatchCommitFailure(f"Ephemeral sweep failed: {exc}") from exc

        counts = {key: applied.get(key, 0) for key in plan.counts()}
        skipped = sum(plan.counts().values()) - sum(counts.values())
        logger.info(
            "Ephemeral records reaped", total=sum(counts.values()), renewed=skipped, **counts
        )
        return counts
