"""
Expiry queries and the atomic sweep used by the ephemeral reaper.

Every select is strictly "expired before now" and capped, oldest first, so a
backlog drains page by page across runs. The sweep repeats the same expiry
predicate per key, so a row renewed after it was selected is left alone.
"""

from dataclasses import dataclass, field
from datetime import datetime

from app.db.helpers import BatchWrite, execute_batch, fetch_all


@dataclass(slots=True)
class SweepPlan:
    """Keys selected for one reaper run, with the moments they were selected against."""

    now: datetime | None = None
    alert_cutoff: datetime | None = None
    presence_user_ids: list[str] = field(default_factory=list)
    short_range_tokens: list[str] = field(default_factory=list)
    alert_ids: list[int] = field(default_factory=list)
    availability_user_ids: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.presence_user_ids
            or self.short_range_tokens
            or self.alert_ids
            or self.availability_user_ids
        )

    def counts(self) -> dict[str, int]:
        return {
            "presence": len(self.presence_user_ids),
            "short_range_tokens": len(self.short_range_tokens),
            "alerts": len(self.alert_ids),
            "availability": len(self.availability_user_ids),
        }


class EphemeralRepository:
    @staticmethod
    async def expired_presence(now: datetime, limit: int) -> list[str]:
        query = """
            SELECT user_id
            FROM presence_geo
            WHERE expire_at < %s
            ORDER BY expire_at
            LIMIT %s
        """
        rows = await fetch_all(query, (now, limit))
        return [row["user_id"] for row in rows]

    @staticmethod
    async def expired_short_range_tokens(now: datetime, limit: int) -> list[str]:
        query = """
            SELECT token
            FROM short_range_tokens
            WHERE expire_at < %s
            ORDER BY expire_at
            LIMIT %s
        """
        rows = await fetch_all(query, (now, limit))
        return [row["token"] for row in rows]

    @staticmethod
    async def alerts_created_before(cutoff: datetime, limit: int) -> list[int]:
        query = """
            SELECT id
            FROM alerts
            WHERE created_at < %s
            ORDER BY created_at
            LIMIT %s
        """
        rows = await fetch_all(query, (cutoff, limit))
        return [row["id"] for row in rows]

    @staticmethod
    async def expired_availability(now: datetime, limit: int) -> list[str]:
        query = """
            SELECT user_id
            FROM availability
            WHERE until < %s
            ORDER BY until
            LIMIT %s
        """
        rows = await fetch_all(query, (now, limit))
        return [row["user_id"] for row in rows]

    @staticmethod
    async def apply_sweep(plan: SweepPlan) -> dict[str, int]:
        """
        Delete/close everything in `plan` that is still expired, as one
        transaction. Returns affected row counts per collection.
        """
        return await execute_batch(
            [
                BatchWrite(
                    "DELETE FROM presence_geo WHERE user_id = %s AND expire_at < %s",
                    [(uid, plan.now) for uid in plan.presence_user_ids],
                    "presence",
                ),
                BatchWrite(
                    "DELETE FROM short_range_tokens WHERE token = %s AND expire_at < %s",
                    [(token, plan.now) for token in plan.short_range_tokens],
                    "short_range_tokens",
                ),
                BatchWrite(
                    "DELETE FROM alerts WHERE id = %s AND created_at < %s",
                    [(alert_id, plan.alert_cutoff) for alert_id in plan.alert_ids],
                    "alerts",
                ),
                BatchWrite(
                    """
                    UPDATE availability
                    SET open = false, until = NULL, updated_at = NOW()
                    WHERE user_id = %s
                      AND until < %s
                    """,
                    [(uid, plan.now) for uid in plan.availability_user_ids],
                    "availability",
                ),
            ]
        )
