"""
Alert and device token repositories used by the notification fan-out.
"""

from app.db.helpers import execute_query, fetch_all
from app.features.proximity_graph.domain import AlertRecord


class AlertRepository:
    @staticmethod
    async def insert_alert(record: AlertRecord) -> bool:
        """
        Persist one alert.

        Returns False when an alert for the same (content, type, recipient)
        already exists, so a re-triggered fan-out never duplicates records.
        """
        query = """
            INSERT INTO alerts (
                recipient_user_id, title, body, route,
                source_content_id, type, has_overlaps, expires_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (source_content_id, type, recipient_user_id) DO NOTHING
        """
        inserted = await execute_query(
            query,
            (
                record.recipient_user_id,
                record.title,
                record.body,
                record.route,
                record.source_content_id,
                str(record.type),
                record.has_overlaps,
                record.expires_at,
            ),
        )
        return inserted > 0


class DeviceTokenRepository:
    @staticmethod
    async def tokens_for_user(user_id: str, *, limit: int) -> list[str]:
        query = """
            SELECT token
            FROM device_tokens
            WHERE user_id = %s
            ORDER BY updated_at DESC
            LIMIT %s
        """
        rows = await fetch_all(query, (user_id, limit))
        return [row["token"] for row in rows]

    @staticmethod
    async def register(user_id: str, token: str, platform: str | None = None) -> None:
        query = """
            INSERT INTO device_tokens (user_id, token, platform)
            VALUES (%s, %s, %s)
            ON CONFLICT (user_id, token)
            DO UPDATE SET platform = EXCLUDED.platform, updated_at = NOW()
        """
        await execute_query(query, (user_id, token, platform))

    @staticmethod
    async def delete_tokens(user_id: str, tokens: list[str]) -> int:
        if not tokens:
            return 0
        query = """
            DELETE FROM device_tokens
            WHERE user_id = %s
              AND token = ANY(%s)
        """
        return await execute_query(query, (user_id, list(tokens)))
