"""
Lookups backing short-range (proximity beacon) token resolution.
"""

from dataclasses import dataclass
from datetime import datetime

from app.db.helpers import fetch_one


@dataclass(slots=True)
class ShortRangeTokenRow:
    token: str
    user_id: str | None
    expire_at: datetime | None


class ShortRangeRepository:
    @staticmethod
    async def get_token(token: str) -> ShortRangeTokenRow | None:
        query = """
            SELECT token, user_id, expire_at
            FROM short_range_tokens
            WHERE token = %s
        """
        row = await fetch_one(query, (token,))
        if not row:
            return None
        return ShortRangeTokenRow(
            token=row["token"],
            user_id=row.get("user_id"),
            expire_at=row.get("expire_at"),
        )

    @staticmethod
    async def get_profile_name(user_id: str) -> str | None:
        row = await fetch_one("SELECT name FROM profiles WHERE user_id = %s", (user_id,))
        return row.get("name") if row else None
