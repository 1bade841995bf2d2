"""
Post and availability repositories.

`allowed_user_ids` is only ever written through `set_allowed_users`, which the
audience recompute hook calls; create/update paths leave it untouched.
"""

from datetime import datetime
from typing import Any

from app.db.helpers import execute_query, fetch_all, fetch_one
from app.features.proximity_graph.domain import Availability, ContentItem, Visibility

_POST_COLUMNS = """
    id, author_id, text, visibility, group_ids, tags,
    start_at, end_at, allowed_user_ids
"""


def _row_to_post(row: dict[str, Any]) -> ContentItem:
    return ContentItem(
        id=row["id"],
        author_id=row["author_id"],
        visibility=Visibility(row["visibility"]),
        group_ids=list(row.get("group_ids") or []),
        start_at=row.get("start_at"),
        end_at=row.get("end_at"),
        tags=set(row.get("tags") or []),
        allowed_user_ids=set(row.get("allowed_user_ids") or []),
        text=row.get("text") or "",
    )


def _row_to_availability(row: dict[str, Any]) -> Availability:
    return Availability(
        user_id=row["user_id"],
        open=bool(row.get("open")),
        audience=Visibility(row["audience"]),
        custom_group_ids=list(row.get("custom_group_ids") or []),
        until=row.get("until"),
        updated_at=row.get("updated_at"),
    )


class PostRepository:
    @staticmethod
    async def get_post(post_id: str) -> ContentItem | None:
        query = f"SELECT {_POST_COLUMNS} FROM posts WHERE id = %s"
        row = await fetch_one(query, (post_id,))
        return _row_to_post(row) if row else None

    @staticmethod
    async def create_post(item: ContentItem) -> ContentItem:
        query = f"""
            INSERT INTO posts (id, author_id, text, visibility, group_ids, tags, start_at, end_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {_POST_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                item.id,
                item.author_id,
                item.text,
                str(item.visibility),
                list(item.group_ids),
                sorted(item.tags),
                item.start_at,
                item.end_at,
            ),
        )
        return _row_to_post(row)

    @staticmethod
    async def update_post(item: ContentItem) -> ContentItem | None:
        """Update an author's post; returns None when the post is not theirs."""
        query = f"""
            UPDATE posts
            SET text = %s,
                visibility = %s,
                group_ids = %s,
                tags = %s,
                start_at = %s,
                end_at = %s,
                updated_at = NOW()
            WHERE id = %s
              AND author_id = %s
            RETURNING {_POST_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                item.text,
                str(item.visibility),
                list(item.group_ids),
                sorted(item.tags),
                item.start_at,
                item.end_at,
                item.id,
                item.author_id,
            ),
        )
        return _row_to_post(row) if row else None

    @staticmethod
    async def set_allowed_users(post_id: str, allowed_user_ids: set[str]) -> None:
        query = """
            UPDATE posts
            SET allowed_user_ids = %s
            WHERE id = %s
        """
        await execute_query(query, (sorted(allowed_user_ids), post_id))

    @staticmethod
    async def posts_referencing_group(owner_id: str, group_id: str) -> list[ContentItem]:
        query = f"""
            SELECT {_POST_COLUMNS}
            FROM posts
            WHERE author_id = %s
              AND visibility = 'custom'
              AND %s = ANY(group_ids)
        """
        rows = await fetch_all(query, (owner_id, group_id))
        return [_row_to_post(row) for row in rows]

    @staticmethod
    async def find_window_overlaps(
        author_ids: list[str],
        start_at: datetime,
        end_at: datetime,
        *,
        exclude_id: str,
        limit: int,
    ) -> list[ContentItem]:
        """Posts by any of `author_ids` whose window intersects [start_at, end_at]."""
        if not author_ids:
            return []

        query = f"""
            SELECT {_POST_COLUMNS}
            FROM posts
            WHERE author_id = ANY(%s)
              AND start_at <= %s
              AND end_at >= %s
              AND id <> %s
            LIMIT %s
        """
        rows = await fetch_all(query, (list(author_ids), end_at, start_at, exclude_id, limit))
        return [_row_to_post(row) for row in rows]


class AvailabilityRepository:
    @staticmethod
    async def get(user_id: str) -> Availability | None:
        query = """
            SELECT user_id, open, audience, custom_group_ids, until, updated_at
            FROM availability
            WHERE user_id = %s
        """
        row = await fetch_one(query, (user_id,))
        return _row_to_availability(row) if row else None

    @staticmethod
    async def upsert(availability: Availability) -> Availability:
        query = """
            INSERT INTO availability (user_id, open, audience, custom_group_ids, until)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (user_id)
            DO UPDATE SET
                open = EXCLUDED.open,
                audience = EXCLUDED.audience,
                custom_group_ids = EXCLUDED.custom_group_ids,
                until = EXCLUDED.until,
                updated_at = NOW()
            RETURNING user_id, open, audience, custom_group_ids, until, updated_at
        """
        row = await fetch_one(
            query,
            (
                availability.user_id,
                availability.open,
                str(availability.audience),
                list(availability.custom_group_ids),
                availability.until,
            ),
        )
        return _row_to_availability(row)

    @staticmethod
    async def set_allowed_users(user_id: str, allowed_user_ids: set[str]) -> None:
        query = """
            UPDATE availability
            SET allowed_user_ids = %s
            WHERE user_id = %s
        """
        await execute_query(query, (sorted(allowed_user_ids), user_id))

    @staticmethod
    async def availability_referencing_group(owner_id: str, group_id: str) -> list[Availability]:
        query = """
            SELECT user_id, open, audience, custom_group_ids, until, updated_at
            FROM availability
            WHERE user_id = %s
              AND audience = 'custom'
              AND %s = ANY(custom_group_ids)
        """
        rows = await fetch_all(query, (owner_id, group_id))
        return [_row_to_availability(row) for row in rows]
