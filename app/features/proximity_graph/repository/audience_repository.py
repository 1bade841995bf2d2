"""
Audience group repository.

Groups are owned by their creator; lookups are always scoped to the owner so
a visibility rule can never reference someone else's group.
"""

from app.db.helpers import execute_query, fetch_all
from app.features.proximity_graph.domain import AudienceGroup


class AudienceGroupRepository:
    @staticmethod
    async def fetch_owned_groups(owner_id: str, group_ids: list[str]) -> list[AudienceGroup]:
        if not group_ids:
            return []

        query = """
            SELECT owner_id, group_id, name, member_user_ids
            FROM audience_groups
            WHERE owner_id = %s
              AND group_id = ANY(%s)
        """
        rows = await fetch_all(query, (owner_id, list(group_ids)))
        return [
            AudienceGroup(
                owner_id=row["owner_id"],
                group_id=row["group_id"],
                name=row.get("name"),
                member_user_ids=set(row.get("member_user_ids") or []),
            )
            for row in rows
        ]

    @staticmethod
    async def upsert_group(group: AudienceGroup) -> None:
        query = """
            INSERT INTO audience_groups (owner_id, group_id, name, member_user_ids)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (owner_id, group_id)
            DO UPDATE SET
                name = EXCLUDED.name,
                member_user_ids = EXCLUDED.member_user_ids,
                updated_at = NOW()
        """
        await execute_query(
            query,
            (group.owner_id, group.group_id, group.name, sorted(group.member_user_ids)),
        )

    @staticmethod
    async def delete_group(owner_id: str, group_id: str) -> bool:
        query = """
            DELETE FROM audience_groups
            WHERE owner_id = %s
              AND group_id = %s
        """
        return await execute_query(query, (owner_id, group_id)) > 0
