"""
Graph edge repository.

Edges are directed rows keyed by (owner_id, peer_user_id). Only the graph
builder writes them; every other component reads.
"""

from collections.abc import Iterable

from app.db.helpers import BatchWrite, execute_batch, fetch_all, fetch_one
from app.features.proximity_graph.domain import GraphEdge
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

FIRST_DEGREE = 1


class GraphEdgeRepository:
    """Reads and atomic rewrites of the proximity graph."""

    @staticmethod
    async def peers_of(owner_id: str, *, limit: int, degree: int = FIRST_DEGREE) -> list[str]:
        """Peers of `owner_id`, truncated at `limit` rows."""
        query = """
            SELECT peer_user_id
            FROM graph_edges
            WHERE owner_id = %s
              AND degree = %s
            ORDER BY peer_user_id
            LIMIT %s
        """
        rows = await fetch_all(query, (owner_id, degree, limit))
        return [row["peer_user_id"] for row in rows]

    @staticmethod
    async def edge_exists(owner_id: str, peer_user_id: str, *, degree: int = FIRST_DEGREE) -> bool:
        query = """
            SELECT 1 AS found
            FROM graph_edges
            WHERE owner_id = %s
              AND peer_user_id = %s
              AND degree = %s
        """
        return await fetch_one(query, (owner_id, peer_user_id, degree)) is not None

    @staticmethod
    async def has_two_hop_path(owner_id: str, peer_user_id: str) -> bool:
        """True when owner -> M -> peer exists over first-degree edges."""
        query = """
            SELECT 1 AS found
            FROM graph_edges first_hop
            JOIN graph_edges second_hop
              ON second_hop.owner_id = first_hop.peer_user_id
            WHERE first_hop.owner_id = %s
              AND first_hop.degree = 1
              AND second_hop.degree = 1
              AND second_hop.peer_user_id = %s
            LIMIT 1
        """
        return await fetch_one(query, (owner_id, peer_user_id)) is not None

    @staticmethod
    async def load_first_degree_keys() -> set[tuple[str, str]]:
        query = """
            SELECT owner_id, peer_user_id
            FROM graph_edges
            WHERE degree = 1
        """
        rows = await fetch_all(query)
        return {(row["owner_id"], row["peer_user_id"]) for row in rows}

    @staticmethod
    async def replace_first_degree_edges(
        upserts: Iterable[GraphEdge], stale_keys: Iterable[tuple[str, str]]
    ) -> dict[str, int]:
        """
        Upsert the freshly derived edges and delete stale ones in one transaction.

        created_at survives re-derivation; updated_at moves on every build.
        """
        upsert_query = """
            INSERT INTO graph_edges (owner_id, peer_user_id, degree, shared_contact_count)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (owner_id, peer_user_id)
            DO UPDATE SET
                degree = EXCLUDED.degree,
                shared_contact_count = EXCLUDED.shared_contact_count,
                updated_at = NOW()
        """
        delete_query = """
            DELETE FROM graph_edges
            WHERE owner_id = %s
              AND peer_user_id = %s
              AND degree = 1
        """

        counts = await execute_batch(
            [
                BatchWrite(
                    upsert_query,
                    [
                        (edge.owner_id, edge.peer_user_id, edge.degree, edge.shared_contact_count)
                        for edge in upserts
                    ],
                    "upserted",
                ),
                BatchWrite(delete_query, sorted(stale_keys), "deleted"),
            ]
        )

        logger.info("Graph edges committed", **counts)
        return counts
