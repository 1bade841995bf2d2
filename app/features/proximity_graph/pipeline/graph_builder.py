"""
Graph builder: derive first-degree edges from shared contact tokens.

The derivation is a pure function over an in-memory owner -> token-set map.
Every unordered pair of users is compared once, so a build costs
O(U^2 * T) for U users with T tokens each. That is only acceptable because
builds run a few times a day; GRAPH_SHARD_COUNT splits the pair space across
worker processes when a single pass gets too slow, but the edge set is the
same for any shard count.
"""

from __future__ import annotations

import asyncio
import time
import zlib
from collections.abc import Mapping
from concurrent.futures import ProcessPoolExecutor
from itertools import combinations

from app.config import settings
from app.db.helpers import DatabaseError
from app.features.proximity_graph.domain import BatchCommitFailure, GraphEdge
from app.features.proximity_graph.repository import ContactTokenRepository, GraphEdgeRepository
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

FIRST_DEGREE = 1


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Order-independent key for an unordered pair of users."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


def shard_for_pair(pair: tuple[str, str], shard_count: int) -> int:
    return zlib.crc32("\x1f".join(pair).encode("utf-8")) % shard_count


def derive_first_degree_edges(
    tokens_by_user: Mapping[str, set[str]],
    *,
    shard_index: int = 0,
    shard_count: int = 1,
) -> list[GraphEdge]:
    """
    Return both directions of every first-degree edge implied by `tokens_by_user`.

    Users without tokens are ignored. When `shard_count` > 1 only the pairs
    that hash to `shard_index` are compared.
    """
    if shard_count < 1 or not 0 <= shard_index < shard_count:
        raise ValueError(f"Invalid shard {shard_index} of {shard_count}")

    users = sorted(user_id for user_id, tokens in tokens_by_user.items() if tokens)
    edges: list[GraphEdge] = []

    for user_a, user_b in combinations(users, 2):
        pair = canonical_pair(user_a, user_b)
        if shard_count > 1 and shard_for_pair(pair, shard_count) != shard_index:
            continue

        shared = len(tokens_by_user[user_a] & tokens_by_user[user_b])
        if not shared:
            continue

        edges.append(GraphEdge(user_a, user_b, FIRST_DEGREE, shared))
        edges.append(GraphEdge(user_b, user_a, FIRST_DEGREE, shared))

    return edges


def _derive_shard(tokens_by_user: dict[str, set[str]], shard_index: int, shard_count: int):
    return derive_first_degree_edges(
        tokens_by_user, shard_index=shard_index, shard_count=shard_count
    )


class GraphBuilder:
    """Loads tokens, derives edges and commits them as one atomic batch."""

    def __init__(
        self,
        tokens=ContactTokenRepository,
        edges=GraphEdgeRepository,
        *,
        shard_count: int | None = None,
    ):
        self._tokens = tokens
        self._edges = edges
        self._shard_count = max(1, shard_count or settings.GRAPH_SHARD_COUNT)

    async def build(self) -> dict:
        """
        Rebuild the first-degree graph.

        Degree-1 edges whose pair no longer shares a token are deleted in the
        same transaction as the upserts. Raises BatchCommitFailure when the
        batch does not commit; nothing from the run is visible in that case.
        """
        started = time.monotonic()
        tokens_by_user = await self._tokens.load_tokens_by_user()

        derived = await self._derive(tokens_by_user)
        derived_keys = {edge.key for edge in derived}

        existing_keys = await self._edges.load_first_degree_keys()
        stale_keys = existing_keys - derived_keys

        try:
            await self._edges.replace_first_degree_edges(derived, stale_keys)
        except DatabaseError as exc:
            raise BatchCommitFailure(f"Graph edge batch failed: {exc}") from exc

        result = {
            "users": len(tokens_by_user),
            "users_with_tokens": sum(1 for tokens in tokens_by_user.values() if tokens),
            "edges_upserted": len(derived),
            "edges_deleted": len(stale_keys),
            "shards": self._shard_count,
            "derive_seconds": round(time.monotonic() - started, 3),
        }
        logger.info("Graph build committed", **result)
        return result

    async def _derive(self, tokens_by_user: dict[str, set[str]]) -> list[GraphEdge]:
        if self._shard_count == 1:
            return derive_first_degree_edges(tokens_by_user)

        loop = asyncio.get_running_loop()
        with ProcessPoolExecutor(max_workers=self._shard_count) as pool:
            shards = await asyncio.gather(
                *(
                    loop.run_in_executor(
                        pool, _derive_shard, tokens_by_user, index, self._shard_count
                    )
                    for index in range(self._shard_count)
                )
            )

        return [edge for shard in shards for edge in shard]
