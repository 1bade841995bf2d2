"""
Audience resolver: expand a visibility rule into concrete recipient ids.

Edge queries are capped (RESOLVER_FIRST_DEGREE_LIMIT for the author's own
edges, RESOLVER_SECOND_HOP_LIMIT per intermediate peer). Anything past a cap
is silently dropped; this bounds resolver latency.

Second-degree audiences include the first-degree peers as well as their
peers. Membership is not classified by exact degree.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from app.config import settings
from app.features.proximity_graph.domain import Visibility
from app.features.proximity_graph.repository import AudienceGroupRepository, GraphEdgeRepository
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Concurrent second-hop edge queries per resolution; keeps one resolver from
# draining the connection pool.
SECOND_HOP_CONCURRENCY = 8


class AudienceResolver:
    def __init__(
        self,
        edges=GraphEdgeRepository,
        groups=AudienceGroupRepository,
        *,
        first_degree_limit: int | None = None,
        second_hop_limit: int | None = None,
    ):
        self._edges = edges
        self._groups = groups
        self._first_degree_limit = first_degree_limit or settings.RESOLVER_FIRST_DEGREE_LIMIT
        self._second_hop_limit = second_hop_limit or settings.RESOLVER_SECOND_HOP_LIMIT

    async def resolve(
        self,
        author_id: str,
        visibility: Visibility | str,
        group_ids: Iterable[str] = (),
    ) -> frozenset[str]:
        """Return the deduplicated audience for an item, never including its author."""
        try:
            rule = Visibility(visibility)
        except ValueError:
            logger.warning("Unknown visibility rule", author_id=author_id, visibility=visibility)
            return frozenset()

        if rule is Visibility.CUSTOM:
            allowed = await self._expand_groups(author_id, list(group_ids))
        elif rule is Visibility.FIRST_DEGREE:
            allowed = await self._first_degree(author_id)
        else:
            allowed = await self._second_degree(author_id)

        allowed.discard(author_id)

        logger.debug(
            "Audience resolved",
            author_id=author_id,
            visibility=str(rule),
            audience_size=len(allowed),
        )
        return frozenset(allowed)

    async def _expand_groups(self, author_id: str, group_ids: list[str]) -> set[str]:
        # Missing or foreign groups simply do not come back from the query
        groups = await self._groups.fetch_owned_groups(author_id, sorted(set(group_ids)))
        members: set[str] = set()
        for group in groups:
            members |= group.member_user_ids
        return members

    async def _first_degree(self, author_id: str) -> set[str]:
        return set(await self._edges.peers_of(author_id, limit=self._first_degree_limit))

    async def _second_degree(self, author_id: str) -> set[str]:
        first_degree = await self._first_degree(author_id)
        semaphore = asyncio.Semaphore(SECOND_HOP_CONCURRENCY)

        async def _peers_of_peer(peer_id: str) -> list[str]:
            async with semaphore:
                return await self._edges.peers_of(peer_id, limit=self._second_hop_limit)

        hops = await asyncio.gather(*(_peers_of_peer(peer) for peer in sorted(first_degree)))

        allowed = set(first_degree)
        for peers in hops:
            allowed.update(peers)
        return allowed
