"""
Short-range token resolution.

Devices advertise short-lived tokens over a proximity beacon. A scanning user
may learn who is nearby only when that person is within two hops of them in
the proximity graph, and even then only as masked initials.
"""

from __future__ import annotations

from datetime import UTC, datetime

from app.features.proximity_graph.domain import (
    AuthenticationRequired,
    InvalidArgument,
    ShortRangeResolution,
)
from app.features.proximity_graph.repository import GraphEdgeRepository, ShortRangeRepository
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DISPLAY_NAME = "Putrace User"


def initials_for(name: str | None) -> str:
    parts = (name or DEFAULT_DISPLAY_NAME).split(" ")
    letters = [part.strip()[0] for part in parts if part.strip()]
    return "".join(letters)[:2].upper()


class ShortRangeService:
    def __init__(self, tokens=ShortRangeRepository, edges=GraphEdgeRepository):
        self._tokens = tokens
        self._edges = edges

    async def resolve(
        self, caller_id: str | None, token: str | None, *, now: datetime | None = None
    ) -> ShortRangeResolution:
        if not caller_id:
            raise AuthenticationRequired()
        token = (token or "").strip()
        if not token:
            raise InvalidArgument("token required")

        row = await self._tokens.get_token(token)
        if row is None or not row.user_id:
            return ShortRangeResolution.denied()

        now = now or datetime.now(UTC)
        if row.expire_at is not None and row.expire_at < now:
            return ShortRangeResolution.denied()

        peer_id = row.user_id
        if await self._edges.edge_exists(caller_id, peer_id):
            degree = "first"
        elif peer_id != caller_id and await self._edges.has_two_hop_path(caller_id, peer_id):
            degree = "second"
        else:
            return ShortRangeResolution.denied()

        initials = initials_for(await self._tokens.get_profile_name(peer_id))
        suffix = "1st" if degree == "first" else "2nd"

        logger.debug("Short-range token resolved", user_id=caller_id, degree=degree)
        return ShortRangeResolution(
            allowed=True,
            peer_uid=peer_id,
            degree=degree,
            display=f"{initials} ({suffix})",
        )


short_range_service = ShortRangeService()
