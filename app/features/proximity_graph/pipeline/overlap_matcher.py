"""
Overlap matcher: count audience content that shares a time window and a tag.

The count only decorates the notification body; it never changes who is
notified.
"""

from collections.abc import Collection
from datetime import datetime

from app.config import settings
from app.features.proximity_graph.domain import ContentItem
from app.features.proximity_graph.repository import PostRepository
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def windows_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Inclusive interval intersection."""
    return start_b <= end_a and end_b >= start_a


def is_overlapping(item: ContentItem, other: ContentItem) -> bool:
    if other.id == item.id or not item.has_window or not other.has_window:
        return False
    if not windows_overlap(item.start_at, item.end_at, other.start_at, other.end_at):
        return False
    return bool(item.tags & other.tags)


class OverlapMatcher:
    def __init__(self, posts=PostRepository, *, query_limit: int | None = None):
        self._posts = posts
        self._query_limit = query_limit or settings.OVERLAP_QUERY_LIMIT

    async def count_overlaps(self, item: ContentItem, audience: Collection[str]) -> int:
        """Number of items by `audience` members overlapping `item` in time and tags."""
        if not item.has_window or not item.tags or not audience:
            return 0

        candidates = await self._posts.find_window_overlaps(
            sorted(audience),
            item.start_at,
            item.end_at,
            exclude_id=item.id,
            limit=self._query_limit,
        )
        matches = sum(1 for candidate in candidates if is_overlapping(item, candidate))

        if matches:
            logger.info("Overlapping content found", content_id=item.id, matches=matches)
        return matches
