"""
Write paths for posts, availability, audience groups and device tokens.

Each write returns the event the recompute hooks react to; the API layer
publishes it after the response is sent.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from app.features.proximity_graph.domain import (
    AudienceGroup,
    Availability,
    ContentItem,
    InvalidArgument,
    ResourceNotFound,
    Visibility,
)
from app.features.proximity_graph.pipeline.events import (
    AvailabilityWritten,
    GroupChanged,
    PostWritten,
)
from app.features.proximity_graph.repository import (
    AudienceGroupRepository,
    AvailabilityRepository,
    DeviceTokenRepository,
    PostRepository,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def _check_window(start_at: datetime | None, end_at: datetime | None) -> None:
    if start_at and end_at and end_at < start_at:
        raise InvalidArgument("endAt must not be before startAt")


class ContentService:
    def __init__(
        self,
        posts=PostRepository,
        availability=AvailabilityRepository,
        groups=AudienceGroupRepository,
        devices=DeviceTokenRepository,
    ):
        self._posts = posts
        self._availability = availability
        self._groups = groups
        self._devices = devices

    async def create_post(
        self,
        author_id: str,
        *,
        text: str,
        visibility: Visibility,
        group_ids: list[str],
        tags: set[str],
        start_at: datetime | None,
        end_at: datetime | None,
    ) -> tuple[ContentItem, PostWritten]:
        _check_window(start_at, end_at)
        post = await self._posts.create_post(
            ContentItem(
                id=str(uuid.uuid4()),
                author_id=author_id,
                visibility=visibility,
                group_ids=list(group_ids),
                start_at=start_at,
                end_at=end_at,
                tags=set(tags),
                text=text,
            )
        )
        logger.info("Post created", post_id=post.id, author_id=author_id, visibility=str(visibility))
        return post, PostWritten(post=post, created=True)

    async def update_post(
        self,
        author_id: str,
        post_id: str,
        *,
        text: str,
        visibility: Visibility,
        group_ids: list[str],
        tags: set[str],
        start_at: datetime | None,
        end_at: datetime | None,
    ) -> tuple[ContentItem, PostWritten]:
        _check_window(start_at, end_at)
        post = await self._posts.update_post(
            ContentItem(
                id=post_id,
                author_id=author_id,
                visibility=visibility,
                group_ids=list(group_ids),
                start_at=start_at,
                end_at=end_at,
                tags=set(tags),
                text=text,
            )
        )
        if post is None:
            raise ResourceNotFound("Post not found")
        return post, PostWritten(post=post, created=False)

    async def set_availability(
        self,
        user_id: str,
        *,
        open: bool,
        audience: Visibility,
        custom_group_ids: list[str],
        until: datetime | None,
    ) -> tuple[Availability, AvailabilityWritten]:
        availability = await self._availability.upsert(
            Availability(
                user_id=user_id,
                open=open,
                audience=audience,
                custom_group_ids=list(custom_group_ids),
                until=until,
            )
        )
        logger.info("Availability updated", user_id=user_id, open=open, audience=str(audience))
        return availability, AvailabilityWritten(availability=availability)

    async def upsert_group(
        self, owner_id: str, group_id: str, *, name: str | None, member_user_ids: set[str]
    ) -> tuple[AudienceGroup, GroupChanged]:
        group = AudienceGroup(
            owner_id=owner_id,
            group_id=group_id,
            name=name,
            member_user_ids=set(member_user_ids) - {owner_id},
        )
        await self._groups.upsert_group(group)
        return group, GroupChanged(owner_id=owner_id, group_id=group_id)

    async def delete_group(self, owner_id: str, group_id: str) -> GroupChanged:
        if not await self._groups.delete_group(owner_id, group_id):
            raise ResourceNotFound("Group not found")
        return GroupChanged(owner_id=owner_id, group_id=group_id)

    async def register_device(self, user_id: str, token: str, platform: str | None) -> None:
        token = (token or "").strip()
        if not token:
            raise InvalidArgument("token required")
        await self._devices.register(user_id, token, platform)


content_service = ContentService()
