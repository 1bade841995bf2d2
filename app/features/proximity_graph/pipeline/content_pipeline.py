"""
Recompute-on-write hooks for content items.

    PostWritten / AvailabilityWritten / GroupChanged
        -> resolve audience, persist allowed_user_ids
        -> AudienceResolved
        -> (new posts, open availability) overlap count + notification fan-out

Notifications are only sent after the audience they use has been written.
Post updates and group edits recompute the audience but never re-notify;
group edits cover both posts and custom-audience availability.
"""

from __future__ import annotations

from app.features.proximity_graph.pipeline.audience_resolver import AudienceResolver
from app.features.proximity_graph.pipeline.events import (
    AudienceResolved,
    AvailabilityWritten,
    ContentEventBus,
    GroupChanged,
    PostWritten,
)
from app.features.proximity_graph.pipeline.messages import (
    build_availability_message,
    build_post_message,
)
from app.features.proximity_graph.pipeline.notification_fanout import NotificationFanout
from app.features.proximity_graph.pipeline.overlap_matcher import OverlapMatcher
from app.features.proximity_graph.repository import AvailabilityRepository, PostRepository
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ContentPipeline:
    def __init__(
        self,
        bus: ContentEventBus,
        *,
        resolver: AudienceResolver | None = None,
        matcher: OverlapMatcher | None = None,
        fanout: NotificationFanout | None = None,
        posts=PostRepository,
        availability=AvailabilityRepository,
    ):
        self.bus = bus
        self._resolver = resolver or AudienceResolver()
        self._matcher = matcher or OverlapMatcher()
        self._fanout = fanout or NotificationFanout()
        self._posts = posts
        self._availability = availability

    def register(self) -> "ContentPipeline":
        self.bus.subscribe(PostWritten, self.recompute_post_audience)
        self.bus.subscribe(AvailabilityWritten, self.recompute_availability_audience)
        self.bus.subscribe(GroupChanged, self.recompute_group_content)
        self.bus.subscribe(AudienceResolved, self.notify_audience)
        return self

    async def recompute_post_audience(self, event: PostWritten) -> None:
        post = event.post
        audience = await self._resolver.resolve(post.author_id, post.visibility, post.group_ids)
        await self._posts.set_allowed_users(post.id, audience)
        post.allowed_user_ids = set(audience)

        logger.info(
            "Post audience recomputed",
            post_id=post.id,
            author_id=post.author_id,
            audience_size=len(audience),
            created=event.created,
        )
        await self.bus.publish(AudienceResolved(item=post, audience=audience, created=event.created))

    async def recompute_availability_audience(self, event: AvailabilityWritten) -> None:
        availability = event.availability
        audience = await self._resolver.resolve(
            availability.user_id, availability.audience, availability.custom_group_ids
        )
        await self._availability.set_allowed_users(availability.user_id, audience)

        logger.info(
            "Availability audience recomputed",
            user_id=availability.user_id,
            open=availability.open,
            audience_size=len(audience),
        )
        await self.bus.publish(
            AudienceResolved(
                item=availability.as_content_item(),
                audience=audience,
                created=event.notify,
                availability=availability,
            )
        )

    async def recompute_group_content(self, event: GroupChanged) -> None:
        posts = await self._posts.posts_referencing_group(event.owner_id, event.group_id)
        for post in posts:
            try:
                await self.recompute_post_audience(PostWritten(post=post, created=False))
            except Exception as exc:
                logger.error(
                    "Group-driven audience recompute failed",
                    post_id=post.id,
                    group_id=event.group_id,
                    error=str(exc),
                )

        signals = await self._availability.availability_referencing_group(
            event.owner_id, event.group_id
        )
        for availability in signals:
            try:
                await self.recompute_availability_audience(
                    AvailabilityWritten(availability=availability, notify=False)
                )
            except Exception as exc:
                logger.error(
                    "Group-driven availability recompute failed",
                    user_id=availability.user_id,
                    group_id=event.group_id,
                    error=str(exc),
                )

    async def notify_audience(self, event: AudienceResolved) -> None:
        if not event.audience:
            return

        if event.availability is not None:
            if not event.created or not event.availability.open:
                return
            message = build_availability_message(event.availability)
        elif event.created:
            overlaps = await self._matcher.count_overlaps(event.item, event.audience)
            message = build_post_message(event.item, overlaps)
        else:
            return

        await self._fanout.deliver(event.audience, message)


content_events = ContentEventBus()
content_pipeline = ContentPipeline(content_events).register()
