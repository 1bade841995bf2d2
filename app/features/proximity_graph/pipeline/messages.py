"""
Notification payloads for post and availability alerts.
"""

from app.features.proximity_graph.domain import (
    AlertType,
    Availability,
    ContentItem,
    NotificationMessage,
)

POST_TITLE = "New plan from your network"
POST_ROUTE = "/putrace/posts"
POST_PREVIEW_CHARS = 80

AVAILABILITY_TITLE = "Contact is available to connect"
AVAILABILITY_BODY = "Someone in your network is nearby and open to connect"
AVAILABILITY_ROUTE = "/putrace/nearby"


def build_post_message(post: ContentItem, overlap_count: int) -> NotificationMessage:
    body = (post.text or "")[:POST_PREVIEW_CHARS]
    if overlap_count > 0:
        body += f"\n\n🎯 {overlap_count} similar plans found!"

    return NotificationMessage(
        title=POST_TITLE,
        body=body,
        route=POST_ROUTE,
        source_content_id=post.id,
        alert_type=AlertType.NEW_POST,
        data={
            "route": POST_ROUTE,
            "postId": post.id,
            "type": str(AlertType.NEW_POST),
        },
        has_overlaps=overlap_count > 0,
    )


def build_availability_message(availability: Availability) -> NotificationMessage:
    body = AVAILABILITY_BODY
    if availability.until:
        body += f" until {availability.until.strftime('%H:%M')}"

    return NotificationMessage(
        title=AVAILABILITY_TITLE,
        body=body,
        route=AVAILABILITY_ROUTE,
        source_content_id=availability.event_id(),
        alert_type=AlertType.AVAILABILITY,
        data={
            "route": AVAILABILITY_ROUTE,
            "type": str(AlertType.AVAILABILITY),
            "sourceUserId": availability.user_id,
        },
        expires_at=availability.until,
    )
