"""
Domain models for the proximity graph feature.

Plain dataclasses shared by repositories, pipeline stages, jobs and the API
layer. Sets are used wherever the data model is a set so that ordering never
leaks into derived fields.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class Visibility(StrEnum):
    CUSTOM = "custom"
    FIRST_DEGREE = "firstDegree"
    SECOND_DEGREE = "secondDegree"


class TokenKind(StrEnum):
    EMAIL = "email"
    PHONE = "phone"


class AlertType(StrEnum):
    NEW_POST = "new_post"
    AVAILABILITY = "availability"


@dataclass(slots=True, frozen=True)
class ContactToken:
    owner_user_id: str
    token: str
    kind: TokenKind


@dataclass(slots=True, frozen=True)
class GraphEdge:
    """Directed edge owner -> peer."""

    owner_id: str
    peer_user_id: str
    degree: int
    shared_contact_count: int

    @property
    def key(self) -> tuple[str, str]:
        return (self.owner_id, self.peer_user_id)


@dataclass(slots=True)
class AudienceGroup:
    owner_id: str
    group_id: str
    member_user_ids: set[str] = field(default_factory=set)
    name: str | None = None


@dataclass(slots=True)
class ContentItem:
    """
    A post or an availability signal reduced to what the pipeline needs.

    `allowed_user_ids` is derived by the audience resolver and is never taken
    from client input.
    """

    id: str
    author_id: str
    visibility: Visibility
    group_ids: list[str] = field(default_factory=list)
    start_at: datetime | None = None
    end_at: datetime | None = None
    tags: set[str] = field(default_factory=set)
    allowed_user_ids: set[str] = field(default_factory=set)
    text: str = ""

    @property
    def has_window(self) -> bool:
        return self.start_at is not None and self.end_at is not None


@dataclass(slots=True)
class Availability:
    user_id: str
    open: bool
    audience: Visibility
    custom_group_ids: list[str] = field(default_factory=list)
    until: datetime | None = None
    updated_at: datetime | None = None

    def event_id(self) -> str:
        """Identifier of this open/close event, used to de-duplicate alerts."""
        stamp = self.updated_at.isoformat() if self.updated_at else "initial"
        return f"availability:{self.user_id}:{stamp}"

    def as_content_item(self) -> ContentItem:
        return ContentItem(
            id=self.event_id(),
            author_id=self.user_id,
            visibility=self.audience,
            group_ids=list(self.custom_group_ids),
            end_at=self.until,
        )


@dataclass(slots=True)
class NotificationMessage:
    """Payload delivered to every recipient of one fan-out."""

    title: str
    body: str
    route: str
    source_content_id: str
    alert_type: AlertType
    data: dict[str, str] = field(default_factory=dict)
    expires_at: datetime | None = None
    has_overlaps: bool = False


@dataclass(slots=True)
class AlertRecord:
    recipient_user_id: str
    title: str
    body: str
    route: str
    source_content_id: str
    type: AlertType
    has_overlaps: bool = False
    expires_at: datetime | None = None

    @classmethod
    def for_recipient(cls, recipient_user_id: str, message: NotificationMessage) -> "AlertRecord":
        return cls(
            recipient_user_id=recipient_user_id,
            title=message.title,
            body=message.body,
            route=message.route,
            source_content_id=message.source_content_id,
            type=message.alert_type,
            has_overlaps=message.has_overlaps,
            expires_at=message.expires_at,
        )


@dataclass(slots=True)
class ShortRangeResolution:
    allowed: bool
    peer_uid: str | None = None
    degree: str | None = None
    display: str | None = None

    @classmethod
    def denied(cls) -> "ShortRangeResolution":
        return cls(allowed=False)

    def to_dict(self) -> dict:
        if not self.allowed:
            return {"allowed": False}
        return {
            "allowed": True,
            "peerUid": self.peer_uid,
            "degree": self.degree,
            "display": self.display,
        }
