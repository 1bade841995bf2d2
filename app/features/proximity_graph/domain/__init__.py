"""
Domain subpackage for the proximity graph feature.
"""

from .errors import (
    AuthenticationRequired,
    BatchCommitFailure,
    InvalidArgument,
    ProximityGraphError,
    ResourceNotFound,
    TransientDeliveryFailure,
)
from .models import (
    AlertRecord,
    AlertType,
    AudienceGroup,
    Availability,
    ContactToken,
    ContentItem,
    GraphEdge,
    NotificationMessage,
    ShortRangeResolution,
    TokenKind,
    Visibility,
)

__all__ = [
    "AlertRecord",
    "AlertType",
    "AudienceGroup",
    "AuthenticationRequired",
    "Availability",
    "BatchCommitFailure",
    "ContactToken",
    "ContentItem",
    "GraphEdge",
    "InvalidArgument",
    "NotificationMessage",
    "ProximityGraphError",
    "ResourceNotFound",
    "ShortRangeResolution",
    "TokenKind",
    "TransientDeliveryFailure",
    "Visibility",
]
