"""
Persistence layer for the proximity graph feature.
"""

from .audience_repository import AudienceGroupRepository
from .contact_token_repository import ContactTokenRepository
from .content_repository import AvailabilityRepository, PostRepository
from .ephemeral_repository import EphemeralRepository, SweepPlan
from .graph_edge_repository import GraphEdgeRepository
from .notification_repository import AlertRepository, DeviceTokenRepository
from .short_range_repository import ShortRangeRepository

__all__ = [
    "AlertRepository",
    "AudienceGroupRepository",
    "AvailabilityRepository",
    "ContactTokenRepository",
    "DeviceTokenRepository",
    "EphemeralRepository",
    "GraphEdgeRepository",
    "PostRepository",
    "ShortRangeRepository",
    "SweepPlan",
]
