"""
Pipeline package for the proximity graph feature.

Graph build, audience resolution, overlap matching, notification fan-out and
the ephemeral reaper, plus the event hooks that chain them on content writes.
"""

from .audience_resolver import AudienceResolver
from .content_pipeline import ContentPipeline, content_events, content_pipeline
from .ephemeral_reaper import EphemeralReaper
from .events import AudienceResolved, AvailabilityWritten, ContentEventBus, GroupChanged, PostWritten
from .graph_builder import GraphBuilder, derive_first_degree_edges
from .notification_fanout import FanoutResult, NotificationFanout
from .overlap_matcher import OverlapMatcher

__all__ = [
    "AudienceResolved",
    "AudienceResolver",
    "AvailabilityWritten",
    "ContentEventBus",
    "ContentPipeline",
    "EphemeralReaper",
    "FanoutResult",
    "GraphBuilder",
    "GroupChanged",
    "NotificationFanout",
    "OverlapMatcher",
    "PostWritten",
    "content_events",
    "content_pipeline",
    "derive_first_degree_edges",
]
