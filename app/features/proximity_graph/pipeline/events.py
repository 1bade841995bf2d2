"""
Content write events and the listener bus that reacts to them.

Writes to posts, availability and audience groups publish an event; the
recompute and notification stages subscribe to those events instead of
sharing mutable state. Listeners run in subscription order and each one is
isolated: an exception is logged and the remaining listeners still run.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from app.features.proximity_graph.domain import Availability, ContentItem
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class PostWritten:
    post: ContentItem
    created: bool


@dataclass(slots=True)
class AvailabilityWritten:
    availability: Availability
    notify: bool = True


@dataclass(slots=True)
class GroupChanged:
    owner_id: str
    group_id: str


@dataclass(slots=True)
class AudienceResolved:
    """Published once a recomputed audience has been persisted."""

    item: ContentItem
    audience: frozenset[str]
    created: bool = False
    availability: Availability | None = None


Listener = Callable[[Any], Awaitable[None]]


class ContentEventBus:
    def __init__(self) -> None:
        self._listeners: defaultdict[type, list[Listener]] = defaultdict(list)

    def subscribe(self, event_type: type, listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def listeners_for(self, event_type: type) -> list[Listener]:
        return list(self._listeners.get(event_type, []))

    async def publish(self, event: Any) -> int:
        """Run every listener for `event`; returns how many failed."""
        failures = 0
        for listener in self.listeners_for(type(event)):
            try:
                await listener(event)
            except Exception as exc:
                failures += 1
                logger.exception(
                    "Content event listener failed",
                    event_type=type(event).__name__,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(exc),
                )
        return failures
