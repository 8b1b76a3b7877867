"""In-process organization event bus.

Publishers announce membership changes (joined, left, updated); every such
event is also delivered to ``OrganizationChanged`` subscribers so listeners
that only care about "the current organization changed" need one
subscription.
"""

import json
import time
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type

import structlog

logger = structlog.get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class OrganizationEvent:
    profile_id: str
    timestamp: int = field(default_factory=_now_ms)


@dataclass(frozen=True)
class OrganizationChanged(OrganizationEvent):
    organization: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class OrganizationJoined(OrganizationEvent):
    organization: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class OrganizationLeft(OrganizationEvent):
    organization_id: Optional[str] = None


@dataclass(frozen=True)
class OrganizationUpdated(OrganizationEvent):
    organization: Optional[Dict[str, Any]] = None


EVENT_TYPES: Dict[str, Type[OrganizationEvent]] = {
    "ORGANIZATION_CHANGED": OrganizationChanged,
    "ORGANIZATION_JOINED": OrganizationJoined,
    "ORGANIZATION_LEFT": OrganizationLeft,
    "ORGANIZATION_UPDATED": OrganizationUpdated,
}
_EVENT_NAMES = {cls: name for name, cls in EVENT_TYPES.items()}

Handler = Callable[[OrganizationEvent], Any]


class Subscription:
    """Handle returned by ``EventBus.subscribe``; closing it unsubscribes."""

    def __init__(self, bus: "EventBus", event_type: Type[OrganizationEvent], handler: Handler):
        self._bus = bus
        self.event_type = event_type
        self.handler = handler
        self.active = True

    def close(self) -> None:
        if self.active:
            self._bus._remove(self.event_type, self.handler)
            self.active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class EventBus:
    """Synchronous publish/subscribe hub for organization events."""

    def __init__(self):
        self._handlers: Dict[Type[OrganizationEvent], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[OrganizationEvent], handler: Handler) -> Subscription:
        self._handlers[event_type].append(handler)
        return Subscription(self, event_type, handler)

    def _remove(self, event_type: Type[OrganizationEvent], handler: Handler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: OrganizationEvent) -> bool:
        """Deliver an event to its subscribers.

        Returns False when any handler raised; handler errors are logged and
        never reach the publisher.
        """
        targets = list(self._handlers.get(type(event), []))
        if not isinstance(event, OrganizationChanged):
            targets += [
                handler for handler in self._handlers.get(OrganizationChanged, [])
                if handler not in targets
            ]

        delivered = True
        for handler in targets:
            try:
                handler(event)
            except Exception as e:
                delivered = False
                logger.error(
                    "Organization event handler failed",
                    event=type(event).__name__,
                    profile_id=event.profile_id,
                    error=str(e),
                )
        return delivered

    def subscriber_count(self, event_type: Type[OrganizationEvent]) -> int:
        return len(self._handlers.get(event_type, []))


def to_message(event: OrganizationEvent) -> str:
    """Serialize an event for another process."""
    payload = asdict(event)
    payload["type"] = _EVENT_NAMES[type(event)]
    return json.dumps(payload)


def from_message(message: str) -> Optional[OrganizationEvent]:
    """Parse a message produced by ``to_message``; malformed input gives None."""
    try:
        payload = json.loads(message)
        event_cls = EVENT_TYPES[payload.pop("type")]
        return event_cls(**payload)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning("Discarding malformed organization event message", error=str(e))
        return None


# Global event bus instance
event_bus = EventBus()
