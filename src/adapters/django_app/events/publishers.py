"""
Event publishers.

Hand domain events to their consumers once a unit of work committed:
- LoggingEventPublisher: logs every event (development, tests)
- CeleryEventPublisher: routes events to `dispatch_domain_event` (production)
- InMemoryEventPublisher: records events for assertions
- CompositeEventPublisher: fans out to several publishers

The transaction is already committed when a publisher runs, so a delivery
failure is logged and never undoes the operation.
"""

import json
import logging
from typing import Callable, Dict, List, Optional

from src.core.shared.events import DomainEvent
from src.core.shared.interfaces import EventPublisher

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class _LocalHandlersMixin:
    """Synchronous in-process handlers keyed by event type."""

    def _init_handlers(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}

    def register_handler(self, event_type: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def _dispatch_to_handlers(self, event: DomainEvent) -> None:
        for handler in self._handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Handler for {event.event_type} failed")


class LoggingEventPublisher(_LocalHandlersMixin, EventPublisher):
    def __init__(self, log_level: int = logging.INFO):
        self._log_level = log_level
        self._init_handlers()

    def publish(self, event: DomainEvent) -> None:
        logger.log(
            self._log_level,
            f"[EVENT] {event.event_type} | "
            f"aggregate={event.aggregate_type}:{event.aggregate_id} | "
            f"data={json.dumps(event.to_dict(), default=str)}",
        )
        self._dispatch_to_handlers(event)

    def publish_batch(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.publish(event)


class CeleryEventPublisher(EventPublisher):
    """
    Sends each event to the `dispatch_domain_event` task on the events queue.

    Args:
        also_log: Log a one-line summary of every event sent
    """

    def __init__(self, also_log: bool = True):
        self._also_log = also_log

    def publish(self, event: DomainEvent) -> None:
        from src.adapters.django_app.events.handlers import dispatch_domain_event

        if self._also_log:
            logger.info(f"[EVENT->CELERY] {event.event_type} | aggregate={event.aggregate_id}")

        try:
            dispatch_domain_event.delay(event.event_type, event.to_dict())
        except Exception:
            logger.error(f"Failed to send {event.event_type} to Celery", exc_info=True)

    def publish_batch(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.publish(event)


class InMemoryEventPublisher(_LocalHandlersMixin, EventPublisher):
    """
    Records published events.

    Example:
        publisher = InMemoryEventPublisher()
        ...
        assert publisher.get_events_by_type("OfferCreatedEvent")
    """

    def __init__(self):
        self._published_events: List[DomainEvent] = []
        self._init_handlers()

    def publish(self, event: DomainEvent) -> None:
        self._published_events.append(event)
        self._dispatch_to_handlers(event)

    def publish_batch(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.publish(event)

    @property
    def published_events(self) -> List[DomainEvent]:
        return self._published_events.copy()

    def get_events_by_type(self, event_type: str) -> List[DomainEvent]:
        return [e for e in self._published_events if e.event_type == event_type]

    def clear(self) -> None:
        self._published_events.clear()


class CompositeEventPublisher(EventPublisher):
    def __init__(self, publishers: Optional[List[EventPublisher]] = None):
        self._publishers = list(publishers or [])

    def add_publisher(self, publisher: EventPublisher) -> None:
        self._publishers.append(publisher)

    def publish(self, event: DomainEvent) -> None:
        self.publish_batch([event])

    def publish_batch(self, events: List[DomainEvent]) -> None:
        for publisher in self._publishers:
            try:
                publisher.publish_batch(events)
            except Exception:
                logger.exception(f"Publishing through {publisher.__class__.__name__} failed")


PUBLISHER_BACKENDS = {
    "logging": LoggingEventPublisher,
    "celery": CeleryEventPublisher,
    "memory": InMemoryEventPublisher,
}


def get_event_publisher(backend: str = "logging") -> EventPublisher:
    """
    Build the publisher named by the AUTOLEASE_EVENT_PUBLISHER setting.

    Raises:
        ValueError: If the backend name is unknown
    """
    try:
        publisher_class = PUBLISHER_BACKENDS[(backend or "logging").strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown event publisher '{backend}', expected one of {sorted(PUBLISHER_BACKENDS)}"
        ) from None
    return publisher_class()
