"""
Interfaces (Ports) between the core and the adapters.

Driven ports live here: UnitOfWork, Repository and EventPublisher.
The core defines the contracts and adapters implement them, so the
dependency arrow always points at the core.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, TypeVar, Generic, Protocol
import logging

from .events import DomainEvent


logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventPublisher(ABC):
    """
    Publishes domain events to their consumers.

    Example:
        class CeleryEventPublisher(EventPublisher):
            def publish(self, event):
                dispatch_domain_event.delay(event.event_type, event.to_dict())
    """

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    def publish_batch(self, events: List[DomainEvent]) -> None:
        raise NotImplementedError


class UnitOfWork(ABC):
    """
    Unit of Work: one atomic persistence scope per handler call.

    Pattern: context manager
        with uow:
            offer_repo.update(offer)
            application_repo.add(application)
            uow.publish_event(event)
        # commit on clean exit, rollback when an exception escapes

    Events queued with publish_event are handed to the publisher only
    after a successful commit and are dropped on rollback. The instance
    can be entered again after it exits; every scope starts with an
    empty event queue.
    """

    def __init__(self, event_publisher: Optional[EventPublisher] = None):
        self._events: List[DomainEvent] = []
        self._event_publisher = event_publisher

    def __enter__(self) -> "UnitOfWork":
        self._begin_transaction()
        self._events = []
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()
        return False

    @abstractmethod
    def _begin_transaction(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def commit(self) -> None:
        """
        Persist the changes, then publish the queued events.

        Events are published only when the commit itself succeeded.
        """
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        """Undo the changes and discard queued events."""
        raise NotImplementedError

    def publish_event(self, event: DomainEvent) -> None:
        """Queue an event for publication after commit."""
        self._events.append(event)

    def collect_events(self) -> List[DomainEvent]:
        return list(self._events)

    def clear_events(self) -> None:
        self._events.clear()

    def _take_events(self) -> List[DomainEvent]:
        """Remove and return the queued events."""
        events = self.collect_events()
        self.clear_events()
        return events

    def _publish(self, events: List[DomainEvent]) -> None:
        if not events or self._event_publisher is None:
            return
        logger.debug(f"Publishing {len(events)} event(s) after commit")
        self._event_publisher.publish_batch(events)


class Repository(Protocol, Generic[T]):
    """
    Generic repository contract.

    Ids are assigned by the storage on add. Protocols allow duck typing,
    so adapters do not need to inherit from this class.
    """

    def add(self, entity: T) -> T:
        """Insert a new entity and return it with its id assigned."""
        ...

    def update(self, entity: T) -> None:
        ...

    def delete(self, entity_id) -> None:
        ...

    def get_by_id(self, entity_id) -> Optional[T]:
        ...

    def list_all(self) -> List[T]:
        ...
