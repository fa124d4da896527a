"""Tests for the dependency container and the event publisher factory."""

from datetime import datetime, timezone
import logging

import pytest

from src.adapters.django_app.events.publishers import (
    CompositeEventPublisher,
    InMemoryEventPublisher,
    LoggingEventPublisher,
    get_event_publisher,
)
from src.config.container import create_in_memory_container
from src.core.applications.use_cases import SubmitApplicationService
from src.core.offers.events import OfferActivatedEvent
from src.core.offers.ports import InMemoryOfferRepository
from src.core.shared.clock import FixedClock, SystemClock
from src.core.shared.memory import InMemoryUnitOfWork


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


class TestInMemoryContainer:
    def test_services_share_repositories(self):
        container = create_in_memory_container()

        assert container.offer_repository() is container.offer_repository()
        assert isinstance(container.offer_repository(), InMemoryOfferRepository)

    def test_each_service_gets_its_own_unit_of_work(self):
        container = create_in_memory_container()

        first = container.submit_application_service()
        second = container.submit_application_service()

        assert isinstance(first, SubmitApplicationService)
        assert isinstance(first.uow, InMemoryUnitOfWork)
        assert first.uow is not second.uow
        assert first.offer_repo is second.offer_repo

    def test_defaults(self):
        container = create_in_memory_container()

        assert isinstance(container.clock(), SystemClock)
        assert isinstance(container.event_publisher(), InMemoryEventPublisher)

    def test_overrides(self, clock, publisher):
        container = create_in_memory_container(clock=clock, event_publisher=publisher)

        assert container.clock() is clock
        assert container.event_publisher() is publisher


class TestEventPublisherFactory:
    @pytest.mark.parametrize(
        "backend,expected",
        [
            ("logging", LoggingEventPublisher),
            ("Memory", InMemoryEventPublisher),
            (None, LoggingEventPublisher),
        ],
    )
    def test_known_backends(self, backend, expected):
        assert isinstance(get_event_publisher(backend), expected)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown event publisher"):
            get_event_publisher("kafka")


class _BrokenPublisher(InMemoryEventPublisher):
    def publish_batch(self, events):
        raise RuntimeError("broker down")


class TestPublishers:
    def test_logging_publisher(self, caplog):
        publisher = LoggingEventPublisher()

        with caplog.at_level(logging.INFO, logger="src.adapters.django_app.events.publishers"):
            publisher.publish(OfferActivatedEvent(aggregate_id=3))

        assert "OfferActivatedEvent" in caplog.text
        assert "Offer:3" in caplog.text

    def test_local_handler_failure_is_logged(self, caplog):
        publisher = InMemoryEventPublisher()
        seen = []

        def broken(event):
            raise RuntimeError("handler bug")

        publisher.register_handler("OfferActivatedEvent", broken)
        publisher.register_handler("OfferActivatedEvent", seen.append)

        publisher.publish(OfferActivatedEvent(aggregate_id=3))

        assert len(seen) == 1
        assert len(publisher.published_events) == 1
        assert "Handler for OfferActivatedEvent failed" in caplog.text

    def test_composite_keeps_going_after_a_failure(self):
        recorder = InMemoryEventPublisher()
        composite = CompositeEventPublisher([_BrokenPublisher(), recorder])

        composite.publish(OfferActivatedEvent(aggregate_id=3))

        assert len(recorder.published_events) == 1
