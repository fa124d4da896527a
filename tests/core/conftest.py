"""
Fixtures of the core test suite.

Everything runs on the in-memory container: in-memory repositories, the
in-memory unit of work, a recording event publisher and a FixedClock.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from src.adapters.django_app.events.publishers import InMemoryEventPublisher
from src.config.container import create_in_memory_container
from src.core.cars.dtos import CreateCarInputDTO
from src.core.offers.dtos import CreateOfferInputDTO
from src.core.shared.clock import FixedClock
from src.core.users.dtos import RegisterUserInputDTO


NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

VIN = "1HGCM82633A004352"


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def container(clock, publisher):
    return create_in_memory_container(clock=clock, event_publisher=publisher)


def car_input(**overrides) -> CreateCarInputDTO:
    fields = {
        "make": "Toyota",
        "model": "Corolla",
        "year": 2024,
        "color": "Blue",
        "vin_number": VIN,
        "price": Decimal("25000"),
        "description": "Low mileage, one owner",
    }
    fields.update(overrides)
    return CreateCarInputDTO(**fields)


def offer_input(car_id: int, start: datetime, **overrides) -> CreateOfferInputDTO:
    fields = {
        "car_id": car_id,
        "title": "Spring deal",
        "description": "Lease a Corolla with 12% off",
        "original_price": Decimal("25000"),
        "discounted_price": Decimal("22000"),
        "start_date": start,
        "end_date": start + timedelta(days=21),
        "terms": "36 months, 10k km per year",
        "max_applications": 5,
    }
    fields.update(overrides)
    return CreateOfferInputDTO(**fields)


@pytest.fixture
def car(container):
    return container.create_car_service().execute(car_input())


@pytest.fixture
def open_offer(container, clock, car):
    """
    Offer(25000 -> 22000, max 5) created today, observed one day later,
    so its window runs from now - 1 day to now + 20 days.
    """
    offer = container.create_offer_service().execute(offer_input(car.id, start=clock.now()))
    clock.advance(days=1)
    return offer


@pytest.fixture
def client(container):
    return container.register_user_service().execute(
        RegisterUserInputDTO(
            email="ana@example.com",
            first_name="Ana",
            last_name="Silva",
            user_id="client-1",
        )
    )
