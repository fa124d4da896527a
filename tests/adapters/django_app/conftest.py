"""
Fixtures of the Django adapter tests.

Django is configured by pytest-django from DJANGO_SETTINGS_MODULE
(src.config.settings_test): sqlite in memory, tables built from the
marketplace migrations.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from dependency_injector import providers
from django.contrib.auth import get_user_model
from django.test import Client
from django.utils import timezone

from src.adapters.django_app.events.publishers import InMemoryEventPublisher
from src.config.container import get_container, reset_container
from src.core.users.dtos import RegisterUserInputDTO


VIN = "1HGCM82633A004352"


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def container(publisher):
    """Global container on the Django adapters, recording events in memory."""
    reset_container()
    container = get_container()
    container.event_publisher.override(providers.Object(publisher))
    yield container
    reset_container()


def _register(container, user, role):
    container.register_user_service().execute(
        RegisterUserInputDTO(
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=role,
            user_id=str(user.pk),
        )
    )
    return user


@pytest.fixture
def agent_user(db, container):
    user = get_user_model().objects.create_user(
        username="maria",
        email="maria@autolease.test",
        password="secret-pass",
        first_name="Maria",
        last_name="Lopez",
    )
    return _register(container, user, "SalesAgent")


@pytest.fixture
def client_user(db, container):
    user = get_user_model().objects.create_user(
        username="ana",
        email="ana@example.com",
        password="secret-pass",
        first_name="Ana",
        last_name="Silva",
    )
    return _register(container, user, "Client")


@pytest.fixture
def anonymous():
    return Client()


@pytest.fixture
def as_agent(agent_user):
    client = Client()
    client.force_login(agent_user)
    return client


@pytest.fixture
def as_client(client_user):
    client = Client()
    client.force_login(client_user)
    return client


def car_payload(**overrides) -> dict:
    payload = {
        "make": "Toyota",
        "model": "Corolla",
        "year": 2024,
        "color": "Blue",
        "vin_number": VIN,
        "price": "25000.00",
        "description": "Low mileage, one owner",
    }
    payload.update(overrides)
    return payload


def offer_payload(car_id: int, **overrides) -> dict:
    start = timezone.now()
    payload = {
        "car_id": car_id,
        "title": "Spring deal",
        "description": "Lease a Corolla with 12% off",
        "original_price": "25000",
        "discounted_price": "22000",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=21)).isoformat(),
        "terms": "36 months, 10k km per year",
        "max_applications": 5,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def car_entity_fields():
    return {
        "make": "Toyota",
        "model": "Corolla",
        "year": 2024,
        "color": "Blue",
        "vin_number": VIN,
        "price": Decimal("25000"),
        "description": "Low mileage",
    }
