"""
Domain events of the offer lifecycle.

Events:
- OfferCreatedEvent: a new offer was published for a car
- OfferUpdatedEvent: prices, window or capacity changed
- OfferActivatedEvent / OfferDeactivatedEvent: manual toggles
- OfferExpiredEvent: the periodic sweep switched off an offer past its end date
- OfferDeletedEvent: the offer and its applications were removed

Usage:
    with uow:
        offer = OfferEntity.create(...)
        offer_repo.add(offer)
        uow.publish_event(OfferCreatedEvent(aggregate_id=offer.id, ...))
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.core.shared.events import DomainEvent


@dataclass
class OfferCreatedEvent(DomainEvent):
    """
    Handlers typically announce the deal to interested clients.

    Attributes:
        car_id: Car the offer is for
        sales_agent_id: Agent in charge
        discounted_price: Offer price
        discount_percentage: Derived discount
        start_date / end_date: Offer window
    """

    car_id: int = 0
    sales_agent_id: Optional[int] = None
    discounted_price: Decimal = Decimal("0")
    discount_percentage: Decimal = Decimal("0")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @property
    def aggregate_type(self) -> str:
        return "Offer"


@dataclass
class OfferUpdatedEvent(DomainEvent):
    discounted_price: Decimal = Decimal("0")
    max_applications: int = 0

    @property
    def aggregate_type(self) -> str:
        return "Offer"


@dataclass
class OfferActivatedEvent(DomainEvent):
    @property
    def aggregate_type(self) -> str:
        return "Offer"


@dataclass
class OfferDeactivatedEvent(DomainEvent):
    @property
    def aggregate_type(self) -> str:
        return "Offer"


@dataclass
class OfferExpiredEvent(DomainEvent):
    end_date: Optional[datetime] = None
    current_applications: int = 0

    @property
    def aggregate_type(self) -> str:
        return "Offer"


@dataclass
class OfferDeletedEvent(DomainEvent):
    car_id: int = 0
    removed_application_count: int = 0

    @property
    def aggregate_type(self) -> str:
        return "Offer"
