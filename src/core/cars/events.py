"""
Domain events of the car catalogue.

- CarListedEvent: a car was added to the catalogue
- CarUpdatedEvent: details, agent or availability changed
- CarRemovedEvent: a car and its dependent offers were deleted
- CarInterestRegisteredEvent: a client asked to be called back
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.core.shared.events import DomainEvent


@dataclass
class CarListedEvent(DomainEvent):
    vin_number: str = ""
    display_name: str = ""
    price: Decimal = Decimal("0")
    sales_agent_id: Optional[int] = None

    @property
    def aggregate_type(self) -> str:
        return "Car"


@dataclass
class CarUpdatedEvent(DomainEvent):
    is_available: bool = True
    sales_agent_id: Optional[int] = None
    price: Decimal = Decimal("0")

    @property
    def aggregate_type(self) -> str:
        return "Car"


@dataclass
class CarRemovedEvent(DomainEvent):
    removed_offer_count: int = 0

    @property
    def aggregate_type(self) -> str:
        return "Car"


@dataclass
class CarInterestRegisteredEvent(DomainEvent):
    """
    Handlers typically notify the sales agent in charge of the car.

    Attributes:
        car_id: Car the client is interested in
        user_id: Client that asked for a call
        preferred_call_time: When the client wants to be called
    """

    car_id: int = 0
    user_id: str = ""
    preferred_call_time: Optional[datetime] = None

    @property
    def aggregate_type(self) -> str:
        return "CarInterest"
