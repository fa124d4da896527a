"""Domain events of the sales agents context."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from src.core.shared.events import DomainEvent


@dataclass
class SalesAgentHiredEvent(DomainEvent):
    """
    A sales agent was created.

    Attributes:
        email: Contact address of the agent
        department: Department the agent works in
        user_id: Linked user account, if any
    """

    email: str = ""
    department: str = ""
    user_id: Optional[str] = None

    @property
    def aggregate_type(self) -> str:
        return "SalesAgent"


@dataclass
class SalesAgentUpdatedEvent(DomainEvent):
    commission_rate: Decimal = Decimal("0")
    user_id: Optional[str] = None

    @property
    def aggregate_type(self) -> str:
        return "SalesAgent"


@dataclass
class SalesAgentRemovedEvent(DomainEvent):
    unassigned_car_ids: tuple = ()

    @property
    def aggregate_type(self) -> str:
        return "SalesAgent"

    def _get_event_data(self):
        return {"unassigned_car_ids": list(self.unassigned_car_ids)}
