"""Domain events of the users context."""

from dataclasses import dataclass

from src.core.shared.events import DomainEvent


@dataclass
class UserRegisteredEvent(DomainEvent):
    """A new user profile was registered."""

    email: str = ""
    role: str = ""

    @property
    def aggregate_type(self) -> str:
        return "User"


@dataclass
class UserProfileUpdatedEvent(DomainEvent):
    first_name: str = ""
    last_name: str = ""

    @property
    def aggregate_type(self) -> str:
        return "User"
