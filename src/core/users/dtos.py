"""
DTOs of the users context.

Input DTOs are frozen so validated data cannot change on its way into a
use case. Output DTOs never expose the entity itself.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.core.shared.serialization import isoformat

from .entities import UserEntity


@dataclass(frozen=True)
class RegisterUserInputDTO:
    """
    Attributes:
        email: Contact address, unique
        first_name: First name
        last_name: Last name
        role: "Client" or "SalesAgent"
        user_id: Id issued by the identity provider (optional)
    """

    email: str
    first_name: str
    last_name: str
    role: str = "Client"
    user_id: Optional[str] = None


@dataclass(frozen=True)
class UpdateUserProfileInputDTO:
    user_id: str
    first_name: str
    last_name: str


@dataclass
class UserOutputDTO:
    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_entity(cls, entity: UserEntity) -> "UserOutputDTO":
        return cls(
            id=entity.id,
            email=entity.email,
            first_name=entity.first_name,
            last_name=entity.last_name,
            full_name=entity.full_name,
            role=entity.role.value,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "role": self.role,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
