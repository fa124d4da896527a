"""
User entities.

A user is a person known to the marketplace. Authentication (passwords,
sessions) belongs to the identity provider; the domain only keeps the
profile and the role that decides what the user may do.

Entities:
- UserEntity: profile with role
- UserRole: Client or SalesAgent
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional
import uuid

from src.core.shared.exceptions import ValidationError
from src.core.shared.validation import require_email, require_text


class UserRole(Enum):
    """Roles handed out by the identity provider."""

    CLIENT = "Client"
    SALES_AGENT = "SalesAgent"

    @classmethod
    def from_string(cls, value: str) -> "UserRole":
        """
        Parse a role by name ("SALES_AGENT") or value ("SalesAgent").

        Raises:
            ValidationError: If the role is unknown
        """
        if isinstance(value, cls):
            return value
        normalized = (value or "").replace("_", "").replace(" ", "").lower()
        for role in cls:
            if role.value.lower() == normalized or role.name.replace("_", "").lower() == normalized:
                return role
        raise ValidationError(f"Unknown role: {value}", field="role")


@dataclass
class UserEntity:
    """
    Domain entity: User.

    Invariants:
    - Email is required, contains "@" and is unique (enforced by the repository)
    - First and last name have 2 to 50 characters
    - The email doubles as the user name

    Example:
        user = UserEntity.create(
            email="ana@example.com",
            first_name="Ana",
            last_name="Silva",
            role=UserRole.CLIENT,
            now=clock.now(),
        )
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: UserRole = UserRole.CLIENT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    NAME_MIN_LENGTH: ClassVar[int] = 2
    NAME_MAX_LENGTH: ClassVar[int] = 50
    EMAIL_MAX_LENGTH: ClassVar[int] = 256

    @classmethod
    def create(
        cls,
        email: str,
        first_name: str,
        last_name: str,
        now: datetime,
        role: UserRole = UserRole.CLIENT,
        user_id: Optional[str] = None,
    ) -> "UserEntity":
        """
        Build a validated user.

        Args:
            email: Contact address, also used as user name
            first_name: 2 to 50 characters
            last_name: 2 to 50 characters
            now: Creation instant
            role: Client by default
            user_id: Id issued by the identity provider; a UUID is generated when omitted

        Raises:
            ValidationError: If any field is invalid
        """
        user = cls(
            email=require_email(email, max_length=cls.EMAIL_MAX_LENGTH),
            first_name=cls._validate_name(first_name, "first_name"),
            last_name=cls._validate_name(last_name, "last_name"),
            role=UserRole.from_string(role),
            created_at=now,
            updated_at=now,
        )
        if user_id is not None:
            user.id = require_text(user_id, "user_id", max_length=64)
        return user

    @classmethod
    def _validate_name(cls, value: str, field_name: str) -> str:
        return require_text(
            value,
            field_name,
            max_length=cls.NAME_MAX_LENGTH,
            min_length=cls.NAME_MIN_LENGTH,
        )

    def update_profile(self, first_name: str, last_name: str, now: datetime) -> None:
        self.first_name = self._validate_name(first_name, "first_name")
        self.last_name = self._validate_name(last_name, "last_name")
        self.updated_at = now

    def change_role(self, role: UserRole, now: datetime) -> None:
        self.role = UserRole.from_string(role)
        self.updated_at = now

    @property
    def username(self) -> str:
        return self.email

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_sales_agent(self) -> bool:
        return self.role == UserRole.SALES_AGENT

    def __eq__(self, other) -> bool:
        if not isinstance(other, UserEntity):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
