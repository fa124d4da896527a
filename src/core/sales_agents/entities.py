"""
Sales agent entities.

A sales agent manages cars and offers and earns a commission on closed
deals. The agent may be linked to a User account (one account per agent).
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Optional

from src.core.shared.exceptions import ValidationError
from src.core.shared.validation import (
    optional_text,
    require_email,
    require_phone,
    require_range,
    require_text,
    to_decimal,
)


@dataclass
class SalesAgentEntity:
    """
    Domain entity: SalesAgent.

    Invariants:
    - First and last name have 2 to 50 characters
    - Email contains "@", at most 100 characters, unique per agent
    - Phone number has 10 to 15 characters
    - Department is required, at most 50 characters
    - Commission rate is a percentage between 0 and 50
    - A linked user id is unique across agents (enforced by the repository)

    Attributes:
        id: Assigned by the repository on insert
        commission_rate: Percentage, e.g. Decimal("7.5")
        hire_date: Set at creation
        user_id: Linked user account, optional

    Example:
        agent = SalesAgentEntity.create(
            first_name="Maria",
            last_name="Lopez",
            email="maria@autolease.test",
            phone_number="5551234567",
            department="Leasing",
            commission_rate=Decimal("5"),
            now=clock.now(),
        )
        agent.calculate_commission(Decimal("20000"))  # Decimal("1000")
    """

    id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone_number: str = ""
    department: str = ""
    commission_rate: Decimal = Decimal("0")
    biography: Optional[str] = None
    hire_date: Optional[datetime] = None
    is_active: bool = True
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    NAME_MIN_LENGTH: ClassVar[int] = 2
    NAME_MAX_LENGTH: ClassVar[int] = 50
    EMAIL_MAX_LENGTH: ClassVar[int] = 100
    DEPARTMENT_MAX_LENGTH: ClassVar[int] = 50
    BIOGRAPHY_MAX_LENGTH: ClassVar[int] = 2000
    MIN_COMMISSION_RATE: ClassVar[Decimal] = Decimal("0")
    MAX_COMMISSION_RATE: ClassVar[Decimal] = Decimal("50")

    @classmethod
    def create(
        cls,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: str,
        department: str,
        commission_rate,
        now: datetime,
        biography: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> "SalesAgentEntity":
        """
        Build a validated, active sales agent hired at `now`.

        Raises:
            ValidationError: If any field is invalid
        """
        agent = cls(
            first_name=cls._validate_name(first_name, "first_name"),
            last_name=cls._validate_name(last_name, "last_name"),
            email=require_email(email, max_length=cls.EMAIL_MAX_LENGTH),
            phone_number=require_phone(phone_number),
            department=cls._validate_department(department),
            commission_rate=cls._validate_commission_rate(commission_rate),
            biography=optional_text(biography, "biography", cls.BIOGRAPHY_MAX_LENGTH),
            user_id=cls._validate_user_id(user_id) if user_id is not None else None,
            hire_date=now,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        return agent

    @classmethod
    def _validate_name(cls, value: str, field_name: str) -> str:
        return require_text(
            value,
            field_name,
            max_length=cls.NAME_MAX_LENGTH,
            min_length=cls.NAME_MIN_LENGTH,
        )

    @classmethod
    def _validate_department(cls, department: str) -> str:
        return require_text(department, "department", max_length=cls.DEPARTMENT_MAX_LENGTH)

    @classmethod
    def _validate_commission_rate(cls, commission_rate) -> Decimal:
        rate = to_decimal(commission_rate, "commission_rate", decimal_places=2)
        require_range(
            rate,
            "commission_rate",
            minimum=cls.MIN_COMMISSION_RATE,
            maximum=cls.MAX_COMMISSION_RATE,
        )
        return rate

    @classmethod
    def _validate_user_id(cls, user_id: str) -> str:
        return require_text(user_id, "user_id", max_length=64)

    def update_profile(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: str,
        department: str,
        now: datetime,
    ) -> None:
        """Replace the contact details; every field is re-validated."""
        first_name = self._validate_name(first_name, "first_name")
        last_name = self._validate_name(last_name, "last_name")
        email = require_email(email, max_length=self.EMAIL_MAX_LENGTH)
        phone_number = require_phone(phone_number)
        department = self._validate_department(department)

        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.phone_number = phone_number
        self.department = department
        self.updated_at = now

    def update_details(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: str,
        department: str,
        commission_rate,
        now: datetime,
        biography: Optional[str] = None,
    ) -> None:
        """
        Full edit: profile, commission rate and biography.

        Validation runs before any field changes, so a failure leaves the
        agent untouched.
        """
        rate = self._validate_commission_rate(commission_rate)
        bio = optional_text(biography, "biography", self.BIOGRAPHY_MAX_LENGTH)
        self.update_profile(first_name, last_name, email, phone_number, department, now)
        self.commission_rate = rate
        self.biography = bio

    def update_commission_rate(self, commission_rate, now: datetime) -> None:
        self.commission_rate = self._validate_commission_rate(commission_rate)
        self.updated_at = now

    def activate(self, now: datetime) -> None:
        self.is_active = True
        self.updated_at = now

    def deactivate(self, now: datetime) -> None:
        self.is_active = False
        self.updated_at = now

    def assign_user(self, user_id: str, now: datetime) -> None:
        self.user_id = self._validate_user_id(user_id)
        self.updated_at = now

    def unassign_user(self, now: datetime) -> None:
        self.user_id = None
        self.updated_at = now

    def calculate_commission(self, sale_amount) -> Decimal:
        """
        Commission earned on a sale.

        Raises:
            ValidationError: If the amount is not positive
        """
        amount = to_decimal(sale_amount, "sale_amount")
        if amount <= 0:
            raise ValidationError("Sale amount must be positive", field="sale_amount")
        return amount * self.commission_rate / Decimal("100")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __eq__(self, other) -> bool:
        if not isinstance(other, SalesAgentEntity):
            return False
        if self.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
