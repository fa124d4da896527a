"""
Car catalogue entities.

Entities:
- CarEntity: a car listed by the marketplace
- CarInterestEntity: a client's request to be called back about a car

Business rules:
- VIN is 17 characters (no I, O, Q) and never changes after creation
- Price is positive and capped at 1,000,000
- Assigning an owner takes the car off the market
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import ClassVar, List, Optional

from src.core.shared.clock import ensure_utc
from src.core.shared.exceptions import ValidationError
from src.core.shared.validation import (
    optional_positive_id,
    optional_text,
    require_positive_id,
    require_range,
    require_text,
    require_vin,
    require_year,
    to_money,
)


@dataclass
class CarEntity:
    """
    Domain entity: Car.

    Invariants:
    - Make and model have at most 50 characters, color at most 30
    - Year lies in [1900, current year + 1]
    - VIN is unique (enforced by the repository) and immutable
    - 0 < price <= 1,000,000
    - A car with an owner is not available

    Attributes:
        id: Assigned by the repository on insert
        owner_id: User that leased or bought the car
        sales_agent_id: Agent managing the car

    Example:
        car = CarEntity.create(
            make="Toyota",
            model="Corolla",
            year=2024,
            color="Blue",
            vin_number="1HGCM82633A004352",
            price=Decimal("25000"),
            description="Low mileage, one owner",
            now=clock.now(),
        )
        car.assign_sales_agent(3, now=clock.now())
    """

    id: Optional[int] = None
    make: str = ""
    model: str = ""
    year: int = 0
    color: str = ""
    vin_number: str = ""
    price: Decimal = Decimal("0")
    description: str = ""
    image_url: Optional[str] = None
    is_available: bool = True
    owner_id: Optional[str] = None
    sales_agent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    MAKE_MAX_LENGTH: ClassVar[int] = 50
    MODEL_MAX_LENGTH: ClassVar[int] = 50
    COLOR_MAX_LENGTH: ClassVar[int] = 30
    DESCRIPTION_MAX_LENGTH: ClassVar[int] = 1000
    IMAGE_URL_MAX_LENGTH: ClassVar[int] = 500
    MAX_PRICE: ClassVar[Decimal] = Decimal("1000000")

    @classmethod
    def create(
        cls,
        make: str,
        model: str,
        year: int,
        color: str,
        vin_number: str,
        price,
        description: str,
        now: datetime,
        image_url: Optional[str] = None,
        sales_agent_id: Optional[int] = None,
    ) -> "CarEntity":
        """
        Build a validated, available car.

        Raises:
            ValidationError: If any field is invalid
        """
        return cls(
            make=require_text(make, "make", max_length=cls.MAKE_MAX_LENGTH),
            model=require_text(model, "model", max_length=cls.MODEL_MAX_LENGTH),
            year=require_year(year, now),
            color=require_text(color, "color", max_length=cls.COLOR_MAX_LENGTH),
            vin_number=require_vin(vin_number),
            price=cls._validate_price(price),
            description=require_text(
                description, "description", max_length=cls.DESCRIPTION_MAX_LENGTH
            ),
            image_url=optional_text(image_url, "image_url", cls.IMAGE_URL_MAX_LENGTH),
            sales_agent_id=optional_positive_id(sales_agent_id, "sales_agent_id"),
            is_available=True,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def _validate_price(cls, price) -> Decimal:
        value = to_money(price, "price")
        if value <= 0:
            raise ValidationError("Price must be greater than zero", field="price")
        require_range(value, "price", maximum=cls.MAX_PRICE)
        return value

    def update_details(
        self,
        make: str,
        model: str,
        year: int,
        color: str,
        price,
        description: str,
        now: datetime,
        image_url: Optional[str] = None,
    ) -> None:
        """
        Edit the descriptive fields. The VIN cannot be changed.

        All fields are validated before any of them is assigned.
        """
        make = require_text(make, "make", max_length=self.MAKE_MAX_LENGTH)
        model = require_text(model, "model", max_length=self.MODEL_MAX_LENGTH)
        year = require_year(year, now)
        color = require_text(color, "color", max_length=self.COLOR_MAX_LENGTH)
        price = self._validate_price(price)
        description = require_text(
            description, "description", max_length=self.DESCRIPTION_MAX_LENGTH
        )
        image_url = optional_text(image_url, "image_url", self.IMAGE_URL_MAX_LENGTH)

        self.make = make
        self.model = model
        self.year = year
        self.color = color
        self.price = price
        self.description = description
        self.image_url = image_url
        self.updated_at = now

    def assign_to_owner(self, owner_id: str, now: datetime) -> None:
        """Hand the car to a user; it leaves the market."""
        self.owner_id = require_text(owner_id, "owner_id", max_length=64)
        self.is_available = False
        self.updated_at = now

    def make_available(self, now: datetime) -> None:
        """Put the car back on the market, clearing any owner."""
        self.owner_id = None
        self.is_available = True
        self.updated_at = now

    def mark_as_sold(self, now: datetime, owner_id: Optional[str] = None) -> None:
        self.is_available = False
        if owner_id:
            self.owner_id = require_text(owner_id, "owner_id", max_length=64)
        self.updated_at = now

    def set_availability(self, is_available: bool, now: datetime) -> None:
        if is_available:
            self.make_available(now)
        else:
            self.mark_as_sold(now)

    def assign_sales_agent(self, sales_agent_id: int, now: datetime) -> None:
        self.sales_agent_id = require_positive_id(sales_agent_id, "sales_agent_id")
        self.updated_at = now

    def unassign_sales_agent(self, now: datetime) -> None:
        self.sales_agent_id = None
        self.updated_at = now

    @property
    def display_name(self) -> str:
        return f"{self.year} {self.make} {self.model}"

    def __eq__(self, other) -> bool:
        if not isinstance(other, CarEntity):
            return False
        if self.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass
class CarInterestEntity:
    """
    A client asked to be contacted about a car.

    Invariants:
    - car_id > 0 and user_id not blank
    - The preferred call time is not in the past (one minute of tolerance)
    - Notes have at most 500 characters

    Document paths are references to files stored elsewhere; this entity
    never touches file contents.
    """

    id: Optional[int] = None
    car_id: int = 0
    user_id: str = ""
    preferred_call_time: Optional[datetime] = None
    notes: Optional[str] = None
    document_paths: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    NOTES_MAX_LENGTH: ClassVar[int] = 500
    CALL_TIME_TOLERANCE: ClassVar[timedelta] = timedelta(minutes=1)

    @classmethod
    def create(
        cls,
        car_id: int,
        user_id: str,
        preferred_call_time: datetime,
        now: datetime,
        notes: Optional[str] = None,
        document_paths: Optional[List[str]] = None,
    ) -> "CarInterestEntity":
        """
        Raises:
            ValidationError: If any field is invalid
        """
        if preferred_call_time is None:
            raise ValidationError(
                "Preferred call time is required", field="preferred_call_time"
            )
        call_time = ensure_utc(preferred_call_time)
        if call_time <= now - cls.CALL_TIME_TOLERANCE:
            raise ValidationError(
                "Preferred call time must be in the future",
                field="preferred_call_time",
            )

        paths = cls._validate_document_paths(document_paths)

        return cls(
            car_id=require_positive_id(car_id, "car_id"),
            user_id=require_text(user_id, "user_id", max_length=64),
            preferred_call_time=call_time,
            notes=optional_text(notes, "notes", cls.NOTES_MAX_LENGTH),
            document_paths=paths,
            created_at=now,
        )

    @staticmethod
    def _validate_document_paths(document_paths) -> List[str]:
        """Keep the non-blank stored paths; a bare string is not a list of paths."""
        if document_paths is None:
            return []
        if not isinstance(document_paths, (list, tuple)):
            raise ValidationError("Document paths must be a list", field="document_paths")
        if not all(isinstance(path, str) for path in document_paths):
            raise ValidationError(
                "Each document path must be a string", field="document_paths"
            )
        return [path.strip() for path in document_paths if path.strip()]
