"""
DTOs of the car catalogue.

Input DTOs are frozen. Prices may arrive as strings or numbers; the
entity converts them to Decimal. Output DTOs serialize money as strings.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from src.core.shared.serialization import decimal_str, isoformat

from .entities import CarEntity, CarInterestEntity


# =============================================================================
# INPUT DTOs
# =============================================================================

@dataclass(frozen=True)
class CreateCarInputDTO:
    """
    Attributes:
        make: Manufacturer
        model: Model name
        year: Model year
        color: Exterior color
        vin_number: 17-character VIN, unique
        price: List price
        description: Free text shown on the listing
        image_url: Optional picture location
        sales_agent_id: Agent in charge, optional
    """

    make: str
    model: str
    year: int
    color: str
    vin_number: str
    price: object
    description: str
    image_url: Optional[str] = None
    sales_agent_id: Optional[int] = None


@dataclass(frozen=True)
class UpdateCarInputDTO:
    """
    Full edit of a car.

    sales_agent_id None unassigns the agent. is_available None leaves the
    availability untouched.
    """

    car_id: int
    make: str
    model: str
    year: int
    color: str
    price: object
    description: str
    image_url: Optional[str] = None
    sales_agent_id: Optional[int] = None
    is_available: Optional[bool] = None


@dataclass(frozen=True)
class CarQueryDTO:
    """
    Search parameters for the car listing.

    Attributes:
        search_term: Matched against make, model, VIN and description
        make: Exact make (case-insensitive)
        year: Exact model year
        min_price / max_price: Inclusive price bounds
        is_available: Only available or only unavailable cars
        sales_agent_id: Cars managed by this agent
        sort_by: make, model, year or price; anything else sorts newest first
    """

    search_term: Optional[str] = None
    make: Optional[str] = None
    year: Optional[int] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    is_available: Optional[bool] = None
    sales_agent_id: Optional[int] = None
    sort_by: Optional[str] = None
    sort_descending: bool = False
    page_number: int = 1
    page_size: int = 10


@dataclass(frozen=True)
class RegisterCarInterestInputDTO:
    car_id: int
    user_id: str
    preferred_call_time: datetime
    notes: Optional[str] = None
    document_paths: Optional[Sequence[str]] = ()


@dataclass(frozen=True)
class CarInterestQueryDTO:
    """
    Attributes:
        search_term: Matched against client name/email and car make/model
        days: Only interests registered within the last `days` days
    """

    search_term: Optional[str] = None
    days: int = 7
    page_number: int = 1
    page_size: int = 10


# =============================================================================
# OUTPUT DTOs
# =============================================================================

@dataclass
class CarOutputDTO:
    id: int
    make: str
    model: str
    year: int
    color: str
    vin_number: str
    price: Decimal
    description: str
    image_url: Optional[str]
    is_available: bool
    owner_id: Optional[str]
    sales_agent_id: Optional[int]
    display_name: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_entity(cls, entity: CarEntity) -> "CarOutputDTO":
        return cls(
            id=entity.id,
            make=entity.make,
            model=entity.model,
            year=entity.year,
            color=entity.color,
            vin_number=entity.vin_number,
            price=entity.price,
            description=entity.description,
            image_url=entity.image_url,
            is_available=entity.is_available,
            owner_id=entity.owner_id,
            sales_agent_id=entity.sales_agent_id,
            display_name=entity.display_name,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "color": self.color,
            "vin_number": self.vin_number,
            "price": decimal_str(self.price),
            "description": self.description,
            "image_url": self.image_url,
            "is_available": self.is_available,
            "owner_id": self.owner_id,
            "sales_agent_id": self.sales_agent_id,
            "display_name": self.display_name,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


@dataclass
class CarInterestOutputDTO:
    """Interest enriched with the car and client it refers to."""

    id: int
    car_id: int
    car_display_name: str
    user_id: str
    client_name: str
    client_email: str
    preferred_call_time: datetime
    notes: Optional[str]
    created_at: Optional[datetime]
    document_paths: List[str] = field(default_factory=list)

    @classmethod
    def from_entity(
        cls,
        entity: CarInterestEntity,
        car_display_name: str = "",
        client_name: str = "",
        client_email: str = "",
    ) -> "CarInterestOutputDTO":
        return cls(
            id=entity.id,
            car_id=entity.car_id,
            car_display_name=car_display_name,
            user_id=entity.user_id,
            client_name=client_name,
            client_email=client_email,
            preferred_call_time=entity.preferred_call_time,
            notes=entity.notes,
            created_at=entity.created_at,
            document_paths=list(entity.document_paths),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "car_id": self.car_id,
            "car_display_name": self.car_display_name,
            "user_id": self.user_id,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "preferred_call_time": isoformat(self.preferred_call_time),
            "notes": self.notes,
            "document_paths": list(self.document_paths),
            "created_at": isoformat(self.created_at),
        }
