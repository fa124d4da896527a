"""
DTOs of the offer lifecycle.

Output DTOs are built for a given instant, because several fields
(can_apply, status_badge, time_remaining) depend on the current time.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.core.shared.serialization import decimal_str, isoformat

from .entities import OfferEntity


# =============================================================================
# INPUT DTOs
# =============================================================================

@dataclass(frozen=True)
class CreateOfferInputDTO:
    """
    Attributes:
        car_id: Car the offer is for; must exist and be available
        title: Headline
        description: Body text
        original_price: List price
        discounted_price: Offer price
        start_date: Window start
        end_date: Window end
        terms: Lease conditions
        max_applications: Capacity
        sales_agent_id: Agent in charge, optional
    """

    car_id: int
    title: str
    description: str
    original_price: object
    discounted_price: object
    start_date: datetime
    end_date: datetime
    terms: str
    max_applications: int
    sales_agent_id: Optional[int] = None


@dataclass(frozen=True)
class UpdateOfferInputDTO:
    offer_id: int
    title: str
    description: str
    original_price: object
    discounted_price: object
    start_date: datetime
    end_date: datetime
    terms: str
    max_applications: int


@dataclass(frozen=True)
class OfferQueryDTO:
    """
    Search parameters for the offer listing.

    Attributes:
        search_term: Matched against title, description and the car's make/model
        min_discount: Minimum discount percentage
        max_price: Maximum discounted price
        is_active: True for open offers (active and inside the window),
            False for inactive or expired ones
        car_id: Offers for this car
        sales_agent_id: Offers managed by this agent
        sort_by: title, discount, price, startdate, enddate; anything else
            sorts newest first
    """

    search_term: Optional[str] = None
    min_discount: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    is_active: Optional[bool] = None
    car_id: Optional[int] = None
    sales_agent_id: Optional[int] = None
    sort_by: Optional[str] = None
    sort_descending: bool = False
    page_number: int = 1
    page_size: int = 12


# =============================================================================
# OUTPUT DTOs
# =============================================================================

@dataclass
class OfferOutputDTO:
    id: int
    car_id: int
    sales_agent_id: Optional[int]
    title: str
    description: str
    original_price: Decimal
    discounted_price: Decimal
    discount_percentage: Decimal
    discount_label: str
    savings: Decimal
    start_date: datetime
    end_date: datetime
    terms: str
    max_applications: int
    current_applications: int
    remaining_slots: int
    is_active: bool
    is_expired: bool
    has_started: bool
    can_apply: bool
    status_badge: str
    time_remaining: str
    version: int
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_entity(cls, entity: OfferEntity, now: datetime) -> "OfferOutputDTO":
        return cls(
            id=entity.id,
            car_id=entity.car_id,
            sales_agent_id=entity.sales_agent_id,
            title=entity.title,
            description=entity.description,
            original_price=entity.original_price,
            discounted_price=entity.discounted_price,
            discount_percentage=entity.discount_percentage,
            discount_label=entity.discount_label,
            savings=entity.savings,
            start_date=entity.start_date,
            end_date=entity.end_date,
            terms=entity.terms,
            max_applications=entity.max_applications,
            current_applications=entity.current_applications,
            remaining_slots=entity.remaining_slots,
            is_active=entity.is_active,
            is_expired=entity.is_expired(now),
            has_started=entity.has_started(now),
            can_apply=entity.can_apply(now),
            status_badge=entity.status_badge(now),
            time_remaining=entity.time_remaining(now),
            version=entity.version,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "car_id": self.car_id,
            "sales_agent_id": self.sales_agent_id,
            "title": self.title,
            "description": self.description,
            "original_price": decimal_str(self.original_price),
            "discounted_price": decimal_str(self.discounted_price),
            "discount_percentage": decimal_str(self.discount_percentage),
            "discount_label": self.discount_label,
            "savings": decimal_str(self.savings),
            "start_date": isoformat(self.start_date),
            "end_date": isoformat(self.end_date),
            "terms": self.terms,
            "max_applications": self.max_applications,
            "current_applications": self.current_applications,
            "remaining_slots": self.remaining_slots,
            "is_active": self.is_active,
            "is_expired": self.is_expired,
            "has_started": self.has_started,
            "can_apply": self.can_apply,
            "status_badge": self.status_badge,
            "time_remaining": self.time_remaining,
            "version": self.version,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
