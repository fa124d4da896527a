"""
Offer entities: the offer lifecycle engine.

An offer is a time-boxed discount on one car with a limited number of
application slots. The entity guards three groups of invariants:

- Money: both prices positive, discounted strictly below original
- Time: the window ends after it starts and does not start before today
- Capacity: current_applications only grows through increment_applications,
  which refuses when the offer cannot take applications

Time is never read from a global clock; every time-dependent method takes
`now` (an aware UTC datetime).
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import ClassVar, Optional

from src.core.shared.clock import ensure_utc
from src.core.shared.exceptions import InvalidStateError, ValidationError
from src.core.shared.validation import (
    optional_positive_id,
    require_positive_id,
    require_text,
    to_money,
)


class OfferStatusBadge:
    """Labels shown next to an offer, by priority."""

    INACTIVE = "Inactive"
    EXPIRED = "Expired"
    COMING_SOON = "Coming Soon"
    SOLD_OUT = "Sold Out"
    ACTIVE = "Active"


def _to_datetime(value, field_name: str) -> datetime:
    """Accept a datetime or a date (midnight UTC) and return aware UTC."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise ValidationError(f"{field_name.replace('_', ' ').capitalize()} is required", field=field_name)


def compute_discount_percentage(original_price: Decimal, discounted_price: Decimal) -> Decimal:
    """(original - discounted) / original * 100, zero for a non-positive original."""
    if original_price <= 0:
        return Decimal("0")
    return (original_price - discounted_price) / original_price * 100


@dataclass
class OfferEntity:
    """
    Domain entity: Offer.

    Invariants:
    - Title, description and terms are required (100/1000/2000 characters max)
    - 0 < discounted_price < original_price
    - end_date > start_date, and start_date is not before today (UTC)
    - 1 <= max_applications <= 1000
    - 0 <= current_applications <= max_applications
    - discount_percentage is always derived from the two prices

    Attributes:
        id: Assigned by the repository on insert
        version: Optimistic-concurrency token, bumped by the repository on
            every successful update

    Example:
        offer = OfferEntity.create(
            title="Spring deal",
            description="Lease a Corolla with 12% off",
            original_price=Decimal("25000"),
            discounted_price=Decimal("22000"),
            start_date=now,
            end_date=now + timedelta(days=20),
            terms="36 months, 10k km/year",
            max_applications=5,
            car_id=1,
            now=now,
        )
        offer.discount_label  # "12% OFF"
        offer.increment_applications(now)
    """

    id: Optional[int] = None
    car_id: int = 0
    sales_agent_id: Optional[int] = None
    title: str = ""
    description: str = ""
    original_price: Decimal = Decimal("0")
    discounted_price: Decimal = Decimal("0")
    discount_percentage: Decimal = Decimal("0")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    terms: str = ""
    max_applications: int = 1
    current_applications: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 1

    TITLE_MAX_LENGTH: ClassVar[int] = 100
    DESCRIPTION_MAX_LENGTH: ClassVar[int] = 1000
    TERMS_MAX_LENGTH: ClassVar[int] = 2000
    MIN_APPLICATIONS: ClassVar[int] = 1
    MAX_APPLICATIONS: ClassVar[int] = 1000

    @classmethod
    def create(
        cls,
        title: str,
        description: str,
        original_price,
        discounted_price,
        start_date,
        end_date,
        terms: str,
        max_applications: int,
        car_id: int,
        now: datetime,
        sales_agent_id: Optional[int] = None,
    ) -> "OfferEntity":
        """
        Build a validated, active offer with no applications.

        Args:
            title: Headline, at most 100 characters
            description: At most 1000 characters
            original_price: List price, > 0
            discounted_price: Offer price, > 0 and below original_price
            start_date: Window start, not before today (UTC)
            end_date: Window end, after start_date
            terms: Lease conditions, at most 2000 characters
            max_applications: Capacity, 1 to 1000
            car_id: Car the offer is for
            now: Current instant
            sales_agent_id: Agent in charge, optional

        Raises:
            ValidationError: If any field is invalid
        """
        fields = cls._validate(
            title=title,
            description=description,
            original_price=original_price,
            discounted_price=discounted_price,
            start_date=start_date,
            end_date=end_date,
            terms=terms,
            max_applications=max_applications,
            now=now,
        )
        return cls(
            car_id=require_positive_id(car_id, "car_id"),
            sales_agent_id=optional_positive_id(sales_agent_id, "sales_agent_id"),
            current_applications=0,
            is_active=True,
            created_at=now,
            updated_at=now,
            version=1,
            **fields,
        )

    @classmethod
    def _validate(
        cls,
        title,
        description,
        original_price,
        discounted_price,
        start_date,
        end_date,
        terms,
        max_applications,
        now: datetime,
        check_start_in_past: bool = True,
    ) -> dict:
        """Validate every editable field and return them normalized."""
        title = require_text(title, "title", max_length=cls.TITLE_MAX_LENGTH)
        description = require_text(
            description, "description", max_length=cls.DESCRIPTION_MAX_LENGTH
        )
        original, discounted = cls._validate_prices(original_price, discounted_price)
        start, end = cls._validate_dates(start_date, end_date, now, check_start_in_past)
        terms = require_text(terms, "terms", max_length=cls.TERMS_MAX_LENGTH)
        max_applications = cls._validate_max_applications(max_applications)

        return {
            "title": title,
            "description": description,
            "original_price": original,
            "discounted_price": discounted,
            "discount_percentage": compute_discount_percentage(original, discounted),
            "start_date": start,
            "end_date": end,
            "terms": terms,
            "max_applications": max_applications,
        }

    @classmethod
    def _validate_prices(cls, original_price, discounted_price):
        original = to_money(original_price, "original_price")
        discounted = to_money(discounted_price, "discounted_price")
        if original <= 0:
            raise ValidationError(
                "Original price must be greater than zero", field="original_price"
            )
        if discounted <= 0:
            raise ValidationError(
                "Discounted price must be greater than zero", field="discounted_price"
            )
        if discounted >= original:
            raise ValidationError(
                "Discounted price must be less than original price",
                field="discounted_price",
            )
        return original, discounted

    @classmethod
    def _validate_dates(cls, start_date, end_date, now: datetime, check_start_in_past: bool):
        start = _to_datetime(start_date, "start_date")
        end = _to_datetime(end_date, "end_date")
        if end <= start:
            raise ValidationError("End date must be after start date", field="end_date")
        if check_start_in_past and start.date() < ensure_utc(now).date():
            raise ValidationError("Start date cannot be in the past", field="start_date")
        return start, end

    @classmethod
    def _validate_max_applications(cls, max_applications) -> int:
        if isinstance(max_applications, bool) or not isinstance(max_applications, int):
            raise ValidationError(
                "Max applications must be an integer", field="max_applications"
            )
        if max_applications < cls.MIN_APPLICATIONS:
            raise ValidationError(
                "Max applications must be greater than zero", field="max_applications"
            )
        if max_applications > cls.MAX_APPLICATIONS:
            raise ValidationError(
                f"Max applications cannot exceed {cls.MAX_APPLICATIONS}",
                field="max_applications",
            )
        return max_applications

    # =========================================================================
    # Mutators
    # =========================================================================

    def update(
        self,
        title: str,
        description: str,
        original_price,
        discounted_price,
        start_date,
        end_date,
        terms: str,
        max_applications: int,
        now: datetime,
    ) -> None:
        """
        Replace the editable fields and recompute the discount.

        Runs the creation rules again. A start date that is kept as it was
        may lie in the past, so an offer that already started stays
        editable. Capacity cannot drop below the applications already taken.

        Raises:
            ValidationError: If any field is invalid
        """
        start = _to_datetime(start_date, "start_date")
        fields = self._validate(
            title=title,
            description=description,
            original_price=original_price,
            discounted_price=discounted_price,
            start_date=start,
            end_date=end_date,
            terms=terms,
            max_applications=max_applications,
            now=now,
            check_start_in_past=start != self.start_date,
        )
        if fields["max_applications"] < self.current_applications:
            raise ValidationError(
                f"Max applications cannot be lower than the {self.current_applications} "
                f"applications already received",
                field="max_applications",
            )

        for name, value in fields.items():
            setattr(self, name, value)
        self.updated_at = now

    def activate(self, now: datetime) -> None:
        self.is_active = True
        self.updated_at = now

    def deactivate(self, now: datetime) -> None:
        self.is_active = False
        self.updated_at = now

    def unassign_sales_agent(self, now: datetime) -> None:
        self.sales_agent_id = None
        self.updated_at = now

    def increment_applications(self, now: datetime) -> None:
        """
        Consume one application slot.

        Raises:
            InvalidStateError: If the offer is inactive, outside its window
                or full
        """
        if not self.can_apply(now):
            raise InvalidStateError(
                f"Offer {self.id} cannot take applications ({self.status_badge(now)})",
                rule="offer_not_open",
            )
        self.current_applications += 1
        self.updated_at = now

    # =========================================================================
    # Queries
    # =========================================================================

    def can_apply(self, now: datetime) -> bool:
        now = ensure_utc(now)
        return (
            self.is_active
            and self.start_date <= now <= self.end_date
            and self.current_applications < self.max_applications
        )

    def is_expired(self, now: datetime) -> bool:
        return ensure_utc(now) > self.end_date

    def has_started(self, now: datetime) -> bool:
        return ensure_utc(now) >= self.start_date

    def status_badge(self, now: datetime) -> str:
        if not self.is_active:
            return OfferStatusBadge.INACTIVE
        if self.is_expired(now):
            return OfferStatusBadge.EXPIRED
        if not self.has_started(now):
            return OfferStatusBadge.COMING_SOON
        if self.remaining_slots <= 0:
            return OfferStatusBadge.SOLD_OUT
        return OfferStatusBadge.ACTIVE

    def time_remaining(self, now: datetime) -> str:
        """Human readable countdown to the start or the end of the window."""
        now = ensure_utc(now)
        if self.is_expired(now):
            return "Expired"
        if not self.has_started(now):
            delta = self.start_date - now
            if delta.days > 0:
                return f"Starts in {delta.days} days"
            if delta.seconds // 3600 > 0:
                return f"Starts in {delta.seconds // 3600} hours"
            return "Starting soon"

        delta = self.end_date - now
        if delta.days > 0:
            return f"{delta.days} days left"
        if delta.seconds // 3600 > 0:
            return f"{delta.seconds // 3600} hours left"
        if delta.seconds // 60 > 0:
            return f"{delta.seconds // 60} minutes left"
        return "Ending soon"

    @property
    def remaining_slots(self) -> int:
        return self.max_applications - self.current_applications

    @property
    def discount_label(self) -> str:
        """Discount rounded half-up to a whole percent, e.g. "12% OFF"."""
        whole = self.discount_percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return f"{whole}% OFF"

    @property
    def savings(self) -> Decimal:
        return self.original_price - self.discounted_price

    def __eq__(self, other) -> bool:
        if not isinstance(other, OfferEntity):
            return False
        if self.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
