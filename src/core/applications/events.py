"""Domain events of the application workflow."""

from dataclasses import dataclass
from typing import Optional

from src.core.shared.events import DomainEvent


@dataclass
class ApplicationSubmittedEvent(DomainEvent):
    """
    A client took a slot of an offer.

    Attributes:
        offer_id: Offer applied to
        user_id: Applicant
        remaining_slots: Slots left on the offer after this application
    """

    offer_id: int = 0
    user_id: str = ""
    remaining_slots: int = 0

    @property
    def aggregate_type(self) -> str:
        return "OfferApplication"


@dataclass
class ApplicationReviewedEvent(DomainEvent):
    """Approved or rejected by a reviewer."""

    offer_id: int = 0
    user_id: str = ""
    status: str = ""
    reviewed_by_user_id: Optional[str] = None

    @property
    def aggregate_type(self) -> str:
        return "OfferApplication"


@dataclass
class ApplicationCancelledEvent(DomainEvent):
    offer_id: int = 0
    user_id: str = ""

    @property
    def aggregate_type(self) -> str:
        return "OfferApplication"
