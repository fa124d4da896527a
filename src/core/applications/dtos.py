"""DTOs of the application workflow."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.core.shared.serialization import isoformat

from .entities import OfferApplicationEntity


# =============================================================================
# INPUT DTOs
# =============================================================================

@dataclass(frozen=True)
class SubmitApplicationInputDTO:
    """
    Attributes:
        offer_id: Offer to apply to
        user_id: Authenticated applicant, supplied by the identity provider
        notes: Optional message for the sales agent (max 500 chars)
    """

    offer_id: int
    user_id: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class ReviewApplicationInputDTO:
    """Input of both approve and reject."""

    application_id: int
    reviewer_user_id: str
    review_notes: Optional[str] = None


@dataclass(frozen=True)
class CancelApplicationInputDTO:
    application_id: int
    user_id: str


# =============================================================================
# OUTPUT DTOs
# =============================================================================

@dataclass
class ApplicationOutputDTO:
    id: int
    offer_id: int
    user_id: str
    status: str
    application_date: Optional[datetime]
    notes: Optional[str]
    reviewed_at: Optional[datetime]
    review_notes: Optional[str]
    reviewed_by_user_id: Optional[str]

    @classmethod
    def from_entity(cls, entity: OfferApplicationEntity) -> "ApplicationOutputDTO":
        return cls(
            id=entity.id,
            offer_id=entity.offer_id,
            user_id=entity.user_id,
            status=entity.status.value,
            application_date=entity.application_date,
            notes=entity.notes,
            reviewed_at=entity.reviewed_at,
            review_notes=entity.review_notes,
            reviewed_by_user_id=entity.reviewed_by_user_id,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "offer_id": self.offer_id,
            "user_id": self.user_id,
            "status": self.status,
            "application_date": isoformat(self.application_date),
            "notes": self.notes,
            "reviewed_at": isoformat(self.reviewed_at),
            "review_notes": self.review_notes,
            "reviewed_by_user_id": self.reviewed_by_user_id,
        }
