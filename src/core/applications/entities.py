"""
Offer application entities: the application workflow state machine.

Status flow:

    PENDING ──approve──► APPROVED
       │
       ├────reject────► REJECTED
       │
       └────cancel────► CANCELLED

The three destination states are terminal: any further transition is
refused with InvalidStateError, never ignored.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from src.core.shared.exceptions import InvalidStateError, ValidationError
from src.core.shared.validation import optional_text, require_positive_id, require_text


class ApplicationStatus(Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self != ApplicationStatus.PENDING

    @classmethod
    def from_string(cls, value: str) -> "ApplicationStatus":
        """
        Parse a status by name ("APPROVED") or value ("Approved").

        Raises:
            ValidationError: If the status is unknown
        """
        if isinstance(value, cls):
            return value
        for status in cls:
            if (value or "").strip().lower() in (status.name.lower(), status.value.lower()):
                return status
        raise ValidationError(f"Unknown application status: {value}", field="status")


@dataclass
class OfferApplicationEntity:
    """
    Domain entity: OfferApplication.

    A client's request to take one slot of an offer. At most one
    application exists per (offer_id, user_id); the repository enforces it.

    Invariants:
    - offer_id > 0 and user_id not blank
    - Notes and review notes have at most 500 characters
    - Approve and reject record the reviewer; cancel does not
    - reviewed_at is set exactly when the status leaves PENDING

    Example:
        application = OfferApplicationEntity.submit(
            offer_id=7, user_id="user-1", notes="Call me after 6pm", now=now
        )
        application.approve("agent-user-3", review_notes="Docs ok", now=now)
        application.cancel(now)  # InvalidStateError
    """

    id: Optional[int] = None
    offer_id: int = 0
    user_id: str = ""
    application_date: Optional[datetime] = None
    status: ApplicationStatus = ApplicationStatus.PENDING
    notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    reviewed_by_user_id: Optional[str] = None

    NOTES_MAX_LENGTH: ClassVar[int] = 500

    @classmethod
    def submit(
        cls,
        offer_id: int,
        user_id: str,
        now: datetime,
        notes: Optional[str] = None,
    ) -> "OfferApplicationEntity":
        """
        Build a pending application.

        The caller is responsible for checking the offer can take it and
        for consuming the slot in the same transaction.

        Raises:
            ValidationError: If offer_id, user_id or notes are invalid
        """
        return cls(
            offer_id=require_positive_id(offer_id, "offer_id"),
            user_id=require_text(user_id, "user_id", max_length=64),
            notes=optional_text(notes, "notes", cls.NOTES_MAX_LENGTH),
            application_date=now,
            status=ApplicationStatus.PENDING,
        )

    def _ensure_pending(self, action: str) -> None:
        if self.status != ApplicationStatus.PENDING:
            raise InvalidStateError(
                f"Cannot {action} application {self.id}: it is already "
                f"{self.status.value}",
                rule=f"{action}_requires_pending",
            )

    def _review(
        self,
        status: ApplicationStatus,
        reviewer_user_id: str,
        review_notes: Optional[str],
        now: datetime,
        action: str,
    ) -> None:
        self._ensure_pending(action)
        reviewer = require_text(reviewer_user_id, "reviewed_by_user_id", max_length=64)
        notes = optional_text(review_notes, "review_notes", self.NOTES_MAX_LENGTH)

        self.status = status
        self.reviewed_by_user_id = reviewer
        self.review_notes = notes
        self.reviewed_at = now

    def approve(
        self, reviewer_user_id: str, now: datetime, review_notes: Optional[str] = None
    ) -> None:
        """
        Raises:
            InvalidStateError: If the application is not pending
            ValidationError: If the reviewer id is blank
        """
        self._review(ApplicationStatus.APPROVED, reviewer_user_id, review_notes, now, "approve")

    def reject(
        self, reviewer_user_id: str, now: datetime, review_notes: Optional[str] = None
    ) -> None:
        self._review(ApplicationStatus.REJECTED, reviewer_user_id, review_notes, now, "reject")

    def cancel(self, now: datetime) -> None:
        """Withdraw the application. No reviewer is recorded."""
        self._ensure_pending("cancel")
        self.status = ApplicationStatus.CANCELLED
        self.reviewed_at = now

    @property
    def is_pending(self) -> bool:
        return self.status == ApplicationStatus.PENDING

    def __eq__(self, other) -> bool:
        if not isinstance(other, OfferApplicationEntity):
            return False
        if self.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
