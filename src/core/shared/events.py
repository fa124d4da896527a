"""
Domain events.

Events record something that happened inside an aggregate. They are
queued on the unit of work and published only after a successful commit,
either to the log or to Celery.

Characteristics:
- Named in the past tense (OfferCreated, not CreateOffer)
- Auto-generated id and UTC timestamp
- Serializable for logging and for the broker
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DomainEvent(ABC):
    """
    Abstract base for domain events.

    Attributes:
        event_id: Unique event id
        aggregate_id: Id of the aggregate that raised the event (as string)
        occurred_at: When the event happened (UTC)
        version: Event schema version

    Example:
        @dataclass
        class OfferCreatedEvent(DomainEvent):
            car_id: int = 0

            @property
            def aggregate_type(self) -> str:
                return "Offer"
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    aggregate_id: str = ""
    occurred_at: datetime = field(default_factory=_utcnow)
    version: int = 1

    def __post_init__(self):
        if not self.aggregate_id:
            raise ValueError("aggregate_id is required")
        self.aggregate_id = str(self.aggregate_id)

    @property
    @abstractmethod
    def aggregate_type(self) -> str:
        """Name of the aggregate that raised the event (e.g. "Offer")."""
        ...

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the event.

        Decimal and datetime payload values are converted to strings so the
        result is JSON-safe for the Celery broker.
        """
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "occurred_at": self.occurred_at.isoformat(),
            "version": self.version,
            "data": self._get_event_data(),
        }

    def _get_event_data(self) -> Dict[str, Any]:
        base_fields = {"event_id", "aggregate_id", "occurred_at", "version"}
        data = {}
        for key, value in self.__dict__.items():
            if key in base_fields or key.startswith("_"):
                continue
            if isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[key] = value
        return data

    def __repr__(self) -> str:
        return (
            f"{self.event_type}("
            f"event_id={self.event_id[:8]}..., "
            f"aggregate_id={self.aggregate_id}, "
            f"occurred_at={self.occurred_at.isoformat()}"
            f")"
        )
