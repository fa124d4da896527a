"""
DTOs of the sales agents context.

Commission rates arrive as strings or numbers and are converted to
Decimal by the entity; outputs serialize them back to strings.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.core.shared.serialization import decimal_str, isoformat

from .entities import SalesAgentEntity


# =============================================================================
# INPUT DTOs
# =============================================================================

@dataclass(frozen=True)
class CreateSalesAgentInputDTO:
    first_name: str
    last_name: str
    email: str
    phone_number: str
    department: str
    commission_rate: object
    biography: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class UpdateSalesAgentInputDTO:
    """
    Full replacement of an agent's editable data.

    An empty user_id unlinks the user account.
    """

    sales_agent_id: int
    first_name: str
    last_name: str
    email: str
    phone_number: str
    department: str
    commission_rate: object
    biography: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class SalesAgentQueryDTO:
    """
    Search parameters for the sales agents listing.

    Attributes:
        search_term: Matched against first/last name, email and department
        department: Exact department (case-insensitive)
        min_commission_rate: Lower bound on the rate
        is_active: Only active or only inactive agents
        sort_by: firstname, lastname, department, commissionrate, assignedcars
        sort_descending: Direction for a known sort key
    """

    search_term: Optional[str] = None
    department: Optional[str] = None
    min_commission_rate: Optional[Decimal] = None
    is_active: Optional[bool] = None
    sort_by: Optional[str] = None
    sort_descending: bool = False
    page_number: int = 1
    page_size: int = 10


# =============================================================================
# OUTPUT DTOs
# =============================================================================

@dataclass
class SalesAgentOutputDTO:
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone_number: str
    department: str
    commission_rate: Decimal
    biography: Optional[str]
    hire_date: Optional[datetime]
    is_active: bool
    user_id: Optional[str]
    assigned_car_count: int
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_entity(
        cls, entity: SalesAgentEntity, assigned_car_count: int = 0
    ) -> "SalesAgentOutputDTO":
        return cls(
            id=entity.id,
            first_name=entity.first_name,
            last_name=entity.last_name,
            full_name=entity.full_name,
            email=entity.email,
            phone_number=entity.phone_number,
            department=entity.department,
            commission_rate=entity.commission_rate,
            biography=entity.biography,
            hire_date=entity.hire_date,
            is_active=entity.is_active,
            user_id=entity.user_id,
            assigned_car_count=assigned_car_count,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "department": self.department,
            "commission_rate": decimal_str(self.commission_rate),
            "biography": self.biography,
            "hire_date": isoformat(self.hire_date),
            "is_active": self.is_active,
            "user_id": self.user_id,
            "assigned_car_count": self.assigned_car_count,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
