"""
Mappers between core entities and Django models.

Mappers are stateless and hold no business rules. Loading builds the
entity directly (bypassing the `create` factories) because stored rows
were validated when they were written. The one exception is the offer's
discount percentage, which is recomputed from the stored prices so the
entity never carries a rounded copy.
"""

from src.core.applications.entities import ApplicationStatus, OfferApplicationEntity
from src.core.cars.entities import CarEntity, CarInterestEntity
from src.core.offers.entities import OfferEntity, compute_discount_percentage
from src.core.sales_agents.entities import SalesAgentEntity
from src.core.shared.clock import ensure_utc
from src.core.users.entities import UserEntity, UserRole

from .models import (
    CarInterestModel,
    CarModel,
    OfferApplicationModel,
    OfferModel,
    SalesAgentModel,
    UserProfileModel,
)


def _utc(value):
    return ensure_utc(value) if value is not None else None


class UserMapper:
    @staticmethod
    def to_entity(model: UserProfileModel) -> UserEntity:
        return UserEntity(
            id=model.id,
            email=model.email,
            first_name=model.first_name,
            last_name=model.last_name,
            role=UserRole(model.role),
            created_at=_utc(model.created_at),
            updated_at=_utc(model.updated_at),
        )

    @staticmethod
    def to_fields(entity: UserEntity) -> dict:
        return {
            "email": entity.email,
            "first_name": entity.first_name,
            "last_name": entity.last_name,
            "role": entity.role.value,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }


class SalesAgentMapper:
    @staticmethod
    def to_entity(model: SalesAgentModel) -> SalesAgentEntity:
        return SalesAgentEntity(
            id=model.id,
            first_name=model.first_name,
            last_name=model.last_name,
            email=model.email,
            phone_number=model.phone_number,
            department=model.department,
            commission_rate=model.commission_rate,
            biography=model.biography,
            hire_date=_utc(model.hire_date),
            is_active=model.is_active,
            user_id=model.user_id,
            created_at=_utc(model.created_at),
            updated_at=_utc(model.updated_at),
        )

    @staticmethod
    def to_fields(entity: SalesAgentEntity) -> dict:
        return {
            "first_name": entity.first_name,
            "last_name": entity.last_name,
            "email": entity.email,
            "phone_number": entity.phone_number,
            "department": entity.department,
            "commission_rate": entity.commission_rate,
            "biography": entity.biography,
            "hire_date": entity.hire_date,
            "is_active": entity.is_active,
            "user_id": entity.user_id,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }


class CarMapper:
    @staticmethod
    def to_entity(model: CarModel) -> CarEntity:
        return CarEntity(
            id=model.id,
            make=model.make,
            model=model.model,
            year=model.year,
            color=model.color,
            vin_number=model.vin_number,
            price=model.price,
            description=model.description,
            image_url=model.image_url,
            is_available=model.is_available,
            owner_id=model.owner_id,
            sales_agent_id=model.sales_agent_id,
            created_at=_utc(model.created_at),
            updated_at=_utc(model.updated_at),
        )

    @staticmethod
    def to_fields(entity: CarEntity) -> dict:
        return {
            "make": entity.make,
            "model": entity.model,
            "year": entity.year,
            "color": entity.color,
            "vin_number": entity.vin_number,
            "price": entity.price,
            "description": entity.description,
            "image_url": entity.image_url,
            "is_available": entity.is_available,
            "owner_id": entity.owner_id,
            "sales_agent_id": entity.sales_agent_id,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }


class CarInterestMapper:
    @staticmethod
    def to_entity(model: CarInterestModel) -> CarInterestEntity:
        return CarInterestEntity(
            id=model.id,
            car_id=model.car_id,
            user_id=model.user_id,
            preferred_call_time=_utc(model.preferred_call_time),
            notes=model.notes,
            document_paths=list(model.document_paths or []),
            created_at=_utc(model.created_at),
        )

    @staticmethod
    def to_fields(entity: CarInterestEntity) -> dict:
        return {
            "car_id": entity.car_id,
            "user_id": entity.user_id,
            "preferred_call_time": entity.preferred_call_time,
            "notes": entity.notes,
            "document_paths": list(entity.document_paths),
            "created_at": entity.created_at,
        }


class OfferMapper:
    @staticmethod
    def to_entity(model: OfferModel) -> OfferEntity:
        return OfferEntity(
            id=model.id,
            car_id=model.car_id,
            sales_agent_id=model.sales_agent_id,
            title=model.title,
            description=model.description,
            original_price=model.original_price,
            discounted_price=model.discounted_price,
            discount_percentage=compute_discount_percentage(
                model.original_price, model.discounted_price
            ),
            start_date=_utc(model.start_date),
            end_date=_utc(model.end_date),
            terms=model.terms,
            max_applications=model.max_applications,
            current_applications=model.current_applications,
            is_active=model.is_active,
            created_at=_utc(model.created_at),
            updated_at=_utc(model.updated_at),
            version=model.version,
        )

    @staticmethod
    def to_fields(entity: OfferEntity) -> dict:
        """
        Column values of an offer, `version` excluded.

        The repository owns the version column: it is only ever written by
        the compare-and-swap update.
        """
        return {
            "car_id": entity.car_id,
            "sales_agent_id": entity.sales_agent_id,
            "title": entity.title,
            "description": entity.description,
            "original_price": entity.original_price,
            "discounted_price": entity.discounted_price,
            "discount_percentage": round(entity.discount_percentage, 4),
            "start_date": entity.start_date,
            "end_date": entity.end_date,
            "terms": entity.terms,
            "max_applications": entity.max_applications,
            "current_applications": entity.current_applications,
            "is_active": entity.is_active,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }


class OfferApplicationMapper:
    @staticmethod
    def to_entity(model: OfferApplicationModel) -> OfferApplicationEntity:
        return OfferApplicationEntity(
            id=model.id,
            offer_id=model.offer_id,
            user_id=model.user_id,
            application_date=_utc(model.application_date),
            status=ApplicationStatus(model.status),
            notes=model.notes,
            reviewed_at=_utc(model.reviewed_at),
            review_notes=model.review_notes,
            reviewed_by_user_id=model.reviewed_by_user_id,
        )

    @staticmethod
    def to_fields(entity: OfferApplicationEntity, include_keys: bool = True) -> dict:
        fields = {
            "application_date": entity.application_date,
            "status": entity.status.value,
            "notes": entity.notes,
            "reviewed_at": entity.reviewed_at,
            "review_notes": entity.review_notes,
            "reviewed_by_user_id": entity.reviewed_by_user_id,
        }
        if include_keys:
            fields["offer_id"] = entity.offer_id
            fields["user_id"] = entity.user_id
        return fields
