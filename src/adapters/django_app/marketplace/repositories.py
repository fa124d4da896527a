"""
Django repositories of the marketplace.

They implement the repository Protocols of src/core/*/ports.py with the
Django ORM. Uniqueness rules are enforced twice: checked up front so
callers get a precise ConflictError, and backed by database constraints
whose IntegrityError is translated to the same ConflictError when two
transactions race past the check.

Offer updates are a compare-and-swap on `version`:

    UPDATE offers SET ..., version = version + 1
     WHERE id = :id AND version = :expected

Zero affected rows means another transaction won; the repository raises
ConflictError(reason="stale_version") and the service retries.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import logging

from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q

from src.core.applications.entities import ApplicationStatus, OfferApplicationEntity
from src.core.applications.ports import already_reviewed_error, duplicate_application_error
from src.core.cars.dtos import CarQueryDTO
from src.core.cars.entities import CarEntity, CarInterestEntity
from src.core.cars.ports import CAR_SORT_FIELDS
from src.core.offers.dtos import OfferQueryDTO
from src.core.offers.entities import OfferEntity
from src.core.offers.ports import OFFER_SORT_FIELDS, stale_version_error
from src.core.sales_agents.dtos import SalesAgentQueryDTO
from src.core.sales_agents.entities import SalesAgentEntity
from src.core.sales_agents.ports import SALES_AGENT_SORT_FIELDS
from src.core.shared.exceptions import ConflictError, EntityNotFoundError
from src.core.shared.pagination import PageRequest, PagedResult, resolve_sort
from src.core.users.entities import UserEntity

from ..shared.repository import BaseRepository, order_queryset
from .mappers import (
    CarInterestMapper,
    CarMapper,
    OfferApplicationMapper,
    OfferMapper,
    SalesAgentMapper,
    UserMapper,
)
from .models import (
    CarInterestModel,
    CarModel,
    OfferApplicationModel,
    OfferModel,
    SalesAgentModel,
    UserProfileModel,
)

logger = logging.getLogger(__name__)

TEXT_SORT_FIELDS = {"make", "model", "title", "first_name", "last_name", "department"}


def _insert(model_class, conflict: ConflictError, **fields):
    """Insert one row inside a savepoint, translating IntegrityError."""
    try:
        with transaction.atomic():
            return model_class.objects.create(**fields)
    except IntegrityError as e:
        logger.debug(f"Insert into {model_class._meta.db_table} rejected: {e}")
        raise conflict from e


def _sorted(qs, sort_by, allowed, descending):
    field_name, desc = resolve_sort(sort_by, allowed, descending)
    return order_queryset(qs, field_name, desc, case_insensitive=field_name in TEXT_SORT_FIELDS)


# =============================================================================
# Users
# =============================================================================

class DjangoUserRepository(BaseRepository[UserEntity, UserProfileModel]):
    model_class = UserProfileModel
    to_entity = staticmethod(UserMapper.to_entity)
    default_ordering = ["email"]

    def add(self, user: UserEntity) -> UserEntity:
        if self.exists(user.id):
            raise ConflictError(
                f"User {user.id} already has a profile", reason="duplicate_user"
            )
        conflict = ConflictError(
            f"Email {user.email} is already registered", reason="duplicate_email"
        )
        if self.email_exists(user.email):
            raise conflict
        _insert(UserProfileModel, conflict, id=user.id, **UserMapper.to_fields(user))
        logger.debug(f"User profile created: {user.id}")
        return user

    def update(self, user: UserEntity) -> None:
        UserProfileModel.objects.filter(pk=user.id).update(**UserMapper.to_fields(user))

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        model = UserProfileModel.objects.filter(email=(email or "").strip().lower()).first()
        return self.to_entity(model) if model else None

    def email_exists(self, email: str) -> bool:
        return UserProfileModel.objects.filter(email=(email or "").strip().lower()).exists()


# =============================================================================
# Sales agents
# =============================================================================

class DjangoSalesAgentRepository(BaseRepository[SalesAgentEntity, SalesAgentModel]):
    model_class = SalesAgentModel
    to_entity = staticmethod(SalesAgentMapper.to_entity)
    default_ordering = ["last_name", "first_name", "id"]

    def _check_unique(self, agent: SalesAgentEntity) -> None:
        if self.email_exists(agent.email, exclude_id=agent.id):
            raise ConflictError(
                f"A sales agent with email {agent.email} already exists",
                reason="duplicate_email",
            )
        if agent.user_id and self.user_id_exists(agent.user_id, exclude_id=agent.id):
            raise ConflictError(
                f"User {agent.user_id} is already linked to another sales agent",
                reason="duplicate_user",
            )

    def add(self, agent: SalesAgentEntity) -> SalesAgentEntity:
        self._check_unique(agent)
        model = _insert(
            SalesAgentModel,
            ConflictError(f"Sales agent {agent.email} already exists", reason="duplicate_email"),
            **SalesAgentMapper.to_fields(agent),
        )
        agent.id = model.id
        logger.debug(f"Sales agent created: {agent.id}")
        return agent

    def update(self, agent: SalesAgentEntity) -> None:
        self._check_unique(agent)
        try:
            with transaction.atomic():
                SalesAgentModel.objects.filter(pk=agent.id).update(
                    **SalesAgentMapper.to_fields(agent)
                )
        except IntegrityError as e:
            raise ConflictError(
                f"Sales agent {agent.id} clashes with another agent", reason="duplicate_email"
            ) from e

    def get_by_email(self, email: str) -> Optional[SalesAgentEntity]:
        model = SalesAgentModel.objects.filter(email=(email or "").strip().lower()).first()
        return self.to_entity(model) if model else None

    def get_by_user_id(self, user_id: str) -> Optional[SalesAgentEntity]:
        model = SalesAgentModel.objects.filter(user_id=user_id).first()
        return self.to_entity(model) if model else None

    def email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        qs = SalesAgentModel.objects.filter(email=(email or "").strip().lower())
        if exclude_id is not None:
            qs = qs.exclude(pk=exclude_id)
        return qs.exists()

    def user_id_exists(self, user_id: str, exclude_id: Optional[int] = None) -> bool:
        qs = SalesAgentModel.objects.filter(user_id=user_id)
        if exclude_id is not None:
            qs = qs.exclude(pk=exclude_id)
        return qs.exists()

    def search(
        self, query: SalesAgentQueryDTO, page: PageRequest
    ) -> PagedResult[SalesAgentEntity]:
        qs = SalesAgentModel.objects.annotate(assigned_car_count=Count("cars"))

        if query.search_term:
            term = query.search_term
            qs = qs.filter(
                Q(first_name__icontains=term)
                | Q(last_name__icontains=term)
                | Q(email__icontains=term)
                | Q(department__icontains=term)
            )
        if query.department:
            qs = qs.filter(department__iexact=query.department.strip())
        if query.min_commission_rate is not None:
            qs = qs.filter(commission_rate__gte=Decimal(str(query.min_commission_rate)))
        if query.is_active is not None:
            qs = qs.filter(is_active=query.is_active)

        qs = _sorted(qs, query.sort_by, SALES_AGENT_SORT_FIELDS, query.sort_descending)
        return self._paginate(qs, page)


# =============================================================================
# Cars
# =============================================================================

class DjangoCarRepository(BaseRepository[CarEntity, CarModel]):
    model_class = CarModel
    to_entity = staticmethod(CarMapper.to_entity)

    def add(self, car: CarEntity) -> CarEntity:
        conflict = ConflictError(
            f"A car with VIN {car.vin_number} already exists", reason="duplicate_vin"
        )
        if self.vin_exists(car.vin_number):
            raise conflict
        model = _insert(CarModel, conflict, **CarMapper.to_fields(car))
        car.id = model.id
        logger.debug(f"Car created: {car.id} ({car.vin_number})")
        return car

    def update(self, car: CarEntity) -> None:
        CarModel.objects.filter(pk=car.id).update(**CarMapper.to_fields(car))

    def get_by_vin(self, vin_number: str) -> Optional[CarEntity]:
        model = CarModel.objects.filter(vin_number=(vin_number or "").strip().upper()).first()
        return self.to_entity(model) if model else None

    def vin_exists(self, vin_number: str) -> bool:
        return CarModel.objects.filter(vin_number=(vin_number or "").strip().upper()).exists()

    def list_available(self) -> List[CarEntity]:
        qs = CarModel.objects.filter(is_available=True).order_by(*self.default_ordering)
        return self._to_entities(qs)

    def list_by_sales_agent(self, sales_agent_id: int) -> List[CarEntity]:
        qs = CarModel.objects.filter(sales_agent_id=sales_agent_id).order_by(
            *self.default_ordering
        )
        return self._to_entities(qs)

    def count_by_sales_agent(self, sales_agent_id: int) -> int:
        return CarModel.objects.filter(sales_agent_id=sales_agent_id).count()

    def search(self, query: CarQueryDTO, page: PageRequest) -> PagedResult[CarEntity]:
        qs = CarModel.objects.all()

        if query.search_term:
            term = query.search_term
            qs = qs.filter(
                Q(make__icontains=term)
                | Q(model__icontains=term)
                | Q(vin_number__icontains=term)
                | Q(description__icontains=term)
            )
        if query.make:
            qs = qs.filter(make__iexact=query.make.strip())
        if query.year is not None:
            qs = qs.filter(year=query.year)
        if query.min_price is not None:
            qs = qs.filter(price__gte=Decimal(str(query.min_price)))
        if query.max_price is not None:
            qs = qs.filter(price__lte=Decimal(str(query.max_price)))
        if query.is_available is not None:
            qs = qs.filter(is_available=query.is_available)
        if query.sales_agent_id is not None:
            qs = qs.filter(sales_agent_id=query.sales_agent_id)

        qs = _sorted(qs, query.sort_by, CAR_SORT_FIELDS, query.sort_descending)
        return self._paginate(qs, page)


class DjangoCarInterestRepository(BaseRepository[CarInterestEntity, CarInterestModel]):
    model_class = CarInterestModel
    to_entity = staticmethod(CarInterestMapper.to_entity)

    def add(self, interest: CarInterestEntity) -> CarInterestEntity:
        model = CarInterestModel.objects.create(**CarInterestMapper.to_fields(interest))
        interest.id = model.id
        return interest

    def list_since(self, since: datetime) -> List[CarInterestEntity]:
        qs = CarInterestModel.objects.filter(created_at__gte=since).order_by(
            *self.default_ordering
        )
        return self._to_entities(qs)

    def list_by_car(self, car_id: int) -> List[CarInterestEntity]:
        qs = CarInterestModel.objects.filter(car_id=car_id).order_by(*self.default_ordering)
        return self._to_entities(qs)

    def delete_by_car(self, car_id: int) -> int:
        deleted, _ = CarInterestModel.objects.filter(car_id=car_id).delete()
        return deleted


# =============================================================================
# Offers
# =============================================================================

def _open_filter(now: datetime) -> Q:
    return Q(is_active=True, start_date__lte=now, end_date__gte=now)


class DjangoOfferRepository(BaseRepository[OfferEntity, OfferModel]):
    model_class = OfferModel
    to_entity = staticmethod(OfferMapper.to_entity)

    def add(self, offer: OfferEntity) -> OfferEntity:
        model = OfferModel.objects.create(version=offer.version, **OfferMapper.to_fields(offer))
        offer.id = model.id
        logger.debug(f"Offer created: {offer.id}")
        return offer

    def update(self, offer: OfferEntity) -> None:
        rows = OfferModel.objects.filter(pk=offer.id, version=offer.version).update(
            version=F("version") + 1,
            **OfferMapper.to_fields(offer),
        )
        if rows == 0:
            if not OfferModel.objects.filter(pk=offer.id).exists():
                raise EntityNotFoundError(
                    f"Offer {offer.id} not found",
                    entity_type="Offer",
                    entity_id=offer.id,
                )
            logger.debug(f"Stale write on offer {offer.id} (version {offer.version})")
            raise stale_version_error(offer)
        offer.version += 1

    def list_by_car(self, car_id: int) -> List[OfferEntity]:
        qs = OfferModel.objects.filter(car_id=car_id).order_by(*self.default_ordering)
        return self._to_entities(qs)

    def list_by_sales_agent(self, sales_agent_id: int) -> List[OfferEntity]:
        qs = OfferModel.objects.filter(sales_agent_id=sales_agent_id).order_by(
            *self.default_ordering
        )
        return self._to_entities(qs)

    def list_active(self, now: datetime) -> List[OfferEntity]:
        qs = OfferModel.objects.filter(_open_filter(now)).order_by("-discount_percentage", "id")
        return self._to_entities(qs)

    def list_expired_active(self, now: datetime) -> List[OfferEntity]:
        qs = OfferModel.objects.filter(is_active=True, end_date__lt=now).order_by("end_date")
        return self._to_entities(qs)

    def search(
        self, query: OfferQueryDTO, page: PageRequest, now: datetime
    ) -> PagedResult[OfferEntity]:
        qs = OfferModel.objects.all()

        if query.search_term:
            term = query.search_term
            qs = qs.filter(
                Q(title__icontains=term)
                | Q(description__icontains=term)
                | Q(car__make__icontains=term)
                | Q(car__model__icontains=term)
            )
        if query.min_discount is not None:
            qs = qs.filter(discount_percentage__gte=Decimal(str(query.min_discount)))
        if query.max_price is not None:
            qs = qs.filter(discounted_price__lte=Decimal(str(query.max_price)))
        if query.is_active is True:
            qs = qs.filter(_open_filter(now))
        elif query.is_active is False:
            qs = qs.filter(Q(is_active=False) | Q(end_date__lt=now))
        if query.car_id is not None:
            qs = qs.filter(car_id=query.car_id)
        if query.sales_agent_id is not None:
            qs = qs.filter(sales_agent_id=query.sales_agent_id)

        qs = _sorted(qs, query.sort_by, OFFER_SORT_FIELDS, query.sort_descending)
        return self._paginate(qs, page)


# =============================================================================
# Applications
# =============================================================================

class DjangoOfferApplicationRepository(
    BaseRepository[OfferApplicationEntity, OfferApplicationModel]
):
    model_class = OfferApplicationModel
    to_entity = staticmethod(OfferApplicationMapper.to_entity)
    default_ordering = ["-application_date", "-id"]

    def add(self, application: OfferApplicationEntity) -> OfferApplicationEntity:
        model = _insert(
            OfferApplicationModel,
            duplicate_application_error(application.offer_id, application.user_id),
            **OfferApplicationMapper.to_fields(application),
        )
        application.id = model.id
        return application

    def update(self, application: OfferApplicationEntity) -> None:
        rows = OfferApplicationModel.objects.filter(
            pk=application.id, status=ApplicationStatus.PENDING.value
        ).update(**OfferApplicationMapper.to_fields(application, include_keys=False))
        if rows == 0:
            if not OfferApplicationModel.objects.filter(pk=application.id).exists():
                raise EntityNotFoundError(
                    f"Application {application.id} not found",
                    entity_type="OfferApplication",
                    entity_id=application.id,
                )
            raise already_reviewed_error(application)

    def get_by_offer_and_user(
        self, offer_id: int, user_id: str
    ) -> Optional[OfferApplicationEntity]:
        model = OfferApplicationModel.objects.filter(offer_id=offer_id, user_id=user_id).first()
        return self.to_entity(model) if model else None

    def exists(self, offer_id: int, user_id: str) -> bool:
        return OfferApplicationModel.objects.filter(offer_id=offer_id, user_id=user_id).exists()

    def list_by_offer(self, offer_id: int) -> List[OfferApplicationEntity]:
        qs = OfferApplicationModel.objects.filter(offer_id=offer_id).order_by(
            *self.default_ordering
        )
        return self._to_entities(qs)

    def list_by_user(self, user_id: str) -> List[OfferApplicationEntity]:
        qs = OfferApplicationModel.objects.filter(user_id=user_id).order_by(
            *self.default_ordering
        )
        return self._to_entities(qs)

    def list_pending(self) -> List[OfferApplicationEntity]:
        qs = OfferApplicationModel.objects.filter(
            status=ApplicationStatus.PENDING.value
        ).order_by("application_date", "id")
        return self._to_entities(qs)

    def delete_by_offer(self, offer_id: int) -> int:
        deleted, _ = OfferApplicationModel.objects.filter(offer_id=offer_id).delete()
        logger.debug(f"Deleted {deleted} application(s) of offer {offer_id}")
        return deleted
