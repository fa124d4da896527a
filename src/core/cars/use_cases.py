"""
Use cases of the car catalogue.

Commands:
- CreateCarService: list a car (unique VIN, agent must exist)
- UpdateCarService: edit details, assign/unassign the agent, toggle availability
- DeleteCarService: remove a car with its offers, applications and interests
- RegisterCarInterestService: a client asks to be called back

Queries:
- GetCarService, ListCarsService, ListAvailableCarsService
- ListCarInterestsService: recent interests for sales agents
"""

from datetime import timedelta
import logging
from typing import List, Optional

from src.core.applications.ports import OfferApplicationRepository
from src.core.offers.ports import OfferRepository
from src.core.sales_agents.ports import SalesAgentRepository
from src.core.shared.clock import Clock
from src.core.shared.exceptions import ConflictError, EntityNotFoundError, ValidationError
from src.core.shared.interfaces import UnitOfWork
from src.core.shared.memory import contains_text, paginate
from src.core.shared.pagination import PageRequest, PagedResult
from src.core.users.ports import UserRepository
from src.core.users.use_cases import load_user

from .dtos import (
    CarInterestOutputDTO,
    CarInterestQueryDTO,
    CarOutputDTO,
    CarQueryDTO,
    CreateCarInputDTO,
    RegisterCarInterestInputDTO,
    UpdateCarInputDTO,
)
from .entities import CarEntity, CarInterestEntity
from .events import (
    CarInterestRegisteredEvent,
    CarListedEvent,
    CarRemovedEvent,
    CarUpdatedEvent,
)
from .ports import CarInterestRepository, CarRepository


logger = logging.getLogger(__name__)


def load_car(car_repo: CarRepository, car_id: int) -> CarEntity:
    """Fetch a car or raise EntityNotFoundError."""
    car = car_repo.get_by_id(car_id)
    if car is None:
        raise EntityNotFoundError(
            f"Car {car_id} not found",
            entity_type="Car",
            entity_id=car_id,
        )
    return car


def _ensure_sales_agent(agent_repo: SalesAgentRepository, sales_agent_id: Optional[int]) -> None:
    if sales_agent_id is not None and not agent_repo.exists(sales_agent_id):
        raise EntityNotFoundError(
            f"Sales agent {sales_agent_id} not found",
            entity_type="SalesAgent",
            entity_id=sales_agent_id,
        )


class CreateCarService:
    """
    Use case: list a new car.

    Flow:
    1. Build the validated entity (VIN format included)
    2. Reject a VIN that is already registered
    3. Check the optional sales agent exists
    4. Persist and queue CarListedEvent
    """

    def __init__(
        self,
        car_repo: CarRepository,
        agent_repo: SalesAgentRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.car_repo = car_repo
        self.agent_repo = agent_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: CreateCarInputDTO) -> CarOutputDTO:
        """
        Raises:
            ValidationError: If a field is invalid
            ConflictError: If the VIN is already registered
            EntityNotFoundError: If the sales agent does not exist
        """
        with self.uow:
            car = CarEntity.create(
                make=input_dto.make,
                model=input_dto.model,
                year=input_dto.year,
                color=input_dto.color,
                vin_number=input_dto.vin_number,
                price=input_dto.price,
                description=input_dto.description,
                image_url=input_dto.image_url,
                sales_agent_id=input_dto.sales_agent_id,
                now=self.clock.now(),
            )

            if self.car_repo.vin_exists(car.vin_number):
                raise ConflictError(
                    f"A car with VIN {car.vin_number} already exists",
                    reason="duplicate_vin",
                )
            _ensure_sales_agent(self.agent_repo, car.sales_agent_id)

            self.car_repo.add(car)
            self.uow.publish_event(
                CarListedEvent(
                    aggregate_id=car.id,
                    vin_number=car.vin_number,
                    display_name=car.display_name,
                    price=car.price,
                    sales_agent_id=car.sales_agent_id,
                )
            )

        logger.info(f"Car listed: {car.id} ({car.display_name})")
        return CarOutputDTO.from_entity(car)


class UpdateCarService:
    """
    Use case: edit a car.

    The agent is assigned when sales_agent_id is set and unassigned when it
    is None. Availability changes only when is_available is given.
    """

    def __init__(
        self,
        car_repo: CarRepository,
        agent_repo: SalesAgentRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.car_repo = car_repo
        self.agent_repo = agent_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: UpdateCarInputDTO) -> CarOutputDTO:
        now = self.clock.now()
        with self.uow:
            car = load_car(self.car_repo, input_dto.car_id)
            car.update_details(
                make=input_dto.make,
                model=input_dto.model,
                year=input_dto.year,
                color=input_dto.color,
                price=input_dto.price,
                description=input_dto.description,
                image_url=input_dto.image_url,
                now=now,
            )

            if input_dto.sales_agent_id is not None:
                _ensure_sales_agent(self.agent_repo, input_dto.sales_agent_id)
                car.assign_sales_agent(input_dto.sales_agent_id, now=now)
            else:
                car.unassign_sales_agent(now=now)

            if input_dto.is_available is not None and input_dto.is_available != car.is_available:
                car.set_availability(input_dto.is_available, now=now)

            self.car_repo.update(car)
            self.uow.publish_event(
                CarUpdatedEvent(
                    aggregate_id=car.id,
                    is_available=car.is_available,
                    sales_agent_id=car.sales_agent_id,
                    price=car.price,
                )
            )

        return CarOutputDTO.from_entity(car)


class DeleteCarService:
    """
    Use case: delete a car.

    Offers of the car go with it, together with their applications, and
    so do the car's interests. Everything happens in one unit of work.
    """

    def __init__(
        self,
        car_repo: CarRepository,
        offer_repo: OfferRepository,
        application_repo: OfferApplicationRepository,
        interest_repo: CarInterestRepository,
        uow: UnitOfWork,
    ):
        self.car_repo = car_repo
        self.offer_repo = offer_repo
        self.application_repo = application_repo
        self.interest_repo = interest_repo
        self.uow = uow

    def execute(self, car_id: int) -> None:
        with self.uow:
            car = load_car(self.car_repo, car_id)

            offers = self.offer_repo.list_by_car(car.id)
            for offer in offers:
                self.application_repo.delete_by_offer(offer.id)
                self.offer_repo.delete(offer.id)
            self.interest_repo.delete_by_car(car.id)
            self.car_repo.delete(car.id)

            self.uow.publish_event(
                CarRemovedEvent(aggregate_id=car.id, removed_offer_count=len(offers))
            )

        logger.info(f"Car {car_id} deleted with {len(offers)} offer(s)")


class GetCarService:
    def __init__(self, car_repo: CarRepository):
        self.car_repo = car_repo

    def execute(self, car_id: int) -> CarOutputDTO:
        return CarOutputDTO.from_entity(load_car(self.car_repo, car_id))


class ListCarsService:
    """
    Use case: filtered, sorted and paginated car listing.

    Raises:
        ValidationError: If the page parameters are out of range
    """

    def __init__(self, car_repo: CarRepository):
        self.car_repo = car_repo

    def execute(self, query: CarQueryDTO) -> PagedResult[CarOutputDTO]:
        page = PageRequest(query.page_number, query.page_size)
        return self.car_repo.search(query, page).map(CarOutputDTO.from_entity)


class ListAvailableCarsService:
    def __init__(self, car_repo: CarRepository):
        self.car_repo = car_repo

    def execute(self) -> List[CarOutputDTO]:
        return [CarOutputDTO.from_entity(car) for car in self.car_repo.list_available()]


class RegisterCarInterestService:
    """
    Use case: a client asks to be called back about a car.

    The car and the client must exist. Queues CarInterestRegisteredEvent
    so the agent can be notified.
    """

    def __init__(
        self,
        interest_repo: CarInterestRepository,
        car_repo: CarRepository,
        user_repo: UserRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.interest_repo = interest_repo
        self.car_repo = car_repo
        self.user_repo = user_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: RegisterCarInterestInputDTO) -> CarInterestOutputDTO:
        with self.uow:
            interest = CarInterestEntity.create(
                car_id=input_dto.car_id,
                user_id=input_dto.user_id,
                preferred_call_time=input_dto.preferred_call_time,
                notes=input_dto.notes,
                document_paths=input_dto.document_paths,
                now=self.clock.now(),
            )
            car = load_car(self.car_repo, interest.car_id)
            user = load_user(self.user_repo, interest.user_id)

            self.interest_repo.add(interest)
            self.uow.publish_event(
                CarInterestRegisteredEvent(
                    aggregate_id=interest.id,
                    car_id=interest.car_id,
                    user_id=interest.user_id,
                    preferred_call_time=interest.preferred_call_time,
                )
            )

        return CarInterestOutputDTO.from_entity(
            interest,
            car_display_name=car.display_name,
            client_name=user.full_name,
            client_email=user.email,
        )


class ListCarInterestsService:
    """
    Use case: interests registered in the last `days` days, newest first.

    Each interest is joined with its car and client through the
    repositories; the search term matches client name, client email and
    car make or model.
    """

    def __init__(
        self,
        interest_repo: CarInterestRepository,
        car_repo: CarRepository,
        user_repo: UserRepository,
        clock: Clock,
    ):
        self.interest_repo = interest_repo
        self.car_repo = car_repo
        self.user_repo = user_repo
        self.clock = clock

    def execute(self, query: CarInterestQueryDTO) -> PagedResult[CarInterestOutputDTO]:
        if query.days < 1:
            raise ValidationError("Days must be at least 1", field="days")
        page = PageRequest(query.page_number, query.page_size)
        since = self.clock.now() - timedelta(days=query.days)

        rows = []
        for interest in self.interest_repo.list_since(since):
            car = self.car_repo.get_by_id(interest.car_id)
            user = self.user_repo.get_by_id(interest.user_id)
            make = car.make if car else ""
            model = car.model if car else ""
            client_name = user.full_name if user else ""
            client_email = user.email if user else ""

            if query.search_term and not contains_text(
                query.search_term, client_name, client_email, make, model
            ):
                continue

            rows.append(
                CarInterestOutputDTO.from_entity(
                    interest,
                    car_display_name=car.display_name if car else "",
                    client_name=client_name,
                    client_email=client_email,
                )
            )

        return paginate(rows, page)
