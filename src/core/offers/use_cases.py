"""
Use cases of the offer lifecycle.

Commands:
- CreateOfferService: publish an offer for an available car
- UpdateOfferService: edit prices, window, terms and capacity
- ActivateOfferService / DeactivateOfferService: manual toggles
- DeleteOfferService: remove an offer and its applications
- DeactivateExpiredOffersService: periodic sweep of offers past their end date

Queries:
- GetOfferService, ListOffersService, ListActiveOffersService

Writes to an offer go through the repository's compare-and-swap on
`version`; a lost race is retried once with fresh state.
"""

import logging
from typing import List

from src.core.applications.ports import OfferApplicationRepository
from src.core.cars.ports import CarRepository
from src.core.cars.use_cases import load_car
from src.core.sales_agents.ports import SalesAgentRepository
from src.core.shared.clock import Clock
from src.core.shared.concurrency import retry_on_stale_version
from src.core.shared.exceptions import EntityNotFoundError, InvalidStateError
from src.core.shared.interfaces import UnitOfWork
from src.core.shared.pagination import PageRequest, PagedResult

from .dtos import CreateOfferInputDTO, OfferOutputDTO, OfferQueryDTO, UpdateOfferInputDTO
from .entities import OfferEntity
from .events import (
    OfferActivatedEvent,
    OfferCreatedEvent,
    OfferDeactivatedEvent,
    OfferDeletedEvent,
    OfferExpiredEvent,
    OfferUpdatedEvent,
)
from .ports import OfferRepository


logger = logging.getLogger(__name__)


def load_offer(offer_repo: OfferRepository, offer_id: int) -> OfferEntity:
    """Fetch an offer or raise EntityNotFoundError."""
    offer = offer_repo.get_by_id(offer_id)
    if offer is None:
        raise EntityNotFoundError(
            f"Offer {offer_id} not found",
            entity_type="Offer",
            entity_id=offer_id,
        )
    return offer


class CreateOfferService:
    """
    Use case: publish a new offer.

    Flow:
    1. Load the car; it must exist and be available
    2. Check the optional sales agent exists
    3. Build the validated entity (prices, window, capacity)
    4. Persist and queue OfferCreatedEvent

    Example:
        service = CreateOfferService(offer_repo, car_repo, agent_repo, uow, clock)
        output = service.execute(CreateOfferInputDTO(car_id=1, title="Spring deal", ...))
        output.discount_label  # "12% OFF"
    """

    def __init__(
        self,
        offer_repo: OfferRepository,
        car_repo: CarRepository,
        agent_repo: SalesAgentRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.offer_repo = offer_repo
        self.car_repo = car_repo
        self.agent_repo = agent_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: CreateOfferInputDTO) -> OfferOutputDTO:
        """
        Raises:
            ValidationError: If a field is invalid
            EntityNotFoundError: If the car or the sales agent does not exist
            InvalidStateError: If the car is not available
        """
        now = self.clock.now()
        with self.uow:
            car = load_car(self.car_repo, input_dto.car_id)
            if not car.is_available:
                raise InvalidStateError(
                    f"Car {car.id} is not available for offers",
                    rule="car_unavailable",
                )
            if input_dto.sales_agent_id is not None and not self.agent_repo.exists(
                input_dto.sales_agent_id
            ):
                raise EntityNotFoundError(
                    f"Sales agent {input_dto.sales_agent_id} not found",
                    entity_type="SalesAgent",
                    entity_id=input_dto.sales_agent_id,
                )

            offer = OfferEntity.create(
                title=input_dto.title,
                description=input_dto.description,
                original_price=input_dto.original_price,
                discounted_price=input_dto.discounted_price,
                start_date=input_dto.start_date,
                end_date=input_dto.end_date,
                terms=input_dto.terms,
                max_applications=input_dto.max_applications,
                car_id=car.id,
                sales_agent_id=input_dto.sales_agent_id,
                now=now,
            )
            self.offer_repo.add(offer)

            self.uow.publish_event(
                OfferCreatedEvent(
                    aggregate_id=offer.id,
                    car_id=offer.car_id,
                    sales_agent_id=offer.sales_agent_id,
                    discounted_price=offer.discounted_price,
                    discount_percentage=offer.discount_percentage,
                    start_date=offer.start_date,
                    end_date=offer.end_date,
                )
            )

        logger.info(f"Offer created: {offer.id} for car {offer.car_id} ({offer.discount_label})")
        return OfferOutputDTO.from_entity(offer, now)


class UpdateOfferService:
    def __init__(self, offer_repo: OfferRepository, uow: UnitOfWork, clock: Clock):
        self.offer_repo = offer_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: UpdateOfferInputDTO) -> OfferOutputDTO:
        """
        Raises:
            ValidationError: If a field is invalid
            EntityNotFoundError: If the offer does not exist
            ConflictError: If the offer kept changing under us
        """
        return retry_on_stale_version(lambda: self._update(input_dto))

    def _update(self, input_dto: UpdateOfferInputDTO) -> OfferOutputDTO:
        now = self.clock.now()
        with self.uow:
            offer = load_offer(self.offer_repo, input_dto.offer_id)
            offer.update(
                title=input_dto.title,
                description=input_dto.description,
                original_price=input_dto.original_price,
                discounted_price=input_dto.discounted_price,
                start_date=input_dto.start_date,
                end_date=input_dto.end_date,
                terms=input_dto.terms,
                max_applications=input_dto.max_applications,
                now=now,
            )
            self.offer_repo.update(offer)
            self.uow.publish_event(
                OfferUpdatedEvent(
                    aggregate_id=offer.id,
                    discounted_price=offer.discounted_price,
                    max_applications=offer.max_applications,
                )
            )

        return OfferOutputDTO.from_entity(offer, now)


class ActivateOfferService:
    def __init__(self, offer_repo: OfferRepository, uow: UnitOfWork, clock: Clock):
        self.offer_repo = offer_repo
        self.uow = uow
        self.clock = clock

    def execute(self, offer_id: int) -> OfferOutputDTO:
        return retry_on_stale_version(lambda: self._activate(offer_id))

    def _activate(self, offer_id: int) -> OfferOutputDTO:
        now = self.clock.now()
        with self.uow:
            offer = load_offer(self.offer_repo, offer_id)
            offer.activate(now)
            self.offer_repo.update(offer)
            self.uow.publish_event(OfferActivatedEvent(aggregate_id=offer.id))
        return OfferOutputDTO.from_entity(offer, now)


class DeactivateOfferService:
    def __init__(self, offer_repo: OfferRepository, uow: UnitOfWork, clock: Clock):
        self.offer_repo = offer_repo
        self.uow = uow
        self.clock = clock

    def execute(self, offer_id: int) -> OfferOutputDTO:
        return retry_on_stale_version(lambda: self._deactivate(offer_id))

    def _deactivate(self, offer_id: int) -> OfferOutputDTO:
        now = self.clock.now()
        with self.uow:
            offer = load_offer(self.offer_repo, offer_id)
            offer.deactivate(now)
            self.offer_repo.update(offer)
            self.uow.publish_event(OfferDeactivatedEvent(aggregate_id=offer.id))
        return OfferOutputDTO.from_entity(offer, now)


class DeleteOfferService:
    """Use case: delete an offer together with its applications."""

    def __init__(
        self,
        offer_repo: OfferRepository,
        application_repo: OfferApplicationRepository,
        uow: UnitOfWork,
    ):
        self.offer_repo = offer_repo
        self.application_repo = application_repo
        self.uow = uow

    def execute(self, offer_id: int) -> None:
        with self.uow:
            offer = load_offer(self.offer_repo, offer_id)
            removed = self.application_repo.delete_by_offer(offer.id)
            self.offer_repo.delete(offer.id)
            self.uow.publish_event(
                OfferDeletedEvent(
                    aggregate_id=offer.id,
                    car_id=offer.car_id,
                    removed_application_count=removed,
                )
            )

        logger.info(f"Offer {offer_id} deleted with {removed} application(s)")


class DeactivateExpiredOffersService:
    """
    Use case: switch off offers whose window has closed.

    Each offer is handled in its own unit of work, so a conflict on one
    offer does not undo the others. Returns the ids that were switched off.
    """

    def __init__(self, offer_repo: OfferRepository, uow: UnitOfWork, clock: Clock):
        self.offer_repo = offer_repo
        self.uow = uow
        self.clock = clock

    def execute(self) -> List[int]:
        now = self.clock.now()
        expired_ids = [offer.id for offer in self.offer_repo.list_expired_active(now)]

        deactivated = []
        for offer_id in expired_ids:
            if retry_on_stale_version(lambda: self._expire(offer_id)):
                deactivated.append(offer_id)

        if deactivated:
            logger.info(f"Deactivated {len(deactivated)} expired offer(s): {deactivated}")
        return deactivated

    def _expire(self, offer_id: int) -> bool:
        now = self.clock.now()
        with self.uow:
            offer = self.offer_repo.get_by_id(offer_id)
            if offer is None or not offer.is_active or not offer.is_expired(now):
                return False
            offer.deactivate(now)
            self.offer_repo.update(offer)
            self.uow.publish_event(
                OfferExpiredEvent(
                    aggregate_id=offer.id,
                    end_date=offer.end_date,
                    current_applications=offer.current_applications,
                )
            )
        return True


class GetOfferService:
    def __init__(self, offer_repo: OfferRepository, clock: Clock):
        self.offer_repo = offer_repo
        self.clock = clock

    def execute(self, offer_id: int) -> OfferOutputDTO:
        return OfferOutputDTO.from_entity(load_offer(self.offer_repo, offer_id), self.clock.now())


class ListOffersService:
    """
    Use case: filtered, sorted and paginated offer listing.

    Raises:
        ValidationError: If the page parameters are out of range
    """

    def __init__(self, offer_repo: OfferRepository, clock: Clock):
        self.offer_repo = offer_repo
        self.clock = clock

    def execute(self, query: OfferQueryDTO) -> PagedResult[OfferOutputDTO]:
        now = self.clock.now()
        page = PageRequest(query.page_number, query.page_size)
        result = self.offer_repo.search(query, page, now)
        return result.map(lambda offer: OfferOutputDTO.from_entity(offer, now))


class ListActiveOffersService:
    """Open offers (active and inside their window), biggest discount first."""

    def __init__(self, offer_repo: OfferRepository, clock: Clock):
        self.offer_repo = offer_repo
        self.clock = clock

    def execute(self) -> List[OfferOutputDTO]:
        now = self.clock.now()
        return [OfferOutputDTO.from_entity(o, now) for o in self.offer_repo.list_active(now)]
