"""
Use cases of the sales agents context.

- CreateSalesAgentService: hire an agent (unique email and user link)
- UpdateSalesAgentService: full edit, links or unlinks the user account
- DeleteSalesAgentService: remove an agent and release its cars and offers
- GetSalesAgentService / ListSalesAgentsService: queries

Queries never hide failures: a repository error propagates to the caller.
"""

import logging
from typing import Optional

from src.core.cars.ports import CarRepository
from src.core.offers.ports import OfferRepository
from src.core.shared.clock import Clock
from src.core.shared.exceptions import ConflictError, EntityNotFoundError
from src.core.shared.interfaces import UnitOfWork
from src.core.shared.pagination import PageRequest, PagedResult
from src.core.users.ports import UserRepository
from src.core.users.use_cases import load_user

from .dtos import (
    CreateSalesAgentInputDTO,
    SalesAgentOutputDTO,
    SalesAgentQueryDTO,
    UpdateSalesAgentInputDTO,
)
from .entities import SalesAgentEntity
from .events import SalesAgentHiredEvent, SalesAgentRemovedEvent, SalesAgentUpdatedEvent
from .ports import SalesAgentRepository


logger = logging.getLogger(__name__)


def load_sales_agent(agent_repo: SalesAgentRepository, agent_id: int) -> SalesAgentEntity:
    """Fetch an agent or raise EntityNotFoundError."""
    agent = agent_repo.get_by_id(agent_id)
    if agent is None:
        raise EntityNotFoundError(
            f"Sales agent {agent_id} not found",
            entity_type="SalesAgent",
            entity_id=agent_id,
        )
    return agent


def _ensure_unique(
    agent_repo: SalesAgentRepository,
    user_repo: UserRepository,
    email: str,
    user_id: Optional[str],
    exclude_id: Optional[int] = None,
) -> None:
    if agent_repo.email_exists(email, exclude_id=exclude_id):
        raise ConflictError(
            f"A sales agent with email {email} already exists",
            reason="duplicate_email",
        )
    if user_id:
        load_user(user_repo, user_id)
        if agent_repo.user_id_exists(user_id, exclude_id=exclude_id):
            raise ConflictError(
                f"User {user_id} is already linked to another sales agent",
                reason="duplicate_user",
            )


class CreateSalesAgentService:
    """
    Use case: hire a sales agent.

    Flow:
    1. Build the validated entity
    2. Check email uniqueness and the optional user link
    3. Persist and queue SalesAgentHiredEvent
    """

    def __init__(
        self,
        agent_repo: SalesAgentRepository,
        user_repo: UserRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.agent_repo = agent_repo
        self.user_repo = user_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: CreateSalesAgentInputDTO) -> SalesAgentOutputDTO:
        """
        Raises:
            ValidationError: If a field is invalid
            EntityNotFoundError: If the linked user does not exist
            ConflictError: If the email or user is already taken
        """
        with self.uow:
            agent = SalesAgentEntity.create(
                first_name=input_dto.first_name,
                last_name=input_dto.last_name,
                email=input_dto.email,
                phone_number=input_dto.phone_number,
                department=input_dto.department,
                commission_rate=input_dto.commission_rate,
                biography=input_dto.biography,
                user_id=input_dto.user_id or None,
                now=self.clock.now(),
            )
            _ensure_unique(self.agent_repo, self.user_repo, agent.email, agent.user_id)

            self.agent_repo.add(agent)
            self.uow.publish_event(
                SalesAgentHiredEvent(
                    aggregate_id=agent.id,
                    email=agent.email,
                    department=agent.department,
                    user_id=agent.user_id,
                )
            )

        logger.info(f"Sales agent created: {agent.id}")
        return SalesAgentOutputDTO.from_entity(agent)


class UpdateSalesAgentService:
    def __init__(
        self,
        agent_repo: SalesAgentRepository,
        user_repo: UserRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.agent_repo = agent_repo
        self.user_repo = user_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: UpdateSalesAgentInputDTO) -> SalesAgentOutputDTO:
        now = self.clock.now()
        with self.uow:
            agent = load_sales_agent(self.agent_repo, input_dto.sales_agent_id)
            agent.update_details(
                first_name=input_dto.first_name,
                last_name=input_dto.last_name,
                email=input_dto.email,
                phone_number=input_dto.phone_number,
                department=input_dto.department,
                commission_rate=input_dto.commission_rate,
                biography=input_dto.biography,
                now=now,
            )
            if input_dto.user_id:
                agent.assign_user(input_dto.user_id, now=now)
            else:
                agent.unassign_user(now=now)

            _ensure_unique(
                self.agent_repo,
                self.user_repo,
                agent.email,
                agent.user_id,
                exclude_id=agent.id,
            )

            self.agent_repo.update(agent)
            self.uow.publish_event(
                SalesAgentUpdatedEvent(
                    aggregate_id=agent.id,
                    commission_rate=agent.commission_rate,
                    user_id=agent.user_id,
                )
            )

        return SalesAgentOutputDTO.from_entity(agent)


class DeleteSalesAgentService:
    """
    Use case: remove a sales agent.

    Cars and offers managed by the agent stay in place without an agent.
    """

    def __init__(
        self,
        agent_repo: SalesAgentRepository,
        car_repo: CarRepository,
        offer_repo: OfferRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.agent_repo = agent_repo
        self.car_repo = car_repo
        self.offer_repo = offer_repo
        self.uow = uow
        self.clock = clock

    def execute(self, sales_agent_id: int) -> None:
        now = self.clock.now()
        with self.uow:
            agent = load_sales_agent(self.agent_repo, sales_agent_id)

            released = []
            for car in self.car_repo.list_by_sales_agent(agent.id):
                car.unassign_sales_agent(now=now)
                self.car_repo.update(car)
                released.append(car.id)

            for offer in self.offer_repo.list_by_sales_agent(agent.id):
                offer.unassign_sales_agent(now=now)
                self.offer_repo.update(offer)

            self.agent_repo.delete(agent.id)
            self.uow.publish_event(
                SalesAgentRemovedEvent(
                    aggregate_id=agent.id,
                    unassigned_car_ids=tuple(released),
                )
            )

        logger.info(f"Sales agent {sales_agent_id} deleted, {len(released)} car(s) released")


class GetSalesAgentService:
    def __init__(self, agent_repo: SalesAgentRepository, car_repo: CarRepository):
        self.agent_repo = agent_repo
        self.car_repo = car_repo

    def execute(self, sales_agent_id: int) -> SalesAgentOutputDTO:
        agent = load_sales_agent(self.agent_repo, sales_agent_id)
        return SalesAgentOutputDTO.from_entity(
            agent, assigned_car_count=self.car_repo.count_by_sales_agent(agent.id)
        )


class ListSalesAgentsService:
    """
    Use case: filtered, sorted and paginated agent listing.

    Raises:
        ValidationError: If the page parameters are out of range
    """

    def __init__(self, agent_repo: SalesAgentRepository, car_repo: CarRepository):
        self.agent_repo = agent_repo
        self.car_repo = car_repo

    def execute(self, query: SalesAgentQueryDTO) -> PagedResult[SalesAgentOutputDTO]:
        page = PageRequest(query.page_number, query.page_size)
        result = self.agent_repo.search(query, page)
        return result.map(
            lambda agent: SalesAgentOutputDTO.from_entity(
                agent, assigned_car_count=self.car_repo.count_by_sales_agent(agent.id)
            )
        )
