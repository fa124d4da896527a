"""
Ports of the sales agents context.

Email and linked user id are unique per agent. The in-memory repository
needs to know how many cars each agent manages to sort by that count, so
it takes an optional lookup callable.
"""

from decimal import Decimal
from typing import Callable, List, Optional, Protocol, runtime_checkable

from src.core.shared.exceptions import ConflictError
from src.core.shared.memory import InMemoryStore, contains_text, paginate, sort_entities
from src.core.shared.pagination import PageRequest, PagedResult, resolve_sort

from .dtos import SalesAgentQueryDTO
from .entities import SalesAgentEntity


SALES_AGENT_SORT_FIELDS = {
    "firstname": "first_name",
    "lastname": "last_name",
    "department": "department",
    "commissionrate": "commission_rate",
    "assignedcars": "assigned_car_count",
}


@runtime_checkable
class SalesAgentRepository(Protocol):
    """Persistence contract for sales agents."""

    def add(self, agent: SalesAgentEntity) -> SalesAgentEntity:
        ...

    def update(self, agent: SalesAgentEntity) -> None:
        ...

    def delete(self, agent_id: int) -> None:
        ...

    def get_by_id(self, agent_id: int) -> Optional[SalesAgentEntity]:
        ...

    def get_by_email(self, email: str) -> Optional[SalesAgentEntity]:
        ...

    def get_by_user_id(self, user_id: str) -> Optional[SalesAgentEntity]:
        ...

    def list_all(self) -> List[SalesAgentEntity]:
        """All agents ordered by last name, then first name."""
        ...

    def email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        ...

    def user_id_exists(self, user_id: str, exclude_id: Optional[int] = None) -> bool:
        ...

    def exists(self, agent_id: int) -> bool:
        ...

    def search(
        self, query: SalesAgentQueryDTO, page: PageRequest
    ) -> PagedResult[SalesAgentEntity]:
        ...


class InMemorySalesAgentRepository(InMemoryStore[SalesAgentEntity]):
    """
    Dict-backed SalesAgentRepository.

    Args:
        car_count_lookup: agent id -> number of assigned cars, used by the
            "assignedcars" sort key
    """

    def __init__(self, car_count_lookup: Optional[Callable[[int], int]] = None):
        super().__init__()
        self._car_count_lookup = car_count_lookup

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
        return self._insert(agent)

    def update(self, agent: SalesAgentEntity) -> None:
        self._check_unique(agent)
        self._replace(agent)

    def delete(self, agent_id: int) -> None:
        self._remove(agent_id)

    def get_by_id(self, agent_id: int) -> Optional[SalesAgentEntity]:
        return self._load(agent_id)

    def get_by_email(self, email: str) -> Optional[SalesAgentEntity]:
        email = (email or "").strip().lower()
        return next((a for a in self._values() if a.email == email), None)

    def get_by_user_id(self, user_id: str) -> Optional[SalesAgentEntity]:
        return next((a for a in self._values() if a.user_id == user_id), None)

    def list_all(self) -> List[SalesAgentEntity]:
        agents = sort_entities(self._values(), "first_name", descending=False)
        return sort_entities(agents, "last_name", descending=False)

    def email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        agent = self.get_by_email(email)
        return agent is not None and agent.id != exclude_id

    def user_id_exists(self, user_id: str, exclude_id: Optional[int] = None) -> bool:
        agent = self.get_by_user_id(user_id)
        return agent is not None and agent.id != exclude_id

    def exists(self, agent_id: int) -> bool:
        return agent_id in self._items

    def search(
        self, query: SalesAgentQueryDTO, page: PageRequest
    ) -> PagedResult[SalesAgentEntity]:
        agents = self._values()

        if query.search_term:
            agents = [
                a for a in agents
                if contains_text(
                    query.search_term, a.first_name, a.last_name, a.email, a.department
                )
            ]
        if query.department:
            department = query.department.strip().lower()
            agents = [a for a in agents if a.department.lower() == department]
        if query.min_commission_rate is not None:
            minimum = Decimal(str(query.min_commission_rate))
            agents = [a for a in agents if a.commission_rate >= minimum]
        if query.is_active is not None:
            agents = [a for a in agents if a.is_active == query.is_active]

        field_name, descending = resolve_sort(
            query.sort_by, SALES_AGENT_SORT_FIELDS, query.sort_descending
        )
        if field_name == "assigned_car_count":
            lookup = self._car_count_lookup or (lambda agent_id: 0)
            agents = sorted(agents, key=lambda a: lookup(a.id), reverse=descending)
        else:
            agents = sort_entities(agents, field_name, descending)

        return paginate(agents, page)
