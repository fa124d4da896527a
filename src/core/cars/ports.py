"""
Ports of the car catalogue.

- CarRepository: cars with a unique VIN
- CarInterestRepository: callback requests from clients

The in-memory implementations back the unit tests and the in-memory
container.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Protocol, runtime_checkable

from src.core.shared.exceptions import ConflictError
from src.core.shared.memory import InMemoryStore, contains_text, paginate, sort_entities
from src.core.shared.pagination import PageRequest, PagedResult, resolve_sort

from .dtos import CarQueryDTO
from .entities import CarEntity, CarInterestEntity


CAR_SORT_FIELDS = {
    "make": "make",
    "model": "model",
    "year": "year",
    "price": "price",
}


@runtime_checkable
class CarRepository(Protocol):
    """
    Persistence contract for cars.

    `add` raises ConflictError(reason="duplicate_vin") when the VIN is
    already registered.
    """

    def add(self, car: CarEntity) -> CarEntity:
        ...

    def update(self, car: CarEntity) -> None:
        ...

    def delete(self, car_id: int) -> None:
        ...

    def get_by_id(self, car_id: int) -> Optional[CarEntity]:
        ...

    def get_by_vin(self, vin_number: str) -> Optional[CarEntity]:
        ...

    def exists(self, car_id: int) -> bool:
        ...

    def vin_exists(self, vin_number: str) -> bool:
        ...

    def list_all(self) -> List[CarEntity]:
        ...

    def list_available(self) -> List[CarEntity]:
        ...

    def list_by_sales_agent(self, sales_agent_id: int) -> List[CarEntity]:
        ...

    def count_by_sales_agent(self, sales_agent_id: int) -> int:
        ...

    def search(self, query: CarQueryDTO, page: PageRequest) -> PagedResult[CarEntity]:
        ...


@runtime_checkable
class CarInterestRepository(Protocol):
    def add(self, interest: CarInterestEntity) -> CarInterestEntity:
        ...

    def get_by_id(self, interest_id: int) -> Optional[CarInterestEntity]:
        ...

    def list_since(self, since: datetime) -> List[CarInterestEntity]:
        """Interests created at or after `since`, newest first."""
        ...

    def list_by_car(self, car_id: int) -> List[CarInterestEntity]:
        ...

    def delete_by_car(self, car_id: int) -> int:
        """Delete every interest for the car and return how many were removed."""
        ...


class InMemoryCarRepository(InMemoryStore[CarEntity]):
    """Dict-backed CarRepository."""

    def add(self, car: CarEntity) -> CarEntity:
        if self.vin_exists(car.vin_number):
            raise ConflictError(
                f"A car with VIN {car.vin_number} already exists",
                reason="duplicate_vin",
            )
        return self._insert(car)

    def update(self, car: CarEntity) -> None:
        self._replace(car)

    def delete(self, car_id: int) -> None:
        self._remove(car_id)

    def get_by_id(self, car_id: int) -> Optional[CarEntity]:
        return self._load(car_id)

    def get_by_vin(self, vin_number: str) -> Optional[CarEntity]:
        vin = (vin_number or "").strip().upper()
        return next((car for car in self._values() if car.vin_number == vin), None)

    def exists(self, car_id: int) -> bool:
        return car_id in self._items

    def vin_exists(self, vin_number: str) -> bool:
        return self.get_by_vin(vin_number) is not None

    def list_all(self) -> List[CarEntity]:
        return sort_entities(self._values(), "created_at", descending=True)

    def list_available(self) -> List[CarEntity]:
        return [car for car in self.list_all() if car.is_available]

    def list_by_sales_agent(self, sales_agent_id: int) -> List[CarEntity]:
        return [car for car in self.list_all() if car.sales_agent_id == sales_agent_id]

    def count_by_sales_agent(self, sales_agent_id: int) -> int:
        return len(self.list_by_sales_agent(sales_agent_id))

    def search(self, query: CarQueryDTO, page: PageRequest) -> PagedResult[CarEntity]:
        cars = self._values()

        if query.search_term:
            cars = [
                car for car in cars
                if contains_text(
                    query.search_term, car.make, car.model, car.vin_number, car.description
                )
            ]
        if query.make:
            make = query.make.strip().lower()
            cars = [car for car in cars if car.make.lower() == make]
        if query.year is not None:
            cars = [car for car in cars if car.year == query.year]
        if query.min_price is not None:
            minimum = Decimal(str(query.min_price))
            cars = [car for car in cars if car.price >= minimum]
        if query.max_price is not None:
            maximum = Decimal(str(query.max_price))
            cars = [car for car in cars if car.price <= maximum]
        if query.is_available is not None:
            cars = [car for car in cars if car.is_available == query.is_available]
        if query.sales_agent_id is not None:
            cars = [car for car in cars if car.sales_agent_id == query.sales_agent_id]

        field_name, descending = resolve_sort(
            query.sort_by, CAR_SORT_FIELDS, query.sort_descending
        )
        return paginate(sort_entities(cars, field_name, descending), page)


class InMemoryCarInterestRepository(InMemoryStore[CarInterestEntity]):
    def add(self, interest: CarInterestEntity) -> CarInterestEntity:
        return self._insert(interest)

    def get_by_id(self, interest_id: int) -> Optional[CarInterestEntity]:
        return self._load(interest_id)

    def list_since(self, since: datetime) -> List[CarInterestEntity]:
        interests = [i for i in self._values() if i.created_at >= since]
        return sort_entities(interests, "created_at", descending=True)

    def list_by_car(self, car_id: int) -> List[CarInterestEntity]:
        interests = [i for i in self._values() if i.car_id == car_id]
        return sort_entities(interests, "created_at", descending=True)

    def delete_by_car(self, car_id: int) -> int:
        doomed = [i.id for i in self._values() if i.car_id == car_id]
        for interest_id in doomed:
            self._remove(interest_id)
        return len(doomed)
