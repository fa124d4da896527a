"""
Ports of the offer lifecycle.

OfferRepository.update is a compare-and-swap on `version`: it succeeds
only when the stored version equals the entity's version, then bumps
both. A mismatch means another transaction changed the offer first and
raises ConflictError(reason="stale_version").
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Protocol, runtime_checkable

from src.core.shared.clock import ensure_utc
from src.core.shared.exceptions import ConflictError, EntityNotFoundError
from src.core.shared.memory import InMemoryStore, contains_text, paginate, sort_entities
from src.core.shared.pagination import PageRequest, PagedResult, resolve_sort

from .dtos import OfferQueryDTO
from .entities import OfferEntity


OFFER_SORT_FIELDS = {
    "title": "title",
    "discount": "discount_percentage",
    "discountpercentage": "discount_percentage",
    "price": "discounted_price",
    "startdate": "start_date",
    "enddate": "end_date",
}


@runtime_checkable
class OfferRepository(Protocol):
    """Persistence contract for offers."""

    def add(self, offer: OfferEntity) -> OfferEntity:
        ...

    def update(self, offer: OfferEntity) -> None:
        """
        Persist changes if nobody else did first.

        Raises:
            ConflictError: If the stored version differs (reason "stale_version")
            EntityNotFoundError: If the offer no longer exists
        """
        ...

    def delete(self, offer_id: int) -> None:
        ...

    def get_by_id(self, offer_id: int) -> Optional[OfferEntity]:
        ...

    def exists(self, offer_id: int) -> bool:
        ...

    def list_all(self) -> List[OfferEntity]:
        ...

    def list_by_car(self, car_id: int) -> List[OfferEntity]:
        ...

    def list_by_sales_agent(self, sales_agent_id: int) -> List[OfferEntity]:
        ...

    def list_active(self, now: datetime) -> List[OfferEntity]:
        """Active offers inside their window, biggest discount first."""
        ...

    def list_expired_active(self, now: datetime) -> List[OfferEntity]:
        """Offers still flagged active whose end date has passed."""
        ...

    def search(
        self, query: OfferQueryDTO, page: PageRequest, now: datetime
    ) -> PagedResult[OfferEntity]:
        ...


def stale_version_error(offer: OfferEntity) -> ConflictError:
    return ConflictError(
        f"Offer {offer.id} was modified by another transaction "
        f"(expected version {offer.version})",
        reason=ConflictError.STALE_VERSION,
    )


class InMemoryOfferRepository(InMemoryStore[OfferEntity]):
    """
    Dict-backed OfferRepository.

    Args:
        car_lookup: car id -> car (or None), used to match the search term
            against the car's make and model
    """

    def __init__(self, car_lookup: Optional[Callable[[int], object]] = None):
        super().__init__()
        self._car_lookup = car_lookup

    def add(self, offer: OfferEntity) -> OfferEntity:
        return self._insert(offer)

    def update(self, offer: OfferEntity) -> None:
        with self._guard:
            stored = self._items.get(offer.id)
            if stored is None:
                raise EntityNotFoundError(
                    f"Offer {offer.id} not found",
                    entity_type="Offer",
                    entity_id=offer.id,
                )
            if stored.version != offer.version:
                raise stale_version_error(offer)
            offer.version += 1
            self._replace(offer)

    def delete(self, offer_id: int) -> None:
        self._remove(offer_id)

    def get_by_id(self, offer_id: int) -> Optional[OfferEntity]:
        return self._load(offer_id)

    def exists(self, offer_id: int) -> bool:
        return offer_id in self._items

    def list_all(self) -> List[OfferEntity]:
        return sort_entities(self._values(), "created_at", descending=True)

    def list_by_car(self, car_id: int) -> List[OfferEntity]:
        return [offer for offer in self.list_all() if offer.car_id == car_id]

    def list_by_sales_agent(self, sales_agent_id: int) -> List[OfferEntity]:
        return [o for o in self.list_all() if o.sales_agent_id == sales_agent_id]

    def list_active(self, now: datetime) -> List[OfferEntity]:
        now = ensure_utc(now)
        offers = [o for o in self._values() if _is_open(o, now)]
        return sort_entities(offers, "discount_percentage", descending=True)

    def list_expired_active(self, now: datetime) -> List[OfferEntity]:
        now = ensure_utc(now)
        return [o for o in self._values() if o.is_active and o.end_date < now]

    def _car_text(self, car_id: int):
        car = self._car_lookup(car_id) if self._car_lookup else None
        if car is None:
            return None, None
        return car.make, car.model

    def search(
        self, query: OfferQueryDTO, page: PageRequest, now: datetime
    ) -> PagedResult[OfferEntity]:
        now = ensure_utc(now)
        offers = self._values()

        if query.search_term:
            offers = [
                o for o in offers
                if contains_text(
                    query.search_term, o.title, o.description, *self._car_text(o.car_id)
                )
            ]
        if query.min_discount is not None:
            minimum = Decimal(str(query.min_discount))
            offers = [o for o in offers if o.discount_percentage >= minimum]
        if query.max_price is not None:
            maximum = Decimal(str(query.max_price))
            offers = [o for o in offers if o.discounted_price <= maximum]
        if query.is_active is True:
            offers = [o for o in offers if _is_open(o, now)]
        elif query.is_active is False:
            offers = [o for o in offers if not o.is_active or o.end_date < now]
        if query.car_id is not None:
            offers = [o for o in offers if o.car_id == query.car_id]
        if query.sales_agent_id is not None:
            offers = [o for o in offers if o.sales_agent_id == query.sales_agent_id]

        field_name, descending = resolve_sort(
            query.sort_by, OFFER_SORT_FIELDS, query.sort_descending
        )
        return paginate(sort_entities(offers, field_name, descending), page)


def _is_open(offer: OfferEntity, now: datetime) -> bool:
    return offer.is_active and offer.start_date <= now <= offer.end_date
