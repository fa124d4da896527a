"""
Repository base for the Django ORM adapters.

Provides what every marketplace repository shares:
- Lookup by id and existence checks
- Delete by id
- Ordering by a resolved sort field, with a stable id tie-breaker
- Offset pagination into the core's PagedResult

Repositories stay stateless and hold no business rules; entity <-> model
conversion is delegated to a mapper.
"""

from typing import Callable, Generic, List, Optional, Type, TypeVar
import logging

from django.db import models
from django.db.models import F, QuerySet
from django.db.models.functions import Lower

from src.core.shared.pagination import PageRequest, PagedResult

logger = logging.getLogger(__name__)

T = TypeVar("T")  # Entity type
M = TypeVar("M", bound=models.Model)  # Model type


def order_queryset(
    qs: QuerySet, field_name: str, descending: bool, case_insensitive: bool = False
) -> QuerySet:
    """Order by one field, NULLs last, ties broken by id."""
    expression = Lower(field_name) if case_insensitive else F(field_name)
    expression = (
        expression.desc(nulls_last=True) if descending else expression.asc(nulls_last=True)
    )
    return qs.order_by(expression, "-id" if descending else "id")


class BaseRepository(Generic[T, M]):
    """
    Base class of the Django repositories.

    Subclasses set `model_class` and `to_entity`, and may narrow
    `_get_base_queryset` with select_related or annotations.

    Example:
        class DjangoCarRepository(BaseRepository[CarEntity, CarModel]):
            model_class = CarModel
            to_entity = staticmethod(CarMapper.to_entity)
    """

    model_class: Type[M]
    to_entity: Callable[[M], T]

    select_related_fields: List[str] = []
    default_ordering: List[str] = ["-created_at", "-id"]

    def _get_base_queryset(self) -> QuerySet:
        qs = self.model_class.objects.all()
        if self.select_related_fields:
            qs = qs.select_related(*self.select_related_fields)
        return qs

    def _to_entities(self, qs) -> List[T]:
        return [self.to_entity(model) for model in qs]

    def get_by_id(self, entity_id) -> Optional[T]:
        try:
            model = self._get_base_queryset().get(pk=entity_id)
        except (self.model_class.DoesNotExist, ValueError, TypeError):
            logger.debug(f"{self.model_class.__name__} not found: {entity_id}")
            return None
        return self.to_entity(model)

    def exists(self, entity_id) -> bool:
        return self.model_class.objects.filter(pk=entity_id).exists()

    def delete(self, entity_id) -> None:
        deleted_count, _ = self.model_class.objects.filter(pk=entity_id).delete()
        if deleted_count:
            logger.debug(f"{self.model_class.__name__} deleted: {entity_id}")

    def list_all(self) -> List[T]:
        return self._to_entities(self._get_base_queryset().order_by(*self.default_ordering))

    def _paginate(self, qs: QuerySet, page: PageRequest) -> PagedResult[T]:
        total = qs.count()
        rows = qs[page.skip:page.skip + page.take]
        return PagedResult(
            items=self._to_entities(rows),
            total_count=total,
            page_number=page.page_number,
            page_size=page.page_size,
        )
