"""
In-memory persistence building blocks.

Used by the in-memory repositories of every context, by the core test
suite and by `create_in_memory_container`. Entities are stored as deep copies,
so two callers that load the same row hold independent objects, just as
with a real database.
"""

import copy
import threading
from typing import Any, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from .interfaces import EventPublisher, UnitOfWork
from .pagination import PageRequest, PagedResult


T = TypeVar("T")


class InMemoryStore(Generic[T]):
    """
    Dict-backed storage with integer id assignment and snapshots.

    Subclasses get `_insert`, `_replace`, `_load` and `_values`; the unit
    of work uses `snapshot` and `restore` to roll back.
    """

    def __init__(self):
        self._items: Dict[Any, T] = {}
        self._next_id = 1
        self._guard = threading.RLock()

    def _insert(self, entity: T) -> T:
        with self._guard:
            if getattr(entity, "id", None) is None:
                entity.id = self._next_id
                self._next_id += 1
            elif isinstance(entity.id, int):
                self._next_id = max(self._next_id, entity.id + 1)
            self._items[entity.id] = copy.deepcopy(entity)
        return entity

    def _replace(self, entity: T) -> None:
        with self._guard:
            self._items[entity.id] = copy.deepcopy(entity)

    def _load(self, entity_id) -> Optional[T]:
        with self._guard:
            entity = self._items.get(entity_id)
            return copy.deepcopy(entity) if entity is not None else None

    def _values(self) -> List[T]:
        with self._guard:
            return [copy.deepcopy(entity) for entity in self._items.values()]

    def _remove(self, entity_id) -> None:
        with self._guard:
            self._items.pop(entity_id, None)

    def snapshot(self) -> Tuple[Dict[Any, T], int]:
        with self._guard:
            return copy.deepcopy(self._items), self._next_id

    def restore(self, state: Tuple[Dict[Any, T], int]) -> None:
        with self._guard:
            self._items, self._next_id = state

    def clear(self) -> None:
        with self._guard:
            self._items.clear()
            self._next_id = 1

    def __len__(self) -> int:
        return len(self._items)


def sort_entities(items: Iterable[T], field_name: str, descending: bool) -> List[T]:
    """Sort by attribute; text compares case-insensitively and None sorts last."""
    def key(entity):
        value = getattr(entity, field_name)
        if isinstance(value, str):
            value = value.lower()
        return value

    items = list(items)
    present = [item for item in items if getattr(item, field_name) is not None]
    missing = [item for item in items if getattr(item, field_name) is None]
    return sorted(present, key=key, reverse=descending) + missing


def paginate(items: List[T], page: PageRequest) -> PagedResult[T]:
    return PagedResult(
        items=items[page.skip:page.skip + page.take],
        total_count=len(items),
        page_number=page.page_number,
        page_size=page.page_size,
    )


def contains_text(term: str, *values: Optional[str]) -> bool:
    """Case-insensitive substring match against any of the values."""
    needle = term.lower()
    return any(value and needle in value.lower() for value in values)


class InMemoryUnitOfWork(UnitOfWork):
    """
    Unit of Work over in-memory repositories.

    Every scope takes a process-wide re-entrant lock, snapshots the
    registered repositories and restores them on rollback. Scopes are
    therefore serialized, which makes the check-then-write sequence of a
    handler atomic.

    Attributes:
        committed: True after the last scope committed
        rolled_back: True after the last scope rolled back
        commit_count: Number of successful commits

    Example:
        uow = InMemoryUnitOfWork(repositories=[offer_repo, application_repo])
        with uow:
            offer_repo.update(offer)
            application_repo.add(application)
    """

    _lock = threading.RLock()

    def __init__(
        self,
        repositories: Optional[Iterable[InMemoryStore]] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(event_publisher)
        self._repositories = list(repositories or [])
        self._snapshots: Optional[List[Tuple]] = None
        self.committed = False
        self.rolled_back = False
        self.commit_count = 0
        self.published_events: List = []

    def register(self, repository: InMemoryStore) -> None:
        self._repositories.append(repository)

    def _begin_transaction(self) -> None:
        self._lock.acquire()
        self._snapshots = [repo.snapshot() for repo in self._repositories]
        self.committed = False
        self.rolled_back = False

    def commit(self) -> None:
        events = self._take_events()
        self._snapshots = None
        self.committed = True
        self.commit_count += 1
        self._lock.release()
        self.published_events.extend(events)
        self._publish(events)

    def rollback(self) -> None:
        try:
            for repo, state in zip(self._repositories, self._snapshots or []):
                repo.restore(state)
            self._snapshots = None
            self.rolled_back = True
            self.clear_events()
        finally:
            self._lock.release()

