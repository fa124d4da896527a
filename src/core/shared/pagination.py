"""
Offset pagination and sort-key resolution shared by every listing.

A page request maps to `skip = (page_number - 1) * page_size` and
`take = page_size`. Repositories answer with a PagedResult carrying the
page items and the total count of matching rows.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from .exceptions import ValidationError


T = TypeVar("T")
U = TypeVar("U")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_SORT_FIELD = "created_at"


@dataclass(frozen=True)
class PageRequest:
    """
    Requested page (1-based) and page size.

    Raises:
        ValidationError: If page_number < 1 or page_size outside [1, MAX_PAGE_SIZE]
    """

    page_number: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        if isinstance(self.page_number, bool) or not isinstance(self.page_number, int) \
                or self.page_number < 1:
            raise ValidationError("Page number must be at least 1", field="page_number")
        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int) \
                or not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}",
                field="page_size",
            )

    @property
    def skip(self) -> int:
        return (self.page_number - 1) * self.page_size

    @property
    def take(self) -> int:
        return self.page_size


@dataclass
class PagedResult(Generic[T]):
    """
    One page of results plus the total number of matches.

    Attributes:
        items: Items of the current page
        total_count: Matches ignoring pagination
        page_number: Current page (1-based)
        page_size: Requested page size
    """

    items: List[T]
    total_count: int
    page_number: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    def map(self, func: Callable[[T], U]) -> "PagedResult[U]":
        """Return the same page with every item converted by `func`."""
        return PagedResult(
            items=[func(item) for item in self.items],
            total_count=self.total_count,
            page_number=self.page_number,
            page_size=self.page_size,
        )

    def to_dict(self, item_serializer: Optional[Callable[[T], Any]] = None) -> dict:
        serialize = item_serializer or (lambda item: item.to_dict())
        return {
            "items": [serialize(item) for item in self.items],
            "total_count": self.total_count,
            "page_number": self.page_number,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_previous": self.has_previous,
        }


def normalize_sort_key(sort_by: Optional[str]) -> str:
    """Lower-case and drop separators, so commission_rate matches CommissionRate."""
    if not sort_by:
        return ""
    return "".join(ch for ch in sort_by.lower() if ch.isalnum())


def resolve_sort(
    sort_by: Optional[str],
    allowed: Dict[str, str],
    descending: bool = False,
) -> Tuple[str, bool]:
    """
    Map a caller-supplied sort key onto an allowed field.

    Args:
        sort_by: Raw sort key from the caller
        allowed: Normalized key -> field name
        descending: Requested direction

    Returns:
        (field, descending). Unknown or empty keys fall back to
        creation time, newest first.
    """
    field_name = allowed.get(normalize_sort_key(sort_by))
    if field_name is None:
        return DEFAULT_SORT_FIELD, True
    return field_name, descending
