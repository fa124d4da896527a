"""
Shared domain components.

Building blocks used by every bounded context:
- Domain exceptions
- Ports (UnitOfWork, Repository, EventPublisher)
- Domain event base class
- Clock, validation predicates and pagination
"""

from .exceptions import (
    DomainException,
    ValidationError,
    EntityNotFoundError,
    InvalidStateError,
    ConflictError,
    PermissionDeniedError,
)
from .events import DomainEvent
from .interfaces import UnitOfWork, EventPublisher
from .clock import Clock, SystemClock, FixedClock
from .pagination import PageRequest, PagedResult

__all__ = [
    "DomainException",
    "ValidationError",
    "EntityNotFoundError",
    "InvalidStateError",
    "ConflictError",
    "PermissionDeniedError",
    "DomainEvent",
    "UnitOfWork",
    "EventPublisher",
    "Clock",
    "SystemClock",
    "FixedClock",
    "PageRequest",
    "PagedResult",
]
