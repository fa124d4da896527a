"""Sales agents context: staff who manage cars and offers and earn commission."""

from .entities import SalesAgentEntity
from .ports import SalesAgentRepository, InMemorySalesAgentRepository

__all__ = [
    "SalesAgentEntity",
    "SalesAgentRepository",
    "InMemorySalesAgentRepository",
]
