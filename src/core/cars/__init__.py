"""
Car catalogue context: cars for lease and the interests clients register
on them.

Use cases live in `src.core.cars.use_cases` and are imported from there.
"""

from .entities import CarEntity, CarInterestEntity
from .ports import (
    CarRepository,
    CarInterestRepository,
    InMemoryCarRepository,
    InMemoryCarInterestRepository,
)

__all__ = [
    "CarEntity",
    "CarInterestEntity",
    "CarRepository",
    "CarInterestRepository",
    "InMemoryCarRepository",
    "InMemoryCarInterestRepository",
]
