"""Offer lifecycle context: time-boxed, capacity-limited discounts on cars."""

from .entities import OfferEntity, OfferStatusBadge
from .ports import OfferRepository, InMemoryOfferRepository

__all__ = [
    "OfferEntity",
    "OfferStatusBadge",
    "OfferRepository",
    "InMemoryOfferRepository",
]
