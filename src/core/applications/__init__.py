"""
Application workflow context: clients applying to offers and agents
reviewing them.
"""

from .entities import ApplicationStatus, OfferApplicationEntity
from .ports import OfferApplicationRepository, InMemoryOfferApplicationRepository

__all__ = [
    "ApplicationStatus",
    "OfferApplicationEntity",
    "OfferApplicationRepository",
    "InMemoryOfferApplicationRepository",
]
