"""
Users context: profiles and roles of marketplace users.

Passwords and sessions stay with the identity provider; this package
only knows the profile and whether the user is a Client or a SalesAgent.
"""

from .entities import UserEntity, UserRole
from .ports import UserRepository, InMemoryUserRepository

__all__ = [
    "UserEntity",
    "UserRole",
    "UserRepository",
    "InMemoryUserRepository",
]
