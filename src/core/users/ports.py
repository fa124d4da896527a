"""
Ports of the users context.

UserRepository is the contract adapters implement; the in-memory version
backs the unit tests and the in-memory container.
"""

from typing import List, Optional, Protocol, runtime_checkable

from src.core.shared.exceptions import ConflictError
from src.core.shared.memory import InMemoryStore, sort_entities

from .entities import UserEntity


@runtime_checkable
class UserRepository(Protocol):
    """
    Persistence contract for users.

    Email addresses are unique; `add` raises ConflictError on a duplicate.
    """

    def add(self, user: UserEntity) -> UserEntity:
        ...

    def update(self, user: UserEntity) -> None:
        ...

    def delete(self, user_id: str) -> None:
        ...

    def get_by_id(self, user_id: str) -> Optional[UserEntity]:
        ...

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        ...

    def list_all(self) -> List[UserEntity]:
        ...

    def email_exists(self, email: str) -> bool:
        ...


class InMemoryUserRepository(InMemoryStore[UserEntity]):
    """Dict-backed UserRepository."""

    def add(self, user: UserEntity) -> UserEntity:
        if user.id in self._items:
            raise ConflictError(
                f"User {user.id} already has a profile", reason="duplicate_user"
            )
        if self.email_exists(user.email):
            raise ConflictError(
                f"Email {user.email} is already registered",
                reason="duplicate_email",
            )
        return self._insert(user)

    def update(self, user: UserEntity) -> None:
        self._replace(user)

    def delete(self, user_id: str) -> None:
        self._remove(user_id)

    def get_by_id(self, user_id: str) -> Optional[UserEntity]:
        return self._load(user_id)

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        email = (email or "").strip().lower()
        for user in self._values():
            if user.email == email:
                return user
        return None

    def list_all(self) -> List[UserEntity]:
        return sort_entities(self._values(), "email", descending=False)

    def email_exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None
