"""
Ports of the application workflow.

The repository owns the unique (offer_id, user_id) constraint: adding a
second application for the same pair raises
ConflictError(reason="duplicate_application"). Updates only ever move an
application out of PENDING; writing over an application that already left
PENDING raises InvalidStateError, so two reviewers racing on the same
application cannot both win.
"""

import logging
from typing import List, Optional, Protocol, runtime_checkable

from src.core.shared.exceptions import ConflictError, EntityNotFoundError, InvalidStateError
from src.core.shared.memory import InMemoryStore, sort_entities

from .entities import ApplicationStatus, OfferApplicationEntity


logger = logging.getLogger(__name__)

DUPLICATE_APPLICATION = "duplicate_application"


@runtime_checkable
class OfferApplicationRepository(Protocol):
    """Persistence contract for offer applications."""

    def add(self, application: OfferApplicationEntity) -> OfferApplicationEntity:
        """
        Raises:
            ConflictError: If the user already applied to the offer
        """
        ...

    def update(self, application: OfferApplicationEntity) -> None:
        """
        Persist a status transition.

        Raises:
            EntityNotFoundError: If the application no longer exists
            InvalidStateError: If the stored application already left PENDING
        """
        ...

    def get_by_id(self, application_id: int) -> Optional[OfferApplicationEntity]:
        ...

    def get_by_offer_and_user(
        self, offer_id: int, user_id: str
    ) -> Optional[OfferApplicationEntity]:
        ...

    def exists(self, offer_id: int, user_id: str) -> bool:
        ...

    def list_by_offer(self, offer_id: int) -> List[OfferApplicationEntity]:
        ...

    def list_by_user(self, user_id: str) -> List[OfferApplicationEntity]:
        ...

    def list_pending(self) -> List[OfferApplicationEntity]:
        """Pending applications, oldest first."""
        ...

    def delete_by_offer(self, offer_id: int) -> int:
        """Delete every application of an offer and return how many went."""
        ...


def duplicate_application_error(offer_id: int, user_id: str) -> ConflictError:
    return ConflictError(
        f"User {user_id} already applied to offer {offer_id}",
        reason=DUPLICATE_APPLICATION,
    )


def already_reviewed_error(application: OfferApplicationEntity) -> InvalidStateError:
    return InvalidStateError(
        f"Application {application.id} was already processed",
        rule="application_already_processed",
    )


class InMemoryOfferApplicationRepository(InMemoryStore[OfferApplicationEntity]):
    def add(self, application: OfferApplicationEntity) -> OfferApplicationEntity:
        with self._guard:
            if self.exists(application.offer_id, application.user_id):
                raise duplicate_application_error(application.offer_id, application.user_id)
            return self._insert(application)

    def update(self, application: OfferApplicationEntity) -> None:
        with self._guard:
            stored = self._items.get(application.id)
            if stored is None:
                raise EntityNotFoundError(
                    f"Application {application.id} not found",
                    entity_type="OfferApplication",
                    entity_id=application.id,
                )
            if stored.status != ApplicationStatus.PENDING:
                raise already_reviewed_error(application)
            self._replace(application)

    def get_by_id(self, application_id: int) -> Optional[OfferApplicationEntity]:
        return self._load(application_id)

    def get_by_offer_and_user(
        self, offer_id: int, user_id: str
    ) -> Optional[OfferApplicationEntity]:
        for application in self._values():
            if application.offer_id == offer_id and application.user_id == user_id:
                return application
        return None

    def exists(self, offer_id: int, user_id: str) -> bool:
        with self._guard:
            return any(
                a.offer_id == offer_id and a.user_id == user_id
                for a in self._items.values()
            )

    def list_by_offer(self, offer_id: int) -> List[OfferApplicationEntity]:
        applications = [a for a in self._values() if a.offer_id == offer_id]
        return sort_entities(applications, "application_date", descending=True)

    def list_by_user(self, user_id: str) -> List[OfferApplicationEntity]:
        applications = [a for a in self._values() if a.user_id == user_id]
        return sort_entities(applications, "application_date", descending=True)

    def list_pending(self) -> List[OfferApplicationEntity]:
        applications = [a for a in self._values() if a.is_pending]
        return sort_entities(applications, "application_date", descending=False)

    def delete_by_offer(self, offer_id: int) -> int:
        with self._guard:
            ids = [key for key, a in self._items.items() if a.offer_id == offer_id]
            for application_id in ids:
                self._remove(application_id)
        logger.debug(f"Deleted {len(ids)} application(s) of offer {offer_id}")
        return len(ids)
