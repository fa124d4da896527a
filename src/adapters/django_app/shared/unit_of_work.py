"""
Unit of Work - Django implementation.

Wraps each handler scope in `transaction.atomic()`. Nested scopes (a
handler called while a request transaction or a test transaction is open)
become savepoints, so rollback never reaches past the scope that asked
for it.

Events queued during the scope are published only after the atomic block
committed; a rollback discards them.
"""

from typing import Optional
import logging

from django.db import transaction

from src.core.shared.interfaces import EventPublisher, UnitOfWork

logger = logging.getLogger(__name__)


class DjangoUnitOfWork(UnitOfWork):
    """
    Django Unit of Work.

    Example:
        uow = DjangoUnitOfWork(event_publisher=LoggingEventPublisher())
        with uow:
            offer_repo.update(offer)        # CAS on version
            application_repo.add(application)
            uow.publish_event(ApplicationSubmittedEvent(...))
        # committed, then published

    Attributes:
        using: Database alias the transaction runs on
    """

    def __init__(
        self,
        event_publisher: Optional[EventPublisher] = None,
        using: Optional[str] = None,
    ):
        super().__init__(event_publisher)
        self.using = using
        self._atomic = None
        self._committed = False
        self._rolled_back = False

    def _begin_transaction(self) -> None:
        self._atomic = transaction.atomic(using=self.using)
        self._atomic.__enter__()
        self._committed = False
        self._rolled_back = False
        logger.debug("Transaction started")

    def commit(self) -> None:
        """
        Close the atomic block, then publish the queued events.

        A failure while closing the block (deferred constraint, lost
        connection) propagates and nothing is published.
        """
        atomic, self._atomic = self._atomic, None
        events = self._take_events()
        try:
            atomic.__exit__(None, None, None)
        except Exception:
            self._rolled_back = True
            logger.error("Commit failed, events discarded", exc_info=True)
            raise

        self._committed = True
        logger.debug("Transaction committed")
        self._publish(events)

    def rollback(self) -> None:
        atomic, self._atomic = self._atomic, None
        self.clear_events()
        if atomic is None:
            return
        transaction.set_rollback(True, using=self.using)
        atomic.__exit__(None, None, None)
        self._rolled_back = True
        logger.debug("Transaction rolled back")

    @property
    def is_committed(self) -> bool:
        return self._committed

    @property
    def is_rolled_back(self) -> bool:
        return self._rolled_back
