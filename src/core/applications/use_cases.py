"""
Use cases of the application workflow.

SubmitApplicationService is the only path that consumes offer capacity.
It runs the whole check-then-write sequence in one unit of work:

    load offer ─► duplicate? ─► can_apply? ─► increment ─► CAS offer ─► insert
                     │              │                          │           │
                 Conflict      InvalidState              stale_version  duplicate
                                                        (retried once)  (final)

Either the offer update and the application insert both commit or
neither does.
"""

import logging
from typing import List

from src.core.offers.ports import OfferRepository
from src.core.offers.use_cases import load_offer
from src.core.shared.clock import Clock
from src.core.shared.concurrency import retry_on_stale_version
from src.core.shared.exceptions import EntityNotFoundError, InvalidStateError, PermissionDeniedError
from src.core.shared.interfaces import UnitOfWork

from .dtos import (
    ApplicationOutputDTO,
    CancelApplicationInputDTO,
    ReviewApplicationInputDTO,
    SubmitApplicationInputDTO,
)
from .entities import OfferApplicationEntity
from .events import ApplicationCancelledEvent, ApplicationReviewedEvent, ApplicationSubmittedEvent
from .ports import OfferApplicationRepository, duplicate_application_error


logger = logging.getLogger(__name__)


def load_application(
    application_repo: OfferApplicationRepository, application_id: int
) -> OfferApplicationEntity:
    application = application_repo.get_by_id(application_id)
    if application is None:
        raise EntityNotFoundError(
            f"Application {application_id} not found",
            entity_type="OfferApplication",
            entity_id=application_id,
        )
    return application


# =============================================================================
# COMMANDS
# =============================================================================

class SubmitApplicationService:
    """
    Use case: a client applies to an offer.

    Example:
        service = SubmitApplicationService(offer_repo, application_repo, uow, clock)
        output = service.execute(SubmitApplicationInputDTO(offer_id=7, user_id="u-1"))
        output.status  # "Pending"

    Raises:
        ValidationError: If the input is invalid
        EntityNotFoundError: If the offer does not exist
        ConflictError: duplicate_application when the user already applied;
            stale_version when the offer kept changing under us
        InvalidStateError: If the offer is closed or full
    """

    def __init__(
        self,
        offer_repo: OfferRepository,
        application_repo: OfferApplicationRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.offer_repo = offer_repo
        self.application_repo = application_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: SubmitApplicationInputDTO) -> ApplicationOutputDTO:
        return retry_on_stale_version(lambda: self._submit(input_dto))

    def _submit(self, input_dto: SubmitApplicationInputDTO) -> ApplicationOutputDTO:
        now = self.clock.now()
        with self.uow:
            offer = load_offer(self.offer_repo, input_dto.offer_id)

            if self.application_repo.exists(offer.id, input_dto.user_id):
                raise duplicate_application_error(offer.id, input_dto.user_id)

            if not offer.can_apply(now):
                raise InvalidStateError(
                    f"Offer {offer.id} is not accepting applications "
                    f"({offer.status_badge(now)})",
                    rule="offer_not_open",
                )

            application = OfferApplicationEntity.submit(
                offer_id=offer.id,
                user_id=input_dto.user_id,
                notes=input_dto.notes,
                now=now,
            )
            offer.increment_applications(now)
            self.offer_repo.update(offer)
            self.application_repo.add(application)

            self.uow.publish_event(
                ApplicationSubmittedEvent(
                    aggregate_id=application.id,
                    offer_id=offer.id,
                    user_id=application.user_id,
                    remaining_slots=offer.remaining_slots,
                )
            )

        logger.info(
            f"Application {application.id} submitted by {application.user_id} "
            f"for offer {offer.id} ({offer.remaining_slots} slot(s) left)"
        )
        return ApplicationOutputDTO.from_entity(application)


class _ReviewApplicationService:
    """Shared flow of approve and reject."""

    def __init__(
        self,
        application_repo: OfferApplicationRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.application_repo = application_repo
        self.uow = uow
        self.clock = clock

    def _apply(self, application: OfferApplicationEntity, input_dto, now) -> None:
        raise NotImplementedError

    def execute(self, input_dto: ReviewApplicationInputDTO) -> ApplicationOutputDTO:
        """
        Raises:
            EntityNotFoundError: If the application does not exist
            InvalidStateError: If it already left PENDING
            ValidationError: If the reviewer id is blank
        """
        now = self.clock.now()
        with self.uow:
            application = load_application(self.application_repo, input_dto.application_id)
            self._apply(application, input_dto, now)
            self.application_repo.update(application)
            self.uow.publish_event(
                ApplicationReviewedEvent(
                    aggregate_id=application.id,
                    offer_id=application.offer_id,
                    user_id=application.user_id,
                    status=application.status.value,
                    reviewed_by_user_id=application.reviewed_by_user_id,
                )
            )

        logger.info(
            f"Application {application.id} {application.status.value.lower()} "
            f"by {application.reviewed_by_user_id}"
        )
        return ApplicationOutputDTO.from_entity(application)


class ApproveApplicationService(_ReviewApplicationService):
    def _apply(self, application, input_dto, now) -> None:
        application.approve(input_dto.reviewer_user_id, review_notes=input_dto.review_notes, now=now)


class RejectApplicationService(_ReviewApplicationService):
    def _apply(self, application, input_dto, now) -> None:
        application.reject(input_dto.reviewer_user_id, review_notes=input_dto.review_notes, now=now)


class CancelApplicationService:
    """
    Use case: the applicant withdraws a pending application.

    The consumed offer slot is not given back.

    Raises:
        EntityNotFoundError: If the application does not exist
        PermissionDeniedError: If the caller is not the applicant
        InvalidStateError: If it already left PENDING
    """

    def __init__(
        self,
        application_repo: OfferApplicationRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.application_repo = application_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: CancelApplicationInputDTO) -> ApplicationOutputDTO:
        now = self.clock.now()
        with self.uow:
            application = load_application(self.application_repo, input_dto.application_id)
            if application.user_id != input_dto.user_id:
                raise PermissionDeniedError(
                    f"Only the applicant can cancel application {application.id}",
                    required_role="Applicant",
                )
            application.cancel(now)
            self.application_repo.update(application)
            self.uow.publish_event(
                ApplicationCancelledEvent(
                    aggregate_id=application.id,
                    offer_id=application.offer_id,
                    user_id=application.user_id,
                )
            )

        logger.info(f"Application {application.id} cancelled by {application.user_id}")
        return ApplicationOutputDTO.from_entity(application)


# =============================================================================
# QUERIES
# =============================================================================

class GetApplicationService:
    def __init__(self, application_repo: OfferApplicationRepository):
        self.application_repo = application_repo

    def execute(self, application_id: int) -> ApplicationOutputDTO:
        return ApplicationOutputDTO.from_entity(
            load_application(self.application_repo, application_id)
        )


class ListApplicationsForOfferService:
    """Applications of one offer, newest first. The offer must exist."""

    def __init__(self, application_repo: OfferApplicationRepository, offer_repo: OfferRepository):
        self.application_repo = application_repo
        self.offer_repo = offer_repo

    def execute(self, offer_id: int) -> List[ApplicationOutputDTO]:
        offer = load_offer(self.offer_repo, offer_id)
        return [
            ApplicationOutputDTO.from_entity(a)
            for a in self.application_repo.list_by_offer(offer.id)
        ]


class ListApplicationsForUserService:
    def __init__(self, application_repo: OfferApplicationRepository):
        self.application_repo = application_repo

    def execute(self, user_id: str) -> List[ApplicationOutputDTO]:
        return [
            ApplicationOutputDTO.from_entity(a)
            for a in self.application_repo.list_by_user(user_id)
        ]


class GetApplicationForOfferAndUserService:
    """The application a user sent to one offer, e.g. to tell whether they already applied."""

    def __init__(self, application_repo: OfferApplicationRepository, offer_repo: OfferRepository):
        self.application_repo = application_repo
        self.offer_repo = offer_repo

    def execute(self, offer_id: int, user_id: str) -> ApplicationOutputDTO:
        """
        Raises:
            EntityNotFoundError: If the offer does not exist or the user never applied
        """
        offer = load_offer(self.offer_repo, offer_id)
        application = self.application_repo.get_by_offer_and_user(offer.id, user_id)
        if application is None:
            raise EntityNotFoundError(
                f"No application from user {user_id} for offer {offer.id}",
                entity_type="OfferApplication",
            )
        return ApplicationOutputDTO.from_entity(application)


class ListPendingApplicationsService:
    """Review queue: pending applications, oldest first."""

    def __init__(self, application_repo: OfferApplicationRepository):
        self.application_repo = application_repo

    def execute(self) -> List[ApplicationOutputDTO]:
        return [ApplicationOutputDTO.from_entity(a) for a in self.application_repo.list_pending()]
