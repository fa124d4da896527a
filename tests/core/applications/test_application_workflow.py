"""
Unit tests for the application workflow: submit, review, cancel, and
concurrent submissions against a limited offer.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal

import pytest

from src.core.applications.dtos import (
    CancelApplicationInputDTO,
    ReviewApplicationInputDTO,
    SubmitApplicationInputDTO,
)
from src.core.applications.entities import ApplicationStatus, OfferApplicationEntity
from src.core.applications.ports import InMemoryOfferApplicationRepository
from src.core.shared.exceptions import (
    ConflictError,
    EntityNotFoundError,
    InvalidStateError,
    PermissionDeniedError,
    ValidationError,
)

from tests.core.conftest import NOW, offer_input


def submit(container, offer_id, user_id, notes=None):
    return container.submit_application_service().execute(
        SubmitApplicationInputDTO(offer_id=offer_id, user_id=user_id, notes=notes)
    )


def review(reviewer="agent-1", notes=None):
    def build(application_id):
        return ReviewApplicationInputDTO(
            application_id=application_id, reviewer_user_id=reviewer, review_notes=notes
        )
    return build


class TestApplicationEntity:
    def test_submit_is_pending(self):
        application = OfferApplicationEntity.submit(offer_id=3, user_id="u-1", now=NOW)

        assert application.status == ApplicationStatus.PENDING
        assert application.application_date == NOW
        assert application.reviewed_at is None

    def test_review_records_reviewer(self):
        application = OfferApplicationEntity.submit(offer_id=3, user_id="u-1", now=NOW)

        application.approve("agent-1", now=NOW, review_notes="Credit check ok")

        assert application.status == ApplicationStatus.APPROVED
        assert application.reviewed_by_user_id == "agent-1"
        assert application.review_notes == "Credit check ok"
        assert application.reviewed_at == NOW

    @pytest.mark.parametrize("action", ["approve", "reject"])
    def test_terminal_states_are_final(self, action):
        application = OfferApplicationEntity.submit(offer_id=3, user_id="u-1", now=NOW)
        application.reject("agent-1", now=NOW)

        with pytest.raises(InvalidStateError) as exc_info:
            getattr(application, action)("agent-2", now=NOW)

        assert exc_info.value.rule == f"{action}_requires_pending"
        assert application.reviewed_by_user_id == "agent-1"

    def test_cancel_has_no_reviewer(self):
        application = OfferApplicationEntity.submit(offer_id=3, user_id="u-1", now=NOW)

        application.cancel(NOW)

        assert application.status == ApplicationStatus.CANCELLED
        assert application.reviewed_by_user_id is None
        assert application.status.is_terminal

    def test_notes_length(self):
        with pytest.raises(ValidationError) as exc_info:
            OfferApplicationEntity.submit(offer_id=3, user_id="u-1", now=NOW, notes="x" * 501)

        assert exc_info.value.field == "notes"

    def test_status_parsing(self):
        assert ApplicationStatus.from_string("approved") == ApplicationStatus.APPROVED
        with pytest.raises(ValidationError):
            ApplicationStatus.from_string("archived")


class TestApplicationRepository:
    def test_one_application_per_user_and_offer(self):
        repo = InMemoryOfferApplicationRepository()
        repo.add(OfferApplicationEntity.submit(offer_id=1, user_id="u-1", now=NOW))

        with pytest.raises(ConflictError) as exc_info:
            repo.add(OfferApplicationEntity.submit(offer_id=1, user_id="u-1", now=NOW))

        assert exc_info.value.reason == "duplicate_application"
        assert not exc_info.value.is_retryable

    def test_review_is_guarded_by_stored_status(self):
        repo = InMemoryOfferApplicationRepository()
        repo.add(OfferApplicationEntity.submit(offer_id=1, user_id="u-1", now=NOW))
        first = repo.get_by_id(1)
        second = repo.get_by_id(1)

        first.approve("agent-1", now=NOW)
        repo.update(first)
        second.reject("agent-2", now=NOW)

        with pytest.raises(InvalidStateError) as exc_info:
            repo.update(second)

        assert exc_info.value.rule == "application_already_processed"
        assert repo.get_by_id(1).status == ApplicationStatus.APPROVED


class TestSubmitApplication:
    def test_submit_consumes_a_slot(self, container, open_offer, client, publisher):
        application = submit(container, open_offer.id, client.id, notes="Weekend pickup")

        assert application.status == "Pending"
        assert application.notes == "Weekend pickup"
        offer = container.get_offer_service().execute(open_offer.id)
        assert offer.current_applications == 1
        assert offer.remaining_slots == 4
        event = publisher.get_events_by_type("ApplicationSubmittedEvent")[0].to_dict()
        assert event["data"]["remaining_slots"] == 4
        assert event["data"]["user_id"] == client.id
        assert event["aggregate_id"] == str(application.id)

    def test_duplicate_does_not_consume_a_slot(self, container, open_offer, client):
        submit(container, open_offer.id, client.id)

        with pytest.raises(ConflictError) as exc_info:
            submit(container, open_offer.id, client.id)

        assert exc_info.value.reason == "duplicate_application"
        assert container.get_offer_service().execute(open_offer.id).current_applications == 1

    def test_full_offer(self, container, open_offer):
        for n in range(5):
            submit(container, open_offer.id, f"user-{n}")

        with pytest.raises(InvalidStateError) as exc_info:
            submit(container, open_offer.id, "user-5")

        assert exc_info.value.rule == "offer_not_open"
        offer = container.get_offer_service().execute(open_offer.id)
        assert offer.status_badge == "Sold Out"
        assert offer.current_applications == 5

    def test_offer_not_started(self, container, clock, car):
        offer = container.create_offer_service().execute(
            offer_input(car.id, start=clock.now() + timedelta(days=3))
        )

        with pytest.raises(InvalidStateError):
            submit(container, offer.id, "user-1")

    def test_expired_offer(self, container, clock, open_offer):
        clock.advance(days=30)

        with pytest.raises(InvalidStateError):
            submit(container, open_offer.id, "user-1")

    def test_inactive_offer(self, container, open_offer):
        container.deactivate_offer_service().execute(open_offer.id)

        with pytest.raises(InvalidStateError):
            submit(container, open_offer.id, "user-1")

    def test_unknown_offer(self, container):
        with pytest.raises(EntityNotFoundError):
            submit(container, 404, "user-1")

    def test_rejected_input_leaves_offer_untouched(self, container, open_offer, publisher):
        publisher.clear()

        with pytest.raises(ValidationError):
            submit(container, open_offer.id, "user-1", notes="x" * 501)

        assert container.get_offer_service().execute(open_offer.id).current_applications == 0
        assert publisher.published_events == []


class TestReviewAndCancel:
    @pytest.fixture
    def application(self, container, open_offer, client):
        return submit(container, open_offer.id, client.id)

    def test_approve(self, container, application, publisher):
        approved = container.approve_application_service().execute(
            review(notes="Welcome aboard")(application.id)
        )

        assert approved.status == "Approved"
        assert approved.reviewed_by_user_id == "agent-1"
        event = publisher.get_events_by_type("ApplicationReviewedEvent")[0].to_dict()
        assert event["data"]["status"] == "Approved"

    def test_second_review_fails(self, container, application):
        container.approve_application_service().execute(review()(application.id))

        with pytest.raises(InvalidStateError):
            container.approve_application_service().execute(review("agent-2")(application.id))
        with pytest.raises(InvalidStateError):
            container.reject_application_service().execute(review("agent-2")(application.id))

        stored = container.get_application_service().execute(application.id)
        assert stored.status == "Approved"
        assert stored.reviewed_by_user_id == "agent-1"

    def test_review_needs_a_reviewer(self, container, application):
        with pytest.raises(ValidationError):
            container.reject_application_service().execute(review(" ")(application.id))

    def test_review_unknown(self, container):
        with pytest.raises(EntityNotFoundError):
            container.approve_application_service().execute(review()(404))

    def test_cancel_keeps_the_slot(self, container, open_offer, application, client):
        cancelled = container.cancel_application_service().execute(
            CancelApplicationInputDTO(application_id=application.id, user_id=client.id)
        )

        assert cancelled.status == "Cancelled"
        assert container.get_offer_service().execute(open_offer.id).current_applications == 1
        assert container.list_pending_applications_service().execute() == []

    def test_only_the_applicant_cancels(self, container, application):
        with pytest.raises(PermissionDeniedError) as exc_info:
            container.cancel_application_service().execute(
                CancelApplicationInputDTO(application_id=application.id, user_id="intruder")
            )

        assert exc_info.value.required_role == "Applicant"
        assert container.get_application_service().execute(application.id).status == "Pending"

    def test_cancel_after_approval(self, container, application, client):
        container.approve_application_service().execute(review()(application.id))

        with pytest.raises(InvalidStateError):
            container.cancel_application_service().execute(
                CancelApplicationInputDTO(application_id=application.id, user_id=client.id)
            )


class TestApplicationQueries:
    def test_listings(self, container, clock, open_offer):
        first = submit(container, open_offer.id, "user-1")
        clock.advance(minutes=10)
        second = submit(container, open_offer.id, "user-2")
        container.reject_application_service().execute(review()(first.id))

        for_offer = container.list_applications_for_offer_service().execute(open_offer.id)
        for_user = container.list_applications_for_user_service().execute("user-2")
        pending = container.list_pending_applications_service().execute()

        assert [a.id for a in for_offer] == [second.id, first.id]
        assert [a.id for a in for_user] == [second.id]
        assert [a.id for a in pending] == [second.id]

    def test_application_of_one_user_to_one_offer(self, container, open_offer, client):
        sent = submit(container, open_offer.id, client.id, notes="Weekend pickup")
        submit(container, open_offer.id, "user-2")
        lookup = container.get_application_for_offer_and_user_service()

        found = lookup.execute(open_offer.id, client.id)

        assert found.id == sent.id
        assert found.notes == "Weekend pickup"
        with pytest.raises(EntityNotFoundError):
            lookup.execute(open_offer.id, "never-applied")
        with pytest.raises(EntityNotFoundError):
            lookup.execute(404, client.id)

    def test_listing_for_unknown_offer(self, container):
        with pytest.raises(EntityNotFoundError):
            container.list_applications_for_offer_service().execute(404)


class TestConcurrentSubmissions:
    def _run(self, container, offer_id, user_ids):
        # one service (and unit of work) per worker
        services = [container.submit_application_service() for _ in user_ids]

        def attempt(args):
            service, user_id = args
            try:
                service.execute(SubmitApplicationInputDTO(offer_id=offer_id, user_id=user_id))
                return "ok"
            except (ConflictError, InvalidStateError) as e:
                return e

        with ThreadPoolExecutor(max_workers=len(user_ids)) as pool:
            return list(pool.map(attempt, zip(services, user_ids)))

    def test_capacity_is_never_exceeded(self, container, open_offer):
        results = self._run(container, open_offer.id, [f"user-{n}" for n in range(8)])

        assert results.count("ok") == 5
        failures = [r for r in results if r != "ok"]
        assert all(isinstance(f, InvalidStateError) for f in failures)
        offer = container.get_offer_service().execute(open_offer.id)
        assert offer.current_applications == 5
        assert len(container.list_applications_for_offer_service().execute(open_offer.id)) == 5

    def test_same_user_applies_once(self, container, open_offer):
        results = self._run(container, open_offer.id, ["client-1"] * 4)

        assert results.count("ok") == 1
        failures = [r for r in results if r != "ok"]
        assert all(
            isinstance(f, ConflictError) and f.reason == "duplicate_application" for f in failures
        )
        assert container.get_offer_service().execute(open_offer.id).current_applications == 1

    def test_capacity_of_one(self, container, clock, car):
        offer = container.create_offer_service().execute(
            offer_input(car.id, start=clock.now(), max_applications=1, discounted_price=Decimal("24000"))
        )

        results = self._run(container, offer.id, ["user-a", "user-b", "user-c"])

        assert results.count("ok") == 1
        assert container.get_offer_service().execute(offer.id).remaining_slots == 0
