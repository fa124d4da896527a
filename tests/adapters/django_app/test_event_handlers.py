"""Tests for the Celery event handlers and the scheduled sweep."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.utils import timezone

from src.adapters.django_app.events import handlers
from src.adapters.django_app.marketplace.models import OfferModel
from src.core.cars.entities import CarEntity
from src.core.offers.dtos import CreateOfferInputDTO


def submitted_event(remaining_slots):
    return {
        "event_type": "ApplicationSubmittedEvent",
        "aggregate_id": "11",
        "data": {"offer_id": 3, "user_id": "7", "remaining_slots": remaining_slots},
    }


class TestDispatcher:
    def test_routes_known_event(self):
        with patch.object(handlers.handle_application_submitted, "delay") as delay:
            routed = handlers.dispatch_domain_event("ApplicationSubmittedEvent", submitted_event(2))

        assert routed is True
        delay.assert_called_once_with(submitted_event(2))

    def test_ignores_unknown_event(self):
        assert handlers.dispatch_domain_event("UnknownEvent", {}) is False


class TestHandlers:
    def test_submission_notifies_sales_team(self):
        with patch.object(handlers.notify_sales_team, "delay") as notify:
            handlers.handle_application_submitted(submitted_event(2))

        notify.assert_called_once_with(message="New application on offer 3", offer_id=3)

    def test_last_slot_warns_sold_out(self):
        with patch.object(handlers.notify_sales_team, "delay") as notify:
            handlers.handle_application_submitted(submitted_event(0))

        messages = [call.kwargs["message"] for call in notify.call_args_list]
        assert messages == ["New application on offer 3", "Offer 3 is sold out"]

    @pytest.mark.parametrize(
        "task",
        [
            handlers.handle_application_submitted,
            handlers.handle_application_reviewed,
            handlers.handle_car_interest_registered,
            handlers.dispatch_domain_event,
        ],
    )
    def test_failures_are_retried(self, task):
        assert task.autoretry_for == (Exception,)
        assert task.max_retries >= 3

    def test_failed_fan_out_propagates(self, caplog):
        with patch.object(
            handlers.notify_sales_team, "delay", side_effect=ConnectionError("broker down")
        ):
            with pytest.raises(ConnectionError):
                handlers.handle_application_submitted(submitted_event(2))

        assert "ApplicationSubmitted handler failed" in caplog.text

    def test_review_notifies_applicant(self):
        event = {
            "aggregate_id": "11",
            "data": {"offer_id": 3, "user_id": "7", "status": "Approved"},
        }

        with patch.object(handlers.notify_user, "delay") as notify:
            handlers.handle_application_reviewed(event)

        notify.assert_called_once_with(
            user_id="7", message="Your application to offer 3 was approved"
        )


@pytest.mark.django_db
class TestScheduledSweep:
    def test_deactivates_expired_offers(self, container, car_entity_fields):
        car = container.car_repository().add(CarEntity.create(now=timezone.now(), **car_entity_fields))
        now = timezone.now()
        offer = container.create_offer_service().execute(
            CreateOfferInputDTO(
                car_id=car.id,
                title="Spring deal",
                description="Lease a Corolla",
                original_price=Decimal("25000"),
                discounted_price=Decimal("22000"),
                start_date=now,
                end_date=now + timedelta(days=7),
                terms="36 months",
                max_applications=5,
            )
        )
        OfferModel.objects.filter(pk=offer.id).update(end_date=now - timedelta(hours=1))

        assert handlers.deactivate_expired_offers() == [offer.id]
        assert handlers.deactivate_expired_offers() == []
