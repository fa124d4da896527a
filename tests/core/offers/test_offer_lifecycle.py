"""
Unit tests for the offer lifecycle: the entity rules, the use cases and
the optimistic concurrency of the in-memory repository.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from src.core.cars.dtos import UpdateCarInputDTO
from src.core.offers.dtos import OfferQueryDTO, UpdateOfferInputDTO
from src.core.offers.entities import OfferEntity, OfferStatusBadge
from src.core.offers.ports import InMemoryOfferRepository
from src.core.shared.exceptions import (
    ConflictError,
    EntityNotFoundError,
    InvalidStateError,
    ValidationError,
)

from tests.core.conftest import NOW, offer_input


def make_offer(**overrides) -> OfferEntity:
    fields = {
        "title": "Spring deal",
        "description": "Lease a Corolla",
        "original_price": Decimal("25000"),
        "discounted_price": Decimal("22000"),
        "start_date": NOW,
        "end_date": NOW + timedelta(days=21),
        "terms": "36 months",
        "max_applications": 5,
        "car_id": 1,
        "now": NOW,
    }
    fields.update(overrides)
    return OfferEntity.create(**fields)


def update_input(offer, **overrides) -> UpdateOfferInputDTO:
    fields = {
        "offer_id": offer.id,
        "title": offer.title,
        "description": offer.description,
        "original_price": offer.original_price,
        "discounted_price": offer.discounted_price,
        "start_date": offer.start_date,
        "end_date": offer.end_date,
        "terms": offer.terms,
        "max_applications": offer.max_applications,
    }
    fields.update(overrides)
    return UpdateOfferInputDTO(**fields)


class TestOfferEntity:
    def test_discount_is_derived(self):
        offer = make_offer()

        assert offer.discount_percentage == Decimal("12")
        assert offer.discount_label == "12% OFF"
        assert offer.savings == Decimal("3000")
        assert offer.is_active
        assert offer.current_applications == 0
        assert offer.version == 1

    def test_discount_label_rounds_half_up(self):
        offer = make_offer(original_price=Decimal("200"), discounted_price=Decimal("175"))

        assert offer.discount_percentage == Decimal("12.5")
        assert offer.discount_label == "13% OFF"

    @pytest.mark.parametrize("field", ["original_price", "discounted_price"])
    def test_prices_are_whole_cents(self, field):
        prices = {"original_price": Decimal("25000"), "discounted_price": Decimal("22000")}
        prices[field] += Decimal("0.125")

        with pytest.raises(ValidationError) as exc_info:
            make_offer(**prices)

        assert exc_info.value.field == field

    def test_date_start_is_midnight_utc(self):
        offer = make_offer(start_date=date(2025, 3, 1), end_date=date(2025, 3, 22))

        assert offer.start_date.hour == 0
        assert offer.start_date.tzinfo is not None

    @pytest.mark.parametrize(
        "original,discounted,field",
        [
            ("0", "1", "original_price"),
            ("100", "0", "discounted_price"),
            ("100", "100", "discounted_price"),
            ("100", "120", "discounted_price"),
        ],
    )
    def test_price_rules(self, original, discounted, field):
        with pytest.raises(ValidationError) as exc_info:
            make_offer(original_price=original, discounted_price=discounted)

        assert exc_info.value.field == field

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError) as exc_info:
            make_offer(end_date=NOW)

        assert exc_info.value.field == "end_date"

    def test_start_before_today(self):
        with pytest.raises(ValidationError) as exc_info:
            make_offer(start_date=NOW - timedelta(days=1))

        assert exc_info.value.field == "start_date"

    def test_earlier_today_is_accepted(self):
        offer = make_offer(start_date=NOW - timedelta(hours=3))

        assert offer.has_started(NOW)

    @pytest.mark.parametrize("max_applications", [0, 1001, True, "5"])
    def test_capacity_bounds(self, max_applications):
        with pytest.raises(ValidationError) as exc_info:
            make_offer(max_applications=max_applications)

        assert exc_info.value.field == "max_applications"

    def test_capacity_is_enforced(self):
        offer = make_offer()
        later = NOW + timedelta(hours=1)

        for _ in range(5):
            offer.increment_applications(later)

        assert offer.remaining_slots == 0
        assert offer.status_badge(later) == OfferStatusBadge.SOLD_OUT
        assert not offer.can_apply(later)
        with pytest.raises(InvalidStateError) as exc_info:
            offer.increment_applications(later)
        assert exc_info.value.rule == "offer_not_open"
        assert offer.current_applications == 5

    def test_window_is_inclusive(self):
        offer = make_offer(start_date=NOW + timedelta(days=1))

        assert not offer.can_apply(NOW)
        assert offer.can_apply(offer.start_date)
        assert offer.can_apply(offer.end_date)
        assert not offer.can_apply(offer.end_date + timedelta(seconds=1))

    def test_status_badge_priority(self):
        offer = make_offer(start_date=NOW + timedelta(days=2))

        assert offer.status_badge(NOW) == OfferStatusBadge.COMING_SOON
        assert offer.status_badge(NOW + timedelta(days=3)) == OfferStatusBadge.ACTIVE
        assert offer.status_badge(NOW + timedelta(days=30)) == OfferStatusBadge.EXPIRED
        offer.deactivate(NOW)
        assert offer.status_badge(NOW + timedelta(days=3)) == OfferStatusBadge.INACTIVE

    def test_time_remaining(self):
        offer = make_offer(start_date=NOW + timedelta(days=2))

        assert offer.time_remaining(NOW) == "Starts in 2 days"
        assert offer.time_remaining(NOW + timedelta(days=2, hours=3)) == "18 days left"
        assert offer.time_remaining(offer.end_date - timedelta(hours=5)) == "5 hours left"
        assert offer.time_remaining(offer.end_date + timedelta(minutes=1)) == "Expired"

    def test_update_recomputes_discount(self):
        offer = make_offer()

        offer.update(
            title=offer.title,
            description=offer.description,
            original_price="25000",
            discounted_price="20000",
            start_date=offer.start_date,
            end_date=offer.end_date,
            terms=offer.terms,
            max_applications=offer.max_applications,
            now=NOW + timedelta(days=3),
        )

        assert offer.discount_label == "20% OFF"

    def test_update_cannot_shrink_below_taken_slots(self):
        offer = make_offer()
        offer.increment_applications(NOW)
        offer.increment_applications(NOW)

        with pytest.raises(ValidationError) as exc_info:
            offer.update(
                title=offer.title,
                description=offer.description,
                original_price=offer.original_price,
                discounted_price=offer.discounted_price,
                start_date=offer.start_date,
                end_date=offer.end_date,
                terms=offer.terms,
                max_applications=1,
                now=NOW,
            )

        assert exc_info.value.field == "max_applications"
        assert offer.max_applications == 5


class TestOfferRepositoryConcurrency:
    def test_stale_copy_is_rejected(self):
        repo = InMemoryOfferRepository()
        repo.add(make_offer())
        first = repo.get_by_id(1)
        second = repo.get_by_id(1)

        first.increment_applications(NOW)
        repo.update(first)
        second.increment_applications(NOW)

        with pytest.raises(ConflictError) as exc_info:
            repo.update(second)

        assert exc_info.value.reason == ConflictError.STALE_VERSION
        assert exc_info.value.is_retryable
        stored = repo.get_by_id(1)
        assert stored.current_applications == 1
        assert stored.version == 2

    def test_update_of_missing_offer(self):
        repo = InMemoryOfferRepository()
        offer = make_offer()
        offer.id = 7

        with pytest.raises(EntityNotFoundError):
            repo.update(offer)


class TestOfferServices:
    def test_create(self, container, clock, car, publisher):
        offer = container.create_offer_service().execute(offer_input(car.id, start=clock.now()))

        assert offer.discount_label == "12% OFF"
        assert offer.remaining_slots == 5
        assert offer.can_apply
        assert offer.status_badge == "Active"
        created = publisher.get_events_by_type("OfferCreatedEvent")[0].to_dict()
        assert created["data"]["discount_percentage"] == str(offer.discount_percentage)

    def test_create_for_unknown_car(self, container, clock):
        with pytest.raises(EntityNotFoundError):
            container.create_offer_service().execute(offer_input(404, start=clock.now()))

    def test_create_for_unavailable_car(self, container, clock, car):
        container.update_car_service().execute(
            UpdateCarInputDTO(
                car_id=car.id,
                make=car.make,
                model=car.model,
                year=car.year,
                color=car.color,
                price=car.price,
                description=car.description,
                is_available=False,
            )
        )

        with pytest.raises(InvalidStateError) as exc_info:
            container.create_offer_service().execute(offer_input(car.id, start=clock.now()))

        assert exc_info.value.rule == "car_unavailable"

    def test_update_keeps_a_past_start(self, container, clock, open_offer):
        clock.advance(days=2)

        updated = container.update_offer_service().execute(
            update_input(open_offer, discounted_price=Decimal("20000"))
        )

        assert updated.discount_label == "20% OFF"
        assert updated.version == open_offer.version + 1

    def test_update_rejects_a_new_past_start(self, container, clock, open_offer):
        clock.advance(days=2)

        with pytest.raises(ValidationError) as exc_info:
            container.update_offer_service().execute(
                update_input(open_offer, start_date=open_offer.start_date + timedelta(hours=1))
            )

        assert exc_info.value.field == "start_date"

    def test_deactivate_and_activate(self, container, open_offer, publisher):
        closed = container.deactivate_offer_service().execute(open_offer.id)

        assert closed.status_badge == "Inactive"
        assert not closed.can_apply

        reopened = container.activate_offer_service().execute(open_offer.id)

        assert reopened.can_apply
        assert len(publisher.get_events_by_type("OfferDeactivatedEvent")) == 1
        assert len(publisher.get_events_by_type("OfferActivatedEvent")) == 1

    def test_expired_sweep(self, container, clock, car, open_offer, publisher):
        later = container.create_offer_service().execute(
            offer_input(car.id, start=clock.now(), end_date=clock.now() + timedelta(days=60))
        )
        clock.advance(days=30)

        expired = container.deactivate_expired_offers_service().execute()

        assert expired == [open_offer.id]
        assert container.get_offer_service().execute(open_offer.id).is_active is False
        assert container.get_offer_service().execute(later.id).is_active is True
        assert len(publisher.get_events_by_type("OfferExpiredEvent")) == 1
        assert container.deactivate_expired_offers_service().execute() == []

    def test_delete(self, container, open_offer, publisher):
        container.delete_offer_service().execute(open_offer.id)

        with pytest.raises(EntityNotFoundError):
            container.get_offer_service().execute(open_offer.id)
        deleted = publisher.get_events_by_type("OfferDeletedEvent")[0].to_dict()
        assert deleted["data"]["removed_application_count"] == 0


class TestOfferListings:
    @pytest.fixture
    def offers(self, container, clock, car):
        service = container.create_offer_service()
        deep = service.execute(
            offer_input(car.id, start=clock.now(), title="Deep cut", discounted_price=Decimal("15000"))
        )
        mild = service.execute(offer_input(car.id, start=clock.now(), title="Mild cut"))
        future = service.execute(
            offer_input(car.id, start=clock.now() + timedelta(days=5), title="Future deal")
        )
        clock.advance(hours=1)
        return {"deep": deep, "mild": mild, "future": future}

    def test_active_offers_biggest_discount_first(self, container, offers):
        active = container.list_active_offers_service().execute()

        assert [o.title for o in active] == ["Deep cut", "Mild cut"]

    def test_filters(self, container, offers):
        result = container.list_offers_service().execute(
            OfferQueryDTO(min_discount=Decimal("20"))
        )

        assert [o.title for o in result.items] == ["Deep cut"]

    def test_search_term_matches_car(self, container, offers):
        result = container.list_offers_service().execute(OfferQueryDTO(search_term="corolla"))

        assert result.total_count == 3

    def test_inactive_filter(self, container, offers):
        container.deactivate_offer_service().execute(offers["mild"].id)

        result = container.list_offers_service().execute(OfferQueryDTO(is_active=False))

        assert [o.title for o in result.items] == ["Mild cut"]

    def test_sort_by_title(self, container, offers):
        result = container.list_offers_service().execute(OfferQueryDTO(sort_by="title"))

        assert [o.title for o in result.items] == ["Deep cut", "Future deal", "Mild cut"]
