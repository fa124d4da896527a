"""
Tests for the JSON API.

Requests go through the real URLConf, the global container and the
Django repositories; only the event publisher is swapped for a recorder.
"""

import json
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.test import Client
from django.urls import reverse
from django.utils import timezone

from tests.adapters.django_app.conftest import car_payload, offer_payload

pytestmark = pytest.mark.django_db


def post_json(client, url, payload=None):
    return client.post(url, data=json.dumps(payload or {}), content_type="application/json")


def put_json(client, url, payload):
    return client.put(url, data=json.dumps(payload), content_type="application/json")


@pytest.fixture
def car(as_agent):
    response = post_json(as_agent, reverse("marketplace:car_list"), car_payload())
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def offer(as_agent, car):
    response = post_json(as_agent, reverse("marketplace:offer_list"), offer_payload(car["id"]))
    assert response.status_code == 201
    return response.json()["data"]


class TestAccessControl:
    def test_catalogue_is_public(self, anonymous, container):
        response = anonymous.get(reverse("marketplace:car_list"))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["items"] == []

    def test_anonymous_write_is_401(self, anonymous, container):
        response = post_json(anonymous, reverse("marketplace:car_list"), car_payload())

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_client_write_is_403(self, as_client):
        response = post_json(as_client, reverse("marketplace:car_list"), car_payload())

        assert response.status_code == 403

    def test_client_cannot_review(self, as_client, offer):
        applied = post_json(
            as_client, reverse("marketplace:offer_applications", args=[offer["id"]])
        ).json()["data"]

        response = post_json(
            as_client, reverse("marketplace:application_approve", args=[applied["id"]])
        )

        assert response.status_code == 403


class TestErrorEnvelope:
    def test_validation_error_names_the_field(self, as_agent):
        response = post_json(
            as_agent, reverse("marketplace:car_list"), car_payload(vin_number="SHORT")
        )

        assert response.status_code == 400
        assert response.json()["meta"] == {"field": "vin_number"}

    def test_price_below_a_cent(self, as_agent):
        response = post_json(
            as_agent, reverse("marketplace:car_list"), car_payload(price="25000.125")
        )

        assert response.status_code == 400
        assert response.json()["meta"] == {"field": "price"}

    def test_conflict_names_the_reason(self, as_agent, car):
        response = post_json(as_agent, reverse("marketplace:car_list"), car_payload())

        assert response.status_code == 409
        assert response.json()["meta"] == {"reason": "duplicate_vin"}

    def test_not_found(self, anonymous, container):
        response = anonymous.get(reverse("marketplace:car_detail", args=[404]))

        assert response.status_code == 404

    def test_malformed_json(self, as_agent):
        response = as_agent.post(
            reverse("marketplace:car_list"), data="{not json", content_type="application/json"
        )

        assert response.status_code == 400

    def test_bad_query_parameter(self, anonymous, container):
        response = anonymous.get(reverse("marketplace:car_list"), {"page_size": "lots"})

        assert response.status_code == 400
        assert response.json()["meta"] == {"field": "page_size"}


class TestCatalogueEndpoints:
    def test_create_and_list(self, anonymous, car):
        assert car["vin_number"] == "1HGCM82633A004352"
        assert car["price"] == "25000.00"

        listing = anonymous.get(reverse("marketplace:car_list"), {"make": "toyota"}).json()

        assert listing["data"]["total_count"] == 1
        assert listing["data"]["items"][0]["id"] == car["id"]

    def test_update_and_available(self, as_agent, anonymous, car):
        response = put_json(
            as_agent,
            reverse("marketplace:car_detail", args=[car["id"]]),
            car_payload(color="Red", is_available=False),
        )

        assert response.status_code == 200
        assert response.json()["data"]["color"] == "Red"
        available = anonymous.get(reverse("marketplace:car_available")).json()
        assert available["meta"]["total"] == 0

    def test_delete(self, as_agent, anonymous, car):
        response = as_agent.delete(reverse("marketplace:car_detail", args=[car["id"]]))

        assert response.status_code == 200
        assert anonymous.get(reverse("marketplace:car_detail", args=[car["id"]])).status_code == 404

    def test_interest_flow(self, as_client, as_agent, car):
        call_at = (timezone.now() + timedelta(days=1)).isoformat()

        created = post_json(
            as_client,
            reverse("marketplace:car_interest", args=[car["id"]]),
            {"preferred_call_time": call_at, "notes": "After 6pm"},
        )

        assert created.status_code == 201
        assert created.json()["data"]["client_name"] == "Ana Silva"
        listing = as_agent.get(reverse("marketplace:interest_list")).json()
        assert listing["data"]["total_count"] == 1

    def test_interest_document_paths_must_be_a_list(self, as_client, car):
        call_at = (timezone.now() + timedelta(days=1)).isoformat()

        response = post_json(
            as_client,
            reverse("marketplace:car_interest", args=[car["id"]]),
            {"preferred_call_time": call_at, "document_paths": "docs/id.pdf"},
        )

        assert response.status_code == 400
        assert response.json()["meta"] == {"field": "document_paths"}


class TestOfferAndApplicationFlow:
    def test_offer_is_created_open(self, offer, anonymous):
        assert offer["discount_label"] == "12% OFF"
        assert offer["can_apply"] is True

        active = anonymous.get(reverse("marketplace:offer_active")).json()
        assert [o["id"] for o in active["data"]] == [offer["id"]]

    def test_apply_review_and_duplicate(self, as_client, as_agent, agent_user, client_user, offer, publisher):
        url = reverse("marketplace:offer_applications", args=[offer["id"]])

        first = post_json(as_client, url, {"notes": "Weekend pickup"})
        second = post_json(as_client, url)

        assert first.status_code == 201
        application = first.json()["data"]
        assert application["status"] == "Pending"
        assert application["user_id"] == str(client_user.pk)
        assert second.status_code == 409
        assert second.json()["meta"] == {"reason": "duplicate_application"}

        approved = post_json(
            as_agent,
            reverse("marketplace:application_approve", args=[application["id"]]),
            {"review_notes": "Credit check ok"},
        )
        again = post_json(
            as_agent, reverse("marketplace:application_reject", args=[application["id"]])
        )

        assert approved.status_code == 200
        assert approved.json()["data"]["reviewed_by_user_id"] == str(agent_user.pk)
        assert again.status_code == 422
        assert publisher.get_events_by_type("ApplicationReviewedEvent")

        mine = as_client.get(reverse("marketplace:application_mine")).json()
        assert [a["status"] for a in mine["data"]] == ["Approved"]

    def test_own_application_on_an_offer(self, as_client, anonymous, offer):
        mine_url = reverse("marketplace:offer_application_mine", args=[offer["id"]])

        assert as_client.get(mine_url).status_code == 404
        assert anonymous.get(mine_url).status_code == 401

        applied = post_json(
            as_client, reverse("marketplace:offer_applications", args=[offer["id"]])
        ).json()["data"]
        response = as_client.get(mine_url)

        assert response.status_code == 200
        assert response.json()["data"]["id"] == applied["id"]

    def test_full_offer_is_422(self, as_agent, car, client_user, as_client):
        created = post_json(
            as_agent, reverse("marketplace:offer_list"), offer_payload(car["id"], max_applications=1)
        ).json()["data"]
        url = reverse("marketplace:offer_applications", args=[created["id"]])
        post_json(as_agent, url)

        response = post_json(as_client, url)

        assert response.status_code == 422
        assert response.json()["meta"] == {"rule": "offer_not_open"}

    def test_cancel_by_somebody_else(self, as_client, as_agent, offer):
        applied = post_json(
            as_agent, reverse("marketplace:offer_applications", args=[offer["id"]])
        ).json()["data"]

        response = post_json(
            as_client, reverse("marketplace:application_cancel", args=[applied["id"]])
        )

        assert response.status_code == 403

    def test_deactivate_closes_the_offer(self, as_agent, as_client, offer):
        closed = post_json(as_agent, reverse("marketplace:offer_deactivate", args=[offer["id"]]))

        assert closed.json()["data"]["status_badge"] == "Inactive"
        response = post_json(
            as_client, reverse("marketplace:offer_applications", args=[offer["id"]])
        )
        assert response.status_code == 422


class TestCurrentUser:
    def test_profile_round_trip(self, as_client):
        profile = as_client.get(reverse("marketplace:user_me")).json()["data"]

        assert profile["role"] == "Client"

        updated = put_json(
            as_client, reverse("marketplace:user_me"), {"first_name": "Ana", "last_name": "Souza"}
        )

        assert updated.json()["data"]["full_name"] == "Ana Souza"

    def test_self_registration_is_always_client(self, db, container):

        user = get_user_model().objects.create_user(
            username="joao", email="joao@example.com", password="x", first_name="Joao", last_name="Dias"
        )
        client = Client()
        client.force_login(user)

        response = post_json(client, reverse("marketplace:user_me"), {"role": "SalesAgent"})

        assert response.status_code == 201
        assert response.json()["data"]["role"] == "Client"
        assert response.json()["data"]["email"] == "joao@example.com"
