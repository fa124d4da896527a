"""Unit tests for sales agents."""

from decimal import Decimal

import pytest

from src.core.sales_agents.dtos import (
    CreateSalesAgentInputDTO,
    SalesAgentQueryDTO,
    UpdateSalesAgentInputDTO,
)
from src.core.sales_agents.entities import SalesAgentEntity
from src.core.shared.exceptions import ConflictError, EntityNotFoundError, ValidationError

from tests.core.conftest import NOW, car_input, offer_input


def agent_input(**overrides) -> CreateSalesAgentInputDTO:
    fields = {
        "first_name": "Maria",
        "last_name": "Lopez",
        "email": "maria@autolease.test",
        "phone_number": "5551234567",
        "department": "Leasing",
        "commission_rate": Decimal("5"),
    }
    fields.update(overrides)
    return CreateSalesAgentInputDTO(**fields)


class TestSalesAgentEntity:
    def test_commission(self):
        agent = SalesAgentEntity.create(
            first_name="Maria",
            last_name="Lopez",
            email="maria@autolease.test",
            phone_number="5551234567",
            department="Leasing",
            commission_rate="5",
            now=NOW,
        )

        assert agent.calculate_commission(Decimal("20000")) == Decimal("1000")
        assert agent.hire_date == NOW
        assert agent.is_active

    @pytest.mark.parametrize("rate", ["-1", "50.01"])
    def test_commission_rate_bounds(self, rate):
        with pytest.raises(ValidationError) as exc_info:
            SalesAgentEntity.create(
                first_name="Maria",
                last_name="Lopez",
                email="maria@autolease.test",
                phone_number="5551234567",
                department="Leasing",
                commission_rate=rate,
                now=NOW,
            )

        assert exc_info.value.field == "commission_rate"

    @pytest.mark.parametrize("phone", ["555123456", "5" * 16])
    def test_phone_length(self, phone):
        with pytest.raises(ValidationError) as exc_info:
            SalesAgentEntity.create(
                first_name="Maria",
                last_name="Lopez",
                email="maria@autolease.test",
                phone_number=phone,
                department="Leasing",
                commission_rate="5",
                now=NOW,
            )

        assert exc_info.value.field == "phone_number"

    def test_failed_update_leaves_agent_untouched(self):
        agent = SalesAgentEntity.create(
            first_name="Maria",
            last_name="Lopez",
            email="maria@autolease.test",
            phone_number="5551234567",
            department="Leasing",
            commission_rate="5",
            now=NOW,
        )

        with pytest.raises(ValidationError):
            agent.update_details(
                first_name="Marta",
                last_name="Lopez",
                email="maria@autolease.test",
                phone_number="5551234567",
                department="Leasing",
                commission_rate="75",
                now=NOW,
            )

        assert agent.first_name == "Maria"
        assert agent.commission_rate == Decimal("5")


class TestSalesAgentServices:
    def test_create_publishes_hired_event(self, container, publisher):
        agent = container.create_sales_agent_service().execute(agent_input())

        assert agent.id is not None
        assert agent.assigned_car_count == 0
        assert len(publisher.get_events_by_type("SalesAgentHiredEvent")) == 1

    def test_duplicate_email(self, container):
        container.create_sales_agent_service().execute(agent_input())

        with pytest.raises(ConflictError) as exc_info:
            container.create_sales_agent_service().execute(
                agent_input(first_name="Marta", email="MARIA@autolease.test")
            )

        assert exc_info.value.reason == "duplicate_email"

    def test_linked_user_must_exist(self, container):
        with pytest.raises(EntityNotFoundError):
            container.create_sales_agent_service().execute(agent_input(user_id="ghost"))

    def test_user_can_be_linked_to_one_agent_only(self, container, client):
        container.create_sales_agent_service().execute(agent_input(user_id=client.id))

        with pytest.raises(ConflictError) as exc_info:
            container.create_sales_agent_service().execute(
                agent_input(email="other@autolease.test", user_id=client.id)
            )

        assert exc_info.value.reason == "duplicate_user"

    def test_update_with_empty_user_unlinks(self, container, client):
        agent = container.create_sales_agent_service().execute(agent_input(user_id=client.id))

        updated = container.update_sales_agent_service().execute(
            UpdateSalesAgentInputDTO(
                sales_agent_id=agent.id,
                first_name="Maria",
                last_name="Lopez",
                email="maria@autolease.test",
                phone_number="5551234567",
                department="Fleet",
                commission_rate="7.5",
            )
        )

        assert updated.user_id is None
        assert updated.department == "Fleet"
        assert updated.commission_rate == Decimal("7.5")

    def test_delete_releases_cars_and_offers(self, container, clock, publisher):
        agent = container.create_sales_agent_service().execute(agent_input())
        car = container.create_car_service().execute(car_input(sales_agent_id=agent.id))
        offer = container.create_offer_service().execute(
            offer_input(car.id, start=clock.now(), sales_agent_id=agent.id)
        )

        container.delete_sales_agent_service().execute(agent.id)

        assert container.get_car_service().execute(car.id).sales_agent_id is None
        assert container.get_offer_service().execute(offer.id).sales_agent_id is None
        with pytest.raises(EntityNotFoundError):
            container.get_sales_agent_service().execute(agent.id)
        removed = publisher.get_events_by_type("SalesAgentRemovedEvent")[0]
        assert list(removed.to_dict()["data"]["unassigned_car_ids"]) == [car.id]

    def test_get_counts_assigned_cars(self, container):
        agent = container.create_sales_agent_service().execute(agent_input())
        container.create_car_service().execute(car_input(sales_agent_id=agent.id))

        assert container.get_sales_agent_service().execute(agent.id).assigned_car_count == 1

    def test_list_filters_and_sorts(self, container):
        service = container.create_sales_agent_service()
        service.execute(agent_input(first_name="Zoe", email="zoe@autolease.test", commission_rate="3"))
        service.execute(agent_input(first_name="Bruno", email="bruno@autolease.test", commission_rate="9"))
        service.execute(
            agent_input(
                first_name="Carla",
                email="carla@autolease.test",
                department="Fleet",
                commission_rate="12",
            )
        )

        result = container.list_sales_agents_service().execute(
            SalesAgentQueryDTO(department="leasing", sort_by="FirstName")
        )

        assert [agent.first_name for agent in result.items] == ["Bruno", "Zoe"]
        assert result.total_count == 2

        rich = container.list_sales_agents_service().execute(
            SalesAgentQueryDTO(min_commission_rate=Decimal("9"), sort_by="commissionrate", sort_descending=True)
        )

        assert [agent.first_name for agent in rich.items] == ["Carla", "Bruno"]
