"""Unit tests for user profiles: entity rules and the profile use cases."""

import pytest

from src.core.shared.exceptions import ConflictError, EntityNotFoundError, ValidationError
from src.core.users.dtos import RegisterUserInputDTO, UpdateUserProfileInputDTO
from src.core.users.entities import UserEntity, UserRole

from tests.core.conftest import NOW


class TestUserEntity:
    def test_create_normalizes_email(self):
        user = UserEntity.create(
            email="  Ana@Example.COM ",
            first_name="Ana",
            last_name="Silva",
            now=NOW,
        )

        assert user.email == "ana@example.com"
        assert user.role == UserRole.CLIENT
        assert user.full_name == "Ana Silva"
        assert user.username == user.email

    def test_identity_provider_id_is_kept(self):
        user = UserEntity.create(
            email="ana@example.com", first_name="Ana", last_name="Silva", now=NOW, user_id="42"
        )

        assert user.id == "42"

    def test_generated_id_when_none_given(self):
        user = UserEntity.create(email="ana@example.com", first_name="Ana", last_name="Silva", now=NOW)

        assert user.id

    @pytest.mark.parametrize("first_name", ["", "A", "x" * 51])
    def test_first_name_length(self, first_name):
        with pytest.raises(ValidationError) as exc_info:
            UserEntity.create(
                email="ana@example.com", first_name=first_name, last_name="Silva", now=NOW
            )

        assert exc_info.value.field == "first_name"

    def test_email_needs_at_sign(self):
        with pytest.raises(ValidationError) as exc_info:
            UserEntity.create(email="ana.example.com", first_name="Ana", last_name="Silva", now=NOW)

        assert exc_info.value.field == "email"

    @pytest.mark.parametrize("raw", ["SalesAgent", "SALES_AGENT", "sales agent"])
    def test_role_parsing(self, raw):
        assert UserRole.from_string(raw) == UserRole.SALES_AGENT

    def test_unknown_role(self):
        with pytest.raises(ValidationError) as exc_info:
            UserRole.from_string("Admin")

        assert exc_info.value.field == "role"


class TestUserProfileUseCases:
    def test_register_publishes_event(self, container, publisher):
        output = container.register_user_service().execute(
            RegisterUserInputDTO(
                email="bruno@example.com",
                first_name="Bruno",
                last_name="Costa",
                role="SalesAgent",
                user_id="agent-1",
            )
        )

        assert output.id == "agent-1"
        assert output.role == "SalesAgent"
        events = publisher.get_events_by_type("UserRegisteredEvent")
        assert len(events) == 1
        assert events[0].to_dict()["data"]["role"] == "SalesAgent"

    def test_duplicate_email_is_a_conflict(self, container, client):
        with pytest.raises(ConflictError) as exc_info:
            container.register_user_service().execute(
                RegisterUserInputDTO(
                    email="ANA@example.com",
                    first_name="Other",
                    last_name="Person",
                    user_id="client-2",
                )
            )

        assert exc_info.value.reason == "duplicate_email"

    def test_second_profile_for_same_user_is_a_conflict(self, container, client):
        with pytest.raises(ConflictError) as exc_info:
            container.register_user_service().execute(
                RegisterUserInputDTO(
                    email="another@example.com",
                    first_name="Ana",
                    last_name="Silva",
                    user_id="client-1",
                )
            )

        assert exc_info.value.reason == "duplicate_user"

    def test_update_profile(self, container, client):
        output = container.update_user_profile_service().execute(
            UpdateUserProfileInputDTO(user_id=client.id, first_name="Ana Maria", last_name="Souza")
        )

        assert output.full_name == "Ana Maria Souza"
        assert container.get_user_service().execute(client.id).last_name == "Souza"

    def test_get_unknown_user(self, container):
        with pytest.raises(EntityNotFoundError):
            container.get_user_service().execute("nobody")
