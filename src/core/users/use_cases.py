"""
Use cases of the users context.

- RegisterUserService: create a profile with a unique email
- UpdateUserProfileService: change first and last name
- GetUserService: fetch one profile
"""

import logging

from src.core.shared.clock import Clock
from src.core.shared.exceptions import ConflictError, EntityNotFoundError
from src.core.shared.interfaces import UnitOfWork

from .dtos import RegisterUserInputDTO, UpdateUserProfileInputDTO, UserOutputDTO
from .entities import UserEntity, UserRole
from .events import UserProfileUpdatedEvent, UserRegisteredEvent
from .ports import UserRepository


logger = logging.getLogger(__name__)


def load_user(user_repo: UserRepository, user_id: str) -> UserEntity:
    """Fetch a user or raise EntityNotFoundError."""
    user = user_repo.get_by_id(user_id)
    if user is None:
        raise EntityNotFoundError(
            f"User {user_id} not found",
            entity_type="User",
            entity_id=user_id,
        )
    return user


class RegisterUserService:
    """
    Use case: register a user profile.

    Flow:
    1. Reject an email that is already registered
    2. Build the validated entity
    3. Persist it and queue UserRegisteredEvent
    """

    def __init__(self, user_repo: UserRepository, uow: UnitOfWork, clock: Clock):
        self.user_repo = user_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: RegisterUserInputDTO) -> UserOutputDTO:
        """
        Raises:
            ValidationError: If a field is invalid
            ConflictError: If the email is taken
        """
        with self.uow:
            user = UserEntity.create(
                email=input_dto.email,
                first_name=input_dto.first_name,
                last_name=input_dto.last_name,
                role=UserRole.from_string(input_dto.role),
                user_id=input_dto.user_id,
                now=self.clock.now(),
            )

            if self.user_repo.email_exists(user.email):
                raise ConflictError(
                    f"Email {user.email} is already registered",
                    reason="duplicate_email",
                )

            self.user_repo.add(user)
            self.uow.publish_event(
                UserRegisteredEvent(
                    aggregate_id=user.id,
                    email=user.email,
                    role=user.role.value,
                )
            )

        logger.info(f"User registered: {user.id} ({user.role.value})")
        return UserOutputDTO.from_entity(user)


class UpdateUserProfileService:
    def __init__(self, user_repo: UserRepository, uow: UnitOfWork, clock: Clock):
        self.user_repo = user_repo
        self.uow = uow
        self.clock = clock

    def execute(self, input_dto: UpdateUserProfileInputDTO) -> UserOutputDTO:
        with self.uow:
            user = load_user(self.user_repo, input_dto.user_id)
            user.update_profile(
                input_dto.first_name,
                input_dto.last_name,
                now=self.clock.now(),
            )
            self.user_repo.update(user)
            self.uow.publish_event(
                UserProfileUpdatedEvent(
                    aggregate_id=user.id,
                    first_name=user.first_name,
                    last_name=user.last_name,
                )
            )

        return UserOutputDTO.from_entity(user)


class GetUserService:
    def __init__(self, user_repo: UserRepository):
        self.user_repo = user_repo

    def execute(self, user_id: str) -> UserOutputDTO:
        return UserOutputDTO.from_entity(load_user(self.user_repo, user_id))
