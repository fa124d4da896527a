"""
Dependency Injection Container.

Wires the clock, the event publisher, the repositories, the unit of work
and every use-case service with dependency-injector.

Patterns:
- Singleton: one instance per container (clock, publisher, repositories)
- Factory: a new instance per call (unit of work, services)
- Selector: `config.persistence` picks the adapters ("django" or "memory")

Django adapters are imported lazily: their modules import models, which
need the app registry to be ready.
"""

import importlib
from typing import Optional

from dependency_injector import containers, providers

from src.core.applications.ports import InMemoryOfferApplicationRepository
from src.core.applications import use_cases as applications
from src.core.cars.ports import InMemoryCarInterestRepository, InMemoryCarRepository
from src.core.cars import use_cases as cars
from src.core.offers.ports import InMemoryOfferRepository
from src.core.offers import use_cases as offers
from src.core.sales_agents.ports import InMemorySalesAgentRepository
from src.core.sales_agents import use_cases as sales_agents
from src.core.shared.clock import FixedClock, SystemClock
from src.core.shared.memory import InMemoryUnitOfWork
from src.core.users.ports import InMemoryUserRepository
from src.core.users import use_cases as users


REPOSITORIES = "src.adapters.django_app.marketplace.repositories"
UNIT_OF_WORK = "src.adapters.django_app.shared.unit_of_work"
PUBLISHERS = "src.adapters.django_app.events.publishers"


def _lazy(module_path: str, name: str):
    """Callable that imports `module_path.name` on first use and calls it."""
    def factory(*args, **kwargs):
        return getattr(importlib.import_module(module_path), name)(*args, **kwargs)

    factory.__name__ = name
    return factory


class Container(containers.DeclarativeContainer):
    """
    Application container.

    Example:
        container = Container()
        container.config.from_dict({"persistence": "memory"})

        service = container.submit_application_service()
        output = service.execute(SubmitApplicationInputDTO(offer_id=1, user_id="7"))
    """

    config = providers.Configuration(
        default={"persistence": "django", "event_publisher": "logging"}
    )

    # =========================================================================
    # Infrastructure
    # =========================================================================

    clock = providers.Singleton(SystemClock)

    event_publisher = providers.Singleton(
        _lazy(PUBLISHERS, "get_event_publisher"),
        backend=config.event_publisher,
    )

    # =========================================================================
    # Repositories
    # =========================================================================

    user_repository = providers.Selector(
        config.persistence,
        django=providers.Singleton(_lazy(REPOSITORIES, "DjangoUserRepository")),
        memory=providers.Singleton(InMemoryUserRepository),
    )

    car_repository = providers.Selector(
        config.persistence,
        django=providers.Singleton(_lazy(REPOSITORIES, "DjangoCarRepository")),
        memory=providers.Singleton(InMemoryCarRepository),
    )

    car_interest_repository = providers.Selector(
        config.persistence,
        django=providers.Singleton(_lazy(REPOSITORIES, "DjangoCarInterestRepository")),
        memory=providers.Singleton(InMemoryCarInterestRepository),
    )

    sales_agent_repository = providers.Selector(
        config.persistence,
        django=providers.Singleton(_lazy(REPOSITORIES, "DjangoSalesAgentRepository")),
        memory=providers.Singleton(
            InMemorySalesAgentRepository,
            car_count_lookup=car_repository.provided.count_by_sales_agent,
        ),
    )

    offer_repository = providers.Selector(
        config.persistence,
        django=providers.Singleton(_lazy(REPOSITORIES, "DjangoOfferRepository")),
        memory=providers.Singleton(
            InMemoryOfferRepository,
            car_lookup=car_repository.provided.get_by_id,
        ),
    )

    application_repository = providers.Selector(
        config.persistence,
        django=providers.Singleton(_lazy(REPOSITORIES, "DjangoOfferApplicationRepository")),
        memory=providers.Singleton(InMemoryOfferApplicationRepository),
    )

    # =========================================================================
    # Unit of Work (new instance per service)
    # =========================================================================

    unit_of_work = providers.Selector(
        config.persistence,
        django=providers.Factory(
            _lazy(UNIT_OF_WORK, "DjangoUnitOfWork"),
            event_publisher=event_publisher,
        ),
        memory=providers.Factory(
            InMemoryUnitOfWork,
            repositories=providers.List(
                user_repository,
                car_repository,
                car_interest_repository,
                sales_agent_repository,
                offer_repository,
                application_repository,
            ),
            event_publisher=event_publisher,
        ),
    )

    # =========================================================================
    # Users
    # =========================================================================

    register_user_service = providers.Factory(
        users.RegisterUserService,
        user_repo=user_repository,
        uow=unit_of_work,
        clock=clock,
    )

    update_user_profile_service = providers.Factory(
        users.UpdateUserProfileService,
        user_repo=user_repository,
        uow=unit_of_work,
        clock=clock,
    )

    get_user_service = providers.Factory(users.GetUserService, user_repo=user_repository)

    # =========================================================================
    # Sales agents
    # =========================================================================

    create_sales_agent_service = providers.Factory(
        sales_agents.CreateSalesAgentService,
        agent_repo=sales_agent_repository,
        user_repo=user_repository,
        uow=unit_of_work,
        clock=clock,
    )

    update_sales_agent_service = providers.Factory(
        sales_agents.UpdateSalesAgentService,
        agent_repo=sales_agent_repository,
        user_repo=user_repository,
        uow=unit_of_work,
        clock=clock,
    )

    delete_sales_agent_service = providers.Factory(
        sales_agents.DeleteSalesAgentService,
        agent_repo=sales_agent_repository,
        car_repo=car_repository,
        offer_repo=offer_repository,
        uow=unit_of_work,
        clock=clock,
    )

    get_sales_agent_service = providers.Factory(
        sales_agents.GetSalesAgentService,
        agent_repo=sales_agent_repository,
        car_repo=car_repository,
    )

    list_sales_agents_service = providers.Factory(
        sales_agents.ListSalesAgentsService,
        agent_repo=sales_agent_repository,
        car_repo=car_repository,
    )

    # =========================================================================
    # Cars
    # =========================================================================

    create_car_service = providers.Factory(
        cars.CreateCarService,
        car_repo=car_repository,
        agent_repo=sales_agent_repository,
        uow=unit_of_work,
        clock=clock,
    )

    update_car_service = providers.Factory(
        cars.UpdateCarService,
        car_repo=car_repository,
        agent_repo=sales_agent_repository,
        uow=unit_of_work,
        clock=clock,
    )

    delete_car_service = providers.Factory(
        cars.DeleteCarService,
        car_repo=car_repository,
        offer_repo=offer_repository,
        application_repo=application_repository,
        interest_repo=car_interest_repository,
        uow=unit_of_work,
    )

    get_car_service = providers.Factory(cars.GetCarService, car_repo=car_repository)

    list_cars_service = providers.Factory(cars.ListCarsService, car_repo=car_repository)

    list_available_cars_service = providers.Factory(
        cars.ListAvailableCarsService, car_repo=car_repository
    )

    register_car_interest_service = providers.Factory(
        cars.RegisterCarInterestService,
        interest_repo=car_interest_repository,
        car_repo=car_repository,
        user_repo=user_repository,
        uow=unit_of_work,
        clock=clock,
    )

    list_car_interests_service = providers.Factory(
        cars.ListCarInterestsService,
        interest_repo=car_interest_repository,
        car_repo=car_repository,
        user_repo=user_repository,
        clock=clock,
    )

    # =========================================================================
    # Offers
    # =========================================================================

    create_offer_service = providers.Factory(
        offers.CreateOfferService,
        offer_repo=offer_repository,
        car_repo=car_repository,
        agent_repo=sales_agent_repository,
        uow=unit_of_work,
        clock=clock,
    )

    update_offer_service = providers.Factory(
        offers.UpdateOfferService, offer_repo=offer_repository, uow=unit_of_work, clock=clock
    )

    activate_offer_service = providers.Factory(
        offers.ActivateOfferService, offer_repo=offer_repository, uow=unit_of_work, clock=clock
    )

    deactivate_offer_service = providers.Factory(
        offers.DeactivateOfferService, offer_repo=offer_repository, uow=unit_of_work, clock=clock
    )

    delete_offer_service = providers.Factory(
        offers.DeleteOfferService,
        offer_repo=offer_repository,
        application_repo=application_repository,
        uow=unit_of_work,
    )

    deactivate_expired_offers_service = providers.Factory(
        offers.DeactivateExpiredOffersService,
        offer_repo=offer_repository,
        uow=unit_of_work,
        clock=clock,
    )

    get_offer_service = providers.Factory(
        offers.GetOfferService, offer_repo=offer_repository, clock=clock
    )

    list_offers_service = providers.Factory(
        offers.ListOffersService, offer_repo=offer_repository, clock=clock
    )

    list_active_offers_service = providers.Factory(
        offers.ListActiveOffersService, offer_repo=offer_repository, clock=clock
    )

    # =========================================================================
    # Applications
    # =========================================================================

    submit_application_service = providers.Factory(
        applications.SubmitApplicationService,
        offer_repo=offer_repository,
        application_repo=application_repository,
        uow=unit_of_work,
        clock=clock,
    )

    approve_application_service = providers.Factory(
        applications.ApproveApplicationService,
        application_repo=application_repository,
        uow=unit_of_work,
        clock=clock,
    )

    reject_application_service = providers.Factory(
        applications.RejectApplicationService,
        application_repo=application_repository,
        uow=unit_of_work,
        clock=clock,
    )

    cancel_application_service = providers.Factory(
        applications.CancelApplicationService,
        application_repo=application_repository,
        uow=unit_of_work,
        clock=clock,
    )

    get_application_service = providers.Factory(
        applications.GetApplicationService, application_repo=application_repository
    )

    list_applications_for_offer_service = providers.Factory(
        applications.ListApplicationsForOfferService,
        application_repo=application_repository,
        offer_repo=offer_repository,
    )

    list_applications_for_user_service = providers.Factory(
        applications.ListApplicationsForUserService, application_repo=application_repository
    )

    get_application_for_offer_and_user_service = providers.Factory(
        applications.GetApplicationForOfferAndUserService,
        application_repo=application_repository,
        offer_repo=offer_repository,
    )

    list_pending_applications_service = providers.Factory(
        applications.ListPendingApplicationsService, application_repo=application_repository
    )


def create_in_memory_container(
    clock: Optional[FixedClock] = None,
    event_publisher: Optional[object] = None,
) -> Container:
    """
    Container wired to the in-memory adapters, for tests and scripts.

    Args:
        clock: Replaces the system clock when given
        event_publisher: Replaces the configured publisher when given
    """
    container = Container()
    container.config.from_dict({"persistence": "memory", "event_publisher": "memory"})
    if clock is not None:
        container.clock.override(providers.Object(clock))
    if event_publisher is not None:
        container.event_publisher.override(providers.Object(event_publisher))
    return container


# =============================================================================
# Global container
# =============================================================================

_container: Optional[Container] = None


def get_container() -> Container:
    """
    Return the process-wide container, creating it on first use.

    The event publisher backend comes from the AUTOLEASE_EVENT_PUBLISHER
    setting.
    """
    global _container

    if _container is None:
        from django.conf import settings

        _container = Container()
        _container.config.from_dict({
            "persistence": "django",
            "event_publisher": getattr(settings, "AUTOLEASE_EVENT_PUBLISHER", "logging"),
        })

    return _container


def reset_container() -> None:
    """Drop the global container (tests)."""
    global _container
    _container = None
