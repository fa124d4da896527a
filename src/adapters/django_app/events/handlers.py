"""
Celery tasks: domain event handlers and scheduled maintenance.

Events arrive through `dispatch_domain_event`, which routes them by type
to the handlers below. Handlers receive the serialized event
(`DomainEvent.to_dict()`), never entities.

Pattern:
    @shared_task(bind=True, ...)
    def handle_<event>(self, event_data: dict) -> None:
        ...
"""

import logging
from typing import Any, Dict, List

from celery import shared_task

logger = logging.getLogger(__name__)


# =============================================================================
# Event Handlers
# =============================================================================

@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    acks_late=True,
)
def handle_application_submitted(self, event_data: Dict[str, Any]) -> None:
    """Tell the sales team a client took a slot; warn when the offer filled up."""
    data = event_data.get("data", {})
    offer_id = data.get("offer_id")
    remaining = data.get("remaining_slots")

    try:
        logger.info(
            f"[HANDLER] ApplicationSubmitted: {event_data.get('aggregate_id')} | "
            f"offer={offer_id} | user={data.get('user_id')} | remaining={remaining}"
        )
        notify_sales_team.delay(
            message=f"New application on offer {offer_id}",
            offer_id=offer_id,
        )
        if remaining == 0:
            notify_sales_team.delay(
                message=f"Offer {offer_id} is sold out",
                offer_id=offer_id,
            )
    except Exception as e:
        logger.error(f"ApplicationSubmitted handler failed: {e}", exc_info=True)
        raise


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    acks_late=True,
)
def handle_application_reviewed(self, event_data: Dict[str, Any]) -> None:
    data = event_data.get("data", {})
    status = data.get("status")
    try:
        logger.info(
            f"[HANDLER] ApplicationReviewed: {event_data.get('aggregate_id')} -> {status}"
        )
        notify_user.delay(
            user_id=data.get("user_id"),
            message=f"Your application to offer {data.get('offer_id')} was {str(status).lower()}",
        )
    except Exception as e:
        logger.error(f"ApplicationReviewed handler failed: {e}", exc_info=True)
        raise


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    acks_late=True,
)
def handle_car_interest_registered(self, event_data: Dict[str, Any]) -> None:
    data = event_data.get("data", {})
    car_id = data.get("car_id")
    try:
        logger.info(
            f"[HANDLER] CarInterestRegistered: car={car_id} | user={data.get('user_id')} | "
            f"call at {data.get('preferred_call_time')}"
        )
        notify_sales_team.delay(message=f"Callback requested for car {car_id}", car_id=car_id)
    except Exception as e:
        logger.error(f"CarInterestRegistered handler failed: {e}", exc_info=True)
        raise


@shared_task(bind=True, acks_late=True)
def handle_offer_expired(self, event_data: Dict[str, Any]) -> None:
    logger.info(
        f"[HANDLER] OfferExpired: {event_data.get('aggregate_id')} | "
        f"applications={event_data.get('data', {}).get('current_applications')}"
    )


EVENT_HANDLERS = {
    "ApplicationSubmittedEvent": handle_application_submitted,
    "ApplicationReviewedEvent": handle_application_reviewed,
    "CarInterestRegisteredEvent": handle_car_interest_registered,
    "OfferExpiredEvent": handle_offer_expired,
}


# =============================================================================
# Event Dispatcher (Router)
# =============================================================================

@shared_task(bind=True, max_retries=5, default_retry_delay=30, autoretry_for=(Exception,))
def dispatch_domain_event(self, event_type: str, event_data: Dict[str, Any]) -> bool:
    """
    Route one serialized event to its handler.

    Returns:
        True when a handler was scheduled, False for event types nobody
        subscribes to
    """
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.debug(f"[DISPATCHER] No handler for {event_type}")
        return False

    logger.info(f"[DISPATCHER] Routing {event_type}")
    handler.delay(event_data)
    return True


# =============================================================================
# Notification Tasks
# =============================================================================

@shared_task(bind=True)
def notify_user(self, user_id: str, message: str, channel: str = "email") -> None:
    # TODO: deliver through the mail backend once templates exist; logged for now.
    logger.info(f"[NOTIFY] {channel} -> user {user_id}: {message}")


@shared_task(bind=True)
def notify_sales_team(self, message: str, **context: Any) -> None:
    logger.info(f"[NOTIFY] sales team: {message} {context or ''}".rstrip())


# =============================================================================
# Scheduled Tasks (Beat)
# =============================================================================

@shared_task(bind=True)
def deactivate_expired_offers(self) -> List[int]:
    """
    Switch off every active offer whose end date has passed.

    Executed periodically by Celery beat. Errors propagate so the failure
    shows up in the worker log and the task result.

    Returns:
        Ids of the offers that were deactivated
    """
    from src.config.container import get_container

    service = get_container().deactivate_expired_offers_service()
    deactivated = service.execute()
    logger.info(f"[SCHEDULED] {len(deactivated)} expired offer(s) deactivated")
    return deactivated
