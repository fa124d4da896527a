"""
JSON API views for the AutoLease marketplace.

Endpoints (all under /api/):
- cars/                             GET list, POST create
- cars/available/                   GET available cars
- cars/<id>/                        GET, PUT, DELETE
- cars/<id>/interests/              POST register a callback request
- interests/                        GET recent interests
- offers/                           GET list, POST create
- offers/active/                    GET open offers
- offers/<id>/                      GET, PUT, DELETE
- offers/<id>/activate/             POST
- offers/<id>/deactivate/           POST
- offers/<id>/applications/         GET list, POST apply
- applications/                     GET the caller's applications
- applications/pending/             GET the review queue
- applications/<id>/                GET
- applications/<id>/approve/        POST
- applications/<id>/reject/         POST
- applications/<id>/cancel/         POST
- sales-agents/                     GET list, POST create
- sales-agents/<id>/                GET, PUT, DELETE
- users/me/                         GET, POST register, PUT update

Format:
- Input: JSON body, filters in the query string
- Output: {success, data/error, meta}

Authentication comes from Django auth (session). The role is read from
the caller's user profile: catalog writes, application review and the
interests listing require a SalesAgent profile.
"""

import json
import logging
from datetime import datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from django.conf import settings
from django.http import HttpRequest, JsonResponse
from django.utils.dateparse import parse_date, parse_datetime
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from src.config.container import get_container
from src.core.applications.dtos import (
    CancelApplicationInputDTO,
    ReviewApplicationInputDTO,
    SubmitApplicationInputDTO,
)
from src.core.cars.dtos import (
    CarInterestQueryDTO,
    CarQueryDTO,
    CreateCarInputDTO,
    RegisterCarInterestInputDTO,
    UpdateCarInputDTO,
)
from src.core.offers.dtos import CreateOfferInputDTO, OfferQueryDTO, UpdateOfferInputDTO
from src.core.sales_agents.dtos import (
    CreateSalesAgentInputDTO,
    SalesAgentQueryDTO,
    UpdateSalesAgentInputDTO,
)
from src.core.shared.exceptions import (
    ConflictError,
    DomainException,
    EntityNotFoundError,
    InvalidStateError,
    PermissionDeniedError,
    ValidationError,
)
from src.core.users.dtos import RegisterUserInputDTO, UpdateUserProfileInputDTO
from src.core.users.entities import UserRole

logger = logging.getLogger(__name__)


class AuthenticationRequiredError(Exception):
    """The request carries no authenticated user."""


# =============================================================================
# Helpers
# =============================================================================

def json_response(success: bool, data: Any = None, error: str = None,
                  status: int = 200, meta: Dict = None) -> JsonResponse:
    """Build the response envelope shared by every endpoint."""
    response = {"success": success}

    if data is not None:
        response["data"] = data

    if error is not None:
        response["error"] = error

    if meta is not None:
        response["meta"] = meta

    return JsonResponse(response, status=status)


def parse_json_body(request: HttpRequest) -> Dict:
    """
    Raises:
        ValueError: If the body is not a JSON object
    """
    if not request.body:
        return {}

    try:
        body = json.loads(request.body)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}")

    if not isinstance(body, dict):
        raise ValueError("JSON body must be an object")
    return body


def get_user_id(request: HttpRequest) -> str:
    """
    Id of the authenticated caller.

    Raises:
        AuthenticationRequiredError: For anonymous requests
    """
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        raise AuthenticationRequiredError("Authentication required")
    return str(user.pk)


def parse_moment(value: Any, field: str) -> Optional[datetime]:
    """ISO datetime or date (midnight UTC); naive values are taken as UTC."""
    if value in (None, ""):
        return None
    if isinstance(value, str):
        moment = parse_datetime(value)
        if moment is None:
            day = parse_date(value)
            if day is not None:
                moment = datetime.combine(day, time.min)
        if moment is not None:
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
            return moment
    raise ValidationError(f"Invalid date: {value}", field=field)


def query_int(request: HttpRequest, name: str, default: Optional[int] = None) -> Optional[int]:
    raw = request.GET.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name)


def query_decimal(request: HttpRequest, name: str) -> Optional[Decimal]:
    raw = request.GET.get(name)
    if raw in (None, ""):
        return None
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{name} must be a number", field=name)


def query_bool(request: HttpRequest, name: str) -> Optional[bool]:
    raw = request.GET.get(name)
    if raw in (None, ""):
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


def query_page(request: HttpRequest) -> Dict[str, int]:
    return {
        "page_number": query_int(request, "page", 1),
        "page_size": query_int(
            request, "page_size", getattr(settings, "AUTOLEASE_DEFAULT_PAGE_SIZE", 10)
        ),
    }


# =============================================================================
# Base API View
# =============================================================================

@method_decorator(csrf_exempt, name="dispatch")
class BaseAPIView(View):
    """
    Base view for the JSON API.

    Provides:
    - JSON parsing
    - Access to the DI container
    - Caller identity and role checks
    - One place that turns exceptions into responses
    """

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except Exception as e:
            return self.handle_exception(e)

    def get_service(self, service_name: str):
        return getattr(get_container(), service_name)()

    def parse_body(self, request: HttpRequest) -> Dict:
        return parse_json_body(request)

    def is_sales_agent(self, user_id: str) -> bool:
        profile = get_container().user_repository().get_by_id(user_id)
        return profile is not None and profile.role == UserRole.SALES_AGENT

    def require_sales_agent(self, request: HttpRequest) -> str:
        """
        Raises:
            AuthenticationRequiredError: For anonymous requests
            PermissionDeniedError: If the caller has no SalesAgent profile
        """
        user_id = get_user_id(request)
        if not self.is_sales_agent(user_id):
            raise PermissionDeniedError(
                "This operation is reserved for sales agents",
                required_role=UserRole.SALES_AGENT.value,
            )
        return user_id

    def handle_exception(self, e: Exception) -> JsonResponse:
        if isinstance(e, AuthenticationRequiredError):
            return json_response(success=False, error=str(e), status=401)

        if isinstance(e, ValidationError):
            return json_response(
                success=False,
                error=str(e),
                status=400,
                meta={"field": e.field},
            )

        if isinstance(e, EntityNotFoundError):
            return json_response(success=False, error=str(e), status=404)

        if isinstance(e, InvalidStateError):
            return json_response(
                success=False,
                error=str(e),
                status=422,
                meta={"rule": e.rule},
            )

        if isinstance(e, ConflictError):
            return json_response(
                success=False,
                error=str(e),
                status=409,
                meta={"reason": e.reason},
            )

        if isinstance(e, PermissionDeniedError):
            return json_response(success=False, error=str(e), status=403)

        if isinstance(e, (DomainException, ValueError)):
            return json_response(success=False, error=str(e), status=400)

        logger.exception(f"Unexpected API error: {e}")
        return json_response(success=False, error="Internal server error", status=500)


# =============================================================================
# Cars
# =============================================================================

class CarListAPIView(BaseAPIView):
    def get(self, request: HttpRequest) -> JsonResponse:
        """
        Query params: q, make, year, min_price, max_price, available,
        sales_agent_id, sort, desc, page, page_size
        """
        query = CarQueryDTO(
            search_term=request.GET.get("q") or None,
            make=request.GET.get("make") or None,
            year=query_int(request, "year"),
            min_price=query_decimal(request, "min_price"),
            max_price=query_decimal(request, "max_price"),
            is_available=query_bool(request, "available"),
            sales_agent_id=query_int(request, "sales_agent_id"),
            sort_by=request.GET.get("sort") or None,
            sort_descending=bool(query_bool(request, "desc")),
            **query_page(request),
        )
        result = self.get_service("list_cars_service").execute(query)
        return json_response(success=True, data=result.to_dict())

    def post(self, request: HttpRequest) -> JsonResponse:
        self.require_sales_agent(request)
        body = self.parse_body(request)
        input_dto = CreateCarInputDTO(
            make=body.get("make", ""),
            model=body.get("model", ""),
            year=body.get("year"),
            color=body.get("color", ""),
            vin_number=body.get("vin_number", ""),
            price=body.get("price"),
            description=body.get("description", ""),
            image_url=body.get("image_url"),
            sales_agent_id=body.get("sales_agent_id"),
        )
        output = self.get_service("create_car_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict(), status=201)


class AvailableCarsAPIView(BaseAPIView):
    def get(self, request: HttpRequest) -> JsonResponse:
        cars = self.get_service("list_available_cars_service").execute()
        return json_response(
            success=True,
            data=[car.to_dict() for car in cars],
            meta={"total": len(cars)},
        )


class CarDetailAPIView(BaseAPIView):
    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        output = self.get_service("get_car_service").execute(pk)
        return json_response(success=True, data=output.to_dict())

    def put(self, request: HttpRequest, pk: int) -> JsonResponse:
        self.require_sales_agent(request)
        body = self.parse_body(request)
        input_dto = UpdateCarInputDTO(
            car_id=pk,
            make=body.get("make", ""),
            model=body.get("model", ""),
            year=body.get("year"),
            color=body.get("color", ""),
            price=body.get("price"),
            description=body.get("description", ""),
            image_url=body.get("image_url"),
            sales_agent_id=body.get("sales_agent_id"),
            is_available=body.get("is_available"),
        )
        output = self.get_service("update_car_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict())

    def delete(self, request: HttpRequest, pk: int) -> JsonResponse:
        self.require_sales_agent(request)
        self.get_service("delete_car_service").execute(pk)
        return json_response(success=True, status=200, meta={"deleted": pk})


class CarInterestAPIView(BaseAPIView):
    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        user_id = get_user_id(request)
        body = self.parse_body(request)
        input_dto = RegisterCarInterestInputDTO(
            car_id=pk,
            user_id=user_id,
            preferred_call_time=parse_moment(
                body.get("preferred_call_time"), "preferred_call_time"
            ),
            notes=body.get("notes"),
            document_paths=body.get("document_paths"),
        )
        output = self.get_service("register_car_interest_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict(), status=201)


class CarInterestListAPIView(BaseAPIView):
    def get(self, request: HttpRequest) -> JsonResponse:
        self.require_sales_agent(request)
        query = CarInterestQueryDTO(
            search_term=request.GET.get("q") or None,
            days=query_int(
                request, "days", getattr(settings, "AUTOLEASE_INTEREST_WINDOW_DAYS", 7)
            ),
            **query_page(request),
        )
        result = self.get_service("list_car_interests_service").execute(query)
        return json_response(success=True, data=result.to_dict())


# =============================================================================
# Offers
# =============================================================================

def _offer_fields(body: Dict) -> Dict[str, Any]:
    return {
        "title": body.get("title", ""),
        "description": body.get("description", ""),
        "original_price": body.get("original_price"),
        "discounted_price": body.get("discounted_price"),
        "start_date": parse_moment(body.get("start_date"), "start_date"),
        "end_date": parse_moment(body.get("end_date"), "end_date"),
        "terms": body.get("terms", ""),
        "max_applications": body.get("max_applications"),
    }


class OfferListAPIView(BaseAPIView):
    def get(self, request: HttpRequest) -> JsonResponse:
        """
        Query params: q, min_discount, max_price, active, car_id,
        sales_agent_id, sort, desc, page, page_size
        """
        query = OfferQueryDTO(
            search_term=request.GET.get("q") or None,
            min_discount=query_decimal(request, "min_discount"),
            max_price=query_decimal(request, "max_price"),
            is_active=query_bool(request, "active"),
            car_id=query_int(request, "car_id"),
            sales_agent_id=query_int(request, "sales_agent_id"),
            sort_by=request.GET.get("sort") or None,
            sort_descending=bool(query_bool(request, "desc")),
            **query_page(request),
        )
        result = self.get_service("list_offers_service").execute(query)
        return json_response(success=True, data=result.to_dict())

    def post(self, request: HttpRequest) -> JsonResponse:
        self.require_sales_agent(request)
        body = self.parse_body(request)
        input_dto = CreateOfferInputDTO(
            car_id=body.get("car_id"),
            sales_agent_id=body.get("sales_agent_id"),
            **_offer_fields(body),
        )
        output = self.get_service("create_offer_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict(), status=201)


class ActiveOffersAPIView(BaseAPIView):
    def get(self, request: HttpRequest) -> JsonResponse:
        offers = self.get_service("list_active_offers_service").execute()
        return json_response(
            success=True,
            data=[offer.to_dict() for offer in offers],
            meta={"total": len(offers)},
        )


class OfferDetailAPIView(BaseAPIView):
    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        output = self.get_service("get_offer_service").execute(pk)
        return json_response(success=True, data=output.to_dict())

    def put(self, request: HttpRequest, pk: int) -> JsonResponse:
        self.require_sales_agent(request)
        body = self.parse_body(request)
        input_dto = UpdateOfferInputDTO(offer_id=pk, **_offer_fields(body))
        output = self.get_service("update_offer_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict())

    def delete(self, request: HttpRequest, pk: int) -> JsonResponse:
        self.require_sales_agent(request)
        self.get_service("delete_offer_service").execute(pk)
        return json_response(success=True, meta={"deleted": pk})


class OfferActivateAPIView(BaseAPIView):
    service_name = "activate_offer_service"

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        self.require_sales_agent(request)
        output = self.get_service(self.service_name).execute(pk)
        return json_response(success=True, data=output.to_dict())


class OfferDeactivateAPIView(OfferActivateAPIView):
    service_name = "deactivate_offer_service"


class OfferApplicationsAPIView(BaseAPIView):
    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        self.require_sales_agent(request)
        applications = self.get_service("list_applications_for_offer_service").execute(pk)
        return json_response(
            success=True,
            data=[application.to_dict() for application in applications],
            meta={"total": len(applications)},
        )

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        user_id = get_user_id(request)
        body = self.parse_body(request)
        input_dto = SubmitApplicationInputDTO(
            offer_id=pk,
            user_id=user_id,
            notes=body.get("notes"),
        )
        output = self.get_service("submit_application_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict(), status=201)


class MyOfferApplicationAPIView(BaseAPIView):
    """The caller's application to one offer; 404 when they have not applied."""

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        output = self.get_service("get_application_for_offer_and_user_service").execute(
            pk, get_user_id(request)
        )
        return json_response(success=True, data=output.to_dict())


# =============================================================================
# Applications
# =============================================================================

class MyApplicationsAPIView(BaseAPIView):
    def get(self, request: HttpRequest) -> JsonResponse:
        user_id = get_user_id(request)
        applications = self.get_service("list_applications_for_user_service").execute(user_id)
        return json_response(
            success=True,
            data=[application.to_dict() for application in applications],
            meta={"total": len(applications)},
        )


class PendingApplicationsAPIView(BaseAPIView):
    def get(self, request: HttpRequest) -> JsonResponse:
        self.require_sales_agent(request)
        applications = self.get_service("list_pending_applications_service").execute()
        return json_response(
            success=True,
            data=[application.to_dict() for application in applications],
            meta={"total": len(applications)},
        )


class ApplicationDetailAPIView(BaseAPIView):
    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        user_id = get_user_id(request)
        output = self.get_service("get_application_service").execute(pk)
        if output.user_id != user_id and not self.is_sales_agent(user_id):
            raise PermissionDeniedError("Only the applicant or a sales agent can view this")
        return json_response(success=True, data=output.to_dict())


class ApplicationApproveAPIView(BaseAPIView):
    service_name = "approve_application_service"

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        reviewer_id = self.require_sales_agent(request)
        body = self.parse_body(request)
        input_dto = ReviewApplicationInputDTO(
            application_id=pk,
            reviewer_user_id=reviewer_id,
            review_notes=body.get("review_notes"),
        )
        output = self.get_service(self.service_name).execute(input_dto)
        return json_response(success=True, data=output.to_dict())


class ApplicationRejectAPIView(ApplicationApproveAPIView):
    service_name = "reject_application_service"


class ApplicationCancelAPIView(BaseAPIView):
    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        input_dto = CancelApplicationInputDTO(application_id=pk, user_id=get_user_id(request))
        output = self.get_service("cancel_application_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict())


# =============================================================================
# Sales agents
# =============================================================================

def _agent_fields(body: Dict) -> Dict[str, Any]:
    return {
        "first_name": body.get("first_name", ""),
        "last_name": body.get("last_name", ""),
        "email": body.get("email", ""),
        "phone_number": body.get("phone_number", ""),
        "department": body.get("department", ""),
        "commission_rate": body.get("commission_rate"),
        "biography": body.get("biography"),
        "user_id": body.get("user_id"),
    }


class SalesAgentListAPIView(BaseAPIView):
    def get(self, request: HttpRequest) -> JsonResponse:
        query = SalesAgentQueryDTO(
            search_term=request.GET.get("q") or None,
            department=request.GET.get("department") or None,
            min_commission_rate=query_decimal(request, "min_commission_rate"),
            is_active=query_bool(request, "active"),
            sort_by=request.GET.get("sort") or None,
            sort_descending=bool(query_bool(request, "desc")),
            **query_page(request),
        )
        result = self.get_service("list_sales_agents_service").execute(query)
        return json_response(success=True, data=result.to_dict())

    def post(self, request: HttpRequest) -> JsonResponse:
        self.require_sales_agent(request)
        input_dto = CreateSalesAgentInputDTO(**_agent_fields(self.parse_body(request)))
        output = self.get_service("create_sales_agent_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict(), status=201)


class SalesAgentDetailAPIView(BaseAPIView):
    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        output = self.get_service("get_sales_agent_service").execute(pk)
        return json_response(success=True, data=output.to_dict())

    def put(self, request: HttpRequest, pk: int) -> JsonResponse:
        self.require_sales_agent(request)
        input_dto = UpdateSalesAgentInputDTO(
            sales_agent_id=pk, **_agent_fields(self.parse_body(request))
        )
        output = self.get_service("update_sales_agent_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict())

    def delete(self, request: HttpRequest, pk: int) -> JsonResponse:
        self.require_sales_agent(request)
        self.get_service("delete_sales_agent_service").execute(pk)
        return json_response(success=True, meta={"deleted": pk})


# =============================================================================
# Users
# =============================================================================

class CurrentUserAPIView(BaseAPIView):
    """Profile of the authenticated caller."""

    def get(self, request: HttpRequest) -> JsonResponse:
        output = self.get_service("get_user_service").execute(get_user_id(request))
        return json_response(success=True, data=output.to_dict())

    def post(self, request: HttpRequest) -> JsonResponse:
        user_id = get_user_id(request)
        body = self.parse_body(request)
        # Only staff may hand out the SalesAgent role.
        role = body.get("role") if request.user.is_staff else None
        input_dto = RegisterUserInputDTO(
            email=body.get("email") or request.user.email,
            first_name=body.get("first_name") or request.user.first_name,
            last_name=body.get("last_name") or request.user.last_name,
            role=role or UserRole.CLIENT.value,
            user_id=user_id,
        )
        output = self.get_service("register_user_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict(), status=201)

    def put(self, request: HttpRequest) -> JsonResponse:
        body = self.parse_body(request)
        input_dto = UpdateUserProfileInputDTO(
            user_id=get_user_id(request),
            first_name=body.get("first_name", ""),
            last_name=body.get("last_name", ""),
        )
        output = self.get_service("update_user_profile_service").execute(input_dto)
        return json_response(success=True, data=output.to_dict())
