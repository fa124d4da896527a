"""
URL patterns of the marketplace JSON API, mounted under /api/.

Fixed segments (available/, active/, pending/) come before the <int:pk>
routes.
"""

from django.urls import path

from . import api_views

app_name = "marketplace"

urlpatterns = [
    # =========================================================================
    # Cars
    # =========================================================================
    path("cars/", api_views.CarListAPIView.as_view(), name="car_list"),
    path("cars/available/", api_views.AvailableCarsAPIView.as_view(), name="car_available"),
    path("cars/<int:pk>/", api_views.CarDetailAPIView.as_view(), name="car_detail"),
    path("cars/<int:pk>/interests/", api_views.CarInterestAPIView.as_view(), name="car_interest"),
    path("interests/", api_views.CarInterestListAPIView.as_view(), name="interest_list"),

    # =========================================================================
    # Offers
    # =========================================================================
    path("offers/", api_views.OfferListAPIView.as_view(), name="offer_list"),
    path("offers/active/", api_views.ActiveOffersAPIView.as_view(), name="offer_active"),
    path("offers/<int:pk>/", api_views.OfferDetailAPIView.as_view(), name="offer_detail"),
    path("offers/<int:pk>/activate/", api_views.OfferActivateAPIView.as_view(), name="offer_activate"),
    path(
        "offers/<int:pk>/deactivate/",
        api_views.OfferDeactivateAPIView.as_view(),
        name="offer_deactivate",
    ),
    path(
        "offers/<int:pk>/applications/",
        api_views.OfferApplicationsAPIView.as_view(),
        name="offer_applications",
    ),
    path(
        "offers/<int:pk>/applications/mine/",
        api_views.MyOfferApplicationAPIView.as_view(),
        name="offer_application_mine",
    ),

    # =========================================================================
    # Applications
    # =========================================================================
    path("applications/", api_views.MyApplicationsAPIView.as_view(), name="application_mine"),
    path(
        "applications/pending/",
        api_views.PendingApplicationsAPIView.as_view(),
        name="application_pending",
    ),
    path(
        "applications/<int:pk>/",
        api_views.ApplicationDetailAPIView.as_view(),
        name="application_detail",
    ),
    path(
        "applications/<int:pk>/approve/",
        api_views.ApplicationApproveAPIView.as_view(),
        name="application_approve",
    ),
    path(
        "applications/<int:pk>/reject/",
        api_views.ApplicationRejectAPIView.as_view(),
        name="application_reject",
    ),
    path(
        "applications/<int:pk>/cancel/",
        api_views.ApplicationCancelAPIView.as_view(),
        name="application_cancel",
    ),

    # =========================================================================
    # Sales agents and users
    # =========================================================================
    path("sales-agents/", api_views.SalesAgentListAPIView.as_view(), name="agent_list"),
    path("sales-agents/<int:pk>/", api_views.SalesAgentDetailAPIView.as_view(), name="agent_detail"),
    path("users/me/", api_views.CurrentUserAPIView.as_view(), name="user_me"),
]
