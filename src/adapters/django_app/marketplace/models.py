"""
Django models of the AutoLease marketplace.

These models are ADAPTERS: they persist the entities defined in
src/core/*/entities.py and hold no business rules. Conversion to and from
entities goes through the mappers.

Relationships:
- CarModel -> SalesAgentModel (SET_NULL)
- OfferModel -> CarModel (CASCADE), -> SalesAgentModel (SET_NULL)
- OfferApplicationModel -> OfferModel (CASCADE), unique per (offer, user_id)
- CarInterestModel -> CarModel (CASCADE)

User ids are strings issued by the identity provider (the Django auth
user pk), so they are stored as plain columns, not foreign keys.
"""

from django.db import models
from django.utils import timezone


class UserRoleChoices(models.TextChoices):
    CLIENT = "Client", "Client"
    SALES_AGENT = "SalesAgent", "Sales agent"


class ApplicationStatusChoices(models.TextChoices):
    PENDING = "Pending", "Pending"
    APPROVED = "Approved", "Approved"
    REJECTED = "Rejected", "Rejected"
    CANCELLED = "Cancelled", "Cancelled"


class UserProfileModel(models.Model):
    """Marketplace profile of an authenticated user."""

    id = models.CharField(max_length=64, primary_key=True, editable=False)
    email = models.EmailField(max_length=256, unique=True)
    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    role = models.CharField(
        max_length=20,
        choices=UserRoleChoices.choices,
        default=UserRoleChoices.CLIENT,
        db_index=True,
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "user_profiles"
        ordering = ["last_name", "first_name"]

    def __str__(self):
        return f"{self.first_name} {self.last_name} <{self.email}>"


class SalesAgentModel(models.Model):
    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    email = models.EmailField(max_length=100, unique=True)
    phone_number = models.CharField(max_length=15)
    department = models.CharField(max_length=50, db_index=True)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2)
    biography = models.TextField(null=True, blank=True)
    hire_date = models.DateTimeField()
    is_active = models.BooleanField(default=True, db_index=True)
    user_id = models.CharField(max_length=64, null=True, blank=True, unique=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "sales_agents"
        ordering = ["last_name", "first_name"]

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.department})"


class CarModel(models.Model):
    """
    A car of the catalogue.

    `vin_number` is unique; `owner_id` is set once the car is leased or sold.
    """

    make = models.CharField(max_length=50, db_index=True)
    model = models.CharField(max_length=50)
    year = models.PositiveIntegerField()
    color = models.CharField(max_length=30)
    vin_number = models.CharField(max_length=17, unique=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.CharField(max_length=1000)
    image_url = models.CharField(max_length=500, null=True, blank=True)
    is_available = models.BooleanField(default=True, db_index=True)
    owner_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    sales_agent = models.ForeignKey(
        SalesAgentModel,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cars",
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "cars"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_available", "created_at"], name="cars_available_created_idx"),
            models.Index(fields=["make", "model"], name="cars_make_model_idx"),
        ]

    def __str__(self):
        return f"{self.year} {self.make} {self.model}"


class OfferModel(models.Model):
    """
    A time-boxed discount on a car.

    `version` is the optimistic-concurrency token: every update is a
    conditional UPDATE ... WHERE version = expected.
    """

    car = models.ForeignKey(CarModel, on_delete=models.CASCADE, related_name="offers")
    sales_agent = models.ForeignKey(
        SalesAgentModel,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="offers",
    )
    title = models.CharField(max_length=100)
    description = models.CharField(max_length=1000)
    original_price = models.DecimalField(max_digits=12, decimal_places=2)
    discounted_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount_percentage = models.DecimalField(max_digits=7, decimal_places=4)
    start_date = models.DateTimeField(db_index=True)
    end_date = models.DateTimeField(db_index=True)
    terms = models.CharField(max_length=2000)
    max_applications = models.PositiveIntegerField()
    current_applications = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "offers"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["is_active", "start_date", "end_date"],
                name="offers_active_window_idx",
            ),
        ]

    def __str__(self):
        return f"{self.title} (car {self.car_id}, v{self.version})"


class OfferApplicationModel(models.Model):
    offer = models.ForeignKey(OfferModel, on_delete=models.CASCADE, related_name="applications")
    user_id = models.CharField(max_length=64, db_index=True)
    application_date = models.DateTimeField(default=timezone.now, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=ApplicationStatusChoices.choices,
        default=ApplicationStatusChoices.PENDING,
        db_index=True,
    )
    notes = models.CharField(max_length=500, null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_notes = models.CharField(max_length=500, null=True, blank=True)
    reviewed_by_user_id = models.CharField(max_length=64, null=True, blank=True)

    class Meta:
        db_table = "offer_applications"
        ordering = ["-application_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["offer", "user_id"],
                name="unique_application_per_offer_and_user",
            ),
        ]

    def __str__(self):
        return f"Application {self.pk} on offer {self.offer_id} by {self.user_id} ({self.status})"


class CarInterestModel(models.Model):
    """A client's request to be called back about a car."""

    car = models.ForeignKey(CarModel, on_delete=models.CASCADE, related_name="interests")
    user_id = models.CharField(max_length=64, db_index=True)
    preferred_call_time = models.DateTimeField()
    notes = models.CharField(max_length=500, null=True, blank=True)
    document_paths = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "car_interests"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Interest {self.pk} in car {self.car_id} by {self.user_id}"
