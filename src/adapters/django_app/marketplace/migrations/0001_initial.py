"""
Initial migration of the marketplace.

Creates the tables:
- user_profiles
- sales_agents
- cars
- offers (with the optimistic-concurrency version column)
- offer_applications (unique per offer and user)
- car_interests
"""

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="UserProfileModel",
            fields=[
                ("id", models.CharField(editable=False, max_length=64, primary_key=True, serialize=False)),
                ("email", models.EmailField(max_length=256, unique=True)),
                ("first_name", models.CharField(max_length=50)),
                ("last_name", models.CharField(max_length=50)),
                ("role", models.CharField(
                    choices=[("Client", "Client"), ("SalesAgent", "Sales agent")],
                    db_index=True,
                    default="Client",
                    max_length=20,
                )),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "user_profiles",
                "ordering": ["last_name", "first_name"],
            },
        ),
        migrations.CreateModel(
            name="SalesAgentModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(max_length=50)),
                ("last_name", models.CharField(max_length=50)),
                ("email", models.EmailField(max_length=100, unique=True)),
                ("phone_number", models.CharField(max_length=15)),
                ("department", models.CharField(db_index=True, max_length=50)),
                ("commission_rate", models.DecimalField(decimal_places=2, max_digits=5)),
                ("biography", models.TextField(blank=True, null=True)),
                ("hire_date", models.DateTimeField()),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("user_id", models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "sales_agents",
                "ordering": ["last_name", "first_name"],
            },
        ),
        migrations.CreateModel(
            name="CarModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("make", models.CharField(db_index=True, max_length=50)),
                ("model", models.CharField(max_length=50)),
                ("year", models.PositiveIntegerField()),
                ("color", models.CharField(max_length=30)),
                ("vin_number", models.CharField(max_length=17, unique=True)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("description", models.CharField(max_length=1000)),
                ("image_url", models.CharField(blank=True, max_length=500, null=True)),
                ("is_available", models.BooleanField(db_index=True, default=True)),
                ("owner_id", models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("sales_agent", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="cars",
                    to="marketplace.salesagentmodel",
                )),
            ],
            options={
                "db_table": "cars",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["is_available", "created_at"], name="cars_available_created_idx"),
                    models.Index(fields=["make", "model"], name="cars_make_model_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OfferModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=100)),
                ("description", models.CharField(max_length=1000)),
                ("original_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("discounted_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("discount_percentage", models.DecimalField(decimal_places=4, max_digits=7)),
                ("start_date", models.DateTimeField(db_index=True)),
                ("end_date", models.DateTimeField(db_index=True)),
                ("terms", models.CharField(max_length=2000)),
                ("max_applications", models.PositiveIntegerField()),
                ("current_applications", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("version", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("car", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="offers",
                    to="marketplace.carmodel",
                )),
                ("sales_agent", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="offers",
                    to="marketplace.salesagentmodel",
                )),
            ],
            options={
                "db_table": "offers",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["is_active", "start_date", "end_date"],
                        name="offers_active_window_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OfferApplicationModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("application_date", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("status", models.CharField(
                    choices=[
                        ("Pending", "Pending"),
                        ("Approved", "Approved"),
                        ("Rejected", "Rejected"),
                        ("Cancelled", "Cancelled"),
                    ],
                    db_index=True,
                    default="Pending",
                    max_length=20,
                )),
                ("notes", models.CharField(blank=True, max_length=500, null=True)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("review_notes", models.CharField(blank=True, max_length=500, null=True)),
                ("reviewed_by_user_id", models.CharField(blank=True, max_length=64, null=True)),
                ("offer", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="applications",
                    to="marketplace.offermodel",
                )),
            ],
            options={
                "db_table": "offer_applications",
                "ordering": ["-application_date"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("offer", "user_id"),
                        name="unique_application_per_offer_and_user",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CarInterestModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("preferred_call_time", models.DateTimeField()),
                ("notes", models.CharField(blank=True, max_length=500, null=True)),
                ("document_paths", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("car", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="interests",
                    to="marketplace.carmodel",
                )),
            ],
            options={
                "db_table": "car_interests",
                "ordering": ["-created_at"],
            },
        ),
    ]
