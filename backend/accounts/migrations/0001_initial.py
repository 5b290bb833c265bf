import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import accounts.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                (
                    "username",
                    models.CharField(
                        error_messages={"unique": "A user with that username already exists."},
                        help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.",
                        max_length=150,
                        unique=True,
                        validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                        verbose_name="username",
                    ),
                ),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                (
                    "is_staff",
                    models.BooleanField(
                        default=False,
                        help_text="Designates whether the user can log into this admin site.",
                        verbose_name="staff status",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text="Designates whether this user should be treated as active. "
                                  "Unselect this instead of deleting accounts.",
                        verbose_name="active",
                    ),
                ),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("email", models.EmailField(max_length=254, unique=True, verbose_name="Email Address")),
                ("phone_number", models.CharField(blank=True, db_index=True, default="", max_length=20, verbose_name="Phone Number")),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("citizen", "Citizen"),
                            ("org", "Organization"),
                            ("facility", "Facility"),
                            ("carrier", "Carrier"),
                            ("admin", "Administrator"),
                        ],
                        db_index=True,
                        default="citizen",
                        max_length=16,
                        verbose_name="Role",
                    ),
                ),
                (
                    "is_approved",
                    models.BooleanField(
                        default=False,
                        help_text="Gate for all case visibility and mutation operations. "
                                  "Citizens and administrators are approved on creation.",
                        verbose_name="Approved",
                    ),
                ),
                ("org_name", models.CharField(blank=True, default="", max_length=200, verbose_name="Organization Name")),
                ("registration_number", models.CharField(blank=True, default="", max_length=100, verbose_name="Registration Number")),
                ("address", models.CharField(blank=True, default="", max_length=255, verbose_name="Address")),
                ("home_latitude", models.FloatField(blank=True, null=True, verbose_name="Home Latitude")),
                ("home_longitude", models.FloatField(blank=True, null=True, verbose_name="Home Longitude")),
                ("vehicle_number", models.CharField(blank=True, default="", max_length=50, verbose_name="Vehicle Number")),
                (
                    "is_available",
                    models.BooleanField(default=True, help_text="Carrier can take a new assignment.", verbose_name="Available"),
                ),
                (
                    "capacity",
                    models.PositiveSmallIntegerField(
                        default=10,
                        help_text="Number of animals a facility can take in.",
                        verbose_name="Capacity",
                    ),
                ),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text="The groups this user belongs to. A user will get all permissions "
                                  "granted to each of their groups.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
                (
                    "linked_facility",
                    models.ForeignKey(
                        blank=True,
                        help_text="Facility this carrier belongs to.",
                        limit_choices_to={"role": "facility"},
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="carriers",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Linked Facility",
                    ),
                ),
            ],
            options={
                "verbose_name": "User",
                "verbose_name_plural": "Users",
                "indexes": [models.Index(fields=["role", "is_approved"], name="accounts_user_role_appr_idx")],
            },
            managers=[
                ("objects", accounts.models.RescueUserManager()),
            ],
        ),
    ]
