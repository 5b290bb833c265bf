"""
Accounts app models.

Defines the closed set of account roles and a custom User model that
extends Django's ``AbstractUser`` with the organisation profile used by
the rescue workflow (approval flag, home location, facility linkage and
carrier availability).
"""

from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class UserRole(models.TextChoices):
    CITIZEN = "citizen", "Citizen"
    ORG = "org", "Organization"
    FACILITY = "facility", "Facility"
    CARRIER = "carrier", "Carrier"
    ADMIN = "admin", "Administrator"

    @classmethod
    def organisation_values(cls) -> list[str]:
        """Roles that require administrator approval before acting."""
        return [cls.ORG, cls.FACILITY, cls.CARRIER]

    @classmethod
    def auto_approved_values(cls) -> list[str]:
        return [cls.CITIZEN, cls.ADMIN]


class RescueUserManager(UserManager):
    """``createsuperuser`` produces an approved administrator."""

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("role", UserRole.ADMIN)
        extra_fields.setdefault("is_approved", True)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """
    Custom user model for the rescue dispatch system.

    Every account holds exactly **one** role.  Citizens report rescues and
    own a wallet; organizations accept nearby reports; facilities take
    escalated reports and dispatch their carriers; carriers transport the
    animal.  Organization-type accounts (org, facility, carrier) start
    unapproved and can do nothing case-related until an administrator
    approves them.

    Login is supported via *any one* of username / email / phone number
    together with the password.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    phone_number = models.CharField(
        max_length=20,
        blank=True,
        default="",
        verbose_name="Phone Number",
        db_index=True,
    )

    role = models.CharField(
        max_length=16,
        choices=UserRole.choices,
        default=UserRole.CITIZEN,
        db_index=True,
        verbose_name="Role",
    )
    is_approved = models.BooleanField(
        default=False,
        verbose_name="Approved",
        help_text="Gate for all case visibility and mutation operations. "
                  "Citizens and administrators are approved on creation.",
    )

    # ── Organisation profile ─────────────────────────────────────────
    org_name = models.CharField(
        max_length=200,
        blank=True,
        default="",
        verbose_name="Organization Name",
    )
    registration_number = models.CharField(
        max_length=100,
        blank=True,
        default="",
        verbose_name="Registration Number",
    )
    address = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Address",
    )
    home_latitude = models.FloatField(
        null=True,
        blank=True,
        verbose_name="Home Latitude",
    )
    home_longitude = models.FloatField(
        null=True,
        blank=True,
        verbose_name="Home Longitude",
    )

    # ── Carrier profile ──────────────────────────────────────────────
    linked_facility = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="carriers",
        limit_choices_to={"role": UserRole.FACILITY},
        verbose_name="Linked Facility",
        help_text="Facility this carrier belongs to.",
    )
    vehicle_number = models.CharField(
        max_length=50,
        blank=True,
        default="",
        verbose_name="Vehicle Number",
    )
    is_available = models.BooleanField(
        default=True,
        verbose_name="Available",
        help_text="Carrier can take a new assignment.",
    )
    capacity = models.PositiveSmallIntegerField(
        default=10,
        verbose_name="Capacity",
        help_text="Number of animals a facility can take in.",
    )

    objects = RescueUserManager()

    # Fields required when creating a superuser via CLI
    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        indexes = [
            models.Index(fields=["role", "is_approved"], name="accounts_user_role_appr_idx"),
        ]

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    def save(self, *args, **kwargs):
        if self._state.adding and self.role in UserRole.auto_approved_values():
            self.is_approved = True
        super().save(*args, **kwargs)

    @property
    def has_location(self) -> bool:
        return self.home_latitude is not None and self.home_longitude is not None

    @property
    def display_name(self) -> str:
        return self.org_name or self.get_full_name() or self.username
