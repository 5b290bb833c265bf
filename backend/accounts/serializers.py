"""
Accounts app serializers.

Contains all Request and Response serializers for the accounts API.
Serializers handle field definitions, read/write constraints, and
basic validation.  **No business logic** lives here — all domain
rules are delegated to ``services.py``.
"""

from __future__ import annotations

import re
from typing import Any

from django.contrib.auth import authenticate, get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.domain.access import get_user_role_name

from .models import UserRole

User = get_user_model()

_PHONE_RE = re.compile(r"^\+?[0-9][0-9 \-]{6,18}$")


def _validate_location_pair(attrs: dict[str, Any], instance=None) -> None:
    """Home latitude and longitude are set together or not at all."""
    lat = attrs.get("home_latitude", getattr(instance, "home_latitude", None))
    lng = attrs.get("home_longitude", getattr(instance, "home_longitude", None))
    if (lat is None) != (lng is None):
        raise serializers.ValidationError(
            {"home_longitude": "Latitude and longitude must be provided together."}
        )


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class RegisterRequestSerializer(serializers.ModelSerializer):
    """
    Validates new-user registration data.

    Required fields: username, password, email, role.  Organization
    accounts usually also send ``org_name``, ``registration_number`` and
    ``address``; carriers send ``vehicle_number`` and the facility they
    belong to.

    The ``password`` field is write-only and will be hashed by the
    service layer before persisting.
    """

    password = serializers.CharField(
        write_only=True,
        min_length=6,
        style={"input_type": "password"},
        help_text="Minimum 6 characters.",
    )
    password_confirm = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="Must match 'password'.",
    )
    role = serializers.ChoiceField(
        choices=[
            (value, label)
            for value, label in UserRole.choices
            if value != UserRole.ADMIN
        ],
        default=UserRole.CITIZEN,
        help_text="Administrator accounts cannot be self-registered.",
    )
    linked_facility = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(role=UserRole.FACILITY),
        required=False,
        allow_null=True,
        help_text="Facility PK (carriers only).",
    )

    class Meta:
        model = User
        fields = [
            "username",
            "password",
            "password_confirm",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "role",
            "org_name",
            "registration_number",
            "address",
            "vehicle_number",
            "linked_facility",
            "home_latitude",
            "home_longitude",
        ]
        extra_kwargs = {
            "email": {"required": True},
            "home_latitude": {"min_value": -90, "max_value": 90},
            "home_longitude": {"min_value": -180, "max_value": 180},
        }

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        """
        Cross-field validation:
        1. Ensure password and password_confirm match.
        2. Validate phone_number format when given.
        3. Home coordinates come as a pair.
        4. Organization-type accounts carry a display name.
        """
        if attrs["password"] != attrs["password_confirm"]:
            raise serializers.ValidationError(
                {"password_confirm": "Passwords do not match."}
            )

        phone = attrs.get("phone_number", "")
        if phone and not _PHONE_RE.match(phone):
            raise serializers.ValidationError(
                {"phone_number": "Enter a valid phone number."}
            )

        _validate_location_pair(attrs)

        role = attrs.get("role", UserRole.CITIZEN)
        if role in (UserRole.ORG, UserRole.FACILITY) and not attrs.get("org_name"):
            raise serializers.ValidationError(
                {"org_name": "Organization name is required for this role."}
            )

        # Remove password_confirm — not needed beyond validation
        attrs.pop("password_confirm")

        return attrs


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via the ``MultiFieldAuthBackend``.
    3. Injects ``role`` and ``is_approved`` claims into the token so the
       frontend can route without a separate API call.
    """

    # Override the default username field with our multi-field identifier
    username_field = "identifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)
        self.fields["identifier"] = serializers.CharField(
            help_text="Username, Email, or Phone Number.",
        )

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = get_user_role_name(user)
        token["is_approved"] = user.is_approved
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        """
        Authenticate using the custom ``MultiFieldAuthBackend``.

        Returns a dict containing ``access`` and ``refresh``; the
        authenticated user is exposed as ``self.user``.
        """
        user = authenticate(
            request=self.context.get("request"),
            identifier=attrs.get("identifier"),
            password=attrs.get("password"),
        )

        if user is None:
            raise serializers.ValidationError(
                {"detail": "Invalid credentials."},
                code="authentication",
            )

        if not user.is_active:
            raise serializers.ValidationError(
                {"detail": "User account is disabled."},
                code="authentication",
            )

        refresh = self.get_token(user)
        data = {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }

        # Attach user for the view to serialise in the response
        self.user = user

        return data


# ═══════════════════════════════════════════════════════════════════
#  User Serializers
# ═══════════════════════════════════════════════════════════════════


class UserListSerializer(serializers.ModelSerializer):
    """
    Serializer for listing users (admin views).
    """

    role_display = serializers.CharField(source="get_role_display", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "org_name",
            "role",
            "role_display",
            "is_approved",
            "is_active",
            "date_joined",
        ]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Full user representation (used in retrieve, me, login and
    registration responses).  Includes the wallet balance for citizens.
    """

    role_display = serializers.CharField(source="get_role_display", read_only=True)
    wallet_balance = serializers.SerializerMethodField()
    linked_facility_name = serializers.CharField(
        source="linked_facility.display_name",
        read_only=True,
        default=None,
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "role",
            "role_display",
            "is_approved",
            "is_active",
            "date_joined",
            "org_name",
            "registration_number",
            "address",
            "home_latitude",
            "home_longitude",
            "linked_facility",
            "linked_facility_name",
            "vehicle_number",
            "is_available",
            "capacity",
            "wallet_balance",
        ]
        read_only_fields = fields

    def get_wallet_balance(self, obj) -> int | None:
        wallet = getattr(obj, "wallet", None)
        return wallet.balance if wallet is not None else None


class MeUpdateSerializer(serializers.ModelSerializer):
    """
    Allows the authenticated user to update limited profile fields.
    Sensitive fields (role, approval, availability, username) are not
    exposed and cannot be self-modified.
    """

    class Meta:
        model = User
        fields = [
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "org_name",
            "address",
            "home_latitude",
            "home_longitude",
            "vehicle_number",
            "capacity",
        ]
        extra_kwargs = {
            "home_latitude": {"min_value": -90, "max_value": 90},
            "home_longitude": {"min_value": -180, "max_value": 180},
        }

    def validate_email(self, value: str) -> str:
        """Ensure the new email is unique (excluding the current user)."""
        if (
            self.instance
            and User.objects.exclude(pk=self.instance.pk)
            .filter(email__iexact=value)
            .exists()
        ):
            raise serializers.ValidationError(
                "This email is already in use by another account."
            )
        return value

    def validate_phone_number(self, value: str) -> str:
        if value and not _PHONE_RE.match(value):
            raise serializers.ValidationError("Enter a valid phone number.")
        return value

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        _validate_location_pair(attrs, self.instance)
        return attrs


class ApprovalSerializer(serializers.Serializer):
    approved = serializers.BooleanField(
        default=True,
        help_text="``false`` revokes a previous approval.",
    )
