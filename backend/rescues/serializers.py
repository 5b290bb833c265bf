"""
Rescues app serializers.

Request serializers validate input shape only; every lifecycle rule is
enforced by ``rescues.services``.
"""

from __future__ import annotations

from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import serializers

from core.constants import MAX_DESCRIPTION_LENGTH

from .models import RescueCase, RescueStatus, RescueStatusLog

User = get_user_model()


class _UserSummarySerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "username", "display_name", "role", "phone_number"]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  Request serializers
# ═══════════════════════════════════════════════════════════════════


class RescueCreateSerializer(serializers.Serializer):
    """
    Citizen submission.  Sent as ``multipart/form-data`` when media is
    attached (``images`` may repeat up to ``MAX_RESCUE_IMAGES`` times).
    """

    description = serializers.CharField(max_length=MAX_DESCRIPTION_LENGTH)
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    address = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    images = serializers.ListField(
        child=serializers.ImageField(),
        required=False,
        default=list,
    )
    video = serializers.FileField(required=False, allow_null=True)

    def validate_description(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Describe the animal and its condition.")
        return value

    def validate_images(self, value: list) -> list:
        if len(value) > settings.MAX_RESCUE_IMAGES:
            raise serializers.ValidationError(
                f"At most {settings.MAX_RESCUE_IMAGES} images can be attached."
            )
        return value


class AssignCarrierSerializer(serializers.Serializer):
    carrier_id = serializers.IntegerField()


class AdvanceSerializer(serializers.Serializer):
    """Carrier progress: ``en_route`` → ``picked_up`` → ``delivered``."""

    status = serializers.ChoiceField(
        choices=[
            RescueStatus.EN_ROUTE,
            RescueStatus.PICKED_UP,
            RescueStatus.DELIVERED,
        ],
    )


class OverrideSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[RescueStatus.CANCELLED])
    note = serializers.CharField(required=False, allow_blank=True, default="")


# ═══════════════════════════════════════════════════════════════════
#  Response serializers
# ═══════════════════════════════════════════════════════════════════


class RescueListSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = RescueCase
        fields = [
            "id",
            "status",
            "status_display",
            "description",
            "latitude",
            "longitude",
            "address",
            "images",
            "deposit_held",
            "deposit_returned",
            "created_at",
        ]
        read_only_fields = fields


class RescueDetailSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    reporter = _UserSummarySerializer(read_only=True)
    assigned_org = _UserSummarySerializer(read_only=True)
    assigned_facility = _UserSummarySerializer(read_only=True)
    assigned_carrier = _UserSummarySerializer(read_only=True)

    class Meta:
        model = RescueCase
        fields = [
            "id",
            "status",
            "status_display",
            "version",
            "reporter",
            "description",
            "images",
            "video",
            "latitude",
            "longitude",
            "address",
            "assigned_org",
            "assigned_facility",
            "assigned_carrier",
            "deposit_amount",
            "deposit_held",
            "deposit_returned",
            "accepted_at",
            "escalated_at",
            "assigned_at",
            "en_route_at",
            "picked_up_at",
            "delivered_at",
            "completed_at",
            "admin_note",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class NearbyRescueSerializer(serializers.Serializer):
    """A case plus its distance from the viewer (``null`` when unknown)."""

    case = RescueListSerializer()
    distance_km = serializers.FloatField(allow_null=True)


class RescueStatusLogSerializer(serializers.ModelSerializer):
    changed_by_name = serializers.CharField(
        source="changed_by.display_name",
        read_only=True,
        default=None,
    )

    class Meta:
        model = RescueStatusLog
        fields = [
            "id",
            "from_status",
            "to_status",
            "actor_label",
            "changed_by",
            "changed_by_name",
            "message",
            "created_at",
        ]
        read_only_fields = fields


class CarrierSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "display_name",
            "phone_number",
            "vehicle_number",
            "capacity",
            "is_available",
            "is_approved",
        ]
        read_only_fields = fields
