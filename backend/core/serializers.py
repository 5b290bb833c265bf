"""
Core app serializers.

**Response-only** serializers for the aggregated endpoints served by the
core app.  These serializers define the *output schema* for the
dashboard, system constants and notification views.  They do **not**
accept input data.

Architectural note
------------------
These serializers never import models from other apps directly at the
module level.  They work exclusively with plain Python dicts / lists
produced by the service layer, keeping the core app decoupled from
concrete model implementations in ``rescues``, ``wallet`` and
``accounts``.
"""

from __future__ import annotations

from rest_framework import serializers


# ════════════════════════════════════════════════════════════════════
#  Dashboard Statistics
# ════════════════════════════════════════════════════════════════════

class CountByChoiceSerializer(serializers.Serializer):
    """
    A choice value with its display label and a row count.

    Example::

        {"value": "reported", "label": "Reported", "count": 12}
    """

    value = serializers.CharField(help_text="Machine-readable choice value.")
    label = serializers.CharField(help_text="Human-readable display label.")
    count = serializers.IntegerField(help_text="Number of matching rows.")


class RecentActivitySerializer(serializers.Serializer):
    timestamp = serializers.DateTimeField(help_text="When the status change happened.")
    rescue_id = serializers.IntegerField(help_text="Rescue case PK.")
    description = serializers.CharField(help_text="Human-readable summary.")
    actor = serializers.CharField(
        help_text="Username of the acting user, or the scheduler label.",
        allow_null=True,
        allow_blank=True,
    )


class DashboardStatsSerializer(serializers.Serializer):
    """
    Top-level response serializer for ``GET /api/core/dashboard/``.

    Administrator-only analytics snapshot.

    Response shape::

        {
            "total_users": 40,
            "pending_approvals": 3,
            "total_rescues": 120,
            "active_rescues": 9,
            "completed_rescues": 100,
            "cancelled_rescues": 11,
            "refunds_pending": 1,
            "deposit_amount": 20,
            "users_by_role": [...],
            "rescues_by_status": [...],
            "recent_activity": [...]
        }
    """

    # ── Scalar counters ──────────────────────────────────────────────
    total_users = serializers.IntegerField(help_text="All registered accounts.")
    pending_approvals = serializers.IntegerField(
        help_text="Org, facility and carrier accounts awaiting approval.",
    )
    total_rescues = serializers.IntegerField(help_text="All rescue cases.")
    active_rescues = serializers.IntegerField(
        help_text="Rescues not yet completed or cancelled.",
    )
    completed_rescues = serializers.IntegerField(help_text="Completed rescues.")
    cancelled_rescues = serializers.IntegerField(help_text="Cancelled rescues.")
    refunds_pending = serializers.IntegerField(
        help_text="Completed rescues whose deposit refund has not been applied.",
    )
    deposit_amount = serializers.IntegerField(help_text="Current rescue deposit.")

    # ── Nested breakdowns ────────────────────────────────────────────
    users_by_role = CountByChoiceSerializer(many=True)
    rescues_by_status = CountByChoiceSerializer(many=True)
    recent_activity = RecentActivitySerializer(many=True)


# ════════════════════════════════════════════════════════════════════
#  System Constants / Enums
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """
    A single key-label pair representing one choice/enum option.

    Example::

        {"value": "org_accepted", "label": "Accepted by Organization"}
    """

    value = serializers.CharField(
        help_text="Machine-readable value to send in API requests.",
    )
    label = serializers.CharField(
        help_text="Human-readable display label for the UI.",
    )


class SystemConstantsSerializer(serializers.Serializer):
    """
    Top-level response serializer for ``GET /api/core/constants/``.

    Provides all system-wide choice enumerations and the public business
    constants so the frontend can build dropdowns and explain the deposit
    without hardcoding values.
    """

    rescue_statuses = ChoiceItemSerializer(
        many=True,
        help_text="All rescue lifecycle statuses (RescueStatus enum).",
    )
    user_roles = ChoiceItemSerializer(
        many=True,
        help_text="Account roles available at registration.",
    )
    ledger_entry_kinds = ChoiceItemSerializer(
        many=True,
        help_text="Wallet ledger entry kinds (debit / credit / refund).",
    )
    rescue_deposit_amount = serializers.IntegerField()
    min_top_up_amount = serializers.IntegerField()
    max_rescue_images = serializers.IntegerField()
    escalation_deadline_seconds = serializers.IntegerField()
    org_visibility_radius_km = serializers.FloatField()
    facility_visibility_radius_km = serializers.FloatField()


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.Serializer):
    """
    Read-only serializer for ``Notification`` instances.

    Used by the Notification ViewSet to list and retrieve notifications
    for the authenticated user.
    """

    id = serializers.IntegerField(read_only=True, help_text="Notification PK.")
    event_type = serializers.CharField(
        read_only=True,
        help_text="Machine-readable event key (e.g. ``rescue_accepted``).",
    )
    title = serializers.CharField(
        read_only=True,
        help_text="Short notification title.",
    )
    message = serializers.CharField(
        read_only=True,
        help_text="Full notification message body.",
    )
    is_read = serializers.BooleanField(
        read_only=True,
        help_text="Whether the recipient has marked this notification as read.",
    )
    created_at = serializers.DateTimeField(
        read_only=True,
        help_text="When the notification was created.",
    )
    content_type = serializers.StringRelatedField(
        read_only=True,
        help_text="Related content type (if any).",
    )
    object_id = serializers.IntegerField(
        read_only=True,
        allow_null=True,
        help_text="PK of the related object (if any).",
    )
