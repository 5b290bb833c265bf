"""
Core app services — **Service Layer**.

Contains cross-app aggregation logic.  Views delegate all business logic
to the service classes defined here, keeping views thin and ensuring
testability.

╔══════════════════════════════════════════════════════════════════════╗
║  CROSS-APP IMPORT RULEBOOK                                         ║
║                                                                    ║
║  The core app is the ONLY app allowed to query models from every   ║
║  other app.  To prevent circular imports at module load time:      ║
║                                                                    ║
║  1. NEVER import models from other apps at the **module level**.   ║
║     Always import inside the method/function that needs them.      ║
║                                                                    ║
║  2. Preferred pattern:                                             ║
║       from django.apps import apps                                 ║
║       RescueCase = apps.get_model("rescues", "RescueCase")         ║
║                                                                    ║
║  3. Choice/enum classes (e.g. RescueStatus, UserRole) live in      ║
║     the respective app's ``models.py`` alongside the models.       ║
║     Import them lazily inside methods too.                         ║
║                                                                    ║
║  4. Use ``.values().annotate()`` over Python-side loops.           ║
╚══════════════════════════════════════════════════════════════════════╝
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.apps import apps
from django.conf import settings
from django.db.models import Count, Q, QuerySet

from core.domain.access import require_admin
from core.domain.exceptions import NotFound

if TYPE_CHECKING:
    from accounts.models import User
    from core.domain.actors import Actor


# ════════════════════════════════════════════════════════════════════
#  Dashboard Aggregation Service
# ════════════════════════════════════════════════════════════════════

class DashboardAggregationService:
    """
    Produces the administrator analytics dict consumed by
    ``DashboardStatsSerializer``.

    Counts users by role, accounts awaiting approval, rescues by status,
    and completed rescues whose deposit refund has not gone through (the
    work list for the retry-refund operation).
    """

    #: Maximum number of recent activity items to return.
    RECENT_ACTIVITY_LIMIT: int = 20

    def __init__(self, actor: Actor) -> None:
        require_admin(actor)
        self.actor = actor

    # ── Public API ──────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Return the full dashboard statistics dictionary."""
        from accounts.models import UserRole
        from rescues.models import RescueStatus

        RescueCase = apps.get_model("rescues", "RescueCase")
        User = apps.get_model("accounts", "User")

        aggregates = RescueCase.objects.aggregate(
            total_rescues=Count("id"),
            active_rescues=Count(
                "id",
                filter=~Q(status__in=RescueStatus.terminal_values()),
            ),
            completed_rescues=Count(
                "id",
                filter=Q(status=RescueStatus.COMPLETED),
            ),
            cancelled_rescues=Count(
                "id",
                filter=Q(status=RescueStatus.CANCELLED),
            ),
            refunds_pending=Count(
                "id",
                filter=Q(
                    status=RescueStatus.COMPLETED,
                    deposit_held=True,
                    deposit_returned=False,
                ),
            ),
        )

        pending_approvals = User.objects.filter(
            role__in=UserRole.organisation_values(),
            is_approved=False,
        ).count()

        return {
            **aggregates,
            "total_users": User.objects.count(),
            "pending_approvals": pending_approvals,
            "deposit_amount": settings.RESCUE_DEPOSIT_AMOUNT,
            "users_by_role": self._get_users_by_role(User.objects.all()),
            "rescues_by_status": self._get_rescues_by_status(RescueCase.objects.all()),
            "recent_activity": self._get_recent_activity(),
        }

    # ── Private helpers ─────────────────────────────────────────────

    def _get_users_by_role(self, user_qs: QuerySet) -> list[dict[str, Any]]:
        from accounts.models import UserRole

        label_map = dict(UserRole.choices)
        rows = user_qs.values("role").annotate(count=Count("id")).order_by("role")
        return [
            {
                "value": row["role"],
                "label": label_map.get(row["role"], row["role"]),
                "count": row["count"],
            }
            for row in rows
        ]

    def _get_rescues_by_status(self, case_qs: QuerySet) -> list[dict[str, Any]]:
        """Group ``case_qs`` by status and return a list of dicts."""
        from rescues.models import RescueStatus

        label_map = dict(RescueStatus.choices)
        rows = case_qs.values("status").annotate(count=Count("id")).order_by("status")
        return [
            {
                "value": row["status"],
                "label": label_map.get(row["status"], row["status"]),
                "count": row["count"],
            }
            for row in rows
        ]

    def _get_recent_activity(self) -> list[dict[str, Any]]:
        """Return the latest status-change feed items."""
        RescueStatusLog = apps.get_model("rescues", "RescueStatusLog")

        logs = (
            RescueStatusLog.objects
            .select_related("changed_by")
            .order_by("-created_at")[: self.RECENT_ACTIVITY_LIMIT]
        )
        return [
            {
                "timestamp": log.created_at,
                "rescue_id": log.case_id,
                "description": (
                    f"Rescue #{log.case_id} moved from "
                    f"{log.from_status or '-'} to {log.to_status}"
                ),
                "actor": log.changed_by.username if log.changed_by else log.actor_label,
            }
            for log in logs
        ]


# ════════════════════════════════════════════════════════════════════
#  System Constants Service
# ════════════════════════════════════════════════════════════════════

class SystemConstantsService:
    """
    Gathers all system-wide choice enumerations and public business
    constants into a single dict for the frontend.

    This service is **stateless** — it does not depend on the requesting
    user.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        """Return all system constants as a dict."""
        from accounts.models import UserRole
        from rescues.models import RescueStatus
        from wallet.models import LedgerEntryKind

        to_list = SystemConstantsService._choices_to_list

        return {
            "rescue_statuses": to_list(RescueStatus),
            "user_roles": to_list(UserRole),
            "ledger_entry_kinds": to_list(LedgerEntryKind),
            "rescue_deposit_amount": settings.RESCUE_DEPOSIT_AMOUNT,
            "min_top_up_amount": settings.MIN_TOP_UP_AMOUNT,
            "max_rescue_images": settings.MAX_RESCUE_IMAGES,
            "escalation_deadline_seconds": settings.ESCALATION_DEADLINE_SECONDS,
            "org_visibility_radius_km": settings.ORG_VISIBILITY_RADIUS_KM,
            "facility_visibility_radius_km": settings.FACILITY_VISIBILITY_RADIUS_KM,
        }

    @staticmethod
    def _choices_to_list(
        choices_class: type,
    ) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` or ``IntegerChoices`` class to
        a list of ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]


# ════════════════════════════════════════════════════════════════════
#  Notification Service
# ════════════════════════════════════════════════════════════════════

class NotificationService:
    """
    Handles listing and marking notifications as read for a given user.
    """

    def __init__(self, user: User) -> None:
        self.user = user

    def list_notifications(self, *, unread_only: bool = False) -> QuerySet:
        """Return notifications for ``self.user``, most recent first."""
        from core.models import Notification

        qs = (
            Notification.objects
            .filter(recipient=self.user)
            .select_related("content_type")
            .order_by("-created_at")
        )
        if unread_only:
            qs = qs.filter(is_read=False)
        return qs

    def mark_as_read(self, notification_id: int) -> Any:
        """Mark a single notification as read."""
        from core.models import Notification

        try:
            notification = Notification.objects.get(
                pk=notification_id,
                recipient=self.user,
            )
        except Notification.DoesNotExist:
            raise NotFound("Notification not found.")
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
        return notification

    def mark_all_as_read(self) -> int:
        """Mark every unread notification as read; return how many changed."""
        return self.list_notifications(unread_only=True).update(is_read=True)
