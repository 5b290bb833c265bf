"""
Rescues app models.

Covers the complete rescue lifecycle — from a citizen's report with a
deposit on hold, through organization acceptance or time-based
escalation to nearby facilities, carrier dispatch and transport, to
delivery, completion and the deposit refund.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class RescueStatus(models.TextChoices):
    """
    Lifecycle states.  ``delivered`` is recorded in the audit log but a
    case never rests there: delivery completes the case in the same
    write.  ``cancelled`` is reachable only by administrative override.
    """

    REPORTED = "reported", "Reported"
    ORG_ACCEPTED = "org_accepted", "Accepted by Organization"
    FACILITY_ESCALATED = "facility_escalated", "Escalated to Facilities"
    CARRIER_ASSIGNED = "carrier_assigned", "Carrier Assigned"
    EN_ROUTE = "en_route", "Carrier En Route"
    PICKED_UP = "picked_up", "Animal Picked Up"
    DELIVERED = "delivered", "Delivered to Facility"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"

    @classmethod
    def terminal_values(cls) -> list[str]:
        return [cls.COMPLETED, cls.CANCELLED]

    @classmethod
    def carrier_active_values(cls) -> list[str]:
        """States in which the assigned carrier is busy with the case."""
        return [cls.CARRIER_ASSIGNED, cls.EN_ROUTE, cls.PICKED_UP]


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class RescueCase(TimeStampedModel):
    """
    Central entity of the system — one animal in need of rescue.

    * Reporter, description, media and location are fixed at creation.
    * ``assigned_org`` / ``assigned_facility`` / ``assigned_carrier`` are
      each set exactly once by their transition.
    * ``version`` is bumped on every workflow write and guards against
      lost updates (compare-and-swap).
    """

    # ── Report (immutable) ──────────────────────────────────────────
    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reported_rescues",
        verbose_name="Reporter",
    )
    description = models.TextField(
        max_length=1000,
        verbose_name="Description",
    )
    images = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Image References",
        help_text="Up to five media-store URLs.",
    )
    video = models.CharField(
        max_length=500,
        null=True,
        blank=True,
        verbose_name="Video Reference",
    )
    latitude = models.FloatField(verbose_name="Latitude")
    longitude = models.FloatField(verbose_name="Longitude")
    address = models.CharField(
        max_length=500,
        blank=True,
        default="",
        verbose_name="Address",
    )

    # ── Workflow ────────────────────────────────────────────────────
    status = models.CharField(
        max_length=20,
        choices=RescueStatus.choices,
        default=RescueStatus.REPORTED,
        verbose_name="Current Status",
        db_index=True,
    )
    version = models.PositiveIntegerField(
        default=0,
        verbose_name="Version",
        help_text="Incremented on every workflow write.",
    )

    # ── Bound actors ────────────────────────────────────────────────
    assigned_org = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="accepted_rescues",
        verbose_name="Accepting Organization",
    )
    assigned_facility = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="facility_rescues",
        verbose_name="Receiving Facility",
    )
    assigned_carrier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="carrier_rescues",
        verbose_name="Assigned Carrier",
    )
    rejected_by_orgs = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="declined_rescues",
        verbose_name="Declined By",
    )

    # ── Deposit ─────────────────────────────────────────────────────
    deposit_amount = models.PositiveIntegerField(
        default=0,
        verbose_name="Deposit Amount",
        help_text="Amount debited at submission; refunded in full on completion.",
    )
    deposit_held = models.BooleanField(default=False, verbose_name="Deposit Held")
    deposit_returned = models.BooleanField(default=False, verbose_name="Deposit Returned")

    # ── Milestones (each set at most once) ──────────────────────────
    accepted_at = models.DateTimeField(null=True, blank=True, verbose_name="Accepted At")
    escalated_at = models.DateTimeField(null=True, blank=True, verbose_name="Escalated At")
    assigned_at = models.DateTimeField(null=True, blank=True, verbose_name="Carrier Assigned At")
    en_route_at = models.DateTimeField(null=True, blank=True, verbose_name="En Route At")
    picked_up_at = models.DateTimeField(null=True, blank=True, verbose_name="Picked Up At")
    delivered_at = models.DateTimeField(null=True, blank=True, verbose_name="Delivered At")
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name="Completed At")

    admin_note = models.TextField(
        blank=True,
        default="",
        verbose_name="Administrator Note",
    )

    class Meta:
        verbose_name = "Rescue Case"
        verbose_name_plural = "Rescue Cases"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="rescue_status_created_idx"),
            models.Index(fields=["status", "escalated_at"], name="rescue_status_escalated_idx"),
            models.Index(fields=["latitude", "longitude"], name="rescue_location_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(deposit_returned=False) | Q(deposit_held=True),
                name="rescue_refund_requires_held_deposit",
            ),
        ]

    def __str__(self):
        return f"Rescue #{self.pk} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in RescueStatus.terminal_values()

    def is_bound_to(self, user_id) -> bool:
        """True if ``user_id`` is the reporter or one of the assigned actors."""
        return user_id in (
            self.reporter_id,
            self.assigned_org_id,
            self.assigned_facility_id,
            self.assigned_carrier_id,
        )


class RescueStatusLog(TimeStampedModel):
    """
    Immutable audit trail of every status change of a rescue.

    ``changed_by`` is empty for scheduler escalations; ``actor_label``
    always names who acted (``scheduler``, ``org:12`` …).
    """

    case = models.ForeignKey(
        RescueCase,
        on_delete=models.CASCADE,
        related_name="status_logs",
        verbose_name="Rescue",
    )
    from_status = models.CharField(
        max_length=20,
        choices=RescueStatus.choices,
        blank=True,
        default="",
        verbose_name="Previous Status",
    )
    to_status = models.CharField(
        max_length=20,
        choices=RescueStatus.choices,
        verbose_name="New Status",
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rescue_status_changes",
        verbose_name="Changed By",
    )
    actor_label = models.CharField(
        max_length=64,
        blank=True,
        default="",
        verbose_name="Actor",
    )
    message = models.TextField(
        blank=True,
        default="",
        verbose_name="Message",
    )

    class Meta:
        verbose_name = "Rescue Status Log"
        verbose_name_plural = "Rescue Status Logs"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return (
            f"Rescue #{self.case_id}: "
            f"{self.from_status or '-'} → {self.to_status}"
        )
