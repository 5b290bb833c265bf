"""
Rescues Service Layer.

This module encapsulates **all** business logic for the rescue
lifecycle.  Views must remain thin: they validate input via serializers,
build an ``Actor`` from ``request.user``, call a service method, and
serialize the result.

Architecture
------------
- ``RescueCreationService``   — citizen submission: media upload, deposit
  debit and case insert.
- ``RescueWorkflowService``   — the single transition primitive, org
  decline, deposit refund and administrative overrides.
- ``EscalationService``       — the stateless scheduler tick.
- ``RescueVisibilityService`` — radius-based matching for organizations
  and facilities.
- ``RescueQueryService``      — read-only listings and detail access.

State machine
-------------
::

    reported ──(org)──────────► org_accepted
        │
        └──(scheduler, +5 min)─► facility_escalated
                                    │ (facility + linked carrier)
                                    ▼
                              carrier_assigned ─► en_route ─► picked_up
                                  (assigned carrier for each step)
                                                                 │
                                           delivered ─► completed ◄┘
                                  (one write; deposit refunded)

``cancelled`` is reachable from any non-terminal state by an
administrator only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from accounts.models import UserRole
from core.constants import CARRIER_HISTORY_LIMIT
from core.domain.access import require_admin, require_role
from core.domain.actors import Actor, ActorRole
from core.domain.exceptions import (
    AlreadyProcessed,
    Conflict,
    DomainError,
    InsufficientFunds,
    InvalidTransition,
    NotFound,
    PermissionDenied,
)
from core.domain.media import store_media
from core.domain.notifications import NotificationService
from core.domain.transactions import compare_and_swap, lock_for_update
from core.geo import haversine_km
from wallet.models import LedgerEntryKind, Wallet
from wallet.services import LedgerService

from .models import RescueCase, RescueStatus, RescueStatusLog

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)


def _record_status(
    case_id: int,
    from_status: str,
    to_status: str,
    actor: Actor,
    message: str = "",
) -> RescueStatusLog:
    return RescueStatusLog.objects.create(
        case_id=case_id,
        from_status=from_status,
        to_status=to_status,
        changed_by=actor.user,
        actor_label=actor.label,
        message=message,
    )


def _set_carrier_availability(carrier_id: int, available: bool) -> None:
    """Flip a carrier's availability flag under a row lock."""
    User = get_user_model()
    locked = list(User.objects.select_for_update().filter(pk=carrier_id))
    if locked:
        User.objects.filter(pk=carrier_id).update(is_available=available)


# ═══════════════════════════════════════════════════════════════════
#  Rescue Creation Service
# ═══════════════════════════════════════════════════════════════════


class RescueCreationService:
    """
    Handles the submission of a new rescue by a citizen.
    """

    @staticmethod
    def submit(actor: Actor, validated_data: dict[str, Any]) -> RescueCase:
        """
        Create a rescue case and hold the deposit from the reporter's
        wallet.

        Parameters
        ----------
        actor : Actor
            The reporting citizen.
        validated_data : dict
            Cleaned data from ``RescueCreateSerializer``: ``description``,
            ``latitude``, ``longitude``, optional ``address``, optional
            ``images`` (uploaded files) and optional ``video``.

        Returns
        -------
        RescueCase
            The new case in ``reported`` with ``deposit_held=True``.

        Raises
        ------
        PermissionDenied
            If the actor is not a citizen.
        DomainError
            If more than ``MAX_RESCUE_IMAGES`` images are attached.
        InsufficientFunds
            If the wallet does not cover the deposit.  Nothing is
            written in that case.

        Implementation Contract
        -----------------------
        1. Check the balance (unlocked) before touching the media store.
        2. Store media outside the database transaction.
        3. Inside ``transaction.atomic``: insert the case, append the
           debit (authoritative locked balance check), log the creation.
        4. Notify the reporter after commit.
        """
        require_role(actor, ActorRole.CITIZEN)
        reporter = actor.user
        deposit = settings.RESCUE_DEPOSIT_AMOUNT

        images = list(validated_data.get("images") or [])
        if len(images) > settings.MAX_RESCUE_IMAGES:
            raise DomainError(
                f"At most {settings.MAX_RESCUE_IMAGES} images can be attached."
            )

        if deposit > 0:
            wallet = Wallet.objects.filter(user=reporter).first()
            available = wallet.balance if wallet is not None else 0
            if available < deposit:
                raise InsufficientFunds(required=deposit, available=available)

        # ── Media (outside the transaction) ─────────────────────────
        image_urls = [store_media(image, folder="rescues/images") for image in images]
        video = validated_data.get("video")
        video_url = store_media(video, folder="rescues/videos") if video else None

        with transaction.atomic():
            case = RescueCase.objects.create(
                reporter=reporter,
                description=validated_data["description"],
                latitude=validated_data["latitude"],
                longitude=validated_data["longitude"],
                address=validated_data.get("address", ""),
                images=image_urls,
                video=video_url,
                status=RescueStatus.REPORTED,
                deposit_amount=deposit,
                deposit_held=deposit > 0,
            )
            if deposit > 0:
                LedgerService.append(
                    owner=reporter,
                    signed_amount=-deposit,
                    kind=LedgerEntryKind.DEBIT,
                    related_case=case,
                    description=f"Deposit for rescue #{case.pk}",
                )
            _record_status(case.pk, "", RescueStatus.REPORTED, actor, "Rescue reported.")

            NotificationService.emit(
                actor=reporter,
                recipients=reporter,
                event_type="rescue_created",
                payload={"rescue_id": case.pk, "deposit": deposit},
                related_object=case,
            )

        logger.info(
            "Rescue #%d reported by user #%d (deposit %d held)",
            case.pk,
            reporter.pk,
            deposit,
        )
        return case


# ═══════════════════════════════════════════════════════════════════
#  Rescue Workflow Service
# ═══════════════════════════════════════════════════════════════════


class RescueWorkflowService:
    """
    The lifecycle engine.  Every status change of a case goes through
    ``transition`` (or ``override_status`` for administrators).
    """

    # Requestable state → the one role that may request it.
    _TARGET_ROLE: dict[str, ActorRole] = {
        RescueStatus.ORG_ACCEPTED: ActorRole.ORG,
        RescueStatus.FACILITY_ESCALATED: ActorRole.SCHEDULER,
        RescueStatus.CARRIER_ASSIGNED: ActorRole.FACILITY,
        RescueStatus.EN_ROUTE: ActorRole.CARRIER,
        RescueStatus.PICKED_UP: ActorRole.CARRIER,
        RescueStatus.DELIVERED: ActorRole.CARRIER,
    }

    # (current status, actor role) → the single successor.
    _SUCCESSORS: dict[tuple[str, ActorRole], str] = {
        (RescueStatus.REPORTED, ActorRole.ORG): RescueStatus.ORG_ACCEPTED,
        (RescueStatus.REPORTED, ActorRole.SCHEDULER): RescueStatus.FACILITY_ESCALATED,
        (RescueStatus.FACILITY_ESCALATED, ActorRole.FACILITY): RescueStatus.CARRIER_ASSIGNED,
        (RescueStatus.CARRIER_ASSIGNED, ActorRole.CARRIER): RescueStatus.EN_ROUTE,
        (RescueStatus.EN_ROUTE, ActorRole.CARRIER): RescueStatus.PICKED_UP,
        (RescueStatus.PICKED_UP, ActorRole.CARRIER): RescueStatus.DELIVERED,
    }

    _TIMESTAMP_FIELD: dict[str, str] = {
        RescueStatus.ORG_ACCEPTED: "accepted_at",
        RescueStatus.FACILITY_ESCALATED: "escalated_at",
        RescueStatus.CARRIER_ASSIGNED: "assigned_at",
        RescueStatus.EN_ROUTE: "en_route_at",
        RescueStatus.PICKED_UP: "picked_up_at",
        RescueStatus.DELIVERED: "delivered_at",
    }

    @classmethod
    def transition(
        cls,
        case_id: int,
        actor: Actor,
        requested_status: str,
        *,
        carrier_id: int | None = None,
        now: datetime | None = None,
    ) -> RescueCase:
        """
        Move a case to ``requested_status`` on behalf of ``actor``.

        Parameters
        ----------
        case_id : int
            PK of the rescue.
        actor : Actor
            The acting identity (``Actor.scheduler()`` for escalation).
        requested_status : str
            Target ``RescueStatus`` value.  A carrier requests
            ``delivered``; the case lands in ``completed``.
        carrier_id : int, optional
            Required when a facility requests ``carrier_assigned``.
        now : datetime, optional
            Clock used for timestamps and the escalation deadline.

        Returns
        -------
        RescueCase
            The refreshed case.

        Raises
        ------
        NotFound
            Unknown case, or unknown carrier for an assignment.
        PermissionDenied
            Wrong role, unapproved actor, or actor not bound to the case.
        InvalidTransition
            Not the expected successor, escalation before the deadline,
            or a lost race on the version column.
        Conflict
            The carrier is not available.

        Check order
        -----------
        ::

            1. case exists                (NotFound)
            2. role owns the target       (PermissionDenied)
            3. carrier is assigned        (PermissionDenied)
            4. target is the successor    (InvalidTransition)
            5. binding checks             (PermissionDenied / InvalidTransition
                                           / NotFound / Conflict)
            6. compare-and-swap write + status log + notifications
        """
        now = now or timezone.now()

        with transaction.atomic():
            # ── Fetch case with row lock ────────────────────────────
            case = lock_for_update(RescueCase, case_id)
            current = case.status

            # ── Role owns the requested state ───────────────────────
            owner_role = cls._TARGET_ROLE.get(requested_status)
            if owner_role is None:
                raise InvalidTransition(
                    current=current,
                    target=requested_status,
                    reason="this state cannot be requested",
                )
            require_role(
                actor,
                owner_role,
                message=f"Only the {owner_role.value} role can move a rescue to '{requested_status}'.",
            )

            # ── Carrier is the assigned one ─────────────────────────
            # An unassigned carrier must not learn the case state.
            if actor.role == ActorRole.CARRIER and case.assigned_carrier_id != actor.actor_id:
                raise PermissionDenied("You are not the carrier assigned to this rescue.")

            # ── Single successor ────────────────────────────────────
            expected = cls._SUCCESSORS.get((current, actor.role))
            if expected != requested_status:
                raise InvalidTransition(current=current, target=requested_status)

            changes: dict[str, Any] = {
                "status": requested_status,
                cls._TIMESTAMP_FIELD[requested_status]: now,
            }
            carrier = None

            # ── Binding checks ──────────────────────────────────────
            if actor.role == ActorRole.ORG:
                if case.rejected_by_orgs.filter(pk=actor.actor_id).exists():
                    raise PermissionDenied("You have declined this rescue.")
                changes["assigned_org_id"] = actor.actor_id

            elif actor.role == ActorRole.SCHEDULER:
                deadline = case.created_at + timedelta(
                    seconds=settings.ESCALATION_DEADLINE_SECONDS,
                )
                if now < deadline:
                    raise InvalidTransition(
                        current=current,
                        target=requested_status,
                        reason="the escalation deadline has not passed",
                    )

            elif actor.role == ActorRole.FACILITY:
                carrier = cls._lock_carrier(carrier_id, actor)
                changes["assigned_facility_id"] = actor.actor_id
                changes["assigned_carrier_id"] = carrier.pk

            completing = requested_status == RescueStatus.DELIVERED
            if completing:
                changes["status"] = RescueStatus.COMPLETED
                changes["completed_at"] = now

            # ── Write ───────────────────────────────────────────────
            compare_and_swap(
                RescueCase,
                pk=case.pk,
                expected_version=case.version,
                **changes,
            )
            _record_status(case.pk, current, requested_status, actor)
            if completing:
                _record_status(
                    case.pk,
                    RescueStatus.DELIVERED,
                    RescueStatus.COMPLETED,
                    actor,
                    "Delivered to facility; rescue completed.",
                )

            if carrier is not None:
                carrier.is_available = False
                carrier.save(update_fields=["is_available"])

            if completing:
                _set_carrier_availability(actor.actor_id, True)
                cls._refund_deposit(case.pk)

            case.refresh_from_db()
            cls._notify_transition(case, actor, requested_status)

        logger.info(
            "Rescue #%d: %s → %s by %s",
            case.pk,
            current,
            case.status,
            actor.label,
        )
        return case

    @staticmethod
    def _lock_carrier(carrier_id: int | None, facility: Actor) -> User:
        """
        Lock and validate the carrier a facility wants to dispatch.
        """
        User = get_user_model()
        if carrier_id is None:
            raise NotFound("Carrier not found.")
        try:
            carrier = User.objects.select_for_update().get(
                pk=carrier_id,
                role=UserRole.CARRIER,
            )
        except User.DoesNotExist:
            raise NotFound("Carrier not found.")

        if carrier.linked_facility_id != facility.actor_id:
            raise PermissionDenied("This carrier is not linked to your facility.")
        if not carrier.is_approved:
            raise PermissionDenied("This carrier has not been approved yet.")
        if not carrier.is_available:
            raise Conflict("This carrier is currently on another rescue.")
        return carrier

    @staticmethod
    def _refund_deposit(case_id: int) -> bool:
        """
        Return the held deposit to the reporter's wallet.

        Runs in a savepoint: a failure rolls back only the refund, is
        logged at ERROR and leaves ``deposit_returned=False`` so the
        refund can be retried.  Returns ``True`` when a refund entry was
        written.
        """
        try:
            with transaction.atomic():
                case = (
                    RescueCase.objects
                    .select_for_update()
                    .select_related("reporter")
                    .get(pk=case_id)
                )
                if not case.deposit_held or case.deposit_amount == 0:
                    return False
                if case.deposit_returned:
                    raise AlreadyProcessed(
                        f"Deposit for rescue #{case.pk} was already refunded."
                    )
                LedgerService.append(
                    owner=case.reporter,
                    signed_amount=case.deposit_amount,
                    kind=LedgerEntryKind.REFUND,
                    related_case=case,
                    description=f"Deposit refund for rescue #{case.pk}",
                )
                compare_and_swap(
                    RescueCase,
                    pk=case.pk,
                    expected_version=case.version,
                    deposit_returned=True,
                )
        except AlreadyProcessed as exc:
            logger.warning("Skipping refund for rescue #%d: %s", case_id, exc)
            return False
        except (DomainError, DatabaseError):
            logger.exception("Deposit refund failed for rescue #%d", case_id)
            return False

        NotificationService.emit(
            actor="system",
            recipients=case.reporter,
            event_type="wallet_refund",
            payload={"rescue_id": case.pk, "amount": case.deposit_amount},
            related_object=case,
        )
        logger.info("Deposit %d refunded for rescue #%d", case.deposit_amount, case.pk)
        return True

    @staticmethod
    def _notify_transition(case: RescueCase, actor: Actor, requested_status: str) -> None:
        payload = {"rescue_id": case.pk, "status": case.get_status_display()}
        recipients: list[Any] = [case.reporter]

        if requested_status == RescueStatus.ORG_ACCEPTED:
            event_type = "rescue_accepted"
        elif requested_status == RescueStatus.FACILITY_ESCALATED:
            event_type = "rescue_escalated"
            recipients += RescueVisibilityService.facilities_near(case)
        elif requested_status == RescueStatus.CARRIER_ASSIGNED:
            event_type = "carrier_assigned"
            recipients.append(case.assigned_carrier)
        elif requested_status == RescueStatus.DELIVERED:
            event_type = "rescue_completed"
            recipients.append(case.assigned_facility)
        else:
            event_type = "rescue_status_changed"
            recipients.append(case.assigned_facility)

        NotificationService.emit(
            actor=actor.user or actor.label,
            recipients=recipients,
            event_type=event_type,
            payload=payload,
            related_object=case,
        )

    @staticmethod
    def decline(case_id: int, actor: Actor) -> RescueCase:
        """
        Record that an organization passes on a reported case.

        The status is unchanged; the case disappears from that
        organization's nearby list.  Declining twice is a no-op.
        """
        require_role(actor, ActorRole.ORG)
        with transaction.atomic():
            case = lock_for_update(RescueCase, case_id)
            if case.status != RescueStatus.REPORTED:
                raise InvalidTransition(
                    current=case.status,
                    target="declined",
                    reason="only reported rescues can be declined",
                )
            if case.rejected_by_orgs.filter(pk=actor.actor_id).exists():
                return case
            case.rejected_by_orgs.add(actor.user)
            compare_and_swap(RescueCase, pk=case.pk, expected_version=case.version)
            case.refresh_from_db()

        logger.info("Rescue #%d declined by %s", case.pk, actor.label)
        return case

    # ── Administrative overrides ────────────────────────────────────

    @staticmethod
    def override_status(
        actor: Actor,
        case_id: int,
        target_status: str,
        *,
        note: str = "",
    ) -> RescueCase:
        """
        Administrator cancellation of a non-terminal case.

        Frees the assigned carrier, if any.  The held deposit is not
        refunded automatically.
        """
        require_admin(actor)
        if target_status != RescueStatus.CANCELLED:
            raise InvalidTransition(
                target=target_status,
                reason="administrators can only cancel a rescue",
            )

        with transaction.atomic():
            case = lock_for_update(RescueCase, case_id)
            current = case.status
            if case.is_terminal:
                raise InvalidTransition(current=current, target=target_status)

            compare_and_swap(
                RescueCase,
                pk=case.pk,
                expected_version=case.version,
                status=RescueStatus.CANCELLED,
                admin_note=note,
            )
            _record_status(case.pk, current, RescueStatus.CANCELLED, actor, note)
            if case.assigned_carrier_id and current in RescueStatus.carrier_active_values():
                _set_carrier_availability(case.assigned_carrier_id, True)

            case.refresh_from_db()
            NotificationService.emit(
                actor=actor.user,
                recipients=[
                    case.reporter,
                    case.assigned_org,
                    case.assigned_facility,
                    case.assigned_carrier,
                ],
                event_type="rescue_cancelled",
                payload={"rescue_id": case.pk},
                related_object=case,
            )

        logger.warning("Rescue #%d cancelled by %s (was %s)", case.pk, actor.label, current)
        return case

    @staticmethod
    def delete_case(actor: Actor, case_id: int) -> None:
        require_admin(actor)
        with transaction.atomic():
            case = lock_for_update(RescueCase, case_id)
            if case.assigned_carrier_id and case.status in RescueStatus.carrier_active_values():
                _set_carrier_availability(case.assigned_carrier_id, True)
            case.delete()
        logger.warning("Rescue #%d deleted by %s", case_id, actor.label)

    @classmethod
    def retry_refund(cls, actor: Actor, case_id: int) -> RescueCase:
        """
        Re-run a deposit refund that failed at completion time.

        Raises
        ------
        Conflict
            The case is not completed, held no deposit, its deposit was
            already refunded, or the refund failed again.
        """
        require_admin(actor)
        with transaction.atomic():
            case = lock_for_update(RescueCase, case_id)
            if case.status != RescueStatus.COMPLETED:
                raise Conflict("Only completed rescues can be refunded.")
            if not case.deposit_held:
                raise Conflict("No deposit was held for this rescue.")
            if case.deposit_returned:
                raise Conflict("The deposit for this rescue was already refunded.")
            if not cls._refund_deposit(case.pk):
                raise Conflict("The refund failed again; check the logs and retry later.")
            case.refresh_from_db()
        return case


# ═══════════════════════════════════════════════════════════════════
#  Escalation Service
# ═══════════════════════════════════════════════════════════════════


@dataclass
class TickResult:
    escalated: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


class EscalationService:
    """
    Stateless scheduler tick.  Safe to run from several workers at once:
    the transition primitive lets only one of them escalate a case.
    """

    @staticmethod
    def overdue_case_ids(now: datetime) -> list[int]:
        cutoff = now - timedelta(seconds=settings.ESCALATION_DEADLINE_SECONDS)
        return list(
            RescueCase.objects
            .filter(status=RescueStatus.REPORTED, created_at__lte=cutoff)
            .order_by("created_at", "id")
            .values_list("pk", flat=True)
        )

    @staticmethod
    def run_tick(now: datetime | None = None) -> TickResult:
        """
        Escalate every reported case older than the deadline.

        Each case runs in its own transaction; a failure on one case
        never stops the tick.
        """
        now = now or timezone.now()
        scheduler = Actor.scheduler()
        result = TickResult()

        for case_id in EscalationService.overdue_case_ids(now):
            try:
                RescueWorkflowService.transition(
                    case_id,
                    scheduler,
                    RescueStatus.FACILITY_ESCALATED,
                    now=now,
                )
            except InvalidTransition as exc:
                logger.debug("Escalation skipped for rescue #%d: %s", case_id, exc)
                result.skipped.append(case_id)
            except DomainError as exc:
                logger.warning("Escalation failed for rescue #%d: %s", case_id, exc)
                result.skipped.append(case_id)
            else:
                result.escalated.append(case_id)

        if result.escalated or result.skipped:
            logger.info(
                "Escalation tick: %d escalated, %d skipped",
                len(result.escalated),
                len(result.skipped),
            )
        return result


# ═══════════════════════════════════════════════════════════════════
#  Visibility Service
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class NearbyCase:
    case: RescueCase
    distance_km: float | None


class RescueVisibilityService:
    """
    Which open cases an organization or facility gets to see.
    """

    @staticmethod
    def nearby_pending_for_org(actor: Actor) -> list[NearbyCase]:
        """
        Reported, unaccepted cases the organization has not declined.

        With a home location the list is limited to
        ``ORG_VISIBILITY_RADIUS_KM`` and sorted by distance; without
        one every matching case is returned oldest first.
        """
        require_role(actor, ActorRole.ORG)
        org = actor.user
        cases = (
            RescueCase.objects
            .filter(status=RescueStatus.REPORTED, assigned_org__isnull=True)
            .exclude(rejected_by_orgs=org)
            .select_related("reporter")
            .order_by("created_at", "id")
        )

        if not org.has_location:
            return [NearbyCase(case=case, distance_km=None) for case in cases]

        radius = settings.ORG_VISIBILITY_RADIUS_KM
        nearby = []
        for case in cases:
            distance = haversine_km(org.home_latitude, org.home_longitude, case.latitude, case.longitude)
            if distance <= radius:
                nearby.append(NearbyCase(case=case, distance_km=distance))
        nearby.sort(key=lambda item: item.distance_km)
        return nearby

    @staticmethod
    def escalated_nearby_for_facility(actor: Actor) -> list[NearbyCase]:
        """
        Escalated cases within ``FACILITY_VISIBILITY_RADIUS_KM`` of the
        facility, nearest first.

        Raises
        ------
        DomainError
            If the facility has not set its location.
        """
        require_role(actor, ActorRole.FACILITY)
        facility = actor.user
        if not facility.has_location:
            raise DomainError("Set your location in your profile to see escalated rescues.")

        cases = (
            RescueCase.objects
            .filter(status=RescueStatus.FACILITY_ESCALATED)
            .select_related("reporter")
            .order_by("escalated_at", "id")
        )
        radius = settings.FACILITY_VISIBILITY_RADIUS_KM
        nearby = []
        for case in cases:
            distance = haversine_km(
                facility.home_latitude,
                facility.home_longitude,
                case.latitude,
                case.longitude,
            )
            if distance <= radius:
                nearby.append(NearbyCase(case=case, distance_km=distance))
        nearby.sort(key=lambda item: item.distance_km)
        return nearby

    @staticmethod
    def facilities_near(case: RescueCase) -> list[User]:
        """Approved facilities that will see ``case`` once it is escalated."""
        User = get_user_model()
        facilities = User.objects.filter(
            role=UserRole.FACILITY,
            is_approved=True,
            home_latitude__isnull=False,
            home_longitude__isnull=False,
        )
        radius = settings.FACILITY_VISIBILITY_RADIUS_KM
        return [
            facility for facility in facilities
            if haversine_km(
                facility.home_latitude,
                facility.home_longitude,
                case.latitude,
                case.longitude,
            ) <= radius
        ]


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════


class RescueQueryService:
    """
    Read-only access to rescues.  Nothing here writes.
    """

    @staticmethod
    def _base_queryset() -> QuerySet[RescueCase]:
        return RescueCase.objects.select_related(
            "reporter",
            "assigned_org",
            "assigned_facility",
            "assigned_carrier",
        )

    @staticmethod
    def list_for_actor(actor: Actor, *, status: str | None = None) -> QuerySet[RescueCase]:
        """
        Citizens see their own reports; administrators see every case.
        """
        require_role(actor, ActorRole.CITIZEN, ActorRole.ADMIN)
        qs = RescueQueryService._base_queryset()
        if actor.role == ActorRole.CITIZEN:
            qs = qs.filter(reporter_id=actor.actor_id)
        if status:
            qs = qs.filter(status=status)
        return qs.order_by("-created_at", "-id")

    @staticmethod
    def my_assignments(actor: Actor) -> QuerySet[RescueCase]:
        """Cases an organization accepted or a facility was assigned."""
        require_role(actor, ActorRole.ORG, ActorRole.FACILITY)
        qs = RescueQueryService._base_queryset()
        if actor.role == ActorRole.ORG:
            qs = qs.filter(assigned_org_id=actor.actor_id)
        else:
            qs = qs.filter(assigned_facility_id=actor.actor_id)
        return qs.order_by("-updated_at", "-id")

    @staticmethod
    def linked_carriers(actor: Actor) -> QuerySet:
        require_role(actor, ActorRole.FACILITY)
        User = get_user_model()
        return (
            User.objects
            .filter(role=UserRole.CARRIER, linked_facility_id=actor.actor_id)
            .order_by("-is_available", "first_name", "username")
        )

    @staticmethod
    def carrier_active_task(actor: Actor) -> RescueCase | None:
        require_role(actor, ActorRole.CARRIER)
        return (
            RescueQueryService._base_queryset()
            .filter(
                assigned_carrier_id=actor.actor_id,
                status__in=RescueStatus.carrier_active_values(),
            )
            .order_by("-assigned_at")
            .first()
        )

    @staticmethod
    def carrier_history(actor: Actor) -> list[RescueCase]:
        require_role(actor, ActorRole.CARRIER)
        return list(
            RescueQueryService._base_queryset()
            .filter(assigned_carrier_id=actor.actor_id, status=RescueStatus.COMPLETED)
            .order_by("-completed_at", "-id")[:CARRIER_HISTORY_LIMIT]
        )

    @staticmethod
    def get_case_detail(actor: Actor, case_id: int) -> RescueCase:
        """
        Return a case the actor may see.

        Visible to the reporter, any actor bound to the case and
        administrators; approved organizations also see open reported
        cases and approved facilities see escalated ones.

        Raises
        ------
        NotFound
            Unknown case.
        PermissionDenied
            The actor may not see this case.
        """
        try:
            case = RescueQueryService._base_queryset().get(pk=case_id)
        except RescueCase.DoesNotExist:
            raise NotFound("Rescue case not found.")

        if actor.role == ActorRole.ADMIN or case.reporter_id == actor.actor_id:
            return case
        if actor.approved and case.is_bound_to(actor.actor_id):
            return case
        if actor.approved and actor.role == ActorRole.ORG and case.status == RescueStatus.REPORTED:
            return case
        if (
            actor.approved
            and actor.role == ActorRole.FACILITY
            and case.status == RescueStatus.FACILITY_ESCALATED
        ):
            return case
        raise PermissionDenied("You do not have access to this rescue.")

    @staticmethod
    def status_log(actor: Actor, case_id: int) -> QuerySet[RescueStatusLog]:
        case = RescueQueryService.get_case_detail(actor, case_id)
        return (
            RescueStatusLog.objects
            .filter(case=case)
            .select_related("changed_by")
            .order_by("created_at", "id")
        )
