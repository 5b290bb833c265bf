"""
Tests for the lifecycle engine (``RescueWorkflowService.transition``).

Covers the role-gated successor table, binding checks, the version
compare-and-swap and the delivered → completed collapse.
"""

from __future__ import annotations

import threading
import unittest
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from accounts.models import UserRole
from core.domain.actors import Actor
from core.domain.exceptions import (
    Conflict,
    InvalidTransition,
    NotFound,
    PermissionDenied,
)
from core.domain.transactions import compare_and_swap
from core.models import Notification
from rescues.models import RescueCase, RescueStatus, RescueStatusLog
from rescues.services import RescueCreationService, RescueWorkflowService
from wallet.models import LedgerEntry, LedgerEntryKind, Wallet
from wallet.services import WalletService

User = get_user_model()

transition = RescueWorkflowService.transition


def _make_user(username: str, role: str = UserRole.CITIZEN, **extra):
    extra.setdefault("is_approved", True)
    return User.objects.create_user(
        username=username,
        password="Pass!1234",
        email=f"{username}@test.local",
        role=role,
        **extra,
    )


def _submit(citizen) -> RescueCase:
    return RescueCreationService.submit(
        Actor.from_user(citizen),
        {
            "description": "Cow with a hurt leg on the highway shoulder.",
            "latitude": 12.9716,
            "longitude": 77.5946,
        },
    )


def _overdue(case: RescueCase):
    return case.created_at + timedelta(minutes=6)


class WorkflowTestBase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.citizen = _make_user("wf_citizen")
        WalletService.apply_top_up(cls.citizen, 100, "wf-topup")
        cls.org = _make_user("wf_org", UserRole.ORG, org_name="Paws")
        cls.org_b = _make_user("wf_org_b", UserRole.ORG, org_name="Tails")
        cls.pending_org = _make_user("wf_pending_org", UserRole.ORG, is_approved=False)
        cls.facility = _make_user("wf_facility", UserRole.FACILITY, org_name="City Vet")
        cls.other_facility = _make_user("wf_other_facility", UserRole.FACILITY, org_name="Far Vet")
        cls.carrier = _make_user("wf_carrier", UserRole.CARRIER, linked_facility=cls.facility)
        cls.foreign_carrier = _make_user(
            "wf_foreign_carrier", UserRole.CARRIER, linked_facility=cls.other_facility,
        )
        cls.admin = _make_user("wf_admin", UserRole.ADMIN)

    def setUp(self):
        self.case = _submit(self.citizen)

    def actor(self, user) -> Actor:
        user.refresh_from_db()
        return Actor.from_user(user)

    def escalate(self) -> RescueCase:
        return transition(
            self.case.pk,
            Actor.scheduler(),
            RescueStatus.FACILITY_ESCALATED,
            now=_overdue(self.case),
        )

    def assign(self) -> RescueCase:
        self.escalate()
        return transition(
            self.case.pk,
            self.actor(self.facility),
            RescueStatus.CARRIER_ASSIGNED,
            carrier_id=self.carrier.pk,
        )


class TestOrgAcceptance(WorkflowTestBase):

    def test_accept_binds_org(self):
        case = transition(self.case.pk, self.actor(self.org), RescueStatus.ORG_ACCEPTED)
        self.assertEqual(case.status, RescueStatus.ORG_ACCEPTED)
        self.assertEqual(case.assigned_org, self.org)
        self.assertIsNotNone(case.accepted_at)
        self.assertEqual(case.version, 1)

        log = RescueStatusLog.objects.filter(case=case).order_by("-id").first()
        self.assertEqual(log.from_status, RescueStatus.REPORTED)
        self.assertEqual(log.to_status, RescueStatus.ORG_ACCEPTED)
        self.assertEqual(log.changed_by, self.org)

    def test_second_accept_is_invalid(self):
        transition(self.case.pk, self.actor(self.org), RescueStatus.ORG_ACCEPTED)
        with self.assertRaises(InvalidTransition) as ctx:
            transition(self.case.pk, self.actor(self.org_b), RescueStatus.ORG_ACCEPTED)
        self.assertIn("org_accepted", str(ctx.exception))
        self.case.refresh_from_db()
        self.assertEqual(self.case.assigned_org, self.org)

    def test_stale_version_loses(self):
        stale_version = self.case.version
        transition(self.case.pk, self.actor(self.org), RescueStatus.ORG_ACCEPTED)
        with self.assertRaises(InvalidTransition):
            compare_and_swap(
                RescueCase,
                pk=self.case.pk,
                expected_version=stale_version,
                status=RescueStatus.ORG_ACCEPTED,
                assigned_org_id=self.org_b.pk,
            )
        self.case.refresh_from_db()
        self.assertEqual(self.case.assigned_org, self.org)

    def test_declined_org_cannot_accept(self):
        RescueWorkflowService.decline(self.case.pk, self.actor(self.org))
        RescueWorkflowService.decline(self.case.pk, self.actor(self.org))
        self.case.refresh_from_db()
        self.assertEqual(self.case.status, RescueStatus.REPORTED)
        self.assertEqual(list(self.case.rejected_by_orgs.all()), [self.org])

        with self.assertRaises(PermissionDenied):
            transition(self.case.pk, self.actor(self.org), RescueStatus.ORG_ACCEPTED)
        transition(self.case.pk, self.actor(self.org_b), RescueStatus.ORG_ACCEPTED)

    def test_unapproved_org_is_forbidden(self):
        with self.assertRaises(PermissionDenied):
            transition(self.case.pk, self.actor(self.pending_org), RescueStatus.ORG_ACCEPTED)
        with self.assertRaises(PermissionDenied):
            RescueWorkflowService.decline(self.case.pk, self.actor(self.pending_org))

    def test_accept_notifies_reporter(self):
        with self.captureOnCommitCallbacks(execute=True):
            transition(self.case.pk, self.actor(self.org), RescueStatus.ORG_ACCEPTED)
        self.assertTrue(
            Notification.objects.filter(
                recipient=self.citizen,
                event_type="rescue_accepted",
            ).exists()
        )


class TestTransitionGuards(WorkflowTestBase):

    def test_unknown_case(self):
        with self.assertRaises(NotFound):
            transition(999999, self.actor(self.org), RescueStatus.ORG_ACCEPTED)

    def test_role_must_own_target(self):
        with self.assertRaises(PermissionDenied):
            transition(self.case.pk, self.actor(self.citizen), RescueStatus.ORG_ACCEPTED)
        with self.assertRaises(PermissionDenied):
            transition(self.case.pk, self.actor(self.org), RescueStatus.FACILITY_ESCALATED)
        with self.assertRaises(PermissionDenied):
            transition(self.case.pk, self.actor(self.admin), RescueStatus.ORG_ACCEPTED)

    def test_non_requestable_targets(self):
        for target in (RescueStatus.COMPLETED, RescueStatus.CANCELLED, RescueStatus.REPORTED, "teleported"):
            with self.assertRaises(InvalidTransition):
                transition(self.case.pk, self.actor(self.org), target)

    def test_successor_must_match(self):
        with self.assertRaises(InvalidTransition) as ctx:
            transition(
                self.case.pk,
                self.actor(self.facility),
                RescueStatus.CARRIER_ASSIGNED,
                carrier_id=self.carrier.pk,
            )
        self.assertEqual(ctx.exception.current, RescueStatus.REPORTED)
        self.assertEqual(ctx.exception.target, RescueStatus.CARRIER_ASSIGNED)

    def test_rejected_request_leaves_case_untouched(self):
        with self.assertRaises(InvalidTransition):
            transition(
                self.case.pk,
                self.actor(self.facility),
                RescueStatus.CARRIER_ASSIGNED,
                carrier_id=self.carrier.pk,
            )
        self.case.refresh_from_db()
        self.assertEqual(self.case.version, 0)
        self.assertEqual(RescueStatusLog.objects.filter(case=self.case).count(), 1)


class TestEscalationTransition(WorkflowTestBase):

    def test_scheduler_before_deadline(self):
        with self.assertRaises(InvalidTransition):
            transition(
                self.case.pk,
                Actor.scheduler(),
                RescueStatus.FACILITY_ESCALATED,
                now=self.case.created_at + timedelta(minutes=3),
            )

    def test_scheduler_after_deadline(self):
        now = _overdue(self.case)
        case = transition(self.case.pk, Actor.scheduler(), RescueStatus.FACILITY_ESCALATED, now=now)
        self.assertEqual(case.status, RescueStatus.FACILITY_ESCALATED)
        self.assertEqual(case.escalated_at, now)
        log = RescueStatusLog.objects.filter(case=case).order_by("-id").first()
        self.assertIsNone(log.changed_by)
        self.assertEqual(log.actor_label, "scheduler")

    def test_accepted_case_is_not_escalated(self):
        transition(self.case.pk, self.actor(self.org), RescueStatus.ORG_ACCEPTED)
        with self.assertRaises(InvalidTransition):
            self.escalate()


class TestCarrierAssignment(WorkflowTestBase):

    def test_assign_marks_carrier_busy(self):
        case = self.assign()
        self.assertEqual(case.status, RescueStatus.CARRIER_ASSIGNED)
        self.assertEqual(case.assigned_facility, self.facility)
        self.assertEqual(case.assigned_carrier, self.carrier)
        self.assertIsNotNone(case.assigned_at)
        self.carrier.refresh_from_db()
        self.assertFalse(self.carrier.is_available)

    def test_unknown_carrier(self):
        self.escalate()
        with self.assertRaises(NotFound):
            transition(
                self.case.pk,
                self.actor(self.facility),
                RescueStatus.CARRIER_ASSIGNED,
                carrier_id=999999,
            )
        with self.assertRaises(NotFound):
            transition(
                self.case.pk,
                self.actor(self.facility),
                RescueStatus.CARRIER_ASSIGNED,
                carrier_id=self.org.pk,
            )

    def test_carrier_of_another_facility(self):
        self.escalate()
        with self.assertRaises(PermissionDenied):
            transition(
                self.case.pk,
                self.actor(self.facility),
                RescueStatus.CARRIER_ASSIGNED,
                carrier_id=self.foreign_carrier.pk,
            )

    def test_busy_carrier(self):
        User.objects.filter(pk=self.carrier.pk).update(is_available=False)
        self.escalate()
        with self.assertRaises(Conflict):
            transition(
                self.case.pk,
                self.actor(self.facility),
                RescueStatus.CARRIER_ASSIGNED,
                carrier_id=self.carrier.pk,
            )
        self.case.refresh_from_db()
        self.assertEqual(self.case.status, RescueStatus.FACILITY_ESCALATED)

    def test_facility_cannot_assign_before_escalation(self):
        with self.assertRaises(InvalidTransition):
            transition(
                self.case.pk,
                self.actor(self.facility),
                RescueStatus.CARRIER_ASSIGNED,
                carrier_id=self.carrier.pk,
            )


class TestCarrierProgress(WorkflowTestBase):

    def test_only_assigned_carrier_advances(self):
        self.assign()
        other = _make_user("wf_other_carrier", UserRole.CARRIER, linked_facility=self.facility)
        with self.assertRaises(PermissionDenied):
            transition(self.case.pk, self.actor(other), RescueStatus.EN_ROUTE)

    def test_unassigned_carrier_does_not_learn_state(self):
        # Case is still reported, so any carrier step is also out of order.
        for step in (RescueStatus.EN_ROUTE, RescueStatus.PICKED_UP, RescueStatus.DELIVERED):
            with self.assertRaises(PermissionDenied) as ctx:
                transition(self.case.pk, self.actor(self.foreign_carrier), step)
            self.assertNotIsInstance(ctx.exception, InvalidTransition)
            self.assertNotIn(RescueStatus.REPORTED.value, str(ctx.exception))

    def test_steps_cannot_be_skipped(self):
        self.assign()
        with self.assertRaises(InvalidTransition):
            transition(self.case.pk, self.actor(self.carrier), RescueStatus.PICKED_UP)
        with self.assertRaises(InvalidTransition):
            transition(self.case.pk, self.actor(self.carrier), RescueStatus.DELIVERED)

    def test_full_path_completes_and_refunds(self):
        self.assign()
        carrier = self.actor(self.carrier)
        transition(self.case.pk, carrier, RescueStatus.EN_ROUTE)
        transition(self.case.pk, carrier, RescueStatus.PICKED_UP)
        case = transition(self.case.pk, carrier, RescueStatus.DELIVERED)

        self.assertEqual(case.status, RescueStatus.COMPLETED)
        for stamp in ("escalated_at", "assigned_at", "en_route_at", "picked_up_at", "delivered_at", "completed_at"):
            self.assertIsNotNone(getattr(case, stamp), stamp)
        self.assertEqual(case.delivered_at, case.completed_at)
        self.assertTrue(case.deposit_returned)

        self.carrier.refresh_from_db()
        self.assertTrue(self.carrier.is_available)

        refunds = LedgerEntry.objects.filter(related_case=case, kind=LedgerEntryKind.REFUND)
        self.assertEqual(refunds.count(), 1)
        self.assertEqual(refunds.get().signed_amount, 20)
        self.assertEqual(Wallet.objects.get(user=self.citizen).balance, 100)

        trail = list(
            RescueStatusLog.objects
            .filter(case=case)
            .order_by("created_at", "id")
            .values_list("to_status", flat=True)
        )
        self.assertEqual(
            trail,
            [
                RescueStatus.REPORTED,
                RescueStatus.FACILITY_ESCALATED,
                RescueStatus.CARRIER_ASSIGNED,
                RescueStatus.EN_ROUTE,
                RescueStatus.PICKED_UP,
                RescueStatus.DELIVERED,
                RescueStatus.COMPLETED,
            ],
        )

    def test_completed_case_is_terminal(self):
        self.assign()
        carrier = self.actor(self.carrier)
        for step in (RescueStatus.EN_ROUTE, RescueStatus.PICKED_UP, RescueStatus.DELIVERED):
            transition(self.case.pk, carrier, step)
        with self.assertRaises(InvalidTransition):
            transition(self.case.pk, carrier, RescueStatus.DELIVERED)


class TestAdminOverride(WorkflowTestBase):

    def test_cancel_frees_carrier(self):
        self.assign()
        case = RescueWorkflowService.override_status(
            self.actor(self.admin),
            self.case.pk,
            RescueStatus.CANCELLED,
            note="Animal moved by locals.",
        )
        self.assertEqual(case.status, RescueStatus.CANCELLED)
        self.assertEqual(case.admin_note, "Animal moved by locals.")
        self.carrier.refresh_from_db()
        self.assertTrue(self.carrier.is_available)

    def test_only_cancellation_is_allowed(self):
        with self.assertRaises(InvalidTransition):
            RescueWorkflowService.override_status(
                self.actor(self.admin), self.case.pk, RescueStatus.COMPLETED,
            )

    def test_cannot_cancel_terminal_case(self):
        RescueWorkflowService.override_status(self.actor(self.admin), self.case.pk, RescueStatus.CANCELLED)
        with self.assertRaises(InvalidTransition):
            RescueWorkflowService.override_status(self.actor(self.admin), self.case.pk, RescueStatus.CANCELLED)

    def test_non_admin_cannot_override(self):
        with self.assertRaises(PermissionDenied):
            RescueWorkflowService.override_status(self.actor(self.org), self.case.pk, RescueStatus.CANCELLED)

    def test_delete_case_keeps_ledger(self):
        case_id = self.case.pk
        RescueWorkflowService.delete_case(self.actor(self.admin), case_id)
        self.assertFalse(RescueCase.objects.filter(pk=case_id).exists())
        debit = LedgerEntry.objects.get(actor=self.citizen, kind=LedgerEntryKind.DEBIT)
        self.assertIsNone(debit.related_case_id)


@pytest.mark.postgres
@unittest.skipUnless(connection.vendor == "postgresql", "needs real row locks; run with DB_ENGINE=postgres")
class TestConcurrentAccept(TransactionTestCase):
    """
    Two organizations accept the same case at the same moment.

    SQLite serializes writers, so this only runs against PostgreSQL::

        DB_ENGINE=postgres DB_NAME=rescue DB_USER=rescue DB_PASSWORD=... \\
            pytest -m postgres -rs

    On SQLite the lost race is covered by ``test_stale_version_loses``.
    """

    def test_exactly_one_winner(self):
        citizen = _make_user("race_citizen")
        WalletService.apply_top_up(citizen, 50, "race-topup")
        orgs = [
            _make_user("race_org_a", UserRole.ORG),
            _make_user("race_org_b", UserRole.ORG),
        ]
        case = _submit(citizen)

        barrier = threading.Barrier(len(orgs))
        outcomes: dict[int, str] = {}

        def _accept(org):
            barrier.wait()
            try:
                transition(case.pk, Actor.from_user(org), RescueStatus.ORG_ACCEPTED)
                outcomes[org.pk] = "won"
            except InvalidTransition:
                outcomes[org.pk] = "lost"
            finally:
                connection.close()

        threads = [threading.Thread(target=_accept, args=(org,)) for org in orgs]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes.values()), ["lost", "won"])
        case.refresh_from_db()
        winner = next(pk for pk, outcome in outcomes.items() if outcome == "won")
        self.assertEqual(case.assigned_org_id, winner)
