"""
Tests for the administrator dashboard and the public constants endpoint.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import UserRole
from rescues.models import RescueCase, RescueStatus, RescueStatusLog

User = get_user_model()


class TestDashboardStats(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_superuser(
            username="dash_admin", password="Adm1n!Pass", email="admin@test.local",
        )
        cls.citizen = User.objects.create_user(
            username="dash_citizen", password="C1tizen!Pass", email="citizen@test.local",
        )
        User.objects.create_user(
            username="dash_pending_org",
            password="0rg!Pass",
            email="org@test.local",
            role=UserRole.ORG,
        )

        def _case(case_status, **extra):
            return RescueCase.objects.create(
                reporter=cls.citizen,
                description="Dog with an injured leg",
                latitude=12.97,
                longitude=77.59,
                status=case_status,
                deposit_amount=20,
                deposit_held=True,
                **extra,
            )

        reported = _case(RescueStatus.REPORTED)
        _case(RescueStatus.COMPLETED, deposit_returned=True)
        _case(RescueStatus.COMPLETED)
        _case(RescueStatus.CANCELLED)
        RescueStatusLog.objects.create(
            case=reported,
            from_status="",
            to_status=RescueStatus.REPORTED,
            changed_by=cls.citizen,
            actor_label=f"citizen:{cls.citizen.pk}",
        )

    def setUp(self):
        self.client = APIClient()
        self.url = reverse("core:dashboard-stats")

    def test_admin_sees_aggregates(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(data["total_rescues"], 4)
        self.assertEqual(data["active_rescues"], 1)
        self.assertEqual(data["completed_rescues"], 2)
        self.assertEqual(data["cancelled_rescues"], 1)
        self.assertEqual(data["refunds_pending"], 1)
        self.assertEqual(data["pending_approvals"], 1)
        self.assertEqual(data["total_users"], 3)
        self.assertEqual(len(data["recent_activity"]), 1)
        by_status = {row["value"]: row["count"] for row in data["rescues_by_status"]}
        self.assertEqual(by_status[RescueStatus.COMPLETED], 2)

    def test_citizen_is_forbidden(self):
        self.client.force_authenticate(user=self.citizen)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_is_unauthorized(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TestSystemConstants(TestCase):

    @override_settings(RESCUE_DEPOSIT_AMOUNT=30)
    def test_public_constants(self):
        response = APIClient().get(reverse("core:system-constants"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["rescue_deposit_amount"], 30)
        statuses = [item["value"] for item in response.data["rescue_statuses"]]
        self.assertIn(RescueStatus.FACILITY_ESCALATED, statuses)
        roles = [item["value"] for item in response.data["user_roles"]]
        self.assertEqual(set(roles), set(UserRole.values))
