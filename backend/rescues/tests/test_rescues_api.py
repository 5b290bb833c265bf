"""
Integration tests — rescue endpoints.

POST /api/rescues/                          (rescues:rescue-list)
GET  /api/rescues/{id}/                     (rescues:rescue-detail)
POST /api/rescues/{id}/accept/              (rescues:rescue-accept)
POST /api/rescues/{id}/assign-carrier/      (rescues:rescue-assign-carrier)
POST /api/rescues/{id}/advance/             (rescues:rescue-advance)
POST /api/rescues/{id}/override/            (rescues:rescue-override)
GET  /api/rescues/nearby/                   (rescues:rescue-nearby)
GET  /api/rescues/{rescue_pk}/status-logs/  (rescues:rescue-status-log-list)
"""

from __future__ import annotations

from unittest import mock

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from rescues.models import RescueCase, RescueStatus, RescueStatusLog

SMALL_GIF = (
    b"GIF87a\x01\x00\x01\x00\x80\x01\x00\x00\x00\x00ccc,\x00\x00\x00\x00"
    b"\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
)

REPORT = {
    "description": "Injured dog near the market gate.",
    "latitude": 12.9716,
    "longitude": 77.5946,
    "address": "Market Road",
}


def _login(api_client, auth_header, **user_kwargs):
    user, header = auth_header(**user_kwargs)
    api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
    return user


def _open_case(reporter, **extra) -> RescueCase:
    return RescueCase.objects.create(
        reporter=reporter,
        description="Cat stuck on a ledge",
        latitude=12.9716,
        longitude=77.5946,
        **extra,
    )


@pytest.mark.django_db
class TestSubmitEndpoint:

    def test_citizen_reports_rescue(self, api_client, auth_header):
        citizen = _login(api_client, auth_header)
        from wallet.services import WalletService
        WalletService.apply_top_up(citizen, 25, "api-topup")

        response = api_client.post(reverse("rescues:rescue-list"), REPORT, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == RescueStatus.REPORTED
        assert response.data["deposit_held"] is True
        assert response.data["reporter"]["id"] == citizen.pk

        wallet = api_client.get(reverse("wallet:wallet-detail"))
        assert wallet.data["balance"] == 5

    def test_multipart_with_image(self, api_client, auth_header):
        citizen = _login(api_client, auth_header)
        from wallet.services import WalletService
        WalletService.apply_top_up(citizen, 25, "api-topup-media")

        image = SimpleUploadedFile("dog.gif", SMALL_GIF, content_type="image/gif")
        with mock.patch(
            "rescues.services.store_media",
            return_value="/media/rescues/images/dog.gif",
        ) as store:
            response = api_client.post(
                reverse("rescues:rescue-list"),
                {**REPORT, "images": [image]},
                format="multipart",
            )

        assert response.status_code == status.HTTP_201_CREATED, response.data
        store.assert_called_once()
        assert response.data["images"] == ["/media/rescues/images/dog.gif"]

    def test_insufficient_funds(self, api_client, auth_header):
        _login(api_client, auth_header)
        response = api_client.post(reverse("rescues:rescue-list"), REPORT, format="json")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["code"] == "InsufficientFunds"
        assert not RescueCase.objects.exists()

    @pytest.mark.parametrize(
        "field, value",
        [
            ("description", "   "),
            ("description", "x" * 1001),
            ("latitude", 91),
            ("longitude", -181),
        ],
    )
    def test_invalid_payload(self, api_client, auth_header, field, value):
        _login(api_client, auth_header)
        response = api_client.post(
            reverse("rescues:rescue-list"),
            {**REPORT, field: value},
            format="json",
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert field in response.data

    def test_org_cannot_report(self, api_client, auth_header):
        _login(api_client, auth_header, role="org")
        response = api_client.post(reverse("rescues:rescue-list"), REPORT, format="json")
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_requires_authentication(self, api_client):
        response = api_client.post(reverse("rescues:rescue-list"), REPORT, format="json")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestWorkflowEndpoints:

    def test_accept_then_second_accept_conflicts(self, api_client, auth_header, create_user):
        case = _open_case(create_user())
        org = _login(api_client, auth_header, role="org")

        first = api_client.post(reverse("rescues:rescue-accept", args=[case.pk]))
        assert first.status_code == status.HTTP_200_OK
        assert first.data["status"] == RescueStatus.ORG_ACCEPTED
        assert first.data["assigned_org"]["id"] == org.pk
        assert first.data["version"] == 1

        _login(api_client, auth_header, role="org")
        second = api_client.post(reverse("rescues:rescue-accept", args=[case.pk]))
        assert second.status_code == status.HTTP_409_CONFLICT
        assert second.data["code"] == "InvalidTransition"

    def test_accept_unknown_case(self, api_client, auth_header):
        _login(api_client, auth_header, role="org")
        response = api_client.post(reverse("rescues:rescue-accept", args=[999999]))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_unapproved_org_forbidden(self, api_client, auth_header, create_user):
        case = _open_case(create_user())
        _login(api_client, auth_header, role="org", is_approved=False)
        response = api_client.post(reverse("rescues:rescue-accept", args=[case.pk]))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        case.refresh_from_db()
        assert case.status == RescueStatus.REPORTED

    def test_decline_hides_case(self, api_client, auth_header, create_user):
        case = _open_case(create_user())
        _login(api_client, auth_header, role="org")

        response = api_client.post(reverse("rescues:rescue-decline", args=[case.pk]))
        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == RescueStatus.REPORTED

        nearby = api_client.get(reverse("rescues:rescue-nearby"))
        assert nearby.status_code == status.HTTP_200_OK
        assert nearby.data == []

        accept = api_client.post(reverse("rescues:rescue-accept", args=[case.pk]))
        assert accept.status_code == status.HTTP_403_FORBIDDEN

    def test_assign_busy_carrier_conflicts(self, api_client, auth_header, create_user):
        facility = _login(
            api_client, auth_header, role="facility",
            home_latitude=12.97, home_longitude=77.59,
        )
        carrier = create_user(role="carrier", linked_facility=facility, is_available=False)
        case = _open_case(
            create_user(),
            status=RescueStatus.FACILITY_ESCALATED,
            escalated_at=timezone.now(),
        )
        response = api_client.post(
            reverse("rescues:rescue-assign-carrier", args=[case.pk]),
            {"carrier_id": carrier.pk},
            format="json",
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_advance_rejects_unknown_status(self, api_client, auth_header, create_user):
        carrier = _login(api_client, auth_header, role="carrier")
        case = _open_case(
            create_user(),
            status=RescueStatus.CARRIER_ASSIGNED,
            assigned_carrier=carrier,
        )
        response = api_client.post(
            reverse("rescues:rescue-advance", args=[case.pk]),
            {"status": "completed"},
            format="json",
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "status" in response.data

    def test_advance_out_of_order_conflicts(self, api_client, auth_header, create_user):
        carrier = _login(api_client, auth_header, role="carrier")
        case = _open_case(
            create_user(),
            status=RescueStatus.CARRIER_ASSIGNED,
            assigned_carrier=carrier,
        )
        response = api_client.post(
            reverse("rescues:rescue-advance", args=[case.pk]),
            {"status": RescueStatus.PICKED_UP},
            format="json",
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_unassigned_carrier_forbidden(self, api_client, auth_header, create_user):
        case = _open_case(create_user())
        _login(api_client, auth_header, role="carrier")
        response = api_client.post(
            reverse("rescues:rescue-advance", args=[case.pk]),
            {"status": RescueStatus.EN_ROUTE},
            format="json",
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert RescueStatus.REPORTED.value not in response.data["detail"]

    def test_admin_override_cancels(self, api_client, auth_header, create_user):
        case = _open_case(create_user())
        _login(api_client, auth_header, role="admin")
        response = api_client.post(
            reverse("rescues:rescue-override", args=[case.pk]),
            {"status": RescueStatus.CANCELLED, "note": "Duplicate report"},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == RescueStatus.CANCELLED
        assert response.data["admin_note"] == "Duplicate report"

    def test_non_admin_override_forbidden(self, api_client, auth_header, create_user):
        case = _open_case(create_user())
        _login(api_client, auth_header, role="org")
        response = api_client.post(
            reverse("rescues:rescue-override", args=[case.pk]),
            {"status": RescueStatus.CANCELLED},
            format="json",
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestReadEndpoints:

    def test_detail_visible_to_reporter_only(self, api_client, auth_header):
        reporter = _login(api_client, auth_header)
        case = _open_case(reporter)
        assert api_client.get(reverse("rescues:rescue-detail", args=[case.pk])).status_code == 200

        _login(api_client, auth_header)
        response = api_client.get(reverse("rescues:rescue-detail", args=[case.pk]))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_list_shows_own_reports(self, api_client, auth_header, create_user):
        reporter = _login(api_client, auth_header)
        mine = _open_case(reporter)
        _open_case(create_user())
        response = api_client.get(reverse("rescues:rescue-list"))
        assert response.status_code == status.HTTP_200_OK
        assert [item["id"] for item in response.data] == [mine.pk]

    def test_status_logs_nested_route(self, api_client, auth_header):
        reporter = _login(api_client, auth_header)
        case = _open_case(reporter)
        RescueStatusLog.objects.create(
            case=case,
            from_status="",
            to_status=RescueStatus.REPORTED,
            changed_by=reporter,
            actor_label=f"citizen:{reporter.pk}",
        )
        response = api_client.get(
            reverse("rescues:rescue-status-log-list", kwargs={"rescue_pk": case.pk}),
        )
        assert response.status_code == status.HTTP_200_OK
        assert [row["to_status"] for row in response.data] == [RescueStatus.REPORTED]

    def test_nearby_includes_distance(self, api_client, auth_header, create_user):
        case = _open_case(create_user())
        _login(api_client, auth_header, role="org", home_latitude=12.9716, home_longitude=77.5946)
        response = api_client.get(reverse("rescues:rescue-nearby"))
        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]["case"]["id"] == case.pk
        assert response.data[0]["distance_km"] == 0.0

    def test_escalated_requires_location(self, api_client, auth_header):
        _login(api_client, auth_header, role="facility")
        response = api_client.get(reverse("rescues:rescue-escalated"))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_carrier_without_task(self, api_client, auth_header):
        _login(api_client, auth_header, role="carrier")
        response = api_client.get(reverse("rescues:rescue-active-task"))
        assert response.status_code == status.HTTP_204_NO_CONTENT

    def test_facility_lists_linked_carriers(self, api_client, auth_header, create_user):
        facility = _login(api_client, auth_header, role="facility")
        linked = create_user(role="carrier", linked_facility=facility)
        create_user(role="carrier")
        response = api_client.get(reverse("rescues:rescue-carriers"))
        assert response.status_code == status.HTTP_200_OK
        assert [item["id"] for item in response.data] == [linked.pk]

    def test_carrier_history_lists_completed(self, api_client, auth_header, create_user):
        carrier = _login(api_client, auth_header, role="carrier")
        done = _open_case(
            create_user(),
            status=RescueStatus.COMPLETED,
            assigned_carrier=carrier,
            completed_at=timezone.now(),
        )
        _open_case(create_user(), status=RescueStatus.EN_ROUTE, assigned_carrier=carrier)
        response = api_client.get(reverse("rescues:rescue-history"))
        assert response.status_code == status.HTTP_200_OK
        assert [item["id"] for item in response.data] == [done.pk]
