"""
Rescues app views.

Every view is thin: validate with a serializer, build an ``Actor`` from
``request.user``, call ``rescues.services`` and serialize the result.
Role, approval and binding checks live in the service layer only;
domain errors are turned into HTTP responses by
``core.domain.exception_handler``.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema

from core.domain.actors import Actor

from .models import RescueStatus
from .serializers import (
    AdvanceSerializer,
    AssignCarrierSerializer,
    CarrierSerializer,
    NearbyRescueSerializer,
    OverrideSerializer,
    RescueCreateSerializer,
    RescueDetailSerializer,
    RescueListSerializer,
    RescueStatusLogSerializer,
)
from .services import (
    RescueCreationService,
    RescueQueryService,
    RescueVisibilityService,
    RescueWorkflowService,
)


# ═══════════════════════════════════════════════════════════════════
#  Rescue ViewSet
# ═══════════════════════════════════════════════════════════════════


class RescueViewSet(viewsets.ViewSet):
    """
    Central ViewSet for rescue cases.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined.

    Endpoints
    ---------
    Standard:
        GET    /api/rescues/                      → own reports (admin: all)
        POST   /api/rescues/                      → submit a rescue (citizen)
        GET    /api/rescues/{id}/                 → detail
        DELETE /api/rescues/{id}/                 → delete (admin)

    Workflow Actions:
        POST   /api/rescues/{id}/accept/          → organization accepts
        POST   /api/rescues/{id}/decline/         → organization declines
        POST   /api/rescues/{id}/assign-carrier/  → facility dispatches a carrier
        POST   /api/rescues/{id}/advance/         → carrier progress
        POST   /api/rescues/{id}/override/        → administrator cancels
        POST   /api/rescues/{id}/retry-refund/    → administrator retries refund

    Listings:
        GET    /api/rescues/nearby/               → organization matching
        GET    /api/rescues/escalated/            → facility matching
        GET    /api/rescues/my-assignments/       → organization / facility cases
        GET    /api/rescues/active-task/          → carrier's current case
        GET    /api/rescues/history/              → carrier's completed cases
        GET    /api/rescues/carriers/             → facility's linked carriers
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def _detail_response(self, case, http_status=status.HTTP_200_OK) -> Response:
        return Response(RescueDetailSerializer(case).data, status=http_status)

    # ── Standard actions ────────────────────────────────────────────

    @extend_schema(
        summary="List rescues",
        description="Citizens see their own reports; administrators see every rescue.",
        parameters=[
            OpenApiParameter(
                name="status",
                type=str,
                enum=RescueStatus.values,
                required=False,
            ),
        ],
        responses={200: RescueListSerializer(many=True)},
        tags=["Rescues"],
    )
    def list(self, request: Request) -> Response:
        cases = RescueQueryService.list_for_actor(
            Actor.from_user(request.user),
            status=request.query_params.get("status") or None,
        )
        return Response(RescueListSerializer(cases, many=True).data)

    @extend_schema(
        summary="Report a rescue",
        description=(
            "Submit a rescue with up to five images and an optional video. "
            "The deposit is debited from the wallet immediately."
        ),
        request=RescueCreateSerializer,
        responses={
            201: OpenApiResponse(response=RescueDetailSerializer, description="Rescue reported."),
            400: OpenApiResponse(description="Validation error or insufficient balance."),
            403: OpenApiResponse(description="Only citizens can report rescues."),
        },
        tags=["Rescues"],
    )
    def create(self, request: Request) -> Response:
        serializer = RescueCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = RescueCreationService.submit(
            Actor.from_user(request.user),
            serializer.validated_data,
        )
        return self._detail_response(case, status.HTTP_201_CREATED)

    @extend_schema(
        summary="Rescue detail",
        responses={200: RescueDetailSerializer},
        tags=["Rescues"],
    )
    def retrieve(self, request: Request, pk: int = None) -> Response:
        case = RescueQueryService.get_case_detail(Actor.from_user(request.user), pk)
        return self._detail_response(case)

    @extend_schema(
        summary="Delete a rescue (administrator)",
        responses={204: None},
        tags=["Rescues — Admin"],
    )
    def destroy(self, request: Request, pk: int = None) -> Response:
        RescueWorkflowService.delete_case(Actor.from_user(request.user), pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ── Workflow @actions ───────────────────────────────────────────

    @extend_schema(
        summary="Accept a rescue (organization)",
        request=None,
        responses={
            200: RescueDetailSerializer,
            403: OpenApiResponse(description="Not an approved organization, or declined earlier."),
            409: OpenApiResponse(description="Already accepted or escalated."),
        },
        tags=["Rescues — Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="accept")
    def accept(self, request: Request, pk: int = None) -> Response:
        case = RescueWorkflowService.transition(
            pk,
            Actor.from_user(request.user),
            RescueStatus.ORG_ACCEPTED,
        )
        return self._detail_response(case)

    @extend_schema(
        summary="Decline a rescue (organization)",
        request=None,
        responses={200: RescueDetailSerializer},
        tags=["Rescues — Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="decline")
    def decline(self, request: Request, pk: int = None) -> Response:
        case = RescueWorkflowService.decline(pk, Actor.from_user(request.user))
        return self._detail_response(case)

    @extend_schema(
        summary="Dispatch a carrier (facility)",
        request=AssignCarrierSerializer,
        responses={
            200: RescueDetailSerializer,
            404: OpenApiResponse(description="Unknown carrier."),
            409: OpenApiResponse(description="Carrier busy, or rescue not escalated."),
        },
        tags=["Rescues — Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="assign-carrier")
    def assign_carrier(self, request: Request, pk: int = None) -> Response:
        serializer = AssignCarrierSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = RescueWorkflowService.transition(
            pk,
            Actor.from_user(request.user),
            RescueStatus.CARRIER_ASSIGNED,
            carrier_id=serializer.validated_data["carrier_id"],
        )
        return self._detail_response(case)

    @extend_schema(
        summary="Report carrier progress",
        description="Requesting ``delivered`` completes the rescue and refunds the deposit.",
        request=AdvanceSerializer,
        responses={200: RescueDetailSerializer},
        tags=["Rescues — Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="advance")
    def advance(self, request: Request, pk: int = None) -> Response:
        serializer = AdvanceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = RescueWorkflowService.transition(
            pk,
            Actor.from_user(request.user),
            serializer.validated_data["status"],
        )
        return self._detail_response(case)

    @extend_schema(
        summary="Cancel a rescue (administrator)",
        request=OverrideSerializer,
        responses={200: RescueDetailSerializer},
        tags=["Rescues — Admin"],
    )
    @action(detail=True, methods=["post"], url_path="override")
    def override(self, request: Request, pk: int = None) -> Response:
        serializer = OverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = RescueWorkflowService.override_status(
            Actor.from_user(request.user),
            pk,
            serializer.validated_data["status"],
            note=serializer.validated_data["note"],
        )
        return self._detail_response(case)

    @extend_schema(
        summary="Retry a failed deposit refund (administrator)",
        request=None,
        responses={200: RescueDetailSerializer},
        tags=["Rescues — Admin"],
    )
    @action(detail=True, methods=["post"], url_path="retry-refund")
    def retry_refund(self, request: Request, pk: int = None) -> Response:
        case = RescueWorkflowService.retry_refund(Actor.from_user(request.user), pk)
        return self._detail_response(case)

    # ── Listings ────────────────────────────────────────────────────

    @extend_schema(
        summary="Nearby reported rescues (organization)",
        responses={200: NearbyRescueSerializer(many=True)},
        tags=["Rescues — Matching"],
    )
    @action(detail=False, methods=["get"], url_path="nearby")
    def nearby(self, request: Request) -> Response:
        items = RescueVisibilityService.nearby_pending_for_org(Actor.from_user(request.user))
        return Response(NearbyRescueSerializer(items, many=True).data)

    @extend_schema(
        summary="Escalated rescues near the facility",
        responses={
            200: NearbyRescueSerializer(many=True),
            400: OpenApiResponse(description="Facility location not set."),
        },
        tags=["Rescues — Matching"],
    )
    @action(detail=False, methods=["get"], url_path="escalated")
    def escalated(self, request: Request) -> Response:
        items = RescueVisibilityService.escalated_nearby_for_facility(Actor.from_user(request.user))
        return Response(NearbyRescueSerializer(items, many=True).data)

    @extend_schema(
        summary="Rescues accepted by the organization or assigned to the facility",
        responses={200: RescueDetailSerializer(many=True)},
        tags=["Rescues — Matching"],
    )
    @action(detail=False, methods=["get"], url_path="my-assignments")
    def my_assignments(self, request: Request) -> Response:
        cases = RescueQueryService.my_assignments(Actor.from_user(request.user))
        return Response(RescueDetailSerializer(cases, many=True).data)

    @extend_schema(
        summary="Carrier's current task",
        responses={
            200: RescueDetailSerializer,
            204: OpenApiResponse(description="No active task."),
        },
        tags=["Rescues — Carrier"],
    )
    @action(detail=False, methods=["get"], url_path="active-task")
    def active_task(self, request: Request) -> Response:
        case = RescueQueryService.carrier_active_task(Actor.from_user(request.user))
        if case is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return self._detail_response(case)

    @extend_schema(
        summary="Carrier's completed rescues",
        responses={200: RescueListSerializer(many=True)},
        tags=["Rescues — Carrier"],
    )
    @action(detail=False, methods=["get"], url_path="history")
    def history(self, request: Request) -> Response:
        cases = RescueQueryService.carrier_history(Actor.from_user(request.user))
        return Response(RescueListSerializer(cases, many=True).data)

    @extend_schema(
        summary="Carriers linked to the facility",
        responses={200: CarrierSerializer(many=True)},
        tags=["Rescues — Matching"],
    )
    @action(detail=False, methods=["get"], url_path="carriers")
    def carriers(self, request: Request) -> Response:
        carriers = RescueQueryService.linked_carriers(Actor.from_user(request.user))
        return Response(CarrierSerializer(carriers, many=True).data)


# ═══════════════════════════════════════════════════════════════════
#  Status Log ViewSet (nested)
# ═══════════════════════════════════════════════════════════════════


class RescueStatusLogViewSet(viewsets.ViewSet):
    """
    Audit trail of a rescue, oldest first.

    Nested under ``/api/rescues/{rescue_pk}/status-logs/``; visible to
    whoever may see the rescue itself.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Rescue status history",
        responses={200: RescueStatusLogSerializer(many=True)},
        tags=["Rescues"],
    )
    def list(self, request: Request, rescue_pk: int = None) -> Response:
        logs = RescueQueryService.status_log(Actor.from_user(request.user), rescue_pk)
        return Response(RescueStatusLogSerializer(logs, many=True).data)
