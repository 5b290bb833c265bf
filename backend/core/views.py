"""
Core app views — **Thin Views**.

Each view delegates all business logic to the corresponding service in
``core.services``.  Views are responsible only for:

1. Extracting and validating query parameters from the request.
2. Calling the service with the authenticated user and parameters.
3. Serialising the result and returning an HTTP ``Response``.

No model imports, no aggregation logic, no cross-app queries.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from core.domain.actors import Actor

from .serializers import (
    DashboardStatsSerializer,
    NotificationSerializer,
    SystemConstantsSerializer,
)
from .services import (
    DashboardAggregationService,
    NotificationService,
    SystemConstantsService,
)


class DashboardStatsView(APIView):
    """
    **GET /api/core/dashboard/**

    Return administrator analytics: users by role, pending approvals,
    rescues by status and completed rescues awaiting a deposit refund.

    **Authentication**: Required; administrators only.

    **Error Responses**:
        - ``401 Unauthorized``: Missing or invalid credentials.
        - ``403 Forbidden``: Caller is not an administrator.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Dashboard statistics",
        description="Administrator analytics across users, rescues and deposits.",
        responses={
            200: OpenApiResponse(response=DashboardStatsSerializer, description="Dashboard stats."),
            403: OpenApiResponse(description="Administrator access required."),
        },
        tags=["Dashboard"],
    )
    def get(self, request: Request) -> Response:
        service = DashboardAggregationService(actor=Actor.from_user(request.user))
        data = service.get_stats()
        serializer = DashboardStatsSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class SystemConstantsView(APIView):
    """
    **GET /api/core/constants/**

    Return all system-wide choice enumerations and public business
    constants (deposit, top-up minimum, escalation deadline, visibility
    radii).

    **Authentication**: Not required (``AllowAny``).
    These constants are public configuration data.

    **Response** (``200 OK``):
        Serialised by ``SystemConstantsSerializer``.
    """

    permission_classes = [AllowAny]
    authentication_classes = []  # No authentication required

    @extend_schema(
        summary="System constants",
        description=(
            "Return all system-wide choice enumerations and the public "
            "business constants so the frontend can build dropdowns and labels."
        ),
        responses={200: OpenApiResponse(response=SystemConstantsSerializer, description="System constants.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemConstantsService.get_constants()
        serializer = SystemConstantsSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — list and mark-as-read for the authenticated user.

    Endpoints
    ---------
    GET  /api/core/notifications/              → list notifications
    POST /api/core/notifications/{id}/read/    → mark a notification as read
    POST /api/core/notifications/read-all/     → mark everything as read

    **Authentication**: Required (``IsAuthenticated``).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List notifications",
        description="Return notifications for the authenticated user, newest first.",
        parameters=[
            OpenApiParameter(name="unread", type=bool, required=False, description="Only unread notifications."),
        ],
        responses={200: OpenApiResponse(response=NotificationSerializer(many=True), description="Notification list.")},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        unread_only = request.query_params.get("unread", "").lower() in {"1", "true", "yes"}
        service = NotificationService(user=request.user)
        notifications = service.list_notifications(unread_only=unread_only)
        serializer = NotificationSerializer(notifications, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Mark notification as read",
        description="Mark a single notification as read by ID.",
        request=None,
        responses={
            200: OpenApiResponse(response=NotificationSerializer, description="Updated notification."),
            404: OpenApiResponse(description="Notification not found."),
        },
        tags=["Notifications"],
    )
    @action(detail=True, methods=["post"], url_path="read")
    def mark_as_read(self, request: Request, pk: int = None) -> Response:
        service = NotificationService(user=request.user)
        notification = service.mark_as_read(notification_id=pk)
        serializer = NotificationSerializer(notification)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Mark all notifications as read",
        request=None,
        responses={200: OpenApiResponse(description="Number of notifications updated.")},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["post"], url_path="read-all")
    def mark_all_as_read(self, request: Request) -> Response:
        updated = NotificationService(user=request.user).mark_all_as_read()
        return Response({"updated": updated}, status=status.HTTP_200_OK)
