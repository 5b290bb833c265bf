"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``RegisterView``       — POST /auth/register/
- ``LoginView``          — POST /auth/login/
- ``MeView``             — GET / PATCH /me/
- ``UserViewSet``        — /users/  (list, retrieve, destroy,
                           pending-approvals, approve)
"""

from __future__ import annotations

from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema

from core.domain.actors import Actor

from .serializers import (
    ApprovalSerializer,
    CustomTokenObtainPairSerializer,
    MeUpdateSerializer,
    RegisterRequestSerializer,
    UserDetailSerializer,
    UserListSerializer,
)
from .services import (
    AuthenticationService,
    CurrentUserService,
    UserManagementService,
    UserRegistrationService,
)


def _parse_bool(raw: str | None) -> bool | None:
    if raw is None or raw == "":
        return None
    return raw.lower() in {"1", "true", "yes"}


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class RegisterView(generics.CreateAPIView):
    """
    POST /api/accounts/auth/register/

    Public endpoint.  Creates a new citizen, organization, facility or
    carrier account.  Citizens can act straight away; the other roles
    wait for administrator approval.

    Request body  → ``RegisterRequestSerializer``
    Response body → tokens + ``UserDetailSerializer`` (201 Created)
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = RegisterRequestSerializer

    @extend_schema(
        summary="Register",
        responses={
            201: OpenApiResponse(description="Account created; tokens and user returned."),
            400: OpenApiResponse(description="Validation error."),
            409: OpenApiResponse(description="Username or email already taken."),
        },
        tags=["Auth"],
    )
    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_user(serializer.validated_data)
        payload = AuthenticationService.generate_tokens(user)
        payload["user"] = UserDetailSerializer(CurrentUserService.get_profile(user)).data
        return Response(payload, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user via any of username, email
    or phone number plus password.

    Response body → ``{"access", "refresh", "user"}`` (200 OK)
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Login",
        request=CustomTokenObtainPairSerializer,
        responses={
            200: OpenApiResponse(description="Token pair and user profile."),
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = serializer.validated_data  # contains 'access' and 'refresh'
        payload["user"] = UserDetailSerializer(
            CurrentUserService.get_profile(serializer.user)
        ).data

        return Response(payload, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") View
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """
    GET  /api/accounts/me/  → Retrieve current user profile.
    PATCH /api/accounts/me/ → Update own profile fields (including the
                              home location used for rescue matching).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user profile",
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update current user profile",
        request=MeUpdateSerializer,
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def patch(self, request: Request) -> Response:
        serializer = MeUpdateSerializer(
            instance=request.user,
            data=request.data,
            partial=True,
        )
        serializer.is_valid(raise_exception=True)
        user = CurrentUserService.update_profile(request.user, serializer.validated_data)
        return Response(
            UserDetailSerializer(CurrentUserService.get_profile(user)).data,
            status=status.HTTP_200_OK,
        )


# ═══════════════════════════════════════════════════════════════════
#  User Management ViewSet
# ═══════════════════════════════════════════════════════════════════


class UserViewSet(viewsets.ViewSet):
    """
    /api/accounts/users/

    Administrative user management (list, retrieve, delete, pending
    approvals, approve / revoke).

    Access: administrators only.  All heavy lifting is delegated to
    ``UserManagementService``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List users",
        parameters=[
            OpenApiParameter(name="role", type=str, required=False),
            OpenApiParameter(name="is_approved", type=bool, required=False),
            OpenApiParameter(name="search", type=str, required=False),
        ],
        responses={200: UserListSerializer(many=True)},
        tags=["Users"],
    )
    def list(self, request: Request) -> Response:
        params = request.query_params
        users = UserManagementService.list_users(
            Actor.from_user(request.user),
            role=params.get("role") or None,
            is_approved=_parse_bool(params.get("is_approved")),
            search=params.get("search") or None,
        )
        return Response(UserListSerializer(users, many=True).data)

    @extend_schema(summary="Retrieve user", responses={200: UserDetailSerializer}, tags=["Users"])
    def retrieve(self, request: Request, pk: str = None) -> Response:
        user = UserManagementService.get_user(Actor.from_user(request.user), pk)
        return Response(UserDetailSerializer(user).data)

    @extend_schema(
        summary="Delete user",
        responses={
            204: OpenApiResponse(description="Deleted."),
            409: OpenApiResponse(description="Account has rescue or wallet history."),
        },
        tags=["Users"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        UserManagementService.delete_user(Actor.from_user(request.user), pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="Accounts awaiting approval",
        responses={200: UserListSerializer(many=True)},
        tags=["Users"],
    )
    @action(detail=False, methods=["get"], url_path="pending-approvals")
    def pending_approvals(self, request: Request) -> Response:
        users = UserManagementService.list_pending_approvals(Actor.from_user(request.user))
        return Response(UserListSerializer(users, many=True).data)

    @extend_schema(
        summary="Approve or revoke an organization account",
        request=ApprovalSerializer,
        responses={200: UserDetailSerializer},
        tags=["Users"],
    )
    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request: Request, pk: str = None) -> Response:
        serializer = ApprovalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.set_approval(
            Actor.from_user(request.user),
            pk,
            approved=serializer.validated_data["approved"],
        )
        return Response(UserDetailSerializer(user).data)
