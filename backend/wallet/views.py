"""
Wallet app views — **Thin Views**.

GET  /api/wallet/             → balance + recent ledger entries (citizen)
POST /api/wallet/top-up/      → apply a verified gateway payment (citizen)
POST /api/wallet/reconcile/   → compare cache vs ledger (administrator)
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import OpenApiResponse, extend_schema

from core.domain.access import require_role
from core.domain.actors import Actor, ActorRole

from .serializers import (
    LedgerEntrySerializer,
    ReconcileRequestSerializer,
    ReconciliationReportSerializer,
    TopUpRequestSerializer,
    WalletSummarySerializer,
)
from .services import WalletService


class WalletView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Wallet balance and history",
        description="Return the balance and the 50 most recent ledger entries.",
        responses={
            200: OpenApiResponse(response=WalletSummarySerializer, description="Wallet summary."),
            403: OpenApiResponse(description="Only citizens have a wallet."),
        },
        tags=["Wallet"],
    )
    def get(self, request: Request) -> Response:
        data = WalletService.get_summary(Actor.from_user(request.user))
        return Response(WalletSummarySerializer(data).data, status=status.HTTP_200_OK)


class TopUpView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Top up wallet",
        description=(
            "Credit a gateway payment after checking its HMAC-SHA256 signature.  "
            "Replaying the same gateway payment is a no-op and returns the "
            "original entry."
        ),
        request=TopUpRequestSerializer,
        responses={
            201: OpenApiResponse(response=LedgerEntrySerializer, description="Credit applied."),
            200: OpenApiResponse(response=LedgerEntrySerializer, description="Already applied."),
            400: OpenApiResponse(description="Invalid amount or gateway signature."),
            409: OpenApiResponse(description="Gateway payment already used for another wallet."),
        },
        tags=["Wallet"],
    )
    def post(self, request: Request) -> Response:
        actor = Actor.from_user(request.user)
        require_role(actor, ActorRole.CITIZEN)
        serializer = TopUpRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry, created = WalletService.apply_verified_top_up(
            request.user,
            **serializer.validated_data,
        )
        return Response(
            LedgerEntrySerializer(entry).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class ReconcileView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Reconcile a wallet",
        request=ReconcileRequestSerializer,
        responses={200: ReconciliationReportSerializer},
        tags=["Wallet"],
    )
    def post(self, request: Request) -> Response:
        serializer = ReconcileRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = WalletService.reconcile_user(
            Actor.from_user(request.user),
            serializer.validated_data["user_id"],
            repair=serializer.validated_data["repair"],
        )
        return Response(ReconciliationReportSerializer(report).data, status=status.HTTP_200_OK)
