"""
Wallet app serializers.
"""

from __future__ import annotations

from django.conf import settings
from rest_framework import serializers

from .models import LedgerEntry


class LedgerEntrySerializer(serializers.ModelSerializer):
    kind_display = serializers.CharField(source="get_kind_display", read_only=True)
    related_case_status = serializers.CharField(
        source="related_case.status",
        read_only=True,
        default=None,
    )

    class Meta:
        model = LedgerEntry
        fields = [
            "id",
            "kind",
            "kind_display",
            "signed_amount",
            "resulting_balance",
            "description",
            "related_case",
            "related_case_status",
            "payment_reference",
            "created_at",
        ]
        read_only_fields = fields


class WalletSummarySerializer(serializers.Serializer):
    """
    Response for ``GET /api/wallet/``.

    Response shape::

        {
            "balance": 25,
            "deposit_amount": 20,
            "entries": [...]
        }
    """

    balance = serializers.IntegerField()
    deposit_amount = serializers.IntegerField(
        help_text="Amount held when a rescue is reported.",
    )
    entries = LedgerEntrySerializer(many=True, help_text="Most recent entries, newest first.")


class TopUpRequestSerializer(serializers.Serializer):
    """
    Checkout result returned by the payment gateway.

    ``signature`` is checked by ``WalletService.apply_verified_top_up``.
    """

    amount = serializers.IntegerField(min_value=1)
    gateway_order_id = serializers.CharField(max_length=100)
    gateway_payment_id = serializers.CharField(max_length=100)
    signature = serializers.CharField(max_length=128)

    def validate_amount(self, value: int) -> int:
        if value < settings.MIN_TOP_UP_AMOUNT:
            raise serializers.ValidationError(
                f"Minimum top-up amount is {settings.MIN_TOP_UP_AMOUNT}."
            )
        return value


class ReconcileRequestSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    repair = serializers.BooleanField(default=False)


class ReconciliationReportSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    cached_balance = serializers.IntegerField()
    ledger_balance = serializers.IntegerField()
    last_resulting_balance = serializers.IntegerField(allow_null=True)
    entry_count = serializers.IntegerField()
    consistent = serializers.BooleanField()
    repaired = serializers.BooleanField()
