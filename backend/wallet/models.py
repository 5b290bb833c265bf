"""
Wallet app models.

Implements the citizen wallet and its append-only ledger.  The
``Wallet.balance`` column is a cache; the ledger is authoritative and
``LedgerService.reconcile`` compares the two.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.domain.exceptions import DomainError
from core.models import TimeStampedModel


class LedgerEntryKind(models.TextChoices):
    DEBIT = "debit", "Debit"
    CREDIT = "credit", "Credit"
    REFUND = "refund", "Refund"


class Wallet(TimeStampedModel):
    """
    One wallet per citizen, created with a zero balance when the citizen
    account is created.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wallet",
        verbose_name="Owner",
    )
    balance = models.PositiveIntegerField(
        default=0,
        verbose_name="Balance",
        help_text="Cached sum of the owner's ledger entries; never negative.",
    )

    class Meta:
        verbose_name = "Wallet"
        verbose_name_plural = "Wallets"

    def __str__(self):
        return f"Wallet of {self.user} ({self.balance})"


class LedgerEntry(models.Model):
    """
    Immutable wallet movement.

    ``signed_amount`` is negative for debits and positive for credits
    and refunds.  ``resulting_balance`` is the owner's balance right
    after this entry, so for consecutive entries of one owner
    ``resulting_balance == previous.resulting_balance + signed_amount``.

    Rows are never updated or deleted through the ORM instance API.
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        verbose_name="Wallet Owner",
    )
    signed_amount = models.IntegerField(verbose_name="Signed Amount")
    kind = models.CharField(
        max_length=10,
        choices=LedgerEntryKind.choices,
        verbose_name="Kind",
    )
    related_case = models.ForeignKey(
        "rescues.RescueCase",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ledger_entries",
        verbose_name="Related Rescue",
    )
    resulting_balance = models.PositiveIntegerField(verbose_name="Resulting Balance")
    description = models.CharField(max_length=255, blank=True, default="", verbose_name="Description")
    payment_reference = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        unique=True,
        verbose_name="Payment Reference",
        help_text="Gateway payment id; makes top-ups idempotent.",
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    class Meta:
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["actor", "created_at"], name="wallet_entry_actor_time_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["related_case"],
                condition=Q(kind=LedgerEntryKind.REFUND),
                name="wallet_one_refund_per_case",
            ),
            models.UniqueConstraint(
                fields=["related_case"],
                condition=Q(kind=LedgerEntryKind.DEBIT),
                name="wallet_one_deposit_per_case",
            ),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} {self.signed_amount:+d} → {self.resulting_balance}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise DomainError("Ledger entries are append-only and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise DomainError("Ledger entries are append-only and cannot be deleted.")
