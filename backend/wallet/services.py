"""
Wallet Service Layer.

Architecture
------------
- ``LedgerService``  — the only writer of ``LedgerEntry`` rows and of
  ``Wallet.balance``.  Appends an entry and moves the cached balance in
  the same transaction, under a lock on the wallet row.
- ``WalletService``  — citizen-facing operations: balance + history,
  gateway top-ups.

Deposit debits and refunds for rescues are requested by
``rescues.services``; this module knows nothing about rescue states.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Sum

from core.constants import WALLET_HISTORY_LIMIT
from core.domain.access import require_admin, require_role
from core.domain.actors import Actor, ActorRole
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InsufficientFunds,
    NotFound,
)
from core.domain.notifications import NotificationService

from .gateway import verify_payment_signature
from .models import LedgerEntry, LedgerEntryKind, Wallet

if TYPE_CHECKING:
    from accounts.models import User
    from rescues.models import RescueCase

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Ledger Service
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ReconciliationReport:
    user_id: int
    cached_balance: int
    ledger_balance: int
    last_resulting_balance: int | None
    entry_count: int
    repaired: bool = False

    @property
    def consistent(self) -> bool:
        tail_ok = (
            self.last_resulting_balance is None
            or self.last_resulting_balance == self.ledger_balance
        )
        return self.cached_balance == self.ledger_balance and tail_ok


class LedgerService:
    """
    Append-only ledger writer.

    Every mutation of a wallet goes through ``append``; nothing else
    writes ``Wallet.balance``.
    """

    _SIGN_BY_KIND: dict[str, int] = {
        LedgerEntryKind.DEBIT: -1,
        LedgerEntryKind.CREDIT: 1,
        LedgerEntryKind.REFUND: 1,
    }

    @staticmethod
    def _lock_wallet(user: User) -> Wallet:
        try:
            return Wallet.objects.select_for_update().get(user=user)
        except Wallet.DoesNotExist:
            raise NotFound("Wallet not found.")

    @classmethod
    @transaction.atomic
    def append(
        cls,
        *,
        owner: User,
        signed_amount: int,
        kind: str,
        related_case: RescueCase | None = None,
        description: str = "",
        payment_reference: str | None = None,
    ) -> LedgerEntry:
        """
        Append one entry for ``owner`` and move the cached balance.

        Runs in its own atomic block (a savepoint when nested), so a
        failure here never leaves a half-written entry behind.

        Raises
        ------
        DomainError
            If the sign of ``signed_amount`` does not match ``kind`` or
            the amount is zero.
        InsufficientFunds
            If the entry would take the balance below zero.
        NotFound
            If ``owner`` has no wallet.
        """
        if kind not in cls._SIGN_BY_KIND:
            raise DomainError(f"Unknown ledger entry kind '{kind}'.")
        if signed_amount == 0 or (signed_amount > 0) != (cls._SIGN_BY_KIND[kind] > 0):
            raise DomainError(
                f"A {kind} entry cannot carry the amount {signed_amount}."
            )

        wallet = cls._lock_wallet(owner)
        new_balance = wallet.balance + signed_amount
        if new_balance < 0:
            raise InsufficientFunds(
                required=-signed_amount,
                available=wallet.balance,
            )

        entry = LedgerEntry.objects.create(
            actor=owner,
            signed_amount=signed_amount,
            kind=kind,
            related_case=related_case,
            resulting_balance=new_balance,
            description=description,
            payment_reference=payment_reference,
        )
        wallet.balance = new_balance
        wallet.save(update_fields=["balance", "updated_at"])

        logger.info(
            "Ledger %s %+d for user #%d (balance %d → %d)%s",
            kind,
            signed_amount,
            owner.pk,
            new_balance - signed_amount,
            new_balance,
            f" rescue #{related_case.pk}" if related_case is not None else "",
        )
        return entry

    @staticmethod
    def history(owner: User, limit: int = WALLET_HISTORY_LIMIT):
        return (
            LedgerEntry.objects
            .filter(actor=owner)
            .select_related("related_case")
            .order_by("-created_at", "-id")[:limit]
        )

    @classmethod
    def reconcile(cls, owner: User, *, repair: bool = False) -> ReconciliationReport:
        """
        Compare the cached wallet balance with the ledger.

        With ``repair`` set, an inconsistent cache is overwritten with
        the ledger sum (the ledger itself is never touched).  A mismatch
        is logged at ERROR either way.
        """
        with transaction.atomic():
            wallet = cls._lock_wallet(owner)
            entries = LedgerEntry.objects.filter(actor=owner)
            ledger_balance = entries.aggregate(total=Sum("signed_amount"))["total"] or 0
            last = entries.order_by("-created_at", "-id").first()

            report = ReconciliationReport(
                user_id=owner.pk,
                cached_balance=wallet.balance,
                ledger_balance=ledger_balance,
                last_resulting_balance=last.resulting_balance if last else None,
                entry_count=entries.count(),
            )
            if report.consistent:
                return report

            logger.error(
                "Wallet mismatch for user #%d: cached=%d ledger=%d last_resulting=%s",
                owner.pk,
                report.cached_balance,
                report.ledger_balance,
                report.last_resulting_balance,
            )
            if repair and ledger_balance >= 0:
                wallet.balance = ledger_balance
                wallet.save(update_fields=["balance", "updated_at"])
                logger.warning("Wallet cache for user #%d repaired to %d", owner.pk, ledger_balance)
                return ReconciliationReport(
                    user_id=report.user_id,
                    cached_balance=report.cached_balance,
                    ledger_balance=report.ledger_balance,
                    last_resulting_balance=report.last_resulting_balance,
                    entry_count=report.entry_count,
                    repaired=True,
                )
            return report


# ═══════════════════════════════════════════════════════════════════
#  Wallet Service
# ═══════════════════════════════════════════════════════════════════


class WalletService:
    """Citizen-facing wallet operations."""

    @staticmethod
    def get_wallet(actor: Actor) -> Wallet:
        require_role(actor, ActorRole.CITIZEN)
        try:
            return Wallet.objects.select_related("user").get(user=actor.user)
        except Wallet.DoesNotExist:
            raise NotFound("Wallet not found.")

    @staticmethod
    def get_summary(actor: Actor) -> dict[str, Any]:
        """Balance plus the most recent ledger entries."""
        wallet = WalletService.get_wallet(actor)
        return {
            "balance": wallet.balance,
            "deposit_amount": settings.RESCUE_DEPOSIT_AMOUNT,
            "entries": list(LedgerService.history(wallet.user)),
        }

    @staticmethod
    def apply_top_up(user: User, amount: int, payment_reference: str) -> tuple[LedgerEntry, bool]:
        """
        Credit an already verified gateway payment to ``user``'s wallet.

        Idempotent per ``payment_reference``: replaying the same
        reference returns the original entry and ``created=False``.

        Returns
        -------
        tuple[LedgerEntry, bool]
            The credit entry and whether it was created by this call.

        Raises
        ------
        DomainError
            If ``amount`` is below ``MIN_TOP_UP_AMOUNT`` or the reference
            is blank.
        Conflict
            If the reference was already used for another wallet.
        """
        if amount < settings.MIN_TOP_UP_AMOUNT:
            raise DomainError(
                f"Minimum top-up amount is {settings.MIN_TOP_UP_AMOUNT}."
            )
        if not payment_reference:
            raise DomainError("A payment reference is required.")

        existing = LedgerEntry.objects.filter(payment_reference=payment_reference).first()
        if existing is not None:
            return WalletService._replayed(existing, user, amount)

        try:
            with transaction.atomic():
                entry = LedgerService.append(
                    owner=user,
                    signed_amount=amount,
                    kind=LedgerEntryKind.CREDIT,
                    description="Wallet top-up",
                    payment_reference=payment_reference,
                )
        except IntegrityError:
            # Lost a race with a concurrent delivery of the same payment
            existing = LedgerEntry.objects.get(payment_reference=payment_reference)
            return WalletService._replayed(existing, user, amount)

        NotificationService.emit(
            actor=user,
            recipients=user,
            event_type="wallet_credit",
            payload={"amount": amount},
            related_object=entry,
        )
        return entry, True

    @staticmethod
    def apply_verified_top_up(
        user: User,
        *,
        amount: int,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> tuple[LedgerEntry, bool]:
        """
        Verify the gateway signature, then credit the payment.

        The gateway payment id becomes the ledger ``payment_reference``,
        so a replayed confirmation is a no-op.

        Raises
        ------
        PaymentVerificationFailed
            If the signature does not cover this order, payment and
            amount.  Nothing is written.
        """
        verify_payment_signature(gateway_order_id, gateway_payment_id, amount, signature)
        logger.info(
            "Gateway payment %s verified for user #%d (order %s)",
            gateway_payment_id,
            user.pk,
            gateway_order_id,
        )
        return WalletService.apply_top_up(user, amount, gateway_payment_id)

    @staticmethod
    def _replayed(entry: LedgerEntry, user: User, amount: int) -> tuple[LedgerEntry, bool]:
        if entry.actor_id != user.pk or entry.signed_amount != amount:
            raise Conflict("This payment reference has already been used.")
        logger.info("Top-up %s already applied; ignoring replay", entry.payment_reference)
        return entry, False

    @staticmethod
    def reconcile_user(actor: Actor, user_id: int, *, repair: bool = False) -> ReconciliationReport:
        """Administrator entry point for ``LedgerService.reconcile``."""
        from django.contrib.auth import get_user_model

        require_admin(actor)
        User = get_user_model()
        try:
            owner = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")
        return LedgerService.reconcile(owner, repair=repair)
