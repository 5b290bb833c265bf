"""
Tests for the append-only ledger (``wallet.services.LedgerService``).
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase, override_settings

from accounts.models import UserRole
from core.domain.exceptions import (
    DomainError,
    InsufficientFunds,
    NotFound,
    PaymentVerificationFailed,
)
from wallet.gateway import payment_signature
from wallet.models import LedgerEntry, LedgerEntryKind, Wallet
from wallet.services import LedgerService, WalletService

User = get_user_model()


class TestWalletCreation(TestCase):

    def test_citizen_gets_empty_wallet(self):
        citizen = User.objects.create_user(username="w_citizen", password="x", email="wc@test.local")
        self.assertEqual(Wallet.objects.get(user=citizen).balance, 0)

    def test_org_accounts_have_no_wallet(self):
        org = User.objects.create_user(
            username="w_org", password="x", email="wo@test.local", role=UserRole.ORG,
        )
        self.assertFalse(Wallet.objects.filter(user=org).exists())
        with self.assertRaises(NotFound):
            LedgerService.append(owner=org, signed_amount=10, kind=LedgerEntryKind.CREDIT)


class TestLedgerAppend(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.citizen = User.objects.create_user(
            username="ledger_citizen", password="x", email="ledger@test.local",
        )

    def test_entries_chain_resulting_balance(self):
        LedgerService.append(owner=self.citizen, signed_amount=25, kind=LedgerEntryKind.CREDIT)
        LedgerService.append(owner=self.citizen, signed_amount=-20, kind=LedgerEntryKind.DEBIT)
        LedgerService.append(owner=self.citizen, signed_amount=20, kind=LedgerEntryKind.REFUND)

        entries = list(LedgerEntry.objects.filter(actor=self.citizen).order_by("created_at", "id"))
        self.assertEqual([e.resulting_balance for e in entries], [25, 5, 25])
        previous = 0
        for entry in entries:
            self.assertEqual(entry.resulting_balance, previous + entry.signed_amount)
            previous = entry.resulting_balance
        self.assertEqual(Wallet.objects.get(user=self.citizen).balance, 25)

    def test_debit_below_zero_is_refused(self):
        LedgerService.append(owner=self.citizen, signed_amount=15, kind=LedgerEntryKind.CREDIT)
        with self.assertRaises(InsufficientFunds) as ctx:
            LedgerService.append(owner=self.citizen, signed_amount=-20, kind=LedgerEntryKind.DEBIT)
        self.assertEqual(ctx.exception.required, 20)
        self.assertEqual(ctx.exception.available, 15)
        self.assertEqual(LedgerEntry.objects.filter(actor=self.citizen).count(), 1)
        self.assertEqual(Wallet.objects.get(user=self.citizen).balance, 15)

    def test_sign_must_match_kind(self):
        with self.assertRaises(DomainError):
            LedgerService.append(owner=self.citizen, signed_amount=20, kind=LedgerEntryKind.DEBIT)
        with self.assertRaises(DomainError):
            LedgerService.append(owner=self.citizen, signed_amount=-5, kind=LedgerEntryKind.REFUND)
        with self.assertRaises(DomainError):
            LedgerService.append(owner=self.citizen, signed_amount=0, kind=LedgerEntryKind.CREDIT)

    def test_entries_are_immutable(self):
        entry = LedgerService.append(owner=self.citizen, signed_amount=10, kind=LedgerEntryKind.CREDIT)
        entry.signed_amount = 1000
        with self.assertRaises(DomainError):
            entry.save()
        with self.assertRaises(DomainError):
            entry.delete()
        entry.refresh_from_db()
        self.assertEqual(entry.signed_amount, 10)

    def test_logs_each_append(self):
        with self.assertLogs("wallet.services", level="INFO") as logs:
            LedgerService.append(owner=self.citizen, signed_amount=10, kind=LedgerEntryKind.CREDIT)
        self.assertIn("credit", logs.output[0])


class TestTopUp(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.citizen = User.objects.create_user(
            username="topup_citizen", password="x", email="topup@test.local",
        )
        cls.other = User.objects.create_user(
            username="topup_other", password="x", email="topup_other@test.local",
        )

    def test_top_up_is_idempotent_per_reference(self):
        first, created = WalletService.apply_top_up(self.citizen, 50, "pay_001")
        self.assertTrue(created)
        again, created_again = WalletService.apply_top_up(self.citizen, 50, "pay_001")
        self.assertFalse(created_again)
        self.assertEqual(first.pk, again.pk)
        self.assertEqual(Wallet.objects.get(user=self.citizen).balance, 50)

    def test_reference_reused_for_another_wallet_conflicts(self):
        from core.domain.exceptions import Conflict

        WalletService.apply_top_up(self.citizen, 50, "pay_002")
        with self.assertRaises(Conflict):
            WalletService.apply_top_up(self.other, 50, "pay_002")

    def test_minimum_amount(self):
        with self.assertRaises(DomainError):
            WalletService.apply_top_up(self.citizen, 5, "pay_003")
        self.assertFalse(LedgerEntry.objects.filter(payment_reference="pay_003").exists())

    def test_credit_notification_after_commit(self):
        from core.models import Notification

        with self.captureOnCommitCallbacks(execute=True):
            WalletService.apply_top_up(self.citizen, 30, "pay_004")
        self.assertTrue(
            Notification.objects.filter(recipient=self.citizen, event_type="wallet_credit").exists()
        )


@override_settings(PAYMENT_GATEWAY_SECRET="ledger-gateway-secret")
class TestVerifiedTopUp(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.citizen = User.objects.create_user(
            username="verified_citizen", password="x", email="verified@test.local",
        )

    def test_valid_signature_credits_under_payment_id(self):
        entry, created = WalletService.apply_verified_top_up(
            self.citizen,
            amount=40,
            gateway_order_id="order_9",
            gateway_payment_id="pay_9",
            signature=payment_signature("order_9", "pay_9", 40),
        )
        self.assertTrue(created)
        self.assertEqual(entry.payment_reference, "pay_9")
        self.assertEqual(Wallet.objects.get(user=self.citizen).balance, 40)

    def test_signature_for_other_payment_rejected(self):
        with self.assertLogs("wallet.gateway", level="WARNING"):
            with self.assertRaises(PaymentVerificationFailed):
                WalletService.apply_verified_top_up(
                    self.citizen,
                    amount=40,
                    gateway_order_id="order_9",
                    gateway_payment_id="pay_10",
                    signature=payment_signature("order_9", "pay_9", 40),
                )
        self.assertFalse(LedgerEntry.objects.exists())
        self.assertEqual(Wallet.objects.get(user=self.citizen).balance, 0)


class TestReconcile(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.citizen = User.objects.create_user(
            username="recon_citizen", password="x", email="recon@test.local",
        )

    def test_consistent_wallet(self):
        LedgerService.append(owner=self.citizen, signed_amount=40, kind=LedgerEntryKind.CREDIT)
        report = LedgerService.reconcile(self.citizen)
        self.assertTrue(report.consistent)
        self.assertEqual(report.ledger_balance, 40)
        self.assertEqual(report.entry_count, 1)

    def test_drifted_cache_is_reported_and_repaired(self):
        LedgerService.append(owner=self.citizen, signed_amount=40, kind=LedgerEntryKind.CREDIT)
        Wallet.objects.filter(user=self.citizen).update(balance=999)

        with self.assertLogs("wallet.services", level="ERROR"):
            report = LedgerService.reconcile(self.citizen)
        self.assertFalse(report.consistent)
        self.assertFalse(report.repaired)

        with self.assertLogs("wallet.services", level="WARNING"):
            repaired = LedgerService.reconcile(self.citizen, repair=True)
        self.assertTrue(repaired.repaired)
        self.assertEqual(Wallet.objects.get(user=self.citizen).balance, 40)

    def test_management_command(self):
        from io import StringIO

        LedgerService.append(owner=self.citizen, signed_amount=40, kind=LedgerEntryKind.CREDIT)
        Wallet.objects.filter(user=self.citizen).update(balance=7)
        out = StringIO()
        with self.assertLogs("wallet.services", level="WARNING"):
            call_command("reconcile_wallets", "--repair", stdout=out)
        self.assertIn("1 mismatched, 1 repaired", out.getvalue())
        self.assertEqual(Wallet.objects.get(user=self.citizen).balance, 40)
