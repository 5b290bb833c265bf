"""
Payment gateway boundary.

The gateway returns ``(order_id, payment_id, signature)`` to the client
after a successful checkout.  The signature is an HMAC-SHA256 hex digest
of ``"{order_id}|{payment_id}|{amount}"`` keyed with
``PAYMENT_GATEWAY_SECRET``, so the client can neither forge a payment
nor change the amount of a real one.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from django.conf import settings

from core.domain.exceptions import PaymentVerificationFailed

logger = logging.getLogger(__name__)


def _message(order_id: str, payment_id: str, amount: int) -> str:
    return f"{order_id}|{payment_id}|{amount}"


def payment_signature(order_id: str, payment_id: str, amount: int) -> str:
    """Return the signature the gateway issues for this payment."""
    return hmac.new(
        settings.PAYMENT_GATEWAY_SECRET.encode("utf-8"),
        _message(order_id, payment_id, amount).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, amount: int, signature: str) -> None:
    """
    Constant-time check of a gateway signature.

    Raises:
        PaymentVerificationFailed: If no gateway secret is configured or
                                   the signature does not match.
    """
    if not settings.PAYMENT_GATEWAY_SECRET:
        logger.error("PAYMENT_GATEWAY_SECRET is not set; rejecting top-up for order %s", order_id)
        raise PaymentVerificationFailed("Payments are not available right now.")
    expected = payment_signature(order_id, payment_id, amount)
    if not hmac.compare_digest(expected, signature or ""):
        logger.warning("Signature mismatch for gateway order %s", order_id)
        raise PaymentVerificationFailed()
