"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` factory fixture for users of any role.
  - ``auth_header`` fixture for authenticated requests (JWT).
  - ``funded_citizen`` fixture: a citizen whose wallet can cover a deposit.
  - ``gateway_payment`` fixture: signed payment gateway top-up payloads.
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Organization-type roles are approved unless ``is_approved=False`` is
    passed explicitly.

    Usage::

        def test_something(create_user):
            citizen = create_user()
            org = create_user(role="org", home_latitude=12.97, home_longitude=77.59)
            carrier = create_user(role="carrier", linked_facility=facility)
    """
    from accounts.models import User, UserRole

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        phone_number: str | None = None,
        role: str = UserRole.CITIZEN,
        is_approved: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"{role}user{_counter}"
        if email is None:
            email = f"{username}@test.local"
        if phone_number is None:
            phone_number = f"98450{_counter:05d}"

        return User.objects.create_user(
            username=username,
            password=password,
            email=email,
            phone_number=phone_number,
            role=role,
            is_approved=is_approved,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def auth_header(create_user):
    """
    Returns a helper that creates a user and an ``Authorization``
    header with a valid JWT access token for it.

    Usage::

        def test_protected(auth_header, api_client):
            user, header = auth_header(role="org")
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(**user_kwargs):
        user = create_user(**user_kwargs)
        token = AccessToken.for_user(user)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture()
def funded_citizen(create_user):
    """A citizen whose wallet holds 100 (credited through the ledger)."""
    from wallet.services import WalletService

    citizen = create_user()
    WalletService.apply_top_up(citizen, 100, "fixture-topup")
    return citizen


@pytest.fixture()
def gateway_payment(settings):
    """
    Configures a gateway secret and returns a helper that builds a
    signed top-up payload, as the gateway checkout would.

    Usage::

        def test_top_up(gateway_payment, api_client):
            payload = gateway_payment(25, payment_id="pay_1")
    """
    from wallet.gateway import payment_signature

    settings.PAYMENT_GATEWAY_SECRET = "test-gateway-secret"

    def _make(amount: int, *, order_id: str = "order_test", payment_id: str = "pay_test") -> dict:
        return {
            "amount": amount,
            "gateway_order_id": order_id,
            "gateway_payment_id": payment_id,
            "signature": payment_signature(order_id, payment_id, amount),
        }

    return _make
