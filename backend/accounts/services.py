"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service function / method, and
return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``UserRegistrationService``  — new-account creation for every
  self-service role.
- ``AuthenticationService``    — JWT issuance.
- ``UserManagementService``    — administrator listing, approval and
  deletion of accounts.
- ``CurrentUserService``       — "Me" endpoint helpers.
"""

from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, Q, QuerySet

from core.domain.access import require_admin
from core.domain.actors import Actor
from core.domain.exceptions import Conflict, DomainError, NotFound
from core.domain.notifications import NotificationService

from .models import UserRole

User = get_user_model()

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class UserRegistrationService:
    """
    Encapsulates the user registration flow.

    Citizens are usable immediately.  Organization, facility and carrier
    accounts are created unapproved and wait for an administrator.
    """

    @staticmethod
    def register_user(validated_data: dict[str, Any]) -> User:
        """
        Create a new user with the requested role.

        Parameters
        ----------
        validated_data : dict
            Cleaned data from ``RegisterRequestSerializer``.  ``role`` is
            one of citizen / org / facility / carrier; administrators
            cannot self-register.  ``password_confirm`` has already been
            consumed during serializer validation.

        Returns
        -------
        User
            The newly created (and saved) ``User`` instance.  A citizen
            also gets an empty wallet through the ``wallet`` app's
            ``post_save`` receiver.

        Raises
        ------
        core.domain.exceptions.Conflict
            If the username or email is already taken.
        core.domain.exceptions.DomainError
            If a carrier names a linked facility that is not a facility
            account.
        """
        validated_data.pop("password_confirm", None)
        password = validated_data.pop("password")

        # Pre-check uniqueness — deterministic, field-specific errors
        conflicts = []
        if User.objects.filter(username=validated_data.get("username")).exists():
            conflicts.append("username")
        if User.objects.filter(email__iexact=validated_data.get("email", "")).exists():
            conflicts.append("email")

        if conflicts:
            raise Conflict(
                f"The following field(s) already exist: {', '.join(conflicts)}."
            )

        role = validated_data.get("role", UserRole.CITIZEN)
        facility = validated_data.get("linked_facility")
        if facility is not None:
            if role != UserRole.CARRIER:
                validated_data.pop("linked_facility")
            elif facility.role != UserRole.FACILITY:
                raise DomainError("A carrier can only be linked to a facility account.")

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    password=password,
                    **validated_data,
                )
        except IntegrityError:
            raise Conflict(
                "A user with one of the provided unique fields already exists."
            )

        logger.info(
            "Registered user #%d (%s), approved=%s",
            user.pk,
            user.role,
            user.is_approved,
        )
        return user


# ═══════════════════════════════════════════════════════════════════
#  Authentication Service
# ═══════════════════════════════════════════════════════════════════


class AuthenticationService:
    """
    Issues tokens.  Credential checking is done by
    ``accounts.backends.MultiFieldAuthBackend`` via ``authenticate()``.
    """

    @staticmethod
    def generate_tokens(user: User) -> dict[str, str]:
        """
        Issue a JWT access/refresh token pair for the given user.

        Returns
        -------
        dict
            ``{"access": "<token>", "refresh": "<token>"}``.
        """
        from .serializers import CustomTokenObtainPairSerializer

        refresh = CustomTokenObtainPairSerializer.get_token(user)
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


# ═══════════════════════════════════════════════════════════════════
#  User Management Service
# ═══════════════════════════════════════════════════════════════════


class UserManagementService:
    """
    Administrative operations on users: listing, approval and deletion.

    Every method requires an administrator actor.
    """

    @staticmethod
    def list_users(
        actor: Actor,
        *,
        role: str | None = None,
        is_approved: bool | None = None,
        search: str | None = None,
    ) -> QuerySet[User]:
        """
        Return a filtered queryset of users, newest first.

        ``search`` matches case-insensitively across username, email,
        phone number, organization name and full name.
        """
        require_admin(actor)
        qs = User.objects.select_related("linked_facility").order_by("-date_joined")

        if role:
            qs = qs.filter(role=role)
        if is_approved is not None:
            qs = qs.filter(is_approved=is_approved)
        if search:
            qs = qs.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(phone_number__icontains=search)
                | Q(org_name__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )
        return qs

    @staticmethod
    def list_pending_approvals(actor: Actor) -> QuerySet[User]:
        """Organization-type accounts awaiting approval, oldest first."""
        require_admin(actor)
        return (
            User.objects
            .filter(role__in=UserRole.organisation_values(), is_approved=False)
            .order_by("date_joined")
        )

    @staticmethod
    def get_user(actor: Actor, user_id: int) -> User:
        require_admin(actor)
        try:
            return User.objects.select_related("linked_facility").get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")

    @staticmethod
    def set_approval(actor: Actor, user_id: int, *, approved: bool) -> User:
        """
        Approve or revoke an organization, facility or carrier account.

        Raises
        ------
        PermissionDenied
            If ``actor`` is not an administrator.
        NotFound
            If the user does not exist.
        DomainError
            If the target is a citizen or administrator, whose approval
            is implicit.
        """
        target = UserManagementService.get_user(actor, user_id)
        if target.role not in UserRole.organisation_values():
            raise DomainError(
                "Only organization, facility and carrier accounts require approval."
            )

        if target.is_approved != approved:
            target.is_approved = approved
            target.save(update_fields=["is_approved"])
            logger.info(
                "User #%d (%s) %s by %s",
                target.pk,
                target.role,
                "approved" if approved else "revoked",
                actor,
            )
            NotificationService.emit(
                actor=actor.user,
                recipients=target,
                event_type="account_approved" if approved else "account_revoked",
            )
        return target

    @staticmethod
    def delete_user(actor: Actor, user_id: int) -> None:
        """
        Delete an account.

        Accounts referenced by a rescue or by a ledger entry are
        protected; revoke approval or deactivate them instead.

        Raises
        ------
        Conflict
            If the account has rescue or ledger history.
        """
        target = UserManagementService.get_user(actor, user_id)
        if target.pk == actor.actor_id:
            raise DomainError("You cannot delete your own account.")
        username = target.username
        try:
            with transaction.atomic():
                target.delete()
        except ProtectedError:
            raise Conflict(
                "This account has rescue or wallet history and cannot be deleted."
            )
        logger.info("User #%d (%s) deleted by %s", user_id, username, actor)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:
    """Profile read / update for the authenticated user."""

    @staticmethod
    def get_profile(user: User) -> User:
        return (
            User.objects
            .select_related("linked_facility")
            .get(pk=user.pk)
        )

    @staticmethod
    def update_profile(user: User, validated_data: dict[str, Any]) -> User:
        """
        Apply a partial profile update.

        Role, approval, wallet and carrier availability are not writable
        here; ``MeUpdateSerializer`` only exposes the safe fields.
        Home latitude and longitude are validated as a pair by the
        serializer.
        """
        for field, value in validated_data.items():
            setattr(user, field, value)
        try:
            user.save(update_fields=list(validated_data.keys()))
        except IntegrityError:
            raise Conflict("This email is already in use by another account.")
        return user
