"""
core.domain.access — Role guards shared by every app's service layer.

Access control is role based with a closed set of roles (see
``core.domain.actors.ActorRole``).  Org-type accounts (org, facility,
carrier) additionally need administrator approval before they can see
or touch any case.

Usage in an app's service layer::

    from core.domain.access import require_role

    require_role(actor, ActorRole.ORG, approved=True)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.domain.actors import Actor, ActorRole
from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User


def get_user_role_name(user: User) -> str | None:
    """
    Return the role name for a user, or ``None`` for anonymous users.

    Informational helper used for JWT claims, API responses and logging.
    """
    if not getattr(user, "is_authenticated", False):
        return None
    if user.is_superuser:
        return ActorRole.ADMIN.value
    return user.role


def require_role(
    actor: Actor,
    *allowed_roles: ActorRole,
    approved: bool = True,
    message: str = "",
) -> None:
    """
    Guard that raises ``PermissionDenied`` unless the actor's role is
    among ``allowed_roles`` and, when ``approved`` is set, the actor has
    been approved.

    Raises:
        core.domain.exceptions.PermissionDenied
    """
    if actor.role not in allowed_roles:
        raise PermissionDenied(
            message
            or f"Role '{actor.role}' is not permitted for this operation. "
               f"Required: {', '.join(r.value for r in allowed_roles)}."
        )
    if approved and not actor.approved:
        raise PermissionDenied("Your account is pending administrator approval.")


def require_admin(actor: Actor) -> None:
    require_role(actor, ActorRole.ADMIN, message="Administrator access required.")
