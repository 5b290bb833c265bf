"""
core.domain.actors — The acting identity passed into service layers.

Views build an ``Actor`` from ``request.user``; the escalation scheduler
uses the synthetic ``Actor.scheduler()`` identity.  Services never look
at ``request`` directly.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from accounts.models import User


class ActorRole(str, enum.Enum):
    """Closed set of roles that may drive a service operation."""

    CITIZEN = "citizen"
    ORG = "org"
    FACILITY = "facility"
    CARRIER = "carrier"
    ADMIN = "admin"
    SCHEDULER = "scheduler"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Actor:
    actor_id: Any
    role: ActorRole
    approved: bool
    user: User | None = None

    @classmethod
    def from_user(cls, user: User) -> Actor:
        """
        Build an actor from an authenticated user.

        Superusers act as administrators regardless of their stored role.
        """
        if user.is_superuser:
            role = ActorRole.ADMIN
        else:
            role = ActorRole(user.role)
        approved = role in (ActorRole.CITIZEN, ActorRole.ADMIN) or bool(user.is_approved)
        return cls(actor_id=user.pk, role=role, approved=approved, user=user)

    @classmethod
    def scheduler(cls) -> Actor:
        return cls(actor_id=None, role=ActorRole.SCHEDULER, approved=True, user=None)

    @property
    def label(self) -> str:
        if self.user is None:
            return self.role.value
        return f"{self.role.value}:{self.actor_id}"

    def __str__(self) -> str:
        return self.label
