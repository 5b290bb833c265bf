"""
core.domain.notifications — Notification creation helper.

Centralises notification creation so every app uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **After commit** — ``emit`` registers the write with
  ``transaction.on_commit`` so that a notification never describes a
  state change that was rolled back, and a slow or failing notification
  write never holds the case row lock.
* **Best effort** — a failure to persist a notification is logged at
  ERROR and swallowed; it never fails the operation that produced it.
* **Supports multiple recipients** — pass a single ``User`` or an
  iterable of ``User`` instances; ``None`` entries are skipped.
* **Generic relation** — ``related_object`` is optional; if provided
  its ``ContentType`` and PK are stored via the ``Notification`` model's
  ``GenericForeignKey``.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.emit(
        actor=request.user,
        recipients=case.reporter,
        event_type="rescue_accepted",
        payload={"rescue_id": case.id},
        related_object=case,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.contrib.contenttypes.models import ContentType
from django.db import models, transaction

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → human-readable templates ───────────────────────────
# Message templates are formatted with the ``payload`` dict.
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    # event_type: (title_template, message_template)
    "rescue_created":        ("Rescue Reported",        "Rescue #{rescue_id} was reported; a deposit of {deposit} is on hold."),
    "rescue_accepted":       ("Rescue Accepted",        "An organization has accepted rescue #{rescue_id}."),
    "rescue_escalated":      ("Rescue Escalated",       "Rescue #{rescue_id} was not picked up in time and has been escalated to nearby facilities."),
    "carrier_assigned":      ("Carrier Assigned",       "A carrier has been dispatched for rescue #{rescue_id}."),
    "rescue_status_changed": ("Rescue Status Updated",  "Rescue #{rescue_id} is now '{status}'."),
    "rescue_completed":      ("Rescue Completed",       "Rescue #{rescue_id} has been delivered and completed."),
    "rescue_cancelled":      ("Rescue Cancelled",       "Rescue #{rescue_id} was cancelled by an administrator."),
    "wallet_credit":         ("Wallet Topped Up",       "{amount} was added to your wallet."),
    "wallet_refund":         ("Deposit Refunded",       "Your deposit of {amount} for rescue #{rescue_id} was refunded."),
    "account_approved":      ("Account Approved",       "Your account has been approved."),
    "account_revoked":       ("Account Approval Revoked", "Your account approval has been revoked."),
}


def _render(event_type: str, payload: dict[str, Any]) -> tuple[str, str]:
    title, template = _EVENT_TEMPLATES.get(
        event_type,
        (event_type.replace("_", " ").title(), f"Event: {event_type}"),
    )
    try:
        message = template.format(**payload)
    except (KeyError, IndexError):
        message = template
    return title, message


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def create(
        cls,
        *,
        actor: User | str | None,
        recipients: User | Iterable[User | None] | None,
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
    ) -> list[Notification]:
        """
        Create one ``Notification`` per recipient, synchronously.

        Args:
            actor:          The user (or a label such as ``"scheduler"``)
                            who performed the action.  Used for logging.
            recipients:     A single ``User`` or iterable of ``User``
                            instances.
            event_type:     Key into ``_EVENT_TEMPLATES``.  If unknown
                            the raw event_type is used as title.
            payload:        Context dict used to format the message.
            related_object: Optional model instance linked via
                            ``GenericForeignKey``.

        Returns:
            List of created ``Notification`` instances.
        """
        from core.models import Notification  # lazy import — avoids circular deps

        # Normalise recipients to a de-duplicated list
        if recipients is None:
            recipients = []
        elif isinstance(recipients, models.Model):
            recipients = [recipients]
        unique: dict[Any, User] = {}
        for recipient in recipients:
            if recipient is not None:
                unique.setdefault(recipient.pk, recipient)

        if not unique:
            logger.debug(
                "No recipients for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

        title, message = _render(event_type, payload or {})

        # Resolve GenericFK fields
        content_type = None
        object_id = None
        if related_object is not None:
            content_type = ContentType.objects.get_for_model(related_object)
            object_id = related_object.pk

        notifications = Notification.objects.bulk_create([
            Notification(
                recipient=recipient,
                event_type=event_type,
                title=title,
                message=message,
                content_type=content_type,
                object_id=object_id,
            )
            for recipient in unique.values()
        ])

        logger.info(
            "Created %d notification(s) [%s] by actor=%s",
            len(notifications),
            event_type,
            actor,
        )
        return notifications

    @classmethod
    def emit(cls, **kwargs: Any) -> None:
        """
        Schedule ``create(**kwargs)`` to run after the current transaction
        commits.  Outside a transaction it runs immediately.

        Failures are logged and never propagate to the caller.
        """
        event_type = kwargs.get("event_type")

        def _deliver() -> None:
            try:
                cls.create(**kwargs)
            except Exception:
                logger.exception("Failed to deliver notification [%s]", event_type)

        transaction.on_commit(_deliver)
