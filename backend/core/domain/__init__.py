"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
actors         The ``Actor`` identity and closed ``ActorRole`` set.
access         Role / approval guards.
exceptions     Domain-specific exceptions that map cleanly to HTTP responses.
notifications  After-commit, best-effort notification creation.
transactions   ``select_for_update`` locking and compare-and-swap writes.
media          Media store boundary (``default_storage``).

Usage from any app::

    from core.domain.actors import Actor, ActorRole
    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.notifications import NotificationService
    from core.domain.transactions import compare_and_swap, lock_for_update
"""
