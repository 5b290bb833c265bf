"""
core.domain.transactions — Helpers for concurrency-safe writes.

Every state-mutating service follows the same recipe:

1. Open ``transaction.atomic()``.
2. Read the row with ``select_for_update()`` (``lock_for_update``).
3. Validate against the locked snapshot.
4. Write through ``compare_and_swap`` so the write only lands when the
   row still carries the version that was read.

On backends with real row locks (PostgreSQL) step 2 already serializes
writers; the version guard in step 4 keeps the guarantee on backends
where ``select_for_update`` is a no-op (SQLite) and for any writer that
bypassed the lock.

Usage::

    from core.domain.transactions import compare_and_swap, lock_for_update

    with transaction.atomic():
        case = lock_for_update(RescueCase, case_id)
        ...
        compare_and_swap(
            RescueCase,
            pk=case.pk,
            expected_version=case.version,
            status="org_accepted",
        )
"""

from __future__ import annotations

from typing import Any, TypeVar

from django.db import models
from django.db.models import F
from django.utils import timezone

from core.domain.exceptions import InvalidTransition, NotFound

M = TypeVar("M", bound=models.Model)


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except model_class.DoesNotExist:
        raise NotFound(f"{model_class._meta.verbose_name.capitalize()} not found.")


def compare_and_swap(
    model_class: type[M],
    *,
    pk: Any,
    expected_version: int,
    version_field: str = "version",
    **changes: Any,
) -> None:
    """
    Persist ``changes`` only if the row's version still equals
    ``expected_version``, bumping the version by one.

    Issues a single ``UPDATE ... WHERE pk = %s AND version = %s``.
    ``updated_at`` is refreshed when the model has that field, since
    ``QuerySet.update`` bypasses ``auto_now``.

    Raises:
        InvalidTransition: If no row matched, i.e. a concurrent writer
                           already moved the row past ``expected_version``.
    """
    field_names = {f.name for f in model_class._meta.get_fields()}
    if "updated_at" in field_names and "updated_at" not in changes:
        changes["updated_at"] = timezone.now()
    changes[version_field] = F(version_field) + 1

    matched = (
        model_class.objects
        .filter(pk=pk, **{version_field: expected_version})
        .update(**changes)
    )
    if matched != 1:
        raise InvalidTransition(
            reason="the record was modified concurrently, reload and retry",
        )
