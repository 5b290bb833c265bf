"""
core.domain.media — Media store boundary.

Uploaded files are written through Django's ``default_storage`` and only
the resulting reference (URL) is kept on domain records.  Storage runs
outside any database transaction.
"""

from __future__ import annotations

import logging
import os
import uuid

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import UploadedFile

from core.domain.exceptions import DomainError

logger = logging.getLogger(__name__)


def store_media(upload: UploadedFile, *, folder: str) -> str:
    """
    Persist ``upload`` under ``folder`` and return its public reference.

    A random file name is used so that user-supplied names never collide
    or leak into storage paths.

    Raises:
        DomainError: If the storage backend rejects the file.
    """
    _, ext = os.path.splitext(upload.name or "")
    name = f"{folder}/{uuid.uuid4().hex}{ext.lower()}"
    try:
        saved = default_storage.save(name, upload)
    except OSError as exc:
        logger.exception("Media upload to %s failed", folder)
        raise DomainError("Media upload failed, please retry.") from exc
    return default_storage.url(saved)
