"""Multipart upload helper — validates and stores files under UPLOAD_DIR."""

from __future__ import annotations

import logging
import os
import uuid
from typing import Any

from fastapi import UploadFile

from hrms.common.exceptions import ValidationException
from hrms.config import settings

logger = logging.getLogger(__name__)

IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
DOCUMENT_TYPES = IMAGE_TYPES | {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


async def save_upload(
    file: UploadFile,
    sub_dir: str,
    allowed_types: set[str],
    *,
    field: str = "file",
) -> dict[str, Any]:
    """Validate MIME type and size, write to disk, return file metadata.

    The stored name is a random UUID plus the original extension so that
    user-supplied names never reach the filesystem.
    """
    if file.content_type not in allowed_types:
        raise ValidationException(
            {field: [f"File type '{file.content_type}' not allowed."]},
        )

    contents = await file.read()

    max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(contents) > max_size:
        raise ValidationException(
            {field: [f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB} MB."]},
        )

    upload_dir = os.path.join(settings.UPLOAD_DIR, sub_dir)
    os.makedirs(upload_dir, exist_ok=True)

    ext = os.path.splitext(file.filename or "")[1].lower()
    safe_name = f"{uuid.uuid4().hex}{ext}"
    file_path = os.path.join(upload_dir, safe_name)

    with open(file_path, "wb") as f:
        f.write(contents)

    logger.info("Stored upload %s (%d bytes) in %s", safe_name, len(contents), sub_dir)
    return {
        "url": f"/uploads/{sub_dir}/{safe_name}",
        "filename": safe_name,
        "original_name": file.filename,
        "content_type": file.content_type,
        "size": len(contents),
    }
