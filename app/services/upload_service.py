"""
app/services/upload_service.py

Purpose: Identity document uploads

- Validates one file: allowed type (JPG, PNG, PDF) and size limit
- Stores it on local disk under a generated name
- Returns the public URL the user record keeps in id_upload
"""

import uuid
from pathlib import Path
from typing import Optional

from app.core.config import settings
from app.core.exceptions import ValidationError, UpstreamFailure
from app.core.logging import get_logger
from utils.constants import UPLOAD_INVALID_TYPE, UPLOAD_TOO_LARGE, UPLOAD_EMPTY, UPLOAD_EXTENSIONS

logger = get_logger(__name__)


def validate_upload(content_type: Optional[str], size: int) -> None:
    """
    Raises:
        ValidationError: empty file, disallowed type or over the size limit
    """
    if size <= 0:
        raise ValidationError(UPLOAD_EMPTY)

    if content_type not in settings.UPLOAD_ALLOWED_TYPES:
        raise ValidationError(UPLOAD_INVALID_TYPE, details={"content_type": content_type})

    if size > settings.UPLOAD_MAX_BYTES:
        max_mb = settings.UPLOAD_MAX_BYTES // (1024 * 1024)
        raise ValidationError(
            UPLOAD_TOO_LARGE.format(max_mb=max_mb),
            details={"size": size, "max_bytes": settings.UPLOAD_MAX_BYTES}
        )


class LocalFileStorage:
    """Writes uploads to UPLOAD_DIR; they are served back from /uploads."""

    def __init__(self, directory: Optional[str] = None, base_url: Optional[str] = None):
        self.directory = Path(directory or settings.UPLOAD_DIR)
        self.base_url = (base_url or settings.APP_URL).rstrip("/")

    def save(self, data: bytes, content_type: str) -> str:
        name = f"id-{uuid.uuid4().hex}{UPLOAD_EXTENSIONS.get(content_type, '')}"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            (self.directory / name).write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to store upload {name}: {e}", exc_info=True)
            raise UpstreamFailure("Could not store uploaded file", details=str(e)) from e

        logger.info(f"📎 Stored identity document {name} ({len(data)} bytes)")
        return f"{self.base_url}/uploads/{name}"


def store_id_document(data: bytes, content_type: Optional[str],
                      storage: Optional[LocalFileStorage] = None) -> str:
    validate_upload(content_type, len(data))
    return (storage or LocalFileStorage()).save(data, content_type)
