from __future__ import annotations

import logging
import shutil
import time
import uuid
from pathlib import Path
from typing import Any, BinaryIO

from portale.errors import ValidationError
from portale.settings import get_settings

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".jpg", ".jpeg", ".png"})


def store_document(
    *,
    folder: str,
    slot: str,
    original_name: str,
    content_type: str | None,
    stream: BinaryIO,
    base_dir: Path | None = None,
) -> dict[str, Any]:
    """
    Save an uploaded document and return the metadata stored on the entity.

    Files land in `<upload_dir>/<folder>/<slot>-<timestamp>-<random><ext>`.
    """

    extension = Path(original_name or "").suffix.lower()
    if extension not in DOCUMENT_EXTENSIONS:
        raise ValidationError("Only PDF, DOC, DOCX, JPG, JPEG, PNG files are allowed for documents!")

    target_dir = (base_dir or get_settings().resolved_upload_dir()) / folder
    target_dir.mkdir(parents=True, exist_ok=True)

    filename = f"{slot}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}{extension}"
    target = target_dir / filename
    with target.open("wb") as out:
        shutil.copyfileobj(stream, out)

    return {
        "filename": filename,
        "original_name": original_name,
        "path": str(target),
        "mimetype": content_type or "application/octet-stream",
        "size": target.stat().st_size,
    }


def remove_document(meta: dict[str, Any] | None) -> None:
    """Delete a stored document. A file that is already gone is not an error."""

    if not meta or not meta.get("path"):
        return
    path = Path(meta["path"])
    try:
        path.unlink()
    except FileNotFoundError:
        logger.debug("Document already missing on disk path=%s", path)
    except OSError:
        logger.warning("Could not delete document path=%s", path, exc_info=True)
