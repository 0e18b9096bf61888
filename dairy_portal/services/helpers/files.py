"""
Submitted-file intake shared by the template, upload and draft services.

Validates the incoming werkzeug ``FileStorage``, normalises its name and
hands the bytes to the configured blob backend.  The returned URL is
stored verbatim by the caller.
"""

import logging

from werkzeug.utils import secure_filename

from dairy_portal.core.exceptions import ValidationError
from dairy_portal.integrations.blob_storage import BlobResult, get_blob_storage

logger = logging.getLogger(__name__)


def clean_file_name(file) -> str:
    """Return a filesystem-safe name for ``file`` or raise ValidationError."""
    if file is None or not getattr(file, "filename", None):
        raise ValidationError("A file is required", details={"file": "missing"})
    name = secure_filename(file.filename)
    if not name:
        raise ValidationError("File name is not valid", details={"file": file.filename})
    return name


def store_file(file, folder: str) -> tuple[str, BlobResult]:
    """Put ``file`` under ``folder/<name>``; returns ``(name, blob)``."""
    name = clean_file_name(file)
    blob = get_blob_storage().put(
        f"{folder.strip('/')}/{name}",
        file,
        content_type=getattr(file, "mimetype", None) or None,
    )
    logger.info("Stored file %s (%d bytes) at %s", name, blob.size, blob.url)
    return name, blob
