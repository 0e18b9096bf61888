"""
Upload Service — user submissions of filled templates and their review.
"""

import logging

from sqlalchemy import select

from dairy_portal.core.exceptions import NotFoundError, ValidationError
from dairy_portal.models import db
from dairy_portal.models.activity import write_activity
from dairy_portal.models.template import Template
from dairy_portal.models.upload import UPLOAD_PENDING, VALID_UPLOAD_STATUSES, Upload
from dairy_portal.services.helpers.files import store_file

logger = logging.getLogger(__name__)


def get_upload(upload_id: int) -> Upload:
    upload = db.session.get(Upload, upload_id)
    if upload is None:
        raise NotFoundError(resource="Upload", resource_id=upload_id)
    return upload


def create_upload(user, file, financial_year: str | None = None,
                  template_id: int | None = None, description: str | None = None) -> Upload:
    """Store a filled template for ``user``; status starts PENDING.

    The financial year falls back to the template's when not given.
    """
    template = None
    if template_id is not None:
        template = db.session.get(Template, template_id)
        if template is None:
            raise NotFoundError(resource="Template", resource_id=template_id)

    financial_year = (financial_year or "").strip() or (template.financial_year if template else "")
    if not financial_year:
        raise ValidationError("financial_year is required", details={"financial_year": None})

    file_name, blob = store_file(file, f"uploads/{user.id}/{financial_year}")
    upload = Upload(
        user_id=user.id,
        template_id=template.id if template else None,
        file_name=file_name,
        file_url=blob.url,
        file_size=blob.size,
        financial_year=financial_year,
        description=description,
        status=UPLOAD_PENDING,
    )
    db.session.add(upload)
    db.session.flush()

    write_activity(
        actor=user,
        action="UPLOAD_TEMPLATE",
        resource_type="UPLOAD",
        resource_id=upload.id,
        resource_name=file_name,
        description=f"Uploaded filled template: {file_name}",
        metadata={"financial_year": financial_year, "file_size": blob.size,
                  "template_id": upload.template_id},
    )
    db.session.commit()
    logger.info("Upload stored", extra={"upload_id": upload.id, "user_id": user.id})
    return upload


def list_for_user(user_id: int) -> list[Upload]:
    return list(
        db.session.execute(
            select(Upload)
            .where(Upload.user_id == user_id)
            .order_by(Upload.created_at.desc(), Upload.id.desc())
        ).scalars()
    )


def list_all(status: str | None = None) -> list[Upload]:
    stmt = select(Upload)
    if status:
        stmt = stmt.where(Upload.status == status.upper())
    stmt = stmt.order_by(Upload.created_at.desc(), Upload.id.desc())
    return list(db.session.execute(stmt).scalars())


def set_status(upload_id: int, status: str, admin) -> Upload:
    """Approve, reject or reopen an upload."""
    status = (status or "").strip().upper()
    if status not in VALID_UPLOAD_STATUSES:
        raise ValidationError(
            f"Invalid upload status '{status}'",
            details={"allowed": sorted(VALID_UPLOAD_STATUSES)},
        )
    upload = get_upload(upload_id)
    previous = upload.status
    upload.status = status

    write_activity(
        actor=admin,
        action="UPDATE_UPLOAD",
        resource_type="UPLOAD",
        resource_id=upload.id,
        resource_name=upload.file_name,
        description=f"Changed upload status {previous} → {status}",
        metadata={"from": previous, "to": status},
    )
    db.session.commit()
    return upload
