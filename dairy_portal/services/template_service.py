"""
Template Service — report template publishing and versioning.

A template family is identified by the id of its first version.  Only one
row per family is active; publishing a new version appends a row and
deactivates the previous one.
"""

import logging

from sqlalchemy import func, select, update

from dairy_portal.core.exceptions import NotFoundError, ValidationError
from dairy_portal.models import db
from dairy_portal.models.activity import write_activity
from dairy_portal.models.template import Template
from dairy_portal.services.helpers.files import store_file

logger = logging.getLogger(__name__)


def list_active(financial_year: str | None = None) -> list[Template]:
    """Active templates, newest first."""
    stmt = select(Template).where(Template.is_active.is_(True))
    if financial_year:
        stmt = stmt.where(Template.financial_year == financial_year)
    stmt = stmt.order_by(Template.created_at.desc(), Template.id.desc())
    return list(db.session.execute(stmt).scalars())


def get_template(template_id: int) -> Template:
    template = db.session.get(Template, template_id)
    if template is None:
        raise NotFoundError(resource="Template", resource_id=template_id)
    return template


def create_template(name: str, financial_year: str, file, admin, description: str | None = None) -> Template:
    """Publish version 1 of a new template family."""
    name = (name or "").strip()
    financial_year = (financial_year or "").strip()
    if not name or not financial_year:
        raise ValidationError(
            "name and financial_year are required",
            details={"name": name or None, "financial_year": financial_year or None},
        )

    file_name, blob = store_file(file, f"templates/{financial_year}")
    template = Template(
        version=1,
        name=name,
        description=description,
        file_name=file_name,
        file_url=blob.url,
        file_size=blob.size,
        financial_year=financial_year,
        is_active=True,
        uploaded_by=admin.id,
    )
    db.session.add(template)
    db.session.flush()
    template.family_id = template.id

    write_activity(
        actor=admin,
        action="CREATE_TEMPLATE",
        resource_type="TEMPLATE",
        resource_id=template.id,
        resource_name=template.name,
        description=f"Uploaded template: {template.name} ({financial_year})",
        metadata={"file_name": file_name, "file_size": blob.size},
    )
    db.session.commit()
    logger.info("Template created: %s", template.name, extra={"template_id": template.id})
    return template


def publish_version(template_id: int, file, admin, description: str | None = None) -> Template:
    """Append a new version to the family of ``template_id`` and make it active."""
    current = get_template(template_id)
    family_id = current.family_id or current.id

    latest_version = db.session.execute(
        select(func.max(Template.version)).where(Template.family_id == family_id)
    ).scalar() or current.version

    file_name, blob = store_file(file, f"templates/{current.financial_year}")

    db.session.execute(
        update(Template)
        .where(Template.family_id == family_id, Template.is_active.is_(True))
        .values(is_active=False)
    )
    template = Template(
        family_id=family_id,
        version=latest_version + 1,
        name=current.name,
        description=description if description is not None else current.description,
        file_name=file_name,
        file_url=blob.url,
        file_size=blob.size,
        financial_year=current.financial_year,
        is_active=True,
        uploaded_by=admin.id,
    )
    db.session.add(template)
    db.session.flush()

    write_activity(
        actor=admin,
        action="PUBLISH_TEMPLATE_VERSION",
        resource_type="TEMPLATE",
        resource_id=template.id,
        resource_name=template.name,
        description=f"Published version {template.version} of {template.name}",
        metadata={"family_id": family_id, "version": template.version},
    )
    db.session.commit()
    return template


def version_history(template_id: int) -> list[Template]:
    """Every version of the family ``template_id`` belongs to, newest first."""
    template = get_template(template_id)
    family_id = template.family_id or template.id
    return list(
        db.session.execute(
            select(Template)
            .where(Template.family_id == family_id)
            .order_by(Template.version.desc())
        ).scalars()
    )
