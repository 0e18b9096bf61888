"""Shared request-parsing and persistence helpers for blueprints.

parse_date:         returns None on bad input
parse_int:          returns None on bad input
require_fields:     collects missing form / JSON fields
db_commit_or_error: commit, or roll back and return a JSON error
"""
import logging
from datetime import date, datetime

from dairy_portal.models import db
from dairy_portal.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse an ISO date or datetime string.

    Returns a ``datetime`` (midnight for plain dates) or None for
    empty/invalid input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value))
    except (ValueError, TypeError):
        return None


def parse_int(value):
    """Coerce a query/form value to int, or None."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def require_fields(source, *names) -> list[str]:
    """Return the subset of ``names`` that are missing or blank in ``source``."""
    missing = []
    for name in names:
        val = source.get(name)
        if val is None or (isinstance(val, str) and not val.strip()):
            missing.append(name)
    return missing


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure — ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    Other SQLAlchemyError → 500
    """
    from sqlalchemy.exc import IntegrityError, SQLAlchemyError

    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error on commit")
        return api_error(E.DATABASE, "Database error")
