"""Helpers shared by the entity services."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from basegrid.core.errors import BadRequestError, ConflictError

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255


def clean_name(value: str | None, label: str = "Name") -> str:
    """Strip and validate a required display name."""
    name = (value or "").strip()
    if not name:
        raise BadRequestError(f"{label} is required")
    if len(name) > MAX_NAME_LENGTH:
        raise BadRequestError(f"{label} must be at most {MAX_NAME_LENGTH} characters")
    return name


def commit_or_conflict(db: Session, message: str) -> None:
    """Commit, turning a unique violation into ConflictError."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("Unique constraint violation", extra={"constraint": _constraint_name(exc)})
        raise ConflictError(message)


def add_or_conflict(db: Session, obj, message: str) -> None:
    """Add and flush ``obj`` inside a savepoint, turning a unique violation into ConflictError."""
    try:
        with db.begin_nested():
            db.add(obj)
    except IntegrityError as exc:
        logger.info("Unique constraint violation", extra={"constraint": _constraint_name(exc)})
        raise ConflictError(message)


def _constraint_name(exc: IntegrityError) -> str | None:
    diag = getattr(exc.orig, "diag", None)
    return getattr(diag, "constraint_name", None)
