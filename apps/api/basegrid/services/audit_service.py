"""Audit logging service - per-base event trail.

Guidelines:
- log_event runs after the primary mutation has committed
- failures are logged and swallowed, never surfaced to the caller
- IP is stored but never serialized (see schemas.audit)
- IP: Trust X-Forwarded-For only behind a configured proxy
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from basegrid.core.config import settings
from basegrid.core.errors import BadRequestError
from basegrid.db.enums import AuditAction
from basegrid.db.models import AuditEvent
from basegrid.utils.clock import as_utc
from basegrid.utils.pagination import PaginationParams

logger = logging.getLogger(__name__)


def get_client_ip(request: Request | None) -> str | None:
    """
    Extract client IP from request.

    Only trusts X-Forwarded-For when TRUST_PROXY_HEADERS=True (behind reverse proxy).
    """
    if not request:
        return None

    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For: client, proxy1, proxy2 - take first
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


def log_event(
    db: Session,
    base_id: int,
    action: AuditAction,
    summary: str,
    *,
    user_id: int | None = None,
    table_id: int | None = None,
    record_id: int | None = None,
    field_id: int | None = None,
    details: dict[str, Any] | None = None,
    ip: str | None = None,
) -> AuditEvent | None:
    """
    Record an audit event for a base, best effort.

    Commits its own row. On failure the session is rolled back, the error is
    logged and None is returned.
    """
    entry = AuditEvent(
        base_id=base_id,
        action=action.value,
        summary=summary[:500],
        details=details,
        ip=ip,
        user_id=user_id,
        table_id=table_id,
        record_id=record_id,
        field_id=field_id,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Audit event could not be written",
            extra={"base_id": base_id, "action": action.value},
        )
        return None
    return entry


def list_base_audit(
    db: Session,
    base_id: int,
    *,
    action: AuditAction | None = None,
    q: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    table_id: int | None = None,
    record_id: int | None = None,
    field_id: int | None = None,
    page: int = 1,
    per_page: int = 30,
) -> tuple[list[AuditEvent], int]:
    """List audit events for a base, newest first. Returns (items, total)."""
    since = as_utc(since) if since else None
    until = as_utc(until) if until else None
    if since and until and since > until:
        raise BadRequestError("'since' must be before 'until'")

    query = db.query(AuditEvent).filter(AuditEvent.base_id == base_id)

    if action:
        query = query.filter(AuditEvent.action == action.value)
    if q and q.strip():
        query = query.filter(AuditEvent.summary.ilike(f"%{q.strip()}%"))
    if since:
        query = query.filter(AuditEvent.created_at >= since)
    if until:
        query = query.filter(AuditEvent.created_at <= until)
    if table_id:
        query = query.filter(AuditEvent.table_id == table_id)
    if record_id:
        query = query.filter(AuditEvent.record_id == record_id)
    if field_id:
        query = query.filter(AuditEvent.field_id == field_id)

    query = query.options(joinedload(AuditEvent.user)).order_by(
        AuditEvent.created_at.desc(), AuditEvent.id.desc()
    )
    return PaginationParams(page=page, per_page=per_page).apply(query)
