"""Audit router - per-base activity log."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from basegrid.core.deps import get_db, require_base_action
from basegrid.core.permissions import Action, PermissionContext
from basegrid.db.enums import AuditAction
from basegrid.schemas.audit import AuditEventRead, AuditListResponse
from basegrid.services import audit_service
from basegrid.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/bases/{base_id}/audit", tags=["audit"])


@router.get("", response_model=AuditListResponse)
def list_audit_events(
    base_id: int,
    action: AuditAction | None = Query(None, description="Filter by action"),
    q: str | None = Query(None, max_length=200, description="Search in the summary"),
    since: datetime | None = Query(None, description="Events at or after this time"),
    until: datetime | None = Query(None, description="Events at or before this time"),
    table_id: int | None = Query(None, gt=0),
    record_id: int | None = Query(None, gt=0),
    field_id: int | None = Query(None, gt=0),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ)),
) -> AuditListResponse:
    """
    List audit events for the base, newest first.

    Requires: records:read on the base
    Filters: action, summary text, date range, table/record/field
    """
    items, total = audit_service.list_base_audit(
        db,
        base_id,
        action=action,
        q=q,
        since=since,
        until=until,
        table_id=table_id,
        record_id=record_id,
        field_id=field_id,
        page=pagination.page,
        per_page=pagination.per_page,
    )
    return AuditListResponse(
        items=[AuditEventRead.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
    )
