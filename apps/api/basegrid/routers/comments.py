"""Record comment endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from basegrid.core.deps import (
    get_client_ip,
    get_current_session,
    get_db,
    require_base_action,
    require_csrf_header,
)
from basegrid.core.permissions import Action, PermissionContext
from basegrid.schemas.auth import UserSession
from basegrid.schemas.comment import CommentCreate, CommentRead, CommentUpdate
from basegrid.services import comment_service

router = APIRouter(
    prefix="/bases/{base_id}/tables/{table_id}/records/{record_id}/comments",
    tags=["comments"],
)


@router.get("", response_model=list[CommentRead])
def list_comments(
    base_id: int,
    table_id: int,
    record_id: int,
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ)),
):
    return comment_service.list_comments(db, base_id, table_id, record_id)


@router.post(
    "",
    response_model=CommentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_comment(
    base_id: int,
    table_id: int,
    record_id: int,
    data: CommentCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.COMMENTS_CREATE)),
    ip: str | None = Depends(get_client_ip),
):
    return comment_service.create_comment(db, base_id, table_id, record_id, data.body, session, ip=ip)


@router.patch(
    "/{comment_id}",
    response_model=CommentRead,
    dependencies=[Depends(require_csrf_header)],
)
def edit_comment(
    base_id: int,
    table_id: int,
    record_id: int,
    comment_id: int,
    data: CommentUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.COMMENTS_CREATE)),
    ip: str | None = Depends(get_client_ip),
):
    """Only the author (or a SYSADMIN) may edit."""
    return comment_service.edit_comment(
        db, base_id, table_id, record_id, comment_id, data.body, session, ip=ip
    )


@router.delete(
    "/{comment_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def trash_comment(
    base_id: int,
    table_id: int,
    record_id: int,
    comment_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.COMMENTS_CREATE)),
    ip: str | None = Depends(get_client_ip),
):
    comment_service.trash_comment(db, base_id, table_id, record_id, comment_id, session, ip=ip)
