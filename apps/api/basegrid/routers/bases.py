"""Base endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from basegrid.core.deps import (
    get_client_ip,
    get_current_session,
    get_db,
    get_direct_db,
    require_base_action,
    require_csrf_header,
    require_platform_action,
)
from basegrid.core.permissions import Action, PermissionContext
from basegrid.schemas.auth import UserSession
from basegrid.schemas.base import BaseCreate, BaseListItem, BaseMove, BaseRead, BaseUpdate
from basegrid.schemas.user import UserSummary
from basegrid.services import base_service, permission_service

router = APIRouter(prefix="/bases", tags=["bases"])


@router.get("", response_model=list[BaseListItem])
def list_bases(
    workspace_id: int | None = Query(None, gt=0),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """Bases the actor can see: public, owned, or shared with them."""
    rows = base_service.list_accessible_bases(db, session, workspace_id=workspace_id)
    return [
        BaseListItem(
            **BaseRead.model_validate(base).model_dump(),
            owner=UserSummary.model_validate(base.owner),
            membership_role=role,
        )
        for base, role in rows
    ]


@router.post(
    "",
    response_model=BaseRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(require_platform_action(Action.BASES_CREATE))],
)
def create_base(
    data: BaseCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    ip: str | None = Depends(get_client_ip),
):
    return base_service.create_base(
        db,
        session,
        name=data.name,
        visibility=data.visibility,
        workspace_id=data.workspace_id,
        ip=ip,
    )


@router.get("/{base_id}", response_model=BaseRead)
def get_base(
    base_id: int,
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.BASE_VIEW)),
):
    return base_service.get_base(db, base_id)


@router.patch(
    "/{base_id}",
    response_model=BaseRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_base(
    base_id: int,
    data: BaseUpdate,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.BASE_VIEW)),
    ip: str | None = Depends(get_client_ip),
):
    """Rename (schema:manage) and/or change visibility (base:visibility)."""
    if data.name is not None:
        permission_service.ensure_can(ctx, Action.SCHEMA_MANAGE)
    if data.visibility is not None:
        permission_service.ensure_can(ctx, Action.BASE_VISIBILITY)
    return base_service.update_base(
        db, base_id, session, name=data.name, visibility=data.visibility, ip=ip
    )


@router.post(
    "/{base_id}/move",
    response_model=BaseRead,
    dependencies=[Depends(require_csrf_header)],
)
def move_base(
    base_id: int,
    data: BaseMove,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return base_service.move_base(db, base_id, data.workspace_id, session, ip=ip)


@router.delete(
    "/{base_id}",
    response_model=BaseRead,
    dependencies=[Depends(require_csrf_header)],
)
def trash_base(
    base_id: int,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.BASE_DELETE)),
    ip: str | None = Depends(get_client_ip),
):
    """Move the base and its tables to the trash."""
    return base_service.trash_base(db, base_id, session, ip=ip)
