"""Base membership endpoints."""

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
from basegrid.schemas.member import MemberAdd, MemberRead, MemberUpdate
from basegrid.services import member_service

router = APIRouter(prefix="/bases/{base_id}/members", tags=["members"])


@router.get("", response_model=list[MemberRead])
def list_members(
    base_id: int,
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.BASE_VIEW)),
):
    return member_service.list_members(db, base_id)


@router.post(
    "",
    response_model=MemberRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_member(
    base_id: int,
    data: MemberAdd,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.MEMBERS_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return member_service.add_member(
        db, base_id, data.role, session, user_id=data.user_id, email=data.email, ip=ip
    )


@router.patch(
    "/{member_id}",
    response_model=MemberRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_member(
    base_id: int,
    member_id: int,
    data: MemberUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.MEMBERS_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return member_service.update_member_role(db, base_id, member_id, data.role, session, ip=ip)


@router.delete(
    "/{member_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def remove_member(
    base_id: int,
    member_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.MEMBERS_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    member_service.remove_member(db, base_id, member_id, session, ip=ip)
