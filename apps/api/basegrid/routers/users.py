"""User administration endpoints (SYSADMIN)."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from basegrid.core.deps import (
    get_current_session,
    get_db,
    get_direct_db,
    require_csrf_header,
    require_platform_action,
)
from basegrid.core.permissions import Action
from basegrid.db.enums import PlatformRole
from basegrid.schemas.auth import UserSession
from basegrid.schemas.user import UserAdminListResponse, UserAdminRead, UserAdminUpdate
from basegrid.services import user_service
from basegrid.utils.pagination import PaginationParams, get_pagination

router = APIRouter(
    prefix="/users/admin",
    tags=["users"],
    dependencies=[Depends(require_platform_action(Action.PLATFORM_USERS_MANAGE))],
)


@router.get("", response_model=UserAdminListResponse)
def list_users(
    q: str | None = Query(None, max_length=200, description="Search in email and name"),
    platform_role: PlatformRole | None = Query(None),
    is_active: bool | None = Query(None),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
) -> UserAdminListResponse:
    users, total = user_service.list_users(
        db, pagination, q=q, platform_role=platform_role, is_active=is_active,
    )
    return UserAdminListResponse(
        items=[UserAdminRead.model_validate(user) for user in users],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
    )


@router.get("/{user_id}", response_model=UserAdminRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return user_service.get_user(db, user_id)


@router.patch(
    "/{user_id}",
    response_model=UserAdminRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_user(
    user_id: int,
    data: UserAdminUpdate,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
):
    """Change name, platform role, active flag or the base creation grant."""
    return user_service.update_user(db, user_id, session, **data.model_dump(exclude_unset=True))
