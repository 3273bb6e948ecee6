"""Workspace endpoints - containers of bases owned by one user."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from basegrid.core.deps import (
    get_current_session,
    get_db,
    get_direct_db,
    require_csrf_header,
    require_platform_action,
)
from basegrid.core.permissions import Action
from basegrid.schemas.auth import UserSession
from basegrid.schemas.workspace import WorkspaceCreate, WorkspaceRead, WorkspaceUpdate
from basegrid.services import workspace_service

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get("", response_model=list[WorkspaceRead])
def list_workspaces(
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    return workspace_service.list_workspaces(db, session)


@router.post(
    "",
    response_model=WorkspaceRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(require_platform_action(Action.BASES_CREATE))],
)
def create_workspace(
    data: WorkspaceCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    return workspace_service.create_workspace(db, session.user_id, data.name)


@router.get("/{workspace_id}", response_model=WorkspaceRead)
def get_workspace(
    workspace_id: int,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    return workspace_service.get_workspace(db, workspace_id, session)


@router.patch(
    "/{workspace_id}",
    response_model=WorkspaceRead,
    dependencies=[Depends(require_csrf_header)],
)
def rename_workspace(
    workspace_id: int,
    data: WorkspaceUpdate,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
):
    return workspace_service.rename_workspace(db, workspace_id, data.name, session)


@router.delete(
    "/{workspace_id}",
    response_model=WorkspaceRead,
    dependencies=[Depends(require_csrf_header)],
)
def trash_workspace(
    workspace_id: int,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
):
    """Move the workspace and everything in it to the trash."""
    return workspace_service.trash_workspace(db, workspace_id, session)
