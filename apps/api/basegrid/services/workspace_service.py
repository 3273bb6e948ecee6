"""Workspace service - owner-scoped containers of bases."""

import logging

from sqlalchemy.orm import Session

from basegrid.core.errors import ForbiddenError, NotFoundError
from basegrid.db.enums import TrashEntity
from basegrid.db.models import Workspace
from basegrid.schemas.auth import UserSession
from basegrid.services import trash_service
from basegrid.services.common import clean_name, commit_or_conflict

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "You already have a workspace with that name"


def create_workspace(db: Session, owner_id: int, name: str) -> Workspace:
    workspace = Workspace(owner_id=owner_id, name=clean_name(name, "Workspace name"))
    db.add(workspace)
    commit_or_conflict(db, DUPLICATE_NAME)
    db.refresh(workspace)
    logger.info("Workspace created", extra={"workspace_id": workspace.id, "owner_id": owner_id})
    return workspace


def list_workspaces(db: Session, session: UserSession) -> list[Workspace]:
    """Active workspaces of the actor (all of them for SYSADMIN)."""
    query = db.query(Workspace).filter(Workspace.is_trashed.is_(False))
    if not session.is_sysadmin:
        query = query.filter(Workspace.owner_id == session.user_id)
    return query.order_by(Workspace.id.asc()).all()


def get_workspace(db: Session, workspace_id: int, session: UserSession) -> Workspace:
    """Active workspace visible to the actor; anything else is NotFound."""
    workspace = db.get(Workspace, workspace_id)
    if workspace is None or workspace.is_trashed:
        raise NotFoundError("Workspace not found")
    if not session.is_sysadmin and workspace.owner_id != session.user_id:
        raise NotFoundError("Workspace not found")
    return workspace


def _ensure_owner(workspace: Workspace, session: UserSession) -> None:
    if not session.is_sysadmin and workspace.owner_id != session.user_id:
        raise ForbiddenError("Only the owner can change this workspace")


def rename_workspace(db: Session, workspace_id: int, name: str, session: UserSession) -> Workspace:
    workspace = db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    _ensure_owner(workspace, session)
    workspace = trash_service.guarded_update(
        db,
        TrashEntity.WORKSPACE,
        workspace_id,
        {"name": clean_name(name, "Workspace name")},
    )
    db.commit()
    return workspace


def trash_workspace(db: Session, workspace_id: int, session: UserSession) -> Workspace:
    """Move a workspace, its bases and their tables to the trash."""
    workspace = db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    _ensure_owner(workspace, session)
    return trash_service.soft_delete(db, TrashEntity.WORKSPACE, workspace_id, actor=session)
