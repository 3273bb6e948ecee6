"""Base service - create, list, update, move and trash bases."""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from basegrid.core.errors import ConflictError, ForbiddenError, NotFoundError, TrashedError
from basegrid.db.enums import AuditAction, BaseRole, BaseVisibility, TrashEntity
from basegrid.db.models import BaseDef, BaseMember, Workspace
from basegrid.schemas.auth import UserSession
from basegrid.services import audit_service, trash_service
from basegrid.services.common import clean_name, commit_or_conflict

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "Duplicate base name for this owner"


def _active_owned_workspace(db: Session, workspace_id: int, owner_id: int) -> Workspace:
    workspace = db.get(Workspace, workspace_id)
    if workspace is None or workspace.is_trashed:
        raise NotFoundError("Workspace not found")
    if workspace.owner_id != owner_id:
        raise ForbiddenError("The workspace belongs to another owner")
    return workspace


def create_base(
    db: Session,
    session: UserSession,
    *,
    name: str,
    visibility: BaseVisibility = BaseVisibility.PRIVATE,
    workspace_id: int | None = None,
    ip: str | None = None,
) -> BaseDef:
    if workspace_id is not None:
        _active_owned_workspace(db, workspace_id, session.user_id)

    base = BaseDef(
        owner_id=session.user_id,
        workspace_id=workspace_id,
        name=clean_name(name, "Base name"),
        visibility=BaseVisibility(visibility).value,
    )
    db.add(base)
    commit_or_conflict(db, DUPLICATE_NAME)
    db.refresh(base)

    audit_service.log_event(
        db,
        base.id,
        AuditAction.BASE_CREATED,
        f'Base "{base.name}" created',
        user_id=session.user_id,
        details={"visibility": base.visibility, "workspace_id": workspace_id},
        ip=ip,
    )
    return base


def list_accessible_bases(
    db: Session,
    session: UserSession,
    *,
    workspace_id: int | None = None,
) -> list[tuple[BaseDef, BaseRole | None]]:
    """
    Active bases the actor can see, with the actor's membership role.

    Visible = PUBLIC, owned, or with a membership row. SYSADMIN sees all.
    """
    query = (
        db.query(BaseDef, BaseMember.role)
        .outerjoin(
            BaseMember,
            (BaseMember.base_id == BaseDef.id) & (BaseMember.user_id == session.user_id),
        )
        .options(joinedload(BaseDef.owner))
        .filter(BaseDef.is_trashed.is_(False))
    )
    if workspace_id is not None:
        query = query.filter(BaseDef.workspace_id == workspace_id)
    if not session.is_sysadmin:
        query = query.filter(
            or_(
                BaseDef.visibility == BaseVisibility.PUBLIC.value,
                BaseDef.owner_id == session.user_id,
                BaseMember.id.isnot(None),
            )
        )
    rows = query.order_by(BaseDef.id.asc()).all()
    return [(base, BaseRole(role) if role else None) for base, role in rows]


def get_base(db: Session, base_id: int) -> BaseDef:
    """Active base, or NotFound (trashed bases are not distinguished)."""
    base = db.get(BaseDef, base_id)
    if base is None or base.is_trashed:
        raise NotFoundError("Base not found")
    return base


def update_base(
    db: Session,
    base_id: int,
    session: UserSession,
    *,
    name: str | None = None,
    visibility: BaseVisibility | None = None,
    ip: str | None = None,
) -> BaseDef:
    """Rename and/or change visibility. Trash state is checked inside the UPDATE."""
    base = db.get(BaseDef, base_id)
    if base is None:
        raise NotFoundError("Base not found")
    old_name, old_visibility = base.name, base.visibility

    values: dict = {}
    if name is not None:
        values["name"] = clean_name(name, "Base name")
    if visibility is not None:
        values["visibility"] = BaseVisibility(visibility).value
    if not values:
        trash_service.ensure_active(db, TrashEntity.BASE, base)
        return base

    base = trash_service.guarded_update(db, TrashEntity.BASE, base_id, values)
    db.commit()

    if name is not None and base.name != old_name:
        audit_service.log_event(
            db, base.id, AuditAction.BASE_RENAMED,
            f'Base renamed from "{old_name}" to "{base.name}"',
            user_id=session.user_id,
            details={"from": old_name, "to": base.name},
            ip=ip,
        )
    if visibility is not None and base.visibility != old_visibility:
        audit_service.log_event(
            db, base.id, AuditAction.BASE_VISIBILITY_CHANGED,
            f"Visibility changed to {base.visibility}",
            user_id=session.user_id,
            details={"from": old_visibility, "to": base.visibility},
            ip=ip,
        )
    return base


def move_base(
    db: Session,
    base_id: int,
    workspace_id: int,
    session: UserSession,
    *,
    ip: str | None = None,
) -> BaseDef:
    """Move a base into another active workspace of the same owner."""
    base = db.get(BaseDef, base_id)
    if base is None:
        raise NotFoundError("Base not found")
    if base.is_trashed:
        raise TrashedError("Base is in trash, restore it first")

    workspace = db.get(Workspace, workspace_id)
    if workspace is None or workspace.is_trashed:
        raise NotFoundError("Target workspace not found")
    if workspace.owner_id != base.owner_id:
        raise ConflictError("Cannot move a base into a workspace of another owner")
    if not session.is_sysadmin and session.user_id != base.owner_id:
        raise ForbiddenError("Only the owner can move this base")

    previous = base.workspace_id
    base = trash_service.guarded_update(db, TrashEntity.BASE, base_id, {"workspace_id": workspace_id})
    db.commit()

    audit_service.log_event(
        db, base.id, AuditAction.BASE_MOVED,
        f'Base moved to workspace "{workspace.name}"',
        user_id=session.user_id,
        details={"from": previous, "to": workspace_id},
        ip=ip,
    )
    return base


def trash_base(db: Session, base_id: int, session: UserSession, *, ip: str | None = None) -> BaseDef:
    return trash_service.soft_delete(db, TrashEntity.BASE, base_id, actor=session, ip=ip)
