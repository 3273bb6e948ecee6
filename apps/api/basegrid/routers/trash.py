"""Trash endpoints - listings, restore, permanent delete and empty.

Owners see the trash of what they own; SYSADMIN sees everything.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from basegrid.core.deps import get_client_ip, get_current_session, get_db, get_direct_db, require_csrf_header
from basegrid.db.enums import TrashEntity
from basegrid.schemas.auth import UserSession
from basegrid.schemas.trash import TrashCountResponse, TrashItem
from basegrid.services import trash_service
from basegrid.services.trash_service import TrashScope

router = APIRouter(prefix="/trash", tags=["trash"])


def get_trash_scope(
    workspace_id: int | None = Query(None, gt=0),
    base_id: int | None = Query(None, gt=0),
    table_id: int | None = Query(None, gt=0),
    field_id: int | None = Query(None, gt=0),
    record_id: int | None = Query(None, gt=0),
    session: UserSession = Depends(get_current_session),
) -> TrashScope:
    return TrashScope(
        owner_id=None if session.is_sysadmin else session.user_id,
        workspace_id=workspace_id,
        base_id=base_id,
        table_id=table_id,
        field_id=field_id,
        record_id=record_id,
    )


def to_trash_item(entity: TrashEntity, row) -> TrashItem:
    spec = trash_service.get_spec(entity)
    return TrashItem(
        entity=spec.entity,
        id=row.id,
        name=getattr(row, spec.name_attr) if spec.name_attr else None,
        parent_id=getattr(row, spec.parent_fk) if spec.parent_fk else None,
        trashed_at=row.trashed_at,
    )


@router.get("/{entity}", response_model=list[TrashItem])
def list_trash(
    entity: TrashEntity,
    scope: TrashScope = Depends(get_trash_scope),
    db: Session = Depends(get_db),
):
    """Trashed items, newest first. Children of a trashed parent are hidden."""
    rows = trash_service.list_trash(db, entity, scope)
    return [to_trash_item(entity, row) for row in rows]


@router.post(
    "/{entity}/{entity_id}/restore",
    response_model=TrashItem,
    dependencies=[Depends(require_csrf_header)],
)
def restore_item(
    entity: TrashEntity,
    entity_id: int,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ip: str | None = Depends(get_client_ip),
):
    """Restore an item and its cascade children; colliding names get a suffix."""
    row = trash_service.restore(db, entity, entity_id, session, ip=ip)
    return to_trash_item(entity, row)


@router.delete(
    "/{entity}/{entity_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_item(
    entity: TrashEntity,
    entity_id: int,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ip: str | None = Depends(get_client_ip),
):
    trash_service.delete_permanently(db, entity, entity_id, session, ip=ip)


@router.delete(
    "/{entity}",
    response_model=TrashCountResponse,
    dependencies=[Depends(require_csrf_header)],
)
def empty_trash(
    entity: TrashEntity,
    scope: TrashScope = Depends(get_trash_scope),
    db: Session = Depends(get_direct_db),
):
    return TrashCountResponse(deleted=trash_service.empty_trash(db, entity, scope))
