"""Table endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from basegrid.core.deps import (
    get_client_ip,
    get_current_session,
    get_db,
    get_direct_db,
    require_base_action,
    require_csrf_header,
)
from basegrid.core.permissions import Action, PermissionContext
from basegrid.schemas.auth import UserSession
from basegrid.schemas.table import ReorderRequest, TableCreate, TableRead, TableUpdate
from basegrid.services import base_service, table_service

router = APIRouter(prefix="/bases/{base_id}/tables", tags=["tables"])


@router.get("", response_model=list[TableRead])
def list_tables(
    base_id: int,
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ)),
):
    base_service.get_base(db, base_id)
    return table_service.list_tables(db, base_id)


@router.post(
    "",
    response_model=TableRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_table(
    base_id: int,
    data: TableCreate,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return table_service.create_table(db, base_id, data.name, session, ip=ip)


@router.put(
    "/order",
    response_model=list[TableRead],
    dependencies=[Depends(require_csrf_header)],
)
def reorder_tables(
    base_id: int,
    data: ReorderRequest,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return table_service.reorder_tables(db, base_id, data.ids, session, ip=ip)


@router.get("/{table_id}", response_model=TableRead)
def get_table(
    base_id: int,
    table_id: int,
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ)),
):
    return table_service.get_table(db, base_id, table_id)


@router.patch(
    "/{table_id}",
    response_model=TableRead,
    dependencies=[Depends(require_csrf_header)],
)
def rename_table(
    base_id: int,
    table_id: int,
    data: TableUpdate,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return table_service.rename_table(db, base_id, table_id, data.name, session, ip=ip)


@router.delete(
    "/{table_id}",
    response_model=TableRead,
    dependencies=[Depends(require_csrf_header)],
)
def trash_table(
    base_id: int,
    table_id: int,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return table_service.trash_table(db, base_id, table_id, session, ip=ip)
