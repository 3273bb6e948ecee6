"""Record and cell endpoints.

Cell values are keyed by field id; every active field is present in a
record's ``values`` and a missing cell reads as null.
"""

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
from basegrid.db.models import RecordRow
from basegrid.schemas.auth import UserSession
from basegrid.schemas.field import FieldRead
from basegrid.schemas.record import (
    CellRead,
    CellWrite,
    RecordCreate,
    RecordListResponse,
    RecordPatch,
    RecordRead,
)
from basegrid.services import record_service, table_service
from basegrid.services.cell_values import CellValue, to_json
from basegrid.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/bases/{base_id}/tables/{table_id}/records", tags=["records"])


def _record_read(record: RecordRow, values: dict[int, CellValue | None]) -> RecordRead:
    return RecordRead(
        id=record.id,
        table_id=record.table_id,
        created_by_id=record.created_by_id,
        updated_by_id=record.updated_by_id,
        created_at=record.created_at,
        updated_at=record.updated_at,
        values={str(field_id): to_json(value) for field_id, value in values.items()},
    )


@router.get("", response_model=RecordListResponse)
def list_records(
    base_id: int,
    table_id: int,
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ)),
):
    fields, records, values, total = record_service.list_records(db, base_id, table_id, pagination)
    return RecordListResponse(
        fields=[FieldRead.model_validate(field) for field in fields],
        items=[_record_read(record, values[record.id]) for record in records],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
    )


@router.post(
    "",
    response_model=RecordRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_record(
    base_id: int,
    table_id: int,
    data: RecordCreate,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_CREATE)),
    ip: str | None = Depends(get_client_ip),
):
    record = record_service.create_record(db, base_id, table_id, session, data.values, ip=ip)
    return _record_read(record, record_service.record_values(db, table_id, record))


@router.get("/{record_id}", response_model=RecordRead)
def get_record(
    base_id: int,
    table_id: int,
    record_id: int,
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ)),
):
    table_service.get_table(db, base_id, table_id)
    record = record_service.get_record(db, table_id, record_id)
    return _record_read(record, record_service.record_values(db, table_id, record))


@router.patch(
    "/{record_id}",
    response_model=RecordRead,
    dependencies=[Depends(require_csrf_header)],
)
def patch_record(
    base_id: int,
    table_id: int,
    record_id: int,
    data: RecordPatch,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_UPDATE)),
    ip: str | None = Depends(get_client_ip),
):
    """Write several cells in one transaction; any invalid value rejects them all."""
    record = record_service.patch_record(db, base_id, table_id, record_id, data.values, session, ip=ip)
    return _record_read(record, record_service.record_values(db, table_id, record))


@router.put(
    "/{record_id}/cells/{field_id}",
    response_model=CellRead,
    dependencies=[Depends(require_csrf_header)],
)
def write_cell(
    base_id: int,
    table_id: int,
    record_id: int,
    field_id: int,
    data: CellWrite,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_UPDATE)),
    ip: str | None = Depends(get_client_ip),
):
    value = record_service.write_cell(
        db, base_id, table_id, record_id, field_id, data.value, session, ip=ip
    )
    return CellRead(record_id=record_id, field_id=field_id, value=to_json(value))


@router.delete(
    "/{record_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def trash_record(
    base_id: int,
    table_id: int,
    record_id: int,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_DELETE)),
    ip: str | None = Depends(get_client_ip),
):
    record_service.trash_record(db, base_id, table_id, record_id, session, ip=ip)
