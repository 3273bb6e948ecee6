"""Record service - rows of a table and writes to their cells.

Cell writes run in one transaction per request and strictly sequentially,
one field after another.
"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from basegrid.core.errors import BadRequestError, NotFoundError
from basegrid.db.enums import AuditAction, FieldType, TrashEntity
from basegrid.db.models import Field, RecordRow
from basegrid.schemas.auth import UserSession
from basegrid.services import audit_service, cell_storage, field_service, table_service, trash_service
from basegrid.services.cell_values import CellValue, coerce_value
from basegrid.utils.pagination import PaginationParams

logger = logging.getLogger(__name__)


def load_record(db: Session, table_id: int, record_id: int) -> RecordRow:
    record = db.get(RecordRow, record_id)
    if record is None or record.table_id != table_id:
        raise NotFoundError("Record not found in this table")
    return record


def get_record(db: Session, table_id: int, record_id: int) -> RecordRow:
    record = load_record(db, table_id, record_id)
    if record.is_trashed:
        raise NotFoundError("Record not found in this table")
    return record


def parse_values(values: dict[Any, Any] | None) -> dict[int, Any]:
    """Normalize a {field_id: raw} mapping whose keys may arrive as strings."""
    parsed: dict[int, Any] = {}
    for key, raw in (values or {}).items():
        try:
            field_id = int(key)
        except (TypeError, ValueError):
            raise BadRequestError(f"Invalid field id: {key}")
        parsed[field_id] = raw
    return parsed


def _lock_fields(db: Session, table_id: int, field_ids: list[int]) -> dict[int, Field]:
    """Active fields of the table, share-locked against concurrent type changes."""
    fields = (
        db.query(Field)
        .filter(
            Field.table_id == table_id,
            Field.id.in_(field_ids),
            Field.is_trashed.is_(False),
        )
        .order_by(Field.id.asc())
        .with_for_update(read=True)
        .all()
    )
    return {field.id: field for field in fields}


def coerce_for_field(db: Session, field: Field, raw: Any) -> CellValue | None:
    field_type = FieldType(field.type)
    valid_option_ids: set[int] = set()
    if field_type.is_select:
        valid_option_ids = cell_storage.active_option_ids_by_field(db, [field.id]).get(field.id, set())
    return coerce_value(field_type, raw, valid_option_ids=valid_option_ids)


def _write_values(
    db: Session,
    table_id: int,
    record: RecordRow,
    values: dict[int, Any],
    user_id: int | None,
) -> None:
    if not values:
        return
    fields = _lock_fields(db, table_id, list(values))
    missing = sorted(field_id for field_id in values if field_id not in fields)
    if missing:
        raise BadRequestError(
            f"Fields do not exist in this table: {', '.join(map(str, missing))}",
            details={"missing_field_ids": missing},
        )

    for field_id in sorted(values):
        field = fields[field_id]
        value = coerce_for_field(db, field, values[field_id])
        cell_storage.store_value(db, record.id, field, value, user_id)
    record.updated_by_id = user_id


def write_cell(
    db: Session,
    base_id: int,
    table_id: int,
    record_id: int,
    field_id: int,
    raw_value: Any,
    session: UserSession,
    *,
    ip: str | None = None,
) -> CellValue | None:
    """
    Coerce and store one cell value. None clears the cell.

    Raises:
        NotFoundError: record or field not in this table
        BadRequestError: value cannot be coerced to the field type
        TrashedError: record or an ancestor is in the trash
    """
    table_service.load_table(db, base_id, table_id)
    record = load_record(db, table_id, record_id)
    trash_service.ensure_active(db, TrashEntity.RECORD, record)

    fields = _lock_fields(db, table_id, [field_id])
    field = fields.get(field_id)
    if field is None:
        raise NotFoundError("Field not found")

    try:
        value = coerce_for_field(db, field, raw_value)
        cell_storage.store_value(db, record.id, field, value, session.user_id)
        record.updated_by_id = session.user_id
        db.commit()
    except Exception:
        db.rollback()
        raise

    audit_service.log_event(
        db, base_id, AuditAction.CELL_UPDATED,
        f'Cell "{field.name}" updated on record #{record_id}',
        user_id=session.user_id,
        table_id=table_id,
        record_id=record_id,
        field_id=field_id,
        ip=ip,
    )
    return value


def create_record(
    db: Session,
    base_id: int,
    table_id: int,
    session: UserSession,
    values: dict[Any, Any] | None = None,
    *,
    ip: str | None = None,
) -> RecordRow:
    table_service.get_active_table(db, base_id, table_id)
    parsed = parse_values(values)

    record = RecordRow(
        table_id=table_id,
        created_by_id=session.user_id,
        updated_by_id=session.user_id,
    )
    try:
        db.add(record)
        db.flush()
        _write_values(db, table_id, record, parsed, session.user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(record)

    audit_service.log_event(
        db, base_id, AuditAction.RECORD_CREATED,
        f"Record #{record.id} created",
        user_id=session.user_id,
        table_id=table_id,
        record_id=record.id,
        details={"field_ids": sorted(parsed)} if parsed else None,
        ip=ip,
    )
    return record


def patch_record(
    db: Session,
    base_id: int,
    table_id: int,
    record_id: int,
    values: dict[Any, Any],
    session: UserSession,
    *,
    ip: str | None = None,
) -> RecordRow:
    """Write several cells of one record in a single transaction."""
    table_service.load_table(db, base_id, table_id)
    record = load_record(db, table_id, record_id)
    trash_service.ensure_active(db, TrashEntity.RECORD, record)
    parsed = parse_values(values)

    try:
        _write_values(db, table_id, record, parsed, session.user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(record)

    audit_service.log_event(
        db, base_id, AuditAction.RECORD_UPDATED,
        f"Record #{record.id} updated",
        user_id=session.user_id,
        table_id=table_id,
        record_id=record.id,
        details={"field_ids": sorted(parsed)},
        ip=ip,
    )
    return record


def list_records(
    db: Session,
    base_id: int,
    table_id: int,
    pagination: PaginationParams,
) -> tuple[list[Field], list[RecordRow], dict[int, dict[int, CellValue | None]], int]:
    """
    Active records of a table, oldest first, with every active field's value.

    Returns (fields, records, values, total); a missing cell reads as None.
    """
    table_service.get_table(db, base_id, table_id)
    fields = field_service.list_fields(db, table_id)

    query = (
        db.query(RecordRow)
        .filter(RecordRow.table_id == table_id, RecordRow.is_trashed.is_(False))
        .order_by(RecordRow.id.asc())
    )
    records, total = pagination.apply(query)
    values = cell_storage.load_values(db, [record.id for record in records], fields)
    return fields, records, values, total


def record_values(db: Session, table_id: int, record: RecordRow) -> dict[int, CellValue | None]:
    fields = field_service.list_fields(db, table_id)
    return cell_storage.load_values(db, [record.id], fields)[record.id]


def trash_record(
    db: Session,
    base_id: int,
    table_id: int,
    record_id: int,
    session: UserSession,
    *,
    ip: str | None = None,
) -> RecordRow:
    table_service.load_table(db, base_id, table_id)
    load_record(db, table_id, record_id)
    return trash_service.soft_delete(db, TrashEntity.RECORD, record_id, actor=session, ip=ip)
