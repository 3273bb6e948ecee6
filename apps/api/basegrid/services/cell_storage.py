"""Physical storage of cell values: one RecordCell row with typed slots,
plus RecordCellOption rows for MULTI_SELECT."""

import logging
from collections import defaultdict

from sqlalchemy import delete, exists, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from basegrid.db.enums import FieldType
from basegrid.db.models import Field, RecordCell, RecordCellOption, SelectOption
from basegrid.services.cell_values import (
    BoolValue,
    CellValue,
    DateTimeValue,
    DateValue,
    MinutesValue,
    MultiOptionValue,
    NumberValue,
    SingleOptionValue,
    TextValue,
)
from basegrid.utils.clock import as_utc

logger = logging.getLogger(__name__)

SLOT_COLUMNS = (
    "string_value",
    "number_value",
    "bool_value",
    "date_value",
    "datetime_value",
    "time_minutes",
    "select_option_id",
)

_SLOT_FOR_VALUE = {
    TextValue: "string_value",
    NumberValue: "number_value",
    BoolValue: "bool_value",
    DateValue: "date_value",
    DateTimeValue: "datetime_value",
    MinutesValue: "time_minutes",
}


def empty_slots() -> dict:
    return {column: None for column in SLOT_COLUMNS}


def slot_values(value: CellValue | None) -> dict:
    """Map a CellValue onto the slot columns; every other slot is null."""
    slots = empty_slots()
    if value is None or isinstance(value, MultiOptionValue):
        return slots
    if isinstance(value, SingleOptionValue):
        slots["select_option_id"] = value.option_id
        return slots
    slots[_SLOT_FOR_VALUE[type(value)]] = value.value
    return slots


def read_value(
    field_type: FieldType,
    cell: RecordCell | None,
    active_option_ids: set[int] | frozenset[int] = frozenset(),
) -> CellValue | None:
    """Rebuild the CellValue stored in ``cell`` for a field of ``field_type``.

    Select values pointing at trashed options read as empty.
    """
    field_type = FieldType(field_type)
    if field_type == FieldType.MULTI_SELECT:
        if cell is None:
            return MultiOptionValue(())
        return MultiOptionValue(tuple(
            link.option_id for link in cell.options if link.option_id in active_option_ids
        ))
    if cell is None:
        return None

    if field_type in (FieldType.TEXT, FieldType.LONG_TEXT):
        return None if cell.string_value is None else TextValue(cell.string_value)
    if field_type in (FieldType.NUMBER, FieldType.CURRENCY):
        return None if cell.number_value is None else NumberValue(cell.number_value)
    if field_type == FieldType.CHECKBOX:
        return None if cell.bool_value is None else BoolValue(cell.bool_value)
    if field_type == FieldType.DATE:
        return None if cell.date_value is None else DateValue(cell.date_value)
    if field_type == FieldType.DATETIME:
        return None if cell.datetime_value is None else DateTimeValue(as_utc(cell.datetime_value))
    if field_type == FieldType.TIME:
        return None if cell.time_minutes is None else MinutesValue(cell.time_minutes)
    if field_type == FieldType.SINGLE_SELECT:
        if cell.select_option_id is None or cell.select_option_id not in active_option_ids:
            return None
        return SingleOptionValue(cell.select_option_id)
    return None


# =============================================================================
# Writes
# =============================================================================

def get_or_create_cell(db: Session, record_id: int, field_id: int, user_id: int | None) -> RecordCell:
    cell = (
        db.query(RecordCell)
        .filter(RecordCell.record_id == record_id, RecordCell.field_id == field_id)
        .first()
    )
    if cell:
        return cell

    cell = RecordCell(
        record_id=record_id,
        field_id=field_id,
        created_by_id=user_id,
        updated_by_id=user_id,
    )
    try:
        with db.begin_nested():
            db.add(cell)
            db.flush()
    except IntegrityError:
        # Created concurrently by another writer
        logger.info("Cell created concurrently", extra={"record_id": record_id, "field_id": field_id})
        cell = (
            db.query(RecordCell)
            .filter(RecordCell.record_id == record_id, RecordCell.field_id == field_id)
            .one()
        )
    return cell


def store_value(
    db: Session,
    record_id: int,
    field: Field,
    value: CellValue | None,
    user_id: int | None,
) -> RecordCell:
    """
    Persist ``value`` into the (record, field) cell.

    MULTI_SELECT links are synchronized by symmetric difference: only the
    options that changed are unlinked or linked.
    """
    cell = get_or_create_cell(db, record_id, field.id, user_id)
    for column, slot in slot_values(value).items():
        setattr(cell, column, slot)
    cell.updated_by_id = user_id

    if FieldType(field.type) == FieldType.MULTI_SELECT:
        desired = value.option_ids if isinstance(value, MultiOptionValue) else ()
        desired_set = set(desired)
        current = {link.option_id: link for link in cell.options}

        for option_id, link in current.items():
            if option_id not in desired_set:
                cell.options.remove(link)
        for option_id in desired:
            if option_id not in current:
                cell.options.append(RecordCellOption(option_id=option_id))

    db.flush()
    return cell


def field_has_data(db: Session, field_id: int) -> bool:
    """True when any cell of the field holds a value in any representation."""
    slot_not_null = or_(*(getattr(RecordCell, column).isnot(None) for column in SLOT_COLUMNS))
    has_scalar = db.query(
        exists().where(RecordCell.field_id == field_id, slot_not_null)
    ).scalar()
    if has_scalar:
        return True
    return bool(db.query(
        exists().where(
            RecordCellOption.record_cell_id == RecordCell.id,
            RecordCell.field_id == field_id,
        )
    ).scalar())


def clear_field_values(db: Session, field_id: int) -> None:
    """Null every slot of the field's cells and unlink all their options."""
    db.execute(
        update(RecordCell)
        .where(RecordCell.field_id == field_id)
        .values(**empty_slots())
        .execution_options(synchronize_session="fetch")
    )
    db.execute(
        delete(RecordCellOption)
        .where(
            RecordCellOption.record_cell_id.in_(
                select(RecordCell.id).where(RecordCell.field_id == field_id)
            )
        )
        .execution_options(synchronize_session="fetch")
    )
    # Cached RecordCell.options collections are stale now
    for obj in list(db.identity_map.values()):
        if isinstance(obj, RecordCell) and obj.field_id == field_id:
            db.expire(obj, ["options"])


# =============================================================================
# Reads
# =============================================================================

def active_option_ids_by_field(db: Session, field_ids: list[int]) -> dict[int, set[int]]:
    result: dict[int, set[int]] = defaultdict(set)
    if not field_ids:
        return result
    rows = (
        db.query(SelectOption.field_id, SelectOption.id)
        .filter(SelectOption.field_id.in_(field_ids), SelectOption.is_trashed.is_(False))
        .all()
    )
    for field_id, option_id in rows:
        result[field_id].add(option_id)
    return result


def load_values(
    db: Session,
    record_ids: list[int],
    fields: list[Field],
) -> dict[int, dict[int, CellValue | None]]:
    """Values of ``fields`` for each record: {record_id: {field_id: value}}."""
    values: dict[int, dict[int, CellValue | None]] = {record_id: {} for record_id in record_ids}
    if not record_ids or not fields:
        return values

    field_ids = [field.id for field in fields]
    options = active_option_ids_by_field(db, field_ids)
    cells = (
        db.query(RecordCell)
        .options(selectinload(RecordCell.options))
        .filter(RecordCell.record_id.in_(record_ids), RecordCell.field_id.in_(field_ids))
        .all()
    )
    by_key = {(cell.record_id, cell.field_id): cell for cell in cells}

    for record_id in record_ids:
        for field in fields:
            values[record_id][field.id] = read_value(
                FieldType(field.type),
                by_key.get((record_id, field.id)),
                options.get(field.id, set()),
            )
    return values
