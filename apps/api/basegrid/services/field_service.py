"""Field service - typed columns of a table and their select options.

Type changes:
- rejected with Conflict while any cell of the field holds data
- leaving a select type trashes its options and clears referencing cells
- entering a select type requires a non-empty list of initial options
- the data check and the type write happen in one transaction with the
  field row locked (cell writers take a shared lock on the same row)
"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from basegrid.core.errors import BadRequestError, ConflictError, NotFoundError
from basegrid.db.enums import AuditAction, FieldType, TrashEntity
from basegrid.db.models import Field, SelectOption
from basegrid.schemas.auth import UserSession
from basegrid.services import audit_service, cell_storage, ordering, table_service, trash_service
from basegrid.services.common import add_or_conflict, clean_name, commit_or_conflict
from basegrid.utils.clock import utcnow

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "A field with that name already exists in this table"
DUPLICATE_LABEL = "An option with that label already exists in this field"


def parse_field_type(value: str | FieldType) -> FieldType:
    if isinstance(value, FieldType):
        return value
    if not isinstance(value, str) or not FieldType.has_value(value):
        raise BadRequestError(f"Invalid field type: {value}")
    return FieldType(value)


def _clean_option_specs(options: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Validate initial options: labels required and unique (case-insensitive)."""
    cleaned = []
    seen: set[str] = set()
    for spec in options or []:
        label = clean_name(spec.get("label"), "Option label")
        if label.lower() in seen:
            raise BadRequestError(f'Duplicate option label "{label}"')
        seen.add(label.lower())
        cleaned.append({"label": label, "color": spec.get("color")})
    return cleaned


# =============================================================================
# Fields
# =============================================================================

def load_field(db: Session, table_id: int, field_id: int) -> Field:
    field = db.get(Field, field_id)
    if field is None or field.table_id != table_id:
        raise NotFoundError("Field not found")
    return field


def get_field(db: Session, table_id: int, field_id: int) -> Field:
    field = load_field(db, table_id, field_id)
    if field.is_trashed:
        raise NotFoundError("Field not found")
    return field


def list_fields(db: Session, table_id: int) -> list[Field]:
    return ordering.active_siblings(db, Field, "table_id", table_id)


def create_field(
    db: Session,
    base_id: int,
    table_id: int,
    session: UserSession,
    *,
    name: str,
    field_type: str | FieldType,
    config: dict | None = None,
    options: list[dict[str, Any]] | None = None,
    ip: str | None = None,
) -> Field:
    table_service.get_active_table(db, base_id, table_id)
    field_type = parse_field_type(field_type)
    option_specs = _clean_option_specs(options)
    if option_specs and not field_type.is_select:
        raise BadRequestError("Options are only allowed on select fields")

    field = Field(
        table_id=table_id,
        name=clean_name(name, "Field name"),
        type=field_type.value,
        config=config,
        position=ordering.next_position(db, Field, "table_id", table_id),
        created_by_id=session.user_id,
        updated_by_id=session.user_id,
    )
    add_or_conflict(db, field, DUPLICATE_NAME)
    for position, spec in enumerate(option_specs, start=1):
        db.add(SelectOption(field_id=field.id, label=spec["label"], color=spec["color"], position=position))
    commit_or_conflict(db, DUPLICATE_NAME)
    db.refresh(field)

    audit_service.log_event(
        db, base_id, AuditAction.FIELD_CREATED,
        f'Field "{field.name}" ({field.type}) created',
        user_id=session.user_id,
        table_id=table_id,
        field_id=field.id,
        ip=ip,
    )
    return field


def update_field(
    db: Session,
    base_id: int,
    table_id: int,
    field_id: int,
    session: UserSession,
    *,
    name: str | None = None,
    config: dict | None = None,
    ip: str | None = None,
) -> Field:
    """Rename and/or replace config. Names are unique per table ignoring case."""
    table_service.load_table(db, base_id, table_id)
    field = load_field(db, table_id, field_id)
    old_name = field.name

    values: dict[str, Any] = {"updated_by_id": session.user_id}
    if name is not None:
        values["name"] = clean_name(name, "Field name")
    if config is not None:
        values["config"] = config

    field = trash_service.guarded_update(db, TrashEntity.FIELD, field_id, values)
    db.commit()

    audit_service.log_event(
        db, base_id, AuditAction.FIELD_UPDATED,
        f'Field "{field.name}" updated',
        user_id=session.user_id,
        table_id=table_id,
        field_id=field.id,
        details={"from": old_name, "to": field.name} if field.name != old_name else None,
        ip=ip,
    )
    return field


def reorder_fields(
    db: Session,
    base_id: int,
    table_id: int,
    ordered_ids: list[int],
) -> list[Field]:
    table_service.get_active_table(db, base_id, table_id)
    fields = ordering.apply_order(db, Field, "table_id", table_id, ordered_ids)
    db.commit()
    return fields


def change_field_type(
    db: Session,
    base_id: int,
    table_id: int,
    field_id: int,
    new_type: str | FieldType,
    session: UserSession,
    *,
    options: list[dict[str, Any]] | None = None,
    ip: str | None = None,
) -> Field:
    """
    Change a field's type.

    Raises:
        NotFoundError: field missing
        BadRequestError: invalid type, or select type without initial options
        ConflictError: any cell of the field holds data
        TrashedError: field or an ancestor is in the trash
    """
    table_service.load_table(db, base_id, table_id)
    new_type = parse_field_type(new_type)
    option_specs = _clean_option_specs(options)

    field = (
        db.query(Field)
        .filter(Field.id == field_id, Field.table_id == table_id)
        .with_for_update()
        .first()
    )
    if field is None:
        raise NotFoundError("Field not found")
    trash_service.ensure_active(db, TrashEntity.FIELD, field)

    old_type = FieldType(field.type)
    if old_type == new_type:
        # Release the row lock
        db.rollback()
        return field

    if new_type.is_select and not old_type.is_select and not option_specs:
        raise BadRequestError("Select fields need at least one option")
    if option_specs and not new_type.is_select:
        raise BadRequestError("Options are only allowed on select fields")

    if cell_storage.field_has_data(db, field.id):
        raise ConflictError(
            "Field has data; clear its values before changing the type",
            details={"field_id": field.id},
        )

    now = utcnow()
    if old_type.is_select and not new_type.is_select:
        active_options = (
            db.query(SelectOption)
            .filter(SelectOption.field_id == field.id, SelectOption.is_trashed.is_(False))
            .all()
        )
        for option in active_options:
            option.mark_trashed(now)
        cell_storage.clear_field_values(db, field.id)
    elif new_type.is_select and option_specs:
        start = ordering.next_position(db, SelectOption, "field_id", field.id)
        for offset, spec in enumerate(option_specs):
            db.add(SelectOption(
                field_id=field.id,
                label=spec["label"],
                color=spec["color"],
                position=start + offset,
            ))

    field.type = new_type.value
    field.updated_by_id = session.user_id
    commit_or_conflict(db, DUPLICATE_LABEL)
    db.refresh(field)

    logger.info(
        "Field type changed",
        extra={"field_id": field.id, "from": old_type.value, "to": new_type.value},
    )
    audit_service.log_event(
        db, base_id, AuditAction.FIELD_TYPE_CHANGED,
        f'Field "{field.name}" type changed from {old_type.value} to {new_type.value}',
        user_id=session.user_id,
        table_id=table_id,
        field_id=field.id,
        details={"from": old_type.value, "to": new_type.value},
        ip=ip,
    )
    return field


def trash_field(
    db: Session,
    base_id: int,
    table_id: int,
    field_id: int,
    session: UserSession,
    *,
    ip: str | None = None,
) -> Field:
    """Trash the field and its options; its cell values are cleared for good."""
    table_service.load_table(db, base_id, table_id)
    load_field(db, table_id, field_id)
    return trash_service.soft_delete(db, TrashEntity.FIELD, field_id, actor=session, ip=ip)


# =============================================================================
# Select options
# =============================================================================

def _select_field(db: Session, base_id: int, table_id: int, field_id: int) -> Field:
    table_service.load_table(db, base_id, table_id)
    field = load_field(db, table_id, field_id)
    if not FieldType(field.type).is_select:
        raise BadRequestError("Field is not a select field")
    return field


def load_option(db: Session, field_id: int, option_id: int) -> SelectOption:
    option = db.get(SelectOption, option_id)
    if option is None or option.field_id != field_id:
        raise NotFoundError("Option not found")
    return option


def list_options(db: Session, field_id: int) -> list[SelectOption]:
    return ordering.active_siblings(db, SelectOption, "field_id", field_id)


def create_option(
    db: Session,
    base_id: int,
    table_id: int,
    field_id: int,
    session: UserSession,
    *,
    label: str,
    color: str | None = None,
    ip: str | None = None,
) -> SelectOption:
    field = _select_field(db, base_id, table_id, field_id)
    trash_service.ensure_active(db, TrashEntity.FIELD, field)

    option = SelectOption(
        field_id=field.id,
        label=clean_name(label, "Option label"),
        color=color,
        position=ordering.next_position(db, SelectOption, "field_id", field.id),
    )
    db.add(option)
    commit_or_conflict(db, DUPLICATE_LABEL)
    db.refresh(option)

    audit_service.log_event(
        db, base_id, AuditAction.OPTION_CREATED,
        f'Option "{option.label}" added to field "{field.name}"',
        user_id=session.user_id,
        table_id=table_id,
        field_id=field.id,
        details={"option_id": option.id},
        ip=ip,
    )
    return option


def update_option(
    db: Session,
    base_id: int,
    table_id: int,
    field_id: int,
    option_id: int,
    session: UserSession,
    *,
    label: str | None = None,
    color: str | None = None,
    ip: str | None = None,
) -> SelectOption:
    _select_field(db, base_id, table_id, field_id)
    load_option(db, field_id, option_id)

    values: dict[str, Any] = {}
    if label is not None:
        values["label"] = clean_name(label, "Option label")
    if color is not None:
        values["color"] = color

    option = trash_service.guarded_update(db, TrashEntity.OPTION, option_id, values)
    db.commit()

    audit_service.log_event(
        db, base_id, AuditAction.OPTION_UPDATED,
        f'Option "{option.label}" updated',
        user_id=session.user_id,
        table_id=table_id,
        field_id=field_id,
        details={"option_id": option.id},
        ip=ip,
    )
    return option


def reorder_options(
    db: Session,
    base_id: int,
    table_id: int,
    field_id: int,
    ordered_ids: list[int],
) -> list[SelectOption]:
    field = _select_field(db, base_id, table_id, field_id)
    trash_service.ensure_active(db, TrashEntity.FIELD, field)
    options = ordering.apply_order(db, SelectOption, "field_id", field_id, ordered_ids)
    db.commit()
    return options


def trash_option(
    db: Session,
    base_id: int,
    table_id: int,
    field_id: int,
    option_id: int,
    session: UserSession,
    *,
    ip: str | None = None,
) -> SelectOption:
    _select_field(db, base_id, table_id, field_id)
    load_option(db, field_id, option_id)
    return trash_service.soft_delete(db, TrashEntity.OPTION, option_id, actor=session, ip=ip)
