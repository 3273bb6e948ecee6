"""Table service - tables of a base with dense 1..N positions."""

from sqlalchemy.orm import Session

from basegrid.core.errors import NotFoundError
from basegrid.db.enums import AuditAction, TrashEntity
from basegrid.db.models import BaseDef, TableDef
from basegrid.schemas.auth import UserSession
from basegrid.services import audit_service, ordering, trash_service
from basegrid.services.common import clean_name, commit_or_conflict

DUPLICATE_NAME = "A table with that name already exists in this base"


def load_table(db: Session, base_id: int, table_id: int) -> TableDef:
    """Table of the base regardless of trash state; NotFound if it belongs elsewhere."""
    table = db.get(TableDef, table_id)
    if table is None or table.base_id != base_id:
        raise NotFoundError("Table not found")
    return table


def get_table(db: Session, base_id: int, table_id: int) -> TableDef:
    """Readable table: the table and its base must be active."""
    table = load_table(db, base_id, table_id)
    if table.is_trashed or trash_service.find_trashed_ancestor(db, TrashEntity.TABLE, table):
        raise NotFoundError("Table not found")
    return table


def get_active_table(db: Session, base_id: int, table_id: int) -> TableDef:
    """Writable table: raises TrashedError when it or its base is in the trash."""
    table = load_table(db, base_id, table_id)
    trash_service.ensure_active(db, TrashEntity.TABLE, table)
    return table


def list_tables(db: Session, base_id: int) -> list[TableDef]:
    return ordering.active_siblings(db, TableDef, "base_id", base_id)


def create_table(
    db: Session,
    base_id: int,
    name: str,
    session: UserSession,
    *,
    ip: str | None = None,
) -> TableDef:
    base = db.get(BaseDef, base_id)
    if base is None:
        raise NotFoundError("Base not found")
    trash_service.ensure_active(db, TrashEntity.BASE, base)

    table = TableDef(
        base_id=base_id,
        name=clean_name(name, "Table name"),
        position=ordering.next_position(db, TableDef, "base_id", base_id),
    )
    db.add(table)
    commit_or_conflict(db, DUPLICATE_NAME)
    db.refresh(table)

    audit_service.log_event(
        db, base_id, AuditAction.TABLE_CREATED,
        f'Table "{table.name}" created',
        user_id=session.user_id,
        table_id=table.id,
        ip=ip,
    )
    return table


def rename_table(
    db: Session,
    base_id: int,
    table_id: int,
    name: str,
    session: UserSession,
    *,
    ip: str | None = None,
) -> TableDef:
    table = load_table(db, base_id, table_id)
    old_name = table.name
    table = trash_service.guarded_update(
        db, TrashEntity.TABLE, table_id, {"name": clean_name(name, "Table name")}
    )
    db.commit()

    if table.name != old_name:
        audit_service.log_event(
            db, base_id, AuditAction.TABLE_RENAMED,
            f'Table renamed from "{old_name}" to "{table.name}"',
            user_id=session.user_id,
            table_id=table.id,
            details={"from": old_name, "to": table.name},
            ip=ip,
        )
    return table


def reorder_tables(
    db: Session,
    base_id: int,
    ordered_ids: list[int],
    session: UserSession,
    *,
    ip: str | None = None,
) -> list[TableDef]:
    """Set the order of all active tables in one transaction."""
    base = db.get(BaseDef, base_id)
    if base is None:
        raise NotFoundError("Base not found")
    trash_service.ensure_active(db, TrashEntity.BASE, base)

    tables = ordering.apply_order(db, TableDef, "base_id", base_id, ordered_ids)
    db.commit()

    audit_service.log_event(
        db, base_id, AuditAction.TABLE_REORDERED,
        "Tables reordered",
        user_id=session.user_id,
        details={"order": ordered_ids},
        ip=ip,
    )
    return tables


def trash_table(
    db: Session,
    base_id: int,
    table_id: int,
    session: UserSession,
    *,
    ip: str | None = None,
) -> TableDef:
    load_table(db, base_id, table_id)
    return trash_service.soft_delete(db, TrashEntity.TABLE, table_id, actor=session, ip=ip)
