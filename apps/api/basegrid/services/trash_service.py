"""Trash lifecycle engine shared by every soft-deletable entity.

One generic implementation driven by two tables:
- TRASH_SPECS: model, name column, sibling scope and ordering per entity
- CASCADE_CHILDREN: which child entities follow their parent into (and out
  of) the trash, and through which foreign key

Rules:
- soft delete is idempotent and never blocked by child state
- restore requires the entity to be trashed and its ancestors active
- restore renames on sibling name conflicts: "{name} (restored {ts})",
  then " #2", " #3", ... tried inside the same transaction
- permanent delete requires the entity to be in trash and relies on
  ON DELETE CASCADE for descendants
- restore/permanent delete are allowed to the owner and SYSADMIN only
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, exists, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from basegrid.core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    TrashedError,
)
from basegrid.db.enums import AuditAction, PURGE_ORDER, TrashEntity
from basegrid.db.models import (
    BaseDef,
    Comment,
    Field,
    RecordRow,
    SelectOption,
    TableDef,
    Workspace,
)
from basegrid.schemas.auth import UserSession
from basegrid.services import audit_service, cell_storage, ordering
from basegrid.utils.clock import utcnow

logger = logging.getLogger(__name__)

MAX_RESTORE_NAME_ATTEMPTS = 20
RESTORED_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class TrashSpec:
    entity: TrashEntity
    model: Any
    label: str
    # Parent entity and the FK column pointing at it
    parent: TrashEntity | None = None
    parent_fk: str | None = None
    # Unique-name handling among active siblings
    name_attr: str | None = None
    sibling_scope: str | None = None
    case_insensitive: bool = False
    # Dense 1..N ordering among active siblings
    positioned: bool = False
    trashed_action: AuditAction | None = None
    restored_action: AuditAction | None = None
    deleted_action: AuditAction | None = None


TRASH_SPECS: dict[TrashEntity, TrashSpec] = {
    TrashEntity.WORKSPACE: TrashSpec(
        entity=TrashEntity.WORKSPACE,
        model=Workspace,
        label="Workspace",
        name_attr="name",
        sibling_scope="owner_id",
    ),
    TrashEntity.BASE: TrashSpec(
        entity=TrashEntity.BASE,
        model=BaseDef,
        label="Base",
        parent=TrashEntity.WORKSPACE,
        parent_fk="workspace_id",
        name_attr="name",
        sibling_scope="owner_id",
        trashed_action=AuditAction.BASE_TRASHED,
        restored_action=AuditAction.BASE_RESTORED,
    ),
    TrashEntity.TABLE: TrashSpec(
        entity=TrashEntity.TABLE,
        model=TableDef,
        label="Table",
        parent=TrashEntity.BASE,
        parent_fk="base_id",
        name_attr="name",
        sibling_scope="base_id",
        positioned=True,
        trashed_action=AuditAction.TABLE_TRASHED,
        restored_action=AuditAction.TABLE_RESTORED,
        deleted_action=AuditAction.TABLE_DELETED,
    ),
    TrashEntity.FIELD: TrashSpec(
        entity=TrashEntity.FIELD,
        model=Field,
        label="Field",
        parent=TrashEntity.TABLE,
        parent_fk="table_id",
        name_attr="name",
        sibling_scope="table_id",
        case_insensitive=True,
        positioned=True,
        trashed_action=AuditAction.FIELD_TRASHED,
        restored_action=AuditAction.FIELD_RESTORED,
        deleted_action=AuditAction.FIELD_DELETED,
    ),
    TrashEntity.OPTION: TrashSpec(
        entity=TrashEntity.OPTION,
        model=SelectOption,
        label="Option",
        parent=TrashEntity.FIELD,
        parent_fk="field_id",
        name_attr="label",
        sibling_scope="field_id",
        case_insensitive=True,
        positioned=True,
        trashed_action=AuditAction.OPTION_TRASHED,
        restored_action=AuditAction.OPTION_RESTORED,
        deleted_action=AuditAction.OPTION_DELETED,
    ),
    TrashEntity.RECORD: TrashSpec(
        entity=TrashEntity.RECORD,
        model=RecordRow,
        label="Record",
        parent=TrashEntity.TABLE,
        parent_fk="table_id",
        trashed_action=AuditAction.RECORD_TRASHED,
        restored_action=AuditAction.RECORD_RESTORED,
        deleted_action=AuditAction.RECORD_DELETED,
    ),
    TrashEntity.COMMENT: TrashSpec(
        entity=TrashEntity.COMMENT,
        model=Comment,
        label="Comment",
        parent=TrashEntity.RECORD,
        parent_fk="record_id",
        trashed_action=AuditAction.COMMENT_TRASHED,
        restored_action=AuditAction.COMMENT_RESTORED,
        deleted_action=AuditAction.COMMENT_DELETED,
    ),
}

# Children that follow their parent into and out of the trash.
CASCADE_CHILDREN: dict[TrashEntity, list[tuple[TrashEntity, str]]] = {
    TrashEntity.WORKSPACE: [(TrashEntity.BASE, "workspace_id")],
    TrashEntity.BASE: [(TrashEntity.TABLE, "base_id")],
    TrashEntity.TABLE: [],
    TrashEntity.FIELD: [(TrashEntity.OPTION, "field_id")],
    TrashEntity.OPTION: [],
    TrashEntity.RECORD: [],
    TrashEntity.COMMENT: [],
}


def _on_field_trashed(db: Session, field: Field) -> None:
    cell_storage.clear_field_values(db, field.id)


# Extra work after an entity is moved to the trash (not undone by restore).
TRASH_HOOKS = {
    TrashEntity.FIELD: _on_field_trashed,
}


@dataclass
class TrashScope:
    """Filters for trash listings and bulk deletes. Unset fields don't filter."""
    owner_id: int | None = None
    workspace_id: int | None = None
    base_id: int | None = None
    table_id: int | None = None
    field_id: int | None = None
    record_id: int | None = None


# =============================================================================
# Lookups
# =============================================================================

def get_spec(entity: TrashEntity | str) -> TrashSpec:
    try:
        return TRASH_SPECS[TrashEntity(entity)]
    except ValueError:
        raise BadRequestError(f"Unknown entity type: {entity}")


def get_entity(db: Session, entity: TrashEntity, entity_id: int):
    spec = get_spec(entity)
    row = db.get(spec.model, entity_id)
    if row is None:
        raise NotFoundError(f"{spec.label} not found")
    return row


def get_parent(db: Session, entity: TrashEntity, row) -> tuple[TrashEntity, Any] | None:
    spec = get_spec(entity)
    if spec.parent is None:
        return None
    parent_id = getattr(row, spec.parent_fk)
    if parent_id is None:
        return None
    parent = db.get(TRASH_SPECS[spec.parent].model, parent_id)
    if parent is None:
        return None
    return spec.parent, parent


def iter_ancestors(db: Session, entity: TrashEntity, row):
    """Yield (entity, row) for each ancestor, nearest first."""
    current = get_parent(db, entity, row)
    while current is not None:
        yield current
        current = get_parent(db, *current)


def find_trashed_ancestor(db: Session, entity: TrashEntity, row) -> tuple[TrashEntity, Any] | None:
    for ancestor_entity, ancestor in iter_ancestors(db, entity, row):
        if ancestor.is_trashed:
            return ancestor_entity, ancestor
    return None


def ensure_active(db: Session, entity: TrashEntity, row) -> None:
    """
    Raise TrashedError if the entity or any ancestor is in the trash.

    Evaluated on every mutation; nothing is cached between requests.
    """
    spec = get_spec(entity)
    if row.is_trashed:
        raise TrashedError(f"{spec.label} is in trash, restore it first")
    trashed = find_trashed_ancestor(db, entity, row)
    if trashed is not None:
        ancestor_spec = TRASH_SPECS[trashed[0]]
        raise TrashedError(f"{ancestor_spec.label} is in trash, restore it first")


def guarded_update(db: Session, entity: TrashEntity, entity_id: int, values: dict):
    """
    Update an active entity with the trash check folded into the statement.

    The UPDATE only matches rows with is_trashed = false, so a concurrent
    soft delete can't slip in between the check and the write.

    Raises:
        NotFoundError: entity does not exist
        TrashedError: entity or an ancestor is in the trash
        ConflictError: unique name violation
    """
    spec = get_spec(entity)
    model = spec.model
    row = get_entity(db, entity, entity_id)
    ensure_active(db, entity, row)

    try:
        with db.begin_nested():
            result = db.execute(
                update(model)
                .where(model.id == entity_id, model.is_trashed.is_(False))
                .values(**values, updated_at=utcnow())
                .execution_options(synchronize_session="fetch")
            )
    except IntegrityError:
        raise ConflictError(f"A {spec.label.lower()} with that name already exists")

    if result.rowcount == 0:
        raise TrashedError(f"{spec.label} is in trash, restore it first")
    db.refresh(row)
    return row


def base_id_of(db: Session, entity: TrashEntity, row) -> int | None:
    entity = TrashEntity(entity)
    if entity == TrashEntity.WORKSPACE:
        return None
    if entity == TrashEntity.BASE:
        return row.id
    for ancestor_entity, ancestor in iter_ancestors(db, entity, row):
        if ancestor_entity == TrashEntity.BASE:
            return ancestor.id
    return None


def owner_ids(db: Session, entity: TrashEntity, row) -> set[int]:
    """Users allowed to restore or permanently delete ``row`` (besides SYSADMIN)."""
    entity = TrashEntity(entity)
    if entity in (TrashEntity.WORKSPACE, TrashEntity.BASE):
        return {row.owner_id}

    owners: set[int] = set()
    for ancestor_entity, ancestor in iter_ancestors(db, entity, row):
        if ancestor_entity == TrashEntity.BASE:
            owners.add(ancestor.owner_id)
            break
    if entity == TrashEntity.COMMENT and row.created_by_id is not None:
        owners.add(row.created_by_id)
    return owners


def ensure_owner_or_sysadmin(db: Session, entity: TrashEntity, row, actor: UserSession | None) -> None:
    spec = get_spec(entity)
    if actor is None:
        raise ForbiddenError(f"Only the owner can manage this {spec.label.lower()} in trash")
    if actor.is_sysadmin:
        return
    if actor.user_id not in owner_ids(db, entity, row):
        raise ForbiddenError(f"Only the owner can manage this {spec.label.lower()} in trash")


def _audit_refs(db: Session, entity: TrashEntity, row) -> dict[str, int | None]:
    refs: dict[str, int | None] = {"table_id": None, "field_id": None, "record_id": None}
    chain = [(TrashEntity(entity), row), *iter_ancestors(db, entity, row)]
    for chain_entity, chain_row in chain:
        if chain_entity == TrashEntity.TABLE:
            refs["table_id"] = chain_row.id
        elif chain_entity == TrashEntity.FIELD:
            refs["field_id"] = chain_row.id
        elif chain_entity == TrashEntity.RECORD:
            refs["record_id"] = chain_row.id
    return refs


def _describe(spec: TrashSpec, row) -> str:
    if spec.name_attr:
        return f'{spec.label} "{getattr(row, spec.name_attr)}"'
    return f"{spec.label} #{row.id}"


# =============================================================================
# Soft delete
# =============================================================================

def _trash_row(db: Session, spec: TrashSpec, row, now: datetime) -> None:
    row.mark_trashed(now)
    db.flush()
    hook = TRASH_HOOKS.get(spec.entity)
    if hook:
        hook(db, row)
    for child_entity, fk in CASCADE_CHILDREN[spec.entity]:
        child_model = TRASH_SPECS[child_entity].model
        children = (
            db.query(child_model)
            .filter(getattr(child_model, fk) == row.id, child_model.is_trashed.is_(False))
            .all()
        )
        for child in children:
            _trash_row(db, TRASH_SPECS[child_entity], child, now)


def soft_delete(
    db: Session,
    entity: TrashEntity | str,
    entity_id: int,
    *,
    actor: UserSession | None = None,
    ip: str | None = None,
    now: datetime | None = None,
):
    """
    Move an entity (and its cascade children) to the trash.

    Already-trashed entities are returned unchanged.

    Raises:
        NotFoundError: entity does not exist
        TrashedError: an ancestor is in the trash
    """
    spec = get_spec(entity)
    row = get_entity(db, spec.entity, entity_id)
    if row.is_trashed:
        return row

    trashed = find_trashed_ancestor(db, spec.entity, row)
    if trashed is not None:
        raise TrashedError(f"{TRASH_SPECS[trashed[0]].label} is in trash, restore it first")

    now = now or utcnow()
    _trash_row(db, spec, row, now)
    if spec.positioned:
        ordering.renumber(db, spec.model, spec.sibling_scope, getattr(row, spec.sibling_scope))
    db.commit()
    db.refresh(row)

    logger.info(
        "Entity moved to trash",
        extra={"entity": spec.entity.value, "entity_id": row.id},
    )
    _audit(db, spec, row, spec.trashed_action, "moved to trash", actor, ip)
    return row


# =============================================================================
# Restore
# =============================================================================

def restored_name_candidates(name: str, now: datetime, max_length: int = 255):
    """Yield rename candidates for a restore that collides with an active sibling."""
    stamp = f" (restored {now.strftime(RESTORED_TIMESTAMP_FORMAT)})"
    attempt = 1
    while True:
        suffix = stamp if attempt == 1 else f"{stamp} #{attempt}"
        yield name[: max_length - len(suffix)] + suffix
        attempt += 1


def _name_taken(db: Session, spec: TrashSpec, row, candidate: str) -> bool:
    model = spec.model
    name_column = getattr(model, spec.name_attr)
    query = db.query(model.id).filter(
        getattr(model, spec.sibling_scope) == getattr(row, spec.sibling_scope),
        model.is_trashed.is_(False),
        model.id != row.id,
    )
    if spec.case_insensitive:
        query = query.filter(func.lower(name_column) == candidate.lower())
    else:
        query = query.filter(name_column == candidate)
    return db.query(query.exists()).scalar()


def _activate(db: Session, spec: TrashSpec, row, name: str | None, position: int | None) -> None:
    with db.begin_nested():
        if name is not None:
            setattr(row, spec.name_attr, name)
        if position is not None:
            row.position = position
        row.mark_active()
        db.flush()


def _restore_row(db: Session, spec: TrashSpec, row, now: datetime) -> None:
    """Reactivate one row, renaming on sibling conflicts, then its children."""
    position = None
    if spec.positioned:
        position = ordering.next_position(db, spec.model, spec.sibling_scope, getattr(row, spec.sibling_scope))

    if spec.name_attr is None:
        _activate(db, spec, row, None, position)
    else:
        original = getattr(row, spec.name_attr)
        candidates = [original]
        generator = restored_name_candidates(original, now)
        candidates.extend(next(generator) for _ in range(MAX_RESTORE_NAME_ATTEMPTS))

        for candidate in candidates:
            if _name_taken(db, spec, row, candidate):
                continue
            try:
                _activate(db, spec, row, candidate, position)
            except IntegrityError:
                # Lost a race for this name; savepoint rolled back, try the next one
                logger.info(
                    "Restore name collision, retrying",
                    extra={"entity": spec.entity.value, "entity_id": row.id},
                )
                continue
            if candidate != original:
                logger.info(
                    "Entity renamed on restore",
                    extra={"entity": spec.entity.value, "entity_id": row.id},
                )
            break
        else:
            raise ConflictError(f"Could not find a free name to restore {_describe(spec, row)}")

    for child_entity, fk in CASCADE_CHILDREN[spec.entity]:
        child_spec = TRASH_SPECS[child_entity]
        child_model = child_spec.model
        children = (
            db.query(child_model)
            .filter(getattr(child_model, fk) == row.id, child_model.is_trashed.is_(True))
            .order_by(child_model.trashed_at.asc(), child_model.id.asc())
            .all()
        )
        for child in children:
            _restore_row(db, child_spec, child, now)
        if child_spec.positioned and children:
            ordering.renumber(db, child_model, child_spec.sibling_scope, row.id)


def restore(
    db: Session,
    entity: TrashEntity | str,
    entity_id: int,
    actor: UserSession | None,
    *,
    ip: str | None = None,
    now: datetime | None = None,
):
    """
    Bring an entity (and its cascade children) back from the trash.

    Raises:
        NotFoundError: entity does not exist
        InvalidStateError: entity is not in the trash
        ForbiddenError: actor is neither owner nor SYSADMIN
        TrashedError: an ancestor is still in the trash
    """
    spec = get_spec(entity)
    row = get_entity(db, spec.entity, entity_id)
    if not row.is_trashed:
        raise InvalidStateError(f"{spec.label} is not in trash")
    ensure_owner_or_sysadmin(db, spec.entity, row, actor)

    trashed = find_trashed_ancestor(db, spec.entity, row)
    if trashed is not None:
        raise TrashedError(f"{TRASH_SPECS[trashed[0]].label} is in trash, restore it first")

    now = now or utcnow()
    try:
        _restore_row(db, spec, row, now)
        if spec.positioned:
            ordering.renumber(db, spec.model, spec.sibling_scope, getattr(row, spec.sibling_scope))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)

    logger.info(
        "Entity restored from trash",
        extra={"entity": spec.entity.value, "entity_id": row.id},
    )
    _audit(db, spec, row, spec.restored_action, "restored from trash", actor, ip)
    return row


# =============================================================================
# Permanent delete and purge
# =============================================================================

def delete_permanently(
    db: Session,
    entity: TrashEntity | str,
    entity_id: int,
    actor: UserSession | None,
    *,
    ip: str | None = None,
) -> None:
    """
    Hard delete a trashed entity. Descendants go with it via ON DELETE CASCADE.

    Raises:
        NotFoundError: entity does not exist
        InvalidStateError: entity is not in the trash
        ForbiddenError: actor is neither owner nor SYSADMIN
    """
    spec = get_spec(entity)
    row = get_entity(db, spec.entity, entity_id)
    if not row.is_trashed:
        raise InvalidStateError(f"{spec.label} is not in trash")
    ensure_owner_or_sysadmin(db, spec.entity, row, actor)

    base_id = base_id_of(db, spec.entity, row)
    refs = _audit_refs(db, spec.entity, row)
    description = _describe(spec, row)

    db.execute(
        delete(spec.model)
        .where(spec.model.id == entity_id)
        .execution_options(synchronize_session="fetch")
    )
    db.commit()

    logger.info(
        "Entity deleted permanently",
        extra={"entity": spec.entity.value, "entity_id": entity_id},
    )
    if spec.deleted_action and base_id is not None:
        # Audit rows of a deleted base cascade away with it
        refs[f"{spec.entity.value}_id"] = None
        audit_service.log_event(
            db,
            base_id,
            spec.deleted_action,
            f"{description} deleted permanently",
            user_id=actor.user_id if actor else None,
            table_id=refs["table_id"],
            field_id=refs["field_id"],
            record_id=refs["record_id"],
            details={"entity_id": entity_id},
            ip=ip,
        )


def scoped_trash_query(db: Session, entity: TrashEntity | str, scope: TrashScope | None = None):
    """Query of trashed rows of ``entity`` narrowed by ``scope``."""
    spec = get_spec(entity)
    scope = scope or TrashScope()
    query = db.query(spec.model).filter(spec.model.is_trashed.is_(True))

    # Join ancestors up to the base so scope filters can reach them
    joined = {spec.entity: spec.model}
    current = spec
    while current.entity != TrashEntity.BASE and current.entity != TrashEntity.WORKSPACE:
        parent_spec = TRASH_SPECS[current.parent]
        query = query.join(
            parent_spec.model,
            getattr(joined[current.entity], current.parent_fk) == parent_spec.model.id,
        )
        joined[parent_spec.entity] = parent_spec.model
        current = parent_spec

    filters = {
        "base_id": (TrashEntity.BASE, "id"),
        "table_id": (TrashEntity.TABLE, "id"),
        "field_id": (TrashEntity.FIELD, "id"),
        "record_id": (TrashEntity.RECORD, "id"),
    }
    if spec.entity == TrashEntity.WORKSPACE:
        filters["owner_id"] = (TrashEntity.WORKSPACE, "owner_id")
        filters["workspace_id"] = (TrashEntity.WORKSPACE, "id")
    else:
        filters["owner_id"] = (TrashEntity.BASE, "owner_id")
        filters["workspace_id"] = (TrashEntity.BASE, "workspace_id")

    for key, (level, column) in filters.items():
        value = getattr(scope, key)
        if value is None:
            continue
        if level not in joined:
            raise BadRequestError(f"'{key}' does not apply to {spec.entity.value} trash")
        query = query.filter(getattr(joined[level], column) == value)
    return query


def list_trash(
    db: Session,
    entity: TrashEntity | str,
    scope: TrashScope | None = None,
    *,
    top_level_only: bool = True,
) -> list:
    """
    Trashed rows of ``entity`` in ``scope``, most recently trashed first.

    With ``top_level_only`` rows whose parent is itself trashed are hidden;
    they come back with their parent.
    """
    spec = get_spec(entity)
    query = scoped_trash_query(db, spec.entity, scope)
    if top_level_only and spec.parent is not None:
        # Aliased: the scope query has already joined the parent table
        parent = aliased(TRASH_SPECS[spec.parent].model)
        query = query.filter(
            ~exists().where(
                parent.id == getattr(spec.model, spec.parent_fk),
                parent.is_trashed.is_(True),
            )
        )
    return query.order_by(spec.model.trashed_at.desc(), spec.model.id.desc()).all()


def empty_trash(db: Session, entity: TrashEntity | str, scope: TrashScope | None = None) -> int:
    """Hard delete every trashed ``entity`` in ``scope``. Returns the count."""
    spec = get_spec(entity)
    ids = [row.id for row in scoped_trash_query(db, spec.entity, scope).all()]
    if not ids:
        return 0
    db.execute(
        delete(spec.model)
        .where(spec.model.id.in_(ids))
        .execution_options(synchronize_session="fetch")
    )
    db.commit()
    logger.info("Trash emptied", extra={"entity": spec.entity.value, "count": len(ids)})
    return len(ids)


def _purge(db: Session, spec: TrashSpec, threshold: datetime) -> int:
    result = db.execute(
        delete(spec.model)
        .where(spec.model.is_trashed.is_(True), spec.model.trashed_at <= threshold)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


def purge_older_than(
    db: Session,
    entity: TrashEntity | str,
    days: int,
    *,
    now: datetime | None = None,
) -> int:
    """Hard delete trashed ``entity`` rows (any owner) trashed at least ``days`` ago."""
    if days < 0:
        raise BadRequestError("days must be >= 0")
    spec = get_spec(entity)
    threshold = (now or utcnow()) - timedelta(days=days)
    count = _purge(db, spec, threshold)
    db.commit()
    logger.info("Trash purged", extra={"entity": spec.entity.value, "days": days, "count": count})
    return count


def purge_all_older_than(db: Session, days: int, *, now: datetime | None = None) -> dict[str, int]:
    """Purge every entity type, descendants before ancestors, in one transaction."""
    if days < 0:
        raise BadRequestError("days must be >= 0")
    threshold = (now or utcnow()) - timedelta(days=days)
    counts: dict[str, int] = {}
    try:
        for entity in PURGE_ORDER:
            counts[entity.value] = _purge(db, TRASH_SPECS[entity], threshold)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Trash purge finished", extra={"days": days, **counts})
    return counts


# =============================================================================
# Audit
# =============================================================================

def _audit(
    db: Session,
    spec: TrashSpec,
    row,
    action: AuditAction | None,
    verb: str,
    actor: UserSession | None,
    ip: str | None,
) -> None:
    if action is None:
        return
    base_id = base_id_of(db, spec.entity, row)
    if base_id is None:
        return
    refs = _audit_refs(db, spec.entity, row)
    audit_service.log_event(
        db,
        base_id,
        action,
        f"{_describe(spec, row)} {verb}",
        user_id=actor.user_id if actor else None,
        table_id=refs["table_id"],
        field_id=refs["field_id"],
        record_id=refs["record_id"],
        details={"entity_id": row.id},
        ip=ip,
    )
