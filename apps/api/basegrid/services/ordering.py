"""Dense 1..N positions for ordered siblings (tables, fields, options)."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from basegrid.core.errors import BadRequestError


def active_siblings(db: Session, model, scope_column: str, scope_id: int) -> list:
    return (
        db.query(model)
        .filter(getattr(model, scope_column) == scope_id, model.is_trashed.is_(False))
        .order_by(model.position.asc(), model.id.asc())
        .all()
    )


def next_position(db: Session, model, scope_column: str, scope_id: int) -> int:
    current = (
        db.query(func.max(model.position))
        .filter(getattr(model, scope_column) == scope_id, model.is_trashed.is_(False))
        .scalar()
    )
    return (current or 0) + 1


def renumber(db: Session, model, scope_column: str, scope_id: int) -> list:
    """Rewrite positions of every active sibling to 1..N, keeping current order."""
    rows = active_siblings(db, model, scope_column, scope_id)
    for index, row in enumerate(rows, start=1):
        if row.position != index:
            row.position = index
    db.flush()
    return rows


def apply_order(db: Session, model, scope_column: str, scope_id: int, ordered_ids: list[int]) -> list:
    """
    Reorder all active siblings at once.

    ``ordered_ids`` must be exactly the set of active sibling ids.
    """
    rows = active_siblings(db, model, scope_column, scope_id)
    by_id = {row.id: row for row in rows}

    if len(ordered_ids) != len(set(ordered_ids)):
        raise BadRequestError("Duplicate ids in order")
    if set(ordered_ids) != set(by_id):
        raise BadRequestError(
            "Order must list every active item exactly once",
            details={"expected": sorted(by_id), "received": ordered_ids},
        )

    for index, row_id in enumerate(ordered_ids, start=1):
        by_id[row_id].position = index
    db.flush()
    return [by_id[row_id] for row_id in ordered_ids]
