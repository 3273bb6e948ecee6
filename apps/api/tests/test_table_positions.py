"""Dense 1..N ordering of tables, fields and options."""

import pytest

from basegrid.core.errors import BadRequestError
from basegrid.db.enums import FieldType, TrashEntity
from basegrid.services import field_service, table_service, trash_service


def names_and_positions(rows):
    return [(row.name, row.position) for row in rows]


@pytest.fixture
def three_tables(db, base, owner_session):
    return [table_service.create_table(db, base.id, name, owner_session) for name in ("A", "B", "C")]


def test_new_tables_are_appended(db, base, three_tables):
    assert names_and_positions(table_service.list_tables(db, base.id)) == [
        ("A", 1), ("B", 2), ("C", 3),
    ]


def test_trash_closes_gap_and_restore_appends(db, base, owner_session, three_tables):
    _, b, _ = three_tables

    trash_service.soft_delete(db, TrashEntity.TABLE, b.id, actor=owner_session)
    assert names_and_positions(table_service.list_tables(db, base.id)) == [("A", 1), ("C", 2)]

    trash_service.restore(db, TrashEntity.TABLE, b.id, owner_session)
    assert names_and_positions(table_service.list_tables(db, base.id)) == [
        ("A", 1), ("C", 2), ("B", 3),
    ]


def test_reorder_tables(db, base, owner_session, three_tables):
    a, b, c = three_tables

    table_service.reorder_tables(db, base.id, [c.id, a.id, b.id], owner_session)

    assert names_and_positions(table_service.list_tables(db, base.id)) == [
        ("C", 1), ("A", 2), ("B", 3),
    ]


def test_reorder_must_list_every_active_table(db, base, owner_session, three_tables):
    a, b, _ = three_tables

    with pytest.raises(BadRequestError):
        table_service.reorder_tables(db, base.id, [a.id, b.id], owner_session)


def test_reorder_rejects_duplicates(db, base, owner_session, three_tables):
    a, b, c = three_tables

    with pytest.raises(BadRequestError):
        table_service.reorder_tables(db, base.id, [a.id, b.id, c.id, a.id], owner_session)


def test_reorder_rejects_trashed_ids(db, base, owner_session, three_tables):
    a, b, c = three_tables
    trash_service.soft_delete(db, TrashEntity.TABLE, c.id, actor=owner_session)

    with pytest.raises(BadRequestError):
        table_service.reorder_tables(db, base.id, [a.id, b.id, c.id], owner_session)


def test_field_positions_follow_trash(db, base, table, owner_session):
    fields = [
        field_service.create_field(db, base.id, table.id, owner_session, name=name, field_type=FieldType.TEXT)
        for name in ("Name", "Email", "Phone")
    ]

    field_service.trash_field(db, base.id, table.id, fields[0].id, owner_session)

    assert names_and_positions(field_service.list_fields(db, table.id)) == [("Email", 1), ("Phone", 2)]


def test_reorder_options(db, base, table, owner_session):
    status = field_service.create_field(
        db, base.id, table.id, owner_session,
        name="Status",
        field_type=FieldType.SINGLE_SELECT,
        options=[{"label": "Open"}, {"label": "Won"}, {"label": "Lost"}],
    )
    open_, won, lost = field_service.list_options(db, status.id)

    field_service.reorder_options(db, base.id, table.id, status.id, [lost.id, open_.id, won.id])

    assert [(o.label, o.position) for o in field_service.list_options(db, status.id)] == [
        ("Lost", 1), ("Open", 2), ("Won", 3),
    ]
