"""Field type changes and field/option trash side effects."""

import pytest

from basegrid.core.errors import BadRequestError, ConflictError, TrashedError
from basegrid.db.enums import FieldType, TrashEntity
from basegrid.db.models import RecordCell, RecordCellOption
from basegrid.services import cell_storage, field_service, record_service, trash_service


@pytest.fixture
def score(db, base, table, owner_session):
    return field_service.create_field(
        db, base.id, table.id, owner_session, name="Score", field_type=FieldType.NUMBER,
    )


@pytest.fixture
def status(db, base, table, owner_session):
    return field_service.create_field(
        db, base.id, table.id, owner_session,
        name="Status",
        field_type=FieldType.SINGLE_SELECT,
        options=[{"label": "Open"}, {"label": "Closed"}],
    )


def test_type_change_rejected_while_field_has_data(db, base, table, owner_session, score):
    record_service.create_record(db, base.id, table.id, owner_session, {score.id: 3})

    with pytest.raises(ConflictError):
        field_service.change_field_type(db, base.id, table.id, score.id, FieldType.TEXT, owner_session)

    db.refresh(score)
    assert score.type == FieldType.NUMBER.value


def test_type_change_allowed_after_clearing(db, base, table, owner_session, score):
    record = record_service.create_record(db, base.id, table.id, owner_session, {score.id: 3})
    record_service.write_cell(db, base.id, table.id, record.id, score.id, None, owner_session)

    changed = field_service.change_field_type(db, base.id, table.id, score.id, "TEXT", owner_session)

    assert changed.type == FieldType.TEXT.value


def test_same_type_is_a_no_op(db, base, table, owner_session, score):
    record_service.create_record(db, base.id, table.id, owner_session, {score.id: 3})

    unchanged = field_service.change_field_type(db, base.id, table.id, score.id, FieldType.NUMBER, owner_session)

    assert unchanged.type == FieldType.NUMBER.value


def test_same_type_releases_the_row_lock(db, base, table, owner_session, score):
    field_service.change_field_type(db, base.id, table.id, score.id, FieldType.NUMBER, owner_session)

    assert not db.in_transaction()


def test_invalid_type_is_bad_request(db, base, table, owner_session, score):
    with pytest.raises(BadRequestError):
        field_service.change_field_type(db, base.id, table.id, score.id, "SPREADSHEET", owner_session)


def test_select_target_requires_options(db, base, table, owner_session, score):
    with pytest.raises(BadRequestError):
        field_service.change_field_type(
            db, base.id, table.id, score.id, FieldType.SINGLE_SELECT, owner_session,
        )


def test_select_target_with_options(db, base, table, owner_session, score):
    changed = field_service.change_field_type(
        db, base.id, table.id, score.id, FieldType.MULTI_SELECT, owner_session,
        options=[{"label": "a"}, {"label": "b", "color": "#ff0000"}],
    )

    assert changed.type == FieldType.MULTI_SELECT.value
    options = field_service.list_options(db, score.id)
    assert [(o.label, o.color, o.position) for o in options] == [
        ("a", None, 1), ("b", "#ff0000", 2),
    ]


def test_leaving_select_type_trashes_options(db, base, table, owner_session, status):
    changed = field_service.change_field_type(db, base.id, table.id, status.id, FieldType.TEXT, owner_session)

    assert changed.type == FieldType.TEXT.value
    assert field_service.list_options(db, status.id) == []


def test_options_rejected_for_non_select_target(db, base, table, owner_session, score):
    with pytest.raises(BadRequestError):
        field_service.change_field_type(
            db, base.id, table.id, score.id, FieldType.TEXT, owner_session,
            options=[{"label": "a"}],
        )


def test_duplicate_initial_option_labels(db, base, table, owner_session):
    with pytest.raises(BadRequestError):
        field_service.create_field(
            db, base.id, table.id, owner_session,
            name="Status", field_type=FieldType.SINGLE_SELECT,
            options=[{"label": "Open"}, {"label": "open"}],
        )


def test_type_change_on_trashed_field(db, base, table, owner_session, score):
    field_service.trash_field(db, base.id, table.id, score.id, owner_session)

    with pytest.raises(TrashedError):
        field_service.change_field_type(db, base.id, table.id, score.id, FieldType.TEXT, owner_session)


def test_trashing_field_clears_values_for_good(db, base, table, owner_session, score, status):
    open_option = field_service.list_options(db, status.id)[0]
    record = record_service.create_record(
        db, base.id, table.id, owner_session, {score.id: 7, status.id: open_option.id},
    )

    field_service.trash_field(db, base.id, table.id, score.id, owner_session)
    field_service.trash_field(db, base.id, table.id, status.id, owner_session)
    assert field_service.list_options(db, status.id) == []

    trash_service.restore(db, TrashEntity.FIELD, score.id, owner_session)
    trash_service.restore(db, TrashEntity.FIELD, status.id, owner_session)

    values = record_service.record_values(db, table.id, record)
    assert values[score.id] is None
    assert values[status.id] is None
    assert cell_storage.field_has_data(db, score.id) is False
    assert len(field_service.list_options(db, status.id)) == 2


def test_trashing_multi_select_field_unlinks_options(db, base, table, owner_session):
    tags = field_service.create_field(
        db, base.id, table.id, owner_session,
        name="Tags", field_type=FieldType.MULTI_SELECT, options=[{"label": "vip"}],
    )
    vip = field_service.list_options(db, tags.id)[0]
    record_service.create_record(db, base.id, table.id, owner_session, {tags.id: [vip.id]})

    field_service.trash_field(db, base.id, table.id, tags.id, owner_session)

    cell_ids = [cell.id for cell in db.query(RecordCell).filter(RecordCell.field_id == tags.id)]
    assert db.query(RecordCellOption).filter(RecordCellOption.record_cell_id.in_(cell_ids)).count() == 0
