"""Record creation, typed cell writes and listing."""

from datetime import date
from decimal import Decimal

import pytest

from basegrid.core.errors import BadRequestError, NotFoundError, TrashedError
from basegrid.db.enums import FieldType, TrashEntity
from basegrid.db.models import RecordCellOption
from basegrid.services import (
    cell_storage,
    field_service,
    record_service,
    table_service,
    trash_service,
)
from basegrid.services.cell_values import (
    BoolValue,
    DateValue,
    MinutesValue,
    MultiOptionValue,
    NumberValue,
    SingleOptionValue,
    TextValue,
)
from basegrid.utils.pagination import PaginationParams


@pytest.fixture
def fields(db, base, table, owner_session):
    def make(name, field_type, **kwargs):
        return field_service.create_field(
            db, base.id, table.id, owner_session, name=name, field_type=field_type, **kwargs
        )

    return {
        "name": make("Name", FieldType.TEXT),
        "amount": make("Amount", FieldType.CURRENCY),
        "active": make("Active", FieldType.CHECKBOX),
        "due": make("Due", FieldType.DATE),
        "slot": make("Slot", FieldType.TIME),
        "stage": make(
            "Stage", FieldType.SINGLE_SELECT,
            options=[{"label": "Lead"}, {"label": "Customer"}],
        ),
        "tags": make(
            "Tags", FieldType.MULTI_SELECT,
            options=[{"label": "vip"}, {"label": "new"}, {"label": "churn"}],
        ),
    }


def option_ids(db, field):
    return [option.id for option in field_service.list_options(db, field.id)]


def test_create_record_with_typed_values(db, base, table, owner_session, fields):
    lead, _ = option_ids(db, fields["stage"])
    record = record_service.create_record(
        db, base.id, table.id, owner_session,
        {
            str(fields["name"].id): "Ada",
            str(fields["amount"].id): "1234,50",
            str(fields["active"].id): "sí",
            str(fields["due"].id): "2024-03-05",
            str(fields["slot"].id): "9:30",
            str(fields["stage"].id): lead,
        },
    )

    values = record_service.record_values(db, table.id, record)

    assert values[fields["name"].id] == TextValue("Ada")
    assert values[fields["amount"].id] == NumberValue(Decimal("1234.50"))
    assert values[fields["active"].id] == BoolValue(True)
    assert values[fields["due"].id] == DateValue(date(2024, 3, 5))
    assert values[fields["slot"].id] == MinutesValue(570)
    assert values[fields["stage"].id] == SingleOptionValue(lead)
    assert record.created_by_id == owner_session.user_id


def test_create_record_with_unknown_field_writes_nothing(db, base, table, owner_session, fields):
    with pytest.raises(BadRequestError) as exc:
        record_service.create_record(
            db, base.id, table.id, owner_session,
            {fields["name"].id: "Ada", 99999: "x"},
        )
    assert exc.value.details == {"missing_field_ids": [99999]}

    _, records, _, total = record_service.list_records(db, base.id, table.id, PaginationParams(page=1, per_page=10))
    assert total == 0


def test_write_cell_rejects_foreign_option(db, base, table, owner_session, fields):
    record = record_service.create_record(db, base.id, table.id, owner_session)
    foreign_option = option_ids(db, fields["tags"])[0]

    with pytest.raises(BadRequestError):
        record_service.write_cell(
            db, base.id, table.id, record.id, fields["stage"].id, foreign_option, owner_session,
        )


def test_write_cell_none_clears(db, base, table, owner_session, fields):
    record = record_service.create_record(
        db, base.id, table.id, owner_session, {fields["name"].id: "Ada"},
    )

    record_service.write_cell(db, base.id, table.id, record.id, fields["name"].id, None, owner_session)

    assert record_service.record_values(db, table.id, record)[fields["name"].id] is None


def test_multi_select_links_only_change_the_difference(db, base, table, owner_session, fields):
    vip, new, churn = option_ids(db, fields["tags"])
    tags_id = fields["tags"].id
    record = record_service.create_record(db, base.id, table.id, owner_session, {tags_id: [vip, new]})

    cell = cell_storage.get_or_create_cell(db, record.id, tags_id, owner_session.user_id)
    kept_link = next(link for link in cell.options if link.option_id == vip)
    kept_link_id = kept_link.id

    record_service.write_cell(db, base.id, table.id, record.id, tags_id, [vip, churn], owner_session)

    values = record_service.record_values(db, table.id, record)
    assert set(values[tags_id].option_ids) == {vip, churn}
    links = db.query(RecordCellOption).filter(RecordCellOption.record_cell_id == cell.id).all()
    assert {link.option_id for link in links} == {vip, churn}
    assert kept_link_id in {link.id for link in links}


def test_multi_select_none_unlinks_everything(db, base, table, owner_session, fields):
    vip, new, _ = option_ids(db, fields["tags"])
    tags_id = fields["tags"].id
    record = record_service.create_record(db, base.id, table.id, owner_session, {tags_id: [vip, new]})

    record_service.write_cell(db, base.id, table.id, record.id, tags_id, None, owner_session)

    assert record_service.record_values(db, table.id, record)[tags_id] == MultiOptionValue(())


def test_patch_record_is_all_or_nothing(db, base, table, owner_session, fields):
    record = record_service.create_record(
        db, base.id, table.id, owner_session, {fields["name"].id: "Ada"},
    )

    with pytest.raises(BadRequestError):
        record_service.patch_record(
            db, base.id, table.id, record.id,
            {fields["name"].id: "Grace", fields["amount"].id: "lots"},
            owner_session,
        )

    values = record_service.record_values(db, table.id, record)
    assert values[fields["name"].id] == TextValue("Ada")
    assert values[fields["amount"].id] is None


def test_list_records_pages_and_fills_missing_cells(db, base, table, owner_session, fields):
    created = [
        record_service.create_record(db, base.id, table.id, owner_session, {fields["name"].id: f"R{i}"})
        for i in range(3)
    ]

    listed_fields, records, values, total = record_service.list_records(
        db, base.id, table.id, PaginationParams(page=2, per_page=2),
    )

    assert total == 3
    assert [r.id for r in records] == [created[2].id]
    assert [f.name for f in listed_fields] == [
        "Name", "Amount", "Active", "Due", "Slot", "Stage", "Tags",
    ]
    row = values[created[2].id]
    assert row[fields["name"].id] == TextValue("R2")
    assert row[fields["amount"].id] is None
    assert row[fields["stage"].id] is None


def test_trashed_record_is_hidden_and_read_only(db, base, table, owner_session, fields):
    record = record_service.create_record(db, base.id, table.id, owner_session)
    record_service.trash_record(db, base.id, table.id, record.id, owner_session)

    with pytest.raises(NotFoundError):
        record_service.get_record(db, table.id, record.id)
    with pytest.raises(TrashedError):
        record_service.write_cell(
            db, base.id, table.id, record.id, fields["name"].id, "x", owner_session,
        )


def test_create_record_in_trashed_table(db, base, table, owner_session):
    trash_service.soft_delete(db, TrashEntity.TABLE, table.id, actor=owner_session)

    with pytest.raises(TrashedError):
        record_service.create_record(db, base.id, table.id, owner_session)


def test_trashed_option_reads_as_empty_and_comes_back(db, base, table, owner_session, fields):
    lead, customer = option_ids(db, fields["stage"])
    vip, new, _ = option_ids(db, fields["tags"])
    stage_id, tags_id = fields["stage"].id, fields["tags"].id
    record = record_service.create_record(
        db, base.id, table.id, owner_session, {stage_id: lead, tags_id: [vip, new]},
    )

    field_service.trash_option(db, base.id, table.id, stage_id, lead, owner_session)
    field_service.trash_option(db, base.id, table.id, tags_id, vip, owner_session)

    values = record_service.record_values(db, table.id, record)
    assert values[stage_id] is None
    assert values[tags_id] == MultiOptionValue((new,))

    trash_service.restore(db, TrashEntity.OPTION, lead, owner_session)
    assert record_service.record_values(db, table.id, record)[stage_id] == SingleOptionValue(lead)


def test_cell_of_other_table_field_is_not_found(db, base, table, owner_session, fields):
    other = table_service.create_table(db, base.id, "Deals", owner_session)
    other_field = field_service.create_field(
        db, base.id, other.id, owner_session, name="Title", field_type=FieldType.TEXT,
    )
    record = record_service.create_record(db, base.id, table.id, owner_session)

    with pytest.raises(NotFoundError):
        record_service.write_cell(db, base.id, table.id, record.id, other_field.id, "x", owner_session)
