"""Comments on records."""

import pytest

from basegrid.core.errors import BadRequestError, ForbiddenError, NotFoundError, TrashedError
from basegrid.db.enums import TrashEntity
from basegrid.services import comment_service, record_service, trash_service


@pytest.fixture
def record(db, base, table, owner_session):
    return record_service.create_record(db, base.id, table.id, owner_session)


def test_create_and_list_comments(db, base, table, record, owner_session):
    first = comment_service.create_comment(db, base.id, table.id, record.id, "  First  ", owner_session)
    comment_service.create_comment(db, base.id, table.id, record.id, "Second", owner_session)

    comments = comment_service.list_comments(db, base.id, table.id, record.id)

    assert first.body == "First"
    assert [c.body for c in comments] == ["First", "Second"]
    assert comments[0].author.email == "owner@test.com"


@pytest.mark.parametrize("body", ["", "   ", "x" * 5001])
def test_comment_body_validation(db, base, table, record, owner_session, body):
    with pytest.raises(BadRequestError):
        comment_service.create_comment(db, base.id, table.id, record.id, body, owner_session)


def test_only_author_can_edit(db, base, table, record, owner_session, other_session):
    comment = comment_service.create_comment(db, base.id, table.id, record.id, "Mine", owner_session)

    with pytest.raises(ForbiddenError):
        comment_service.edit_comment(db, base.id, table.id, record.id, comment.id, "Yours", other_session)

    edited = comment_service.edit_comment(db, base.id, table.id, record.id, comment.id, "Still mine", owner_session)
    assert edited.body == "Still mine"


def test_sysadmin_can_trash_any_comment(db, base, table, record, owner_session, admin_session):
    comment = comment_service.create_comment(db, base.id, table.id, record.id, "Mine", owner_session)

    comment_service.trash_comment(db, base.id, table.id, record.id, comment.id, admin_session)

    assert comment_service.list_comments(db, base.id, table.id, record.id) == []


def test_trashed_comment_cannot_be_edited(db, base, table, record, owner_session):
    comment = comment_service.create_comment(db, base.id, table.id, record.id, "Mine", owner_session)
    comment_service.trash_comment(db, base.id, table.id, record.id, comment.id, owner_session)

    with pytest.raises(TrashedError):
        comment_service.edit_comment(db, base.id, table.id, record.id, comment.id, "Edit", owner_session)


def test_comment_on_trashed_record(db, base, table, record, owner_session):
    trash_service.soft_delete(db, TrashEntity.RECORD, record.id, actor=owner_session)

    with pytest.raises(TrashedError):
        comment_service.create_comment(db, base.id, table.id, record.id, "Hello", owner_session)
    with pytest.raises(NotFoundError):
        comment_service.list_comments(db, base.id, table.id, record.id)


def test_comment_of_other_record_is_not_found(db, base, table, record, owner_session):
    other = record_service.create_record(db, base.id, table.id, owner_session)
    comment = comment_service.create_comment(db, base.id, table.id, record.id, "Here", owner_session)

    with pytest.raises(NotFoundError):
        comment_service.edit_comment(db, base.id, table.id, other.id, comment.id, "There", owner_session)
