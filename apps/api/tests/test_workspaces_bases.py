"""Workspaces and bases: creation, visibility, moves and renames."""

import pytest

from basegrid.core.errors import ConflictError, ForbiddenError, NotFoundError, TrashedError
from basegrid.db.enums import AuditAction, BaseRole, BaseVisibility, TrashEntity
from basegrid.services import (
    audit_service,
    base_service,
    member_service,
    trash_service,
    workspace_service,
)


# =============================================================================
# Workspaces
# =============================================================================

def test_workspace_names_are_unique_per_owner(db, owner, other_user):
    workspace_service.create_workspace(db, owner.id, "Sales")
    workspace_service.create_workspace(db, other_user.id, "Sales")

    with pytest.raises(ConflictError):
        workspace_service.create_workspace(db, owner.id, "Sales")


def test_workspaces_are_private_to_owner(db, owner, owner_session, other_session, admin_session):
    workspace = workspace_service.create_workspace(db, owner.id, "Sales")

    assert [w.id for w in workspace_service.list_workspaces(db, owner_session)] == [workspace.id]
    assert workspace_service.list_workspaces(db, other_session) == []
    assert [w.id for w in workspace_service.list_workspaces(db, admin_session)] == [workspace.id]
    with pytest.raises(NotFoundError):
        workspace_service.get_workspace(db, workspace.id, other_session)


def test_rename_workspace(db, owner, owner_session, other_session):
    workspace = workspace_service.create_workspace(db, owner.id, "Sales")

    with pytest.raises(ForbiddenError):
        workspace_service.rename_workspace(db, workspace.id, "Ops", other_session)

    renamed = workspace_service.rename_workspace(db, workspace.id, "Ops", owner_session)
    assert renamed.name == "Ops"


def test_trashed_workspace_is_hidden(db, owner, owner_session):
    workspace = workspace_service.create_workspace(db, owner.id, "Sales")
    workspace_service.trash_workspace(db, workspace.id, owner_session)

    assert workspace_service.list_workspaces(db, owner_session) == []
    with pytest.raises(TrashedError):
        workspace_service.rename_workspace(db, workspace.id, "Ops", owner_session)


# =============================================================================
# Bases
# =============================================================================

def test_base_names_are_unique_per_owner(db, base, owner_session):
    with pytest.raises(ConflictError):
        base_service.create_base(db, owner_session, name="CRM")


def test_base_in_foreign_workspace_is_forbidden(db, other_user, owner_session):
    workspace = workspace_service.create_workspace(db, other_user.id, "Theirs")

    with pytest.raises(ForbiddenError):
        base_service.create_base(db, owner_session, name="Mine", workspace_id=workspace.id)


def test_accessible_bases(db, base, owner_session, other_session, admin_session, other_user):
    public = base_service.create_base(db, owner_session, name="Wiki", visibility=BaseVisibility.PUBLIC)
    shared = base_service.create_base(db, owner_session, name="Shared")
    member_service.add_member(db, shared.id, BaseRole.COMMENTER, owner_session, user_id=other_user.id)

    visible = base_service.list_accessible_bases(db, other_session)
    assert [(b.id, role) for b, role in visible] == [
        (public.id, None),
        (shared.id, BaseRole.COMMENTER),
    ]
    assert len(base_service.list_accessible_bases(db, owner_session)) == 3
    assert len(base_service.list_accessible_bases(db, admin_session)) == 3

    trash_service.soft_delete(db, TrashEntity.BASE, public.id, actor=owner_session)
    assert [b.id for b, _ in base_service.list_accessible_bases(db, other_session)] == [shared.id]


def test_update_base_audits_each_change(db, base, owner_session):
    updated = base_service.update_base(
        db, base.id, owner_session, name="CRM 2", visibility=BaseVisibility.PUBLIC,
    )

    assert updated.name == "CRM 2"
    assert updated.visibility == BaseVisibility.PUBLIC.value
    items, _ = audit_service.list_base_audit(db, base.id)
    assert {e.action for e in items[:2]} == {
        AuditAction.BASE_RENAMED.value, AuditAction.BASE_VISIBILITY_CHANGED.value,
    }


def test_update_trashed_base(db, base, owner_session):
    trash_service.soft_delete(db, TrashEntity.BASE, base.id, actor=owner_session)

    with pytest.raises(TrashedError):
        base_service.update_base(db, base.id, owner_session, name="Renamed")
    with pytest.raises(NotFoundError):
        base_service.get_base(db, base.id)


def test_move_base_between_workspaces(db, owner, base, owner_session):
    workspace = workspace_service.create_workspace(db, owner.id, "Sales")

    moved = base_service.move_base(db, base.id, workspace.id, owner_session)

    assert moved.workspace_id == workspace.id
    assert [b.id for b, _ in base_service.list_accessible_bases(db, owner_session, workspace_id=workspace.id)] == [base.id]


def test_move_base_into_other_owners_workspace(db, base, other_user, owner_session):
    workspace = workspace_service.create_workspace(db, other_user.id, "Theirs")

    with pytest.raises(ConflictError):
        base_service.move_base(db, base.id, workspace.id, owner_session)


def test_move_base_into_trashed_workspace(db, owner, base, owner_session):
    workspace = workspace_service.create_workspace(db, owner.id, "Old")
    workspace_service.trash_workspace(db, workspace.id, owner_session)

    with pytest.raises(NotFoundError):
        base_service.move_base(db, base.id, workspace.id, owner_session)
