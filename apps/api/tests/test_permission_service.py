"""Tests for permission resolution against the database."""

import pytest

from basegrid.core.errors import ForbiddenError, NotAuthenticatedError, NotFoundError
from basegrid.core.permissions import Action
from basegrid.db.enums import BaseRole, BaseVisibility
from basegrid.services import base_service, member_service, permission_service


def test_owner_context(db, base, owner_session):
    ctx = permission_service.resolve_permission_context(db, owner_session, base.id)

    assert ctx.is_owner is True
    assert ctx.membership_role is None
    assert ctx.base_visibility == BaseVisibility.PRIVATE


def test_member_context_carries_role(db, base, owner_session, other_user, other_session):
    member_service.add_member(db, base.id, BaseRole.COMMENTER, owner_session, user_id=other_user.id)

    ctx = permission_service.resolve_permission_context(db, other_session, base.id)

    assert ctx.is_owner is False
    assert ctx.membership_role == BaseRole.COMMENTER


def test_missing_actor_is_not_authenticated(db, base):
    with pytest.raises(NotAuthenticatedError):
        permission_service.resolve_permission_context(db, None, base.id)


def test_missing_base_is_not_found(db, owner_session):
    with pytest.raises(NotFoundError):
        permission_service.resolve_permission_context(db, owner_session, 999)


def test_trashed_base_still_resolves_for_owner(db, base, owner_session):
    base_service.trash_base(db, base.id, owner_session)

    ctx = permission_service.resolve_permission_context(db, owner_session, base.id)
    assert ctx.is_owner is True


def test_private_base_is_hidden_from_strangers(db, base, other_session):
    with pytest.raises(NotFoundError) as exc:
        permission_service.authorize_base_action(db, other_session, base.id, Action.RECORDS_READ)
    assert exc.value.message == "Base not found"


def test_viewer_gets_forbidden_with_action_message(db, base, owner_session, other_user, other_session):
    member_service.add_member(db, base.id, BaseRole.VIEWER, owner_session, user_id=other_user.id)

    with pytest.raises(ForbiddenError) as exc:
        permission_service.authorize_base_action(db, other_session, base.id, Action.RECORDS_CREATE)
    assert "editor" in exc.value.message


def test_public_base_readable_but_not_writable(db, owner_session, other_session):
    public = base_service.create_base(db, owner_session, name="Open", visibility=BaseVisibility.PUBLIC)

    ctx = permission_service.authorize_base_action(db, other_session, public.id, Action.RECORDS_READ)
    assert ctx.membership_role is None
    with pytest.raises(ForbiddenError):
        permission_service.authorize_base_action(db, other_session, public.id, Action.RECORDS_UPDATE)


def test_sysadmin_passes_everything(db, base, admin_session):
    for action in (Action.SCHEMA_MANAGE, Action.MEMBERS_MANAGE, Action.RECORDS_DELETE):
        permission_service.authorize_base_action(db, admin_session, base.id, action)


def test_platform_action_requires_grant(other_session, owner_session):
    with pytest.raises(ForbiddenError):
        permission_service.ensure_can(
            permission_service.resolve_platform_context(other_session), Action.BASES_CREATE
        )
    permission_service.ensure_can(
        permission_service.resolve_platform_context(owner_session), Action.BASES_CREATE
    )
