"""Permission resolution: builds authorization contexts from the database.

Resolution for a base:
- base must exist (trashed bases included, so their owner can restore them)
- membership role is looked up for the actor, absent if none
- decisions are delegated to basegrid.core.policies.can
"""

import logging

from sqlalchemy.orm import Session

from basegrid.core.errors import ForbiddenError, NotAuthenticatedError, NotFoundError
from basegrid.core.permissions import (
    Action,
    AuthContext,
    PermissionContext,
    PlatformContext,
    forbidden_message,
)
from basegrid.core.policies import can
from basegrid.db.enums import BaseRole, BaseVisibility
from basegrid.db.models import BaseDef, BaseMember
from basegrid.schemas.auth import UserSession

logger = logging.getLogger(__name__)

BASE_NOT_FOUND = "Base not found"


def get_member_role(db: Session, base_id: int, user_id: int) -> BaseRole | None:
    role = (
        db.query(BaseMember.role)
        .filter(BaseMember.base_id == base_id, BaseMember.user_id == user_id)
        .scalar()
    )
    if role is None or not BaseRole.has_value(role):
        return None
    return BaseRole(role)


def resolve_permission_context(
    db: Session,
    session: UserSession | None,
    base_id: int,
) -> PermissionContext:
    """
    Build the base-scoped context for ``session`` on ``base_id``.

    Raises:
        NotAuthenticatedError: no actor
        NotFoundError: base does not exist
    """
    if session is None:
        raise NotAuthenticatedError()

    base = db.query(BaseDef).filter(BaseDef.id == base_id).first()
    if base is None:
        raise NotFoundError(BASE_NOT_FOUND)

    is_owner = base.owner_id == session.user_id
    membership_role = None if is_owner else get_member_role(db, base.id, session.user_id)

    return PermissionContext(
        user_id=session.user_id,
        platform_role=session.platform_role,
        can_create_bases=session.can_create_bases,
        base_id=base.id,
        base_visibility=BaseVisibility(base.visibility),
        is_owner=is_owner,
        membership_role=membership_role,
    )


def resolve_platform_context(session: UserSession | None) -> PlatformContext:
    if session is None:
        raise NotAuthenticatedError()
    return session.platform_context()


def ensure_can(ctx: AuthContext, action: Action | str) -> None:
    """
    Raise unless ``can(ctx, action)``.

    Actors who cannot even view the base get NotFound, so a private base
    is indistinguishable from a missing one.
    """
    if can(ctx, action):
        return
    if isinstance(ctx, PermissionContext) and not can(ctx, Action.BASE_VIEW):
        raise NotFoundError(BASE_NOT_FOUND)
    logger.info(
        "Authorization denied",
        extra={"user_id": ctx.user_id, "action": str(getattr(action, "value", action))},
    )
    raise ForbiddenError(forbidden_message(action))


def authorize_base_action(
    db: Session,
    session: UserSession | None,
    base_id: int,
    action: Action | str,
) -> PermissionContext:
    ctx = resolve_permission_context(db, session, base_id)
    ensure_can(ctx, action)
    return ctx
