"""User service - platform account administration."""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from basegrid.core.errors import BadRequestError, NotFoundError
from basegrid.db.enums import PlatformRole
from basegrid.db.models import User
from basegrid.schemas.auth import UserSession
from basegrid.services.common import clean_name
from basegrid.utils.pagination import PaginationParams

logger = logging.getLogger(__name__)


def list_users(
    db: Session,
    pagination: PaginationParams,
    *,
    q: str | None = None,
    platform_role: PlatformRole | None = None,
    is_active: bool | None = None,
) -> tuple[list[User], int]:
    """Every account, oldest first, with optional filters."""
    query = db.query(User)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(User.email.ilike(pattern), User.full_name.ilike(pattern)))
    if platform_role is not None:
        query = query.filter(User.platform_role == PlatformRole(platform_role).value)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    return pagination.apply(query.order_by(User.id.asc()))


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def update_user(
    db: Session,
    user_id: int,
    actor: UserSession,
    *,
    full_name: str | None = None,
    platform_role: PlatformRole | None = None,
    is_active: bool | None = None,
    can_create_bases: bool | None = None,
) -> User:
    """
    Update profile and platform grants of an account.

    Deactivating an account also revokes its sessions by bumping
    token_version.

    Raises:
        NotFoundError: user missing
        BadRequestError: actor demoting or deactivating their own account
    """
    user = get_user(db, user_id)

    if user.id == actor.user_id:
        if platform_role is not None and PlatformRole(platform_role) != PlatformRole(user.platform_role):
            raise BadRequestError("Cannot change your own platform role")
        if is_active is False:
            raise BadRequestError("Cannot deactivate your own account")

    changes: dict[str, dict] = {}

    if full_name is not None:
        name = clean_name(full_name, "Full name")
        if name != user.full_name:
            changes["full_name"] = {"old": user.full_name, "new": name}
            user.full_name = name

    if platform_role is not None:
        role = PlatformRole(platform_role).value
        if role != user.platform_role:
            changes["platform_role"] = {"old": user.platform_role, "new": role}
            user.platform_role = role

    if can_create_bases is not None and can_create_bases != user.can_create_bases:
        changes["can_create_bases"] = {"old": user.can_create_bases, "new": can_create_bases}
        user.can_create_bases = can_create_bases

    if is_active is not None and is_active != user.is_active:
        changes["is_active"] = {"old": user.is_active, "new": is_active}
        user.is_active = is_active
        if not is_active:
            user.token_version += 1  # Also revoke sessions

    db.commit()
    db.refresh(user)

    if changes:
        logger.info(
            "User updated",
            extra={"user_id": actor.user_id, "target_user_id": user.id, "fields": sorted(changes)},
        )
    return user
