"""Base membership service (delegated VIEWER/COMMENTER/EDITOR access)."""

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from basegrid.core.errors import BadRequestError, NotFoundError
from basegrid.db.enums import AuditAction, BaseRole, TrashEntity
from basegrid.db.models import BaseDef, BaseMember, User
from basegrid.schemas.auth import UserSession
from basegrid.services import audit_service, trash_service
from basegrid.services.common import commit_or_conflict


def list_members(db: Session, base_id: int) -> list[BaseMember]:
    return (
        db.query(BaseMember)
        .options(joinedload(BaseMember.user))
        .filter(BaseMember.base_id == base_id)
        .order_by(BaseMember.id.asc())
        .all()
    )


def find_user(db: Session, *, user_id: int | None = None, email: str | None = None) -> User:
    if user_id is None and not email:
        raise BadRequestError("user_id or email is required")
    query = db.query(User)
    if user_id is not None:
        query = query.filter(User.id == user_id)
    else:
        query = query.filter(func.lower(User.email) == email.strip().lower())
    user = query.first()
    if user is None or not user.is_active:
        raise NotFoundError("User not found")
    return user


def _get_member(db: Session, base_id: int, member_id: int) -> BaseMember:
    member = (
        db.query(BaseMember)
        .filter(BaseMember.id == member_id, BaseMember.base_id == base_id)
        .first()
    )
    if member is None:
        raise NotFoundError("Member not found in this base")
    return member


def add_member(
    db: Session,
    base_id: int,
    role: BaseRole,
    session: UserSession,
    *,
    user_id: int | None = None,
    email: str | None = None,
    ip: str | None = None,
) -> BaseMember:
    base = db.get(BaseDef, base_id)
    if base is None:
        raise NotFoundError("Base not found")
    trash_service.ensure_active(db, TrashEntity.BASE, base)

    user = find_user(db, user_id=user_id, email=email)
    if user.id == base.owner_id:
        raise BadRequestError("The owner already has full access to this base")

    member = BaseMember(base_id=base_id, user_id=user.id, role=BaseRole(role).value)
    db.add(member)
    commit_or_conflict(db, "User is already a member of this base")
    db.refresh(member)

    audit_service.log_event(
        db, base_id, AuditAction.MEMBER_ADDED,
        f"{user.email} added as {member.role}",
        user_id=session.user_id,
        details={"member_user_id": user.id, "role": member.role},
        ip=ip,
    )
    return member


def update_member_role(
    db: Session,
    base_id: int,
    member_id: int,
    role: BaseRole,
    session: UserSession,
    *,
    ip: str | None = None,
) -> BaseMember:
    base = db.get(BaseDef, base_id)
    if base is None:
        raise NotFoundError("Base not found")
    trash_service.ensure_active(db, TrashEntity.BASE, base)

    member = _get_member(db, base_id, member_id)
    previous = member.role
    member.role = BaseRole(role).value
    db.commit()
    db.refresh(member)

    if previous != member.role:
        audit_service.log_event(
            db, base_id, AuditAction.MEMBER_ROLE_CHANGED,
            f"Member role changed from {previous} to {member.role}",
            user_id=session.user_id,
            details={"member_user_id": member.user_id, "from": previous, "to": member.role},
            ip=ip,
        )
    return member


def remove_member(
    db: Session,
    base_id: int,
    member_id: int,
    session: UserSession,
    *,
    ip: str | None = None,
) -> None:
    member = _get_member(db, base_id, member_id)
    member_user_id = member.user_id
    db.delete(member)
    db.commit()

    audit_service.log_event(
        db, base_id, AuditAction.MEMBER_REMOVED,
        "Member removed",
        user_id=session.user_id,
        details={"member_user_id": member_user_id},
        ip=ip,
    )
