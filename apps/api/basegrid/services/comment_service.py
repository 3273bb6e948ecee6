"""Comment service - free-text comments on records."""

from sqlalchemy.orm import Session, joinedload

from basegrid.core.errors import BadRequestError, ForbiddenError, NotFoundError
from basegrid.db.enums import AuditAction, TrashEntity
from basegrid.db.models import Comment
from basegrid.schemas.auth import UserSession
from basegrid.services import audit_service, record_service, table_service, trash_service

MAX_BODY_LENGTH = 5000


def clean_body(body: str | None) -> str:
    text = (body or "").strip()
    if not text:
        raise BadRequestError("Comment body is required")
    if len(text) > MAX_BODY_LENGTH:
        raise BadRequestError(f"Comment must be at most {MAX_BODY_LENGTH} characters")
    return text


def load_comment(db: Session, record_id: int, comment_id: int) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None or comment.record_id != record_id:
        raise NotFoundError("Comment not found")
    return comment


def list_comments(db: Session, base_id: int, table_id: int, record_id: int) -> list[Comment]:
    table_service.get_table(db, base_id, table_id)
    record_service.get_record(db, table_id, record_id)
    return (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.record_id == record_id, Comment.is_trashed.is_(False))
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )


def create_comment(
    db: Session,
    base_id: int,
    table_id: int,
    record_id: int,
    body: str,
    session: UserSession,
    *,
    ip: str | None = None,
) -> Comment:
    table_service.load_table(db, base_id, table_id)
    record = record_service.load_record(db, table_id, record_id)
    trash_service.ensure_active(db, TrashEntity.RECORD, record)

    comment = Comment(
        record_id=record_id,
        body=clean_body(body),
        created_by_id=session.user_id,
        updated_by_id=session.user_id,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)

    audit_service.log_event(
        db, base_id, AuditAction.COMMENT_CREATED,
        f"Comment added on record #{record_id}",
        user_id=session.user_id,
        table_id=table_id,
        record_id=record_id,
        details={"comment_id": comment.id},
        ip=ip,
    )
    return comment


def _ensure_author(comment: Comment, session: UserSession) -> None:
    if not session.is_sysadmin and comment.created_by_id != session.user_id:
        raise ForbiddenError("Only the author can change this comment")


def edit_comment(
    db: Session,
    base_id: int,
    table_id: int,
    record_id: int,
    comment_id: int,
    body: str,
    session: UserSession,
    *,
    ip: str | None = None,
) -> Comment:
    table_service.load_table(db, base_id, table_id)
    record_service.load_record(db, table_id, record_id)
    comment = load_comment(db, record_id, comment_id)
    _ensure_author(comment, session)

    comment = trash_service.guarded_update(
        db,
        TrashEntity.COMMENT,
        comment_id,
        {"body": clean_body(body), "updated_by_id": session.user_id},
    )
    db.commit()

    audit_service.log_event(
        db, base_id, AuditAction.COMMENT_EDITED,
        f"Comment edited on record #{record_id}",
        user_id=session.user_id,
        table_id=table_id,
        record_id=record_id,
        details={"comment_id": comment.id},
        ip=ip,
    )
    return comment


def trash_comment(
    db: Session,
    base_id: int,
    table_id: int,
    record_id: int,
    comment_id: int,
    session: UserSession,
    *,
    ip: str | None = None,
) -> Comment:
    table_service.load_table(db, base_id, table_id)
    record_service.load_record(db, table_id, record_id)
    comment = load_comment(db, record_id, comment_id)
    _ensure_author(comment, session)
    return trash_service.soft_delete(db, TrashEntity.COMMENT, comment_id, actor=session, ip=ip)
