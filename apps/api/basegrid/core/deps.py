"""FastAPI dependencies for authentication, authorization, and database access."""

import logging
from typing import Generator

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from basegrid.core.errors import ForbiddenError, NotAuthenticatedError
from basegrid.core.permissions import Action, PermissionContext, PlatformContext
from basegrid.core.security import decode_session_token
from basegrid.db.enums import PlatformRole
from basegrid.db.session import DirectSessionLocal, SessionLocal
from basegrid.schemas.auth import TokenPayload, UserSession
from basegrid.services import audit_service, permission_service

logger = logging.getLogger(__name__)

# Cookie and header names
COOKIE_NAME = "basegrid_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency (pooled connection).

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_direct_db() -> Generator[Session, None, None]:
    """
    Database session on the direct (non-pooled) connection.

    Used by routes whose transaction spans several statements: cascades,
    restores, reorders, type changes and multi-cell writes.
    """
    db = DirectSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_client_ip(request: Request) -> str | None:
    return audit_service.get_client_ip(request)


def _read_token(request: Request) -> str | None:
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """
    Get authenticated user from the session cookie or Bearer token.

    Validates:
    - Token exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        NotAuthenticatedError: Authentication failed
    """
    # Import here to avoid circular imports
    from basegrid.db.models import User

    token = _read_token(request)
    if not token:
        raise NotAuthenticatedError()

    try:
        payload = TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, ValueError):
        raise NotAuthenticatedError("Invalid session")

    user = db.query(User).filter(User.id == payload.sub).first()
    if not user:
        raise NotAuthenticatedError("User not found")

    if not user.is_active:
        raise NotAuthenticatedError("Account disabled")

    if user.token_version != payload.token_version:
        raise NotAuthenticatedError("Session revoked")

    return user


def get_current_session(request: Request, db: Session = Depends(get_db)) -> UserSession:
    """
    Session context for the authenticated actor.

    This is the PRIMARY auth dependency for most endpoints.
    Unknown platform roles are treated as USER.
    """
    user = get_current_user(request, db)
    role = (
        PlatformRole(user.platform_role)
        if PlatformRole.has_value(user.platform_role)
        else PlatformRole.USER
    )
    return UserSession(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        platform_role=role,
        can_create_bases=user.can_create_bases,
    )


def require_base_action(action: Action):
    """
    Dependency factory for base-scoped authorization.

    Resolves the PermissionContext for the `base_id` path parameter and
    evaluates `can`. Actors who cannot view the base get 404.

    Usage:
        @router.get("/{base_id}/tables")
        def list_tables(ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ))):
            ...
    """
    def dependency(
        base_id: int,
        session: UserSession = Depends(get_current_session),
        db: Session = Depends(get_db),
    ) -> PermissionContext:
        return permission_service.authorize_base_action(db, session, base_id, action)

    return dependency


def require_platform_action(action: Action):
    """Dependency factory for platform-scoped authorization."""
    def dependency(session: UserSession = Depends(get_current_session)) -> PlatformContext:
        ctx = permission_service.resolve_platform_context(session)
        permission_service.ensure_can(ctx, action)
        return ctx

    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on cookie-authenticated mutations.

    Apply to state-changing endpoints (POST, PATCH, PUT, DELETE). Bearer
    token clients don't send cookies and are exempt.

    Raises:
        ForbiddenError: Missing CSRF header
    """
    if COOKIE_NAME not in request.cookies:
        return
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise ForbiddenError(f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'")
