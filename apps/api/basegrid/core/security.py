"""JWT session tokens."""

from datetime import datetime, timedelta, timezone

import jwt

from basegrid.core.config import settings


def create_session_token(user_id: int, token_version: int) -> str:
    """
    Create signed session JWT.

    Always signs with the current secret (JWT_SECRET).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "token_version": token_version,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries the current secret first, then the previous one, so secrets can be
    rotated without logging everybody out.

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = jwt.InvalidTokenError("No JWT secret configured")
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
    raise last_error
