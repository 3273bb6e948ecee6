"""Session tokens: signing, rotation and revocation."""

from types import SimpleNamespace

import jwt
import pytest
from httpx import AsyncClient

from basegrid.core import security
from basegrid.core.config import settings
from basegrid.core.security import create_session_token, decode_session_token


def test_token_round_trip():
    token = create_session_token(42, 3)

    payload = decode_session_token(token)

    assert payload["sub"] == "42"
    assert payload["token_version"] == 3
    assert payload["exp"] > payload["iat"]


def test_previous_secret_still_accepted(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "old-secret")
    token = create_session_token(1, 0)

    monkeypatch.setattr(settings, "JWT_SECRET", "new-secret")
    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "old-secret")
    assert decode_session_token(token)["sub"] == "1"

    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "")
    with pytest.raises(jwt.InvalidTokenError):
        decode_session_token(token)


def test_tampered_token_is_rejected():
    token = create_session_token(1, 0)
    forged = jwt.encode({"sub": "1", "token_version": 0}, "someone-elses-secret", algorithm="HS256")

    assert security.decode_session_token(token)["sub"] == "1"
    with pytest.raises(jwt.InvalidTokenError):
        security.decode_session_token(forged)


def test_no_configured_secret_rejects_token(monkeypatch):
    token = create_session_token(1, 0)
    monkeypatch.setattr(security, "settings", SimpleNamespace(jwt_secrets=[]))

    with pytest.raises(jwt.InvalidTokenError):
        decode_session_token(token)


@pytest.mark.asyncio
async def test_revoked_token_version(client: AsyncClient, db, owner, owner_auth):
    owner.token_version += 1
    db.commit()

    response = await client.get("/me", headers=owner_auth.headers)

    assert response.status_code == 401
    assert response.json()["detail"] == "Session revoked"


@pytest.mark.asyncio
async def test_disabled_account(client: AsyncClient, db, owner, owner_auth):
    owner.is_active = False
    db.commit()

    response = await client.get("/me", headers=owner_auth.headers)

    assert response.status_code == 401
    assert response.json()["detail"] == "Account disabled"
