"""
Test configuration and fixtures.

Provides:
- A fresh in-memory SQLite schema per test
- Users, sessions, bases and tables built through the services
- JWT token minting for authenticated tests
- HTTPX AsyncClient with dependency overrides
"""
import os
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Generator

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DIRECT_DATABASE_URL"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["INTERNAL_SECRET"] = "test-internal-secret"
os.environ["SENTRY_DSN"] = ""
os.environ["ENV"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from basegrid.core.deps import COOKIE_NAME, get_db, get_direct_db
from basegrid.core.security import create_session_token
from basegrid.db.base import Base
from basegrid.db.enums import BaseVisibility, PlatformRole
from basegrid.db.models import BaseDef, TableDef, User
from basegrid.db.session import SessionLocal, engine
from basegrid.main import app
from basegrid.schemas.auth import UserSession
from basegrid.services import base_service, table_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates every table on the shared in-memory database, yields a session
    and drops everything afterwards.

    Services commit and open savepoints freely, so each test gets its own
    schema instead of an outer rollback.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def to_session(user: User) -> UserSession:
    return UserSession(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        platform_role=PlatformRole(user.platform_role),
        can_create_bases=user.can_create_bases,
    )


@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    """Factory for users: make_user("ana@test.com", can_create_bases=True)."""
    def _make(
        email: str,
        *,
        full_name: str | None = None,
        platform_role: PlatformRole = PlatformRole.USER,
        can_create_bases: bool = False,
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email,
            full_name=full_name or email.split("@")[0].title(),
            platform_role=platform_role.value,
            can_create_bases=can_create_bases,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture(scope="function")
def owner(make_user) -> User:
    return make_user("owner@test.com", full_name="Olivia Owner", can_create_bases=True)


@pytest.fixture(scope="function")
def other_user(make_user) -> User:
    return make_user("other@test.com", full_name="Oscar Other")


@pytest.fixture(scope="function")
def sysadmin(make_user) -> User:
    return make_user("admin@test.com", full_name="Ada Admin", platform_role=PlatformRole.SYSADMIN)


@pytest.fixture(scope="function")
def owner_session(owner: User) -> UserSession:
    return to_session(owner)


@pytest.fixture(scope="function")
def other_session(other_user: User) -> UserSession:
    return to_session(other_user)


@pytest.fixture(scope="function")
def admin_session(sysadmin: User) -> UserSession:
    return to_session(sysadmin)


@pytest.fixture(scope="function")
def base(db: Session, owner_session: UserSession) -> BaseDef:
    """A PRIVATE base owned by `owner`."""
    return base_service.create_base(db, owner_session, name="CRM", visibility=BaseVisibility.PRIVATE)


@pytest.fixture(scope="function")
def table(db: Session, base: BaseDef, owner_session: UserSession) -> TableDef:
    return table_service.create_table(db, base.id, "Contacts", owner_session)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def make_auth(user: User) -> TestAuth:
    return TestAuth(user=user, token=create_session_token(user.id, user.token_version))


@pytest.fixture(scope="function")
def owner_auth(owner: User) -> TestAuth:
    return make_auth(owner)


@pytest.fixture(scope="function")
def other_auth(other_user: User) -> TestAuth:
    return make_auth(other_user)


@pytest.fixture(scope="function")
def admin_auth(sysadmin: User) -> TestAuth:
    return make_auth(sysadmin)


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_db(db: Session) -> None:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_direct_db] = override_get_db


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Unauthenticated AsyncClient. Pass ``headers=auth.headers`` per request
    to act as a given user with a Bearer token.
    """
    _override_db(db)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    owner_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient authenticated as `owner` with the session cookie and CSRF header.
    """
    _override_db(db)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={owner_auth.cookie_name: owner_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()
