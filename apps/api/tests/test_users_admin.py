"""Platform user administration: listing, lookup and grants."""

import pytest
from httpx import AsyncClient

from basegrid.core.errors import BadRequestError, NotFoundError
from basegrid.db.enums import PlatformRole
from basegrid.services import user_service
from basegrid.utils.pagination import PaginationParams


def test_list_users_filters(db, owner, other_user, sysadmin, make_user):
    make_user("gone@test.com", full_name="Gina Gone", is_active=False)

    everyone, total = user_service.list_users(db, PaginationParams())
    admins, _ = user_service.list_users(db, PaginationParams(), platform_role=PlatformRole.SYSADMIN)
    inactive, _ = user_service.list_users(db, PaginationParams(), is_active=False)
    searched, _ = user_service.list_users(db, PaginationParams(), q="oscar")

    assert total == 4
    assert [u.id for u in everyone] == sorted(u.id for u in everyone)
    assert [u.id for u in admins] == [sysadmin.id]
    assert [u.email for u in inactive] == ["gone@test.com"]
    assert [u.id for u in searched] == [other_user.id]


def test_list_users_paginates(db, owner, other_user, sysadmin):
    page, total = user_service.list_users(db, PaginationParams(page=2, per_page=2))

    assert total == 3
    assert [u.id for u in page] == [sysadmin.id]


def test_get_missing_user(db):
    with pytest.raises(NotFoundError):
        user_service.get_user(db, 999)


def test_grant_base_creation(db, other_user, admin_session):
    updated = user_service.update_user(db, other_user.id, admin_session, can_create_bases=True)

    assert updated.can_create_bases is True


def test_deactivation_revokes_sessions(db, other_user, admin_session):
    version = other_user.token_version

    updated = user_service.update_user(db, other_user.id, admin_session, is_active=False)

    assert updated.is_active is False
    assert updated.token_version == version + 1


def test_sysadmin_cannot_demote_or_deactivate_self(db, sysadmin, admin_session):
    with pytest.raises(BadRequestError):
        user_service.update_user(db, sysadmin.id, admin_session, platform_role=PlatformRole.USER)
    with pytest.raises(BadRequestError):
        user_service.update_user(db, sysadmin.id, admin_session, is_active=False)

    renamed = user_service.update_user(db, sysadmin.id, admin_session, full_name="  Ada Lovelace ")
    assert renamed.full_name == "Ada Lovelace"
    assert renamed.platform_role == PlatformRole.SYSADMIN.value


# =============================================================================
# HTTP
# =============================================================================

@pytest.mark.asyncio
async def test_user_admin_is_sysadmin_only(client: AsyncClient, owner_auth):
    response = await client.get("/users/admin", headers=owner_auth.headers)

    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


@pytest.mark.asyncio
async def test_list_users_endpoint(client: AsyncClient, owner, admin_auth):
    response = await client.get(
        "/users/admin", params={"per_page": 1, "q": "owner"}, headers=admin_auth.headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["pages"] == 1
    assert body["items"][0]["email"] == "owner@test.com"


@pytest.mark.asyncio
async def test_get_user_endpoint(client: AsyncClient, other_user, admin_auth):
    found = await client.get(f"/users/admin/{other_user.id}", headers=admin_auth.headers)
    missing = await client.get("/users/admin/999", headers=admin_auth.headers)

    assert found.status_code == 200
    assert found.json()["platform_role"] == "USER"
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_grant_unlocks_base_creation(client: AsyncClient, other_user, other_auth, admin_auth):
    denied = await client.post("/bases", json={"name": "Mine"}, headers=other_auth.headers)
    assert denied.status_code == 403

    patched = await client.patch(
        f"/users/admin/{other_user.id}",
        json={"can_create_bases": True},
        headers=admin_auth.headers,
    )
    assert patched.status_code == 200
    assert patched.json()["can_create_bases"] is True

    created = await client.post("/bases", json={"name": "Mine"}, headers=other_auth.headers)
    assert created.status_code == 201


@pytest.mark.asyncio
async def test_deactivated_user_is_logged_out(client: AsyncClient, other_user, other_auth, admin_auth):
    response = await client.patch(
        f"/users/admin/{other_user.id}", json={"is_active": False}, headers=admin_auth.headers,
    )

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    me = await client.get("/me", headers=other_auth.headers)
    assert me.status_code == 401
