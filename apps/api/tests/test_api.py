"""HTTP surface: auth, CSRF, error translation and an end-to-end records flow."""

import pytest
from httpx import AsyncClient

from basegrid.db.enums import BaseRole
from basegrid.services import member_service, table_service


# =============================================================================
# Health and auth
# =============================================================================

@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})

    assert response.headers["X-Request-ID"] == "abc123"


@pytest.mark.asyncio
async def test_me_requires_auth(client: AsyncClient):
    response = await client.get("/me")

    assert response.status_code == 401
    assert response.json()["code"] == "not_authenticated"


@pytest.mark.asyncio
async def test_me_with_bearer_token(client: AsyncClient, owner_auth):
    response = await client.get("/me", headers=owner_auth.headers)

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "owner@test.com"
    assert body["platform_role"] == "USER"
    assert body["can_create_bases"] is True


@pytest.mark.asyncio
async def test_garbage_token(client: AsyncClient):
    response = await client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


# =============================================================================
# CSRF and validation
# =============================================================================

@pytest.mark.asyncio
async def test_cookie_mutation_without_csrf_header(client: AsyncClient, owner_auth):
    client.cookies.set(owner_auth.cookie_name, owner_auth.token)

    response = await client.post("/workspaces", json={"name": "Sales"})

    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


@pytest.mark.asyncio
async def test_bearer_mutation_needs_no_csrf_header(client: AsyncClient, owner_auth):
    response = await client.post("/workspaces", json={"name": "Sales"}, headers=owner_auth.headers)

    assert response.status_code == 201
    assert response.json()["name"] == "Sales"


@pytest.mark.asyncio
async def test_workspace_creation_needs_grant(client: AsyncClient, other_auth):
    response = await client.post("/workspaces", json={"name": "Sales"}, headers=other_auth.headers)

    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


@pytest.mark.asyncio
async def test_validation_error_shape(authed_client: AsyncClient):
    response = await authed_client.post("/bases", json={})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "bad_request"
    assert body["details"][0]["loc"] == ["body", "name"]


# =============================================================================
# Bases
# =============================================================================

@pytest.mark.asyncio
async def test_base_creation_needs_grant(client: AsyncClient, other_auth):
    response = await client.post("/bases", json={"name": "Mine"}, headers=other_auth.headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_private_base_is_not_found_for_strangers(client: AsyncClient, base, other_auth):
    response = await client.get(f"/bases/{base.id}", headers=other_auth.headers)

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_viewer_cannot_create_records(client: AsyncClient, db, base, table, owner_session, other_user, other_auth):
    member_service.add_member(db, base.id, BaseRole.VIEWER, owner_session, user_id=other_user.id)

    listed = await client.get(f"/bases/{base.id}/tables/{table.id}/records", headers=other_auth.headers)
    created = await client.post(
        f"/bases/{base.id}/tables/{table.id}/records", json={"values": {}}, headers=other_auth.headers,
    )

    assert listed.status_code == 200
    assert created.status_code == 403
    assert "editor" in created.json()["detail"]


@pytest.mark.asyncio
async def test_list_bases_includes_role(client: AsyncClient, db, base, owner_session, other_user, other_auth):
    member_service.add_member(db, base.id, BaseRole.EDITOR, owner_session, user_id=other_user.id)

    response = await client.get("/bases", headers=other_auth.headers)

    assert response.status_code == 200
    [item] = response.json()
    assert item["id"] == base.id
    assert item["membership_role"] == "EDITOR"
    assert item["owner"]["email"] == "owner@test.com"


@pytest.mark.asyncio
async def test_duplicate_base_name_conflicts(authed_client: AsyncClient, base):
    response = await authed_client.post("/bases", json={"name": "CRM"})

    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


# =============================================================================
# Records flow
# =============================================================================

@pytest.mark.asyncio
async def test_records_flow(authed_client: AsyncClient):
    base = (await authed_client.post("/bases", json={"name": "Sales"})).json()
    table = (await authed_client.post(f"/bases/{base['id']}/tables", json={"name": "Deals"})).json()
    prefix = f"/bases/{base['id']}/tables/{table['id']}"

    score = (await authed_client.post(f"{prefix}/fields", json={"name": "Score", "type": "NUMBER"})).json()
    stage = (await authed_client.post(
        f"{prefix}/fields",
        json={"name": "Stage", "type": "SINGLE_SELECT", "options": [{"label": "Open"}, {"label": "Won"}]},
    )).json()
    options = (await authed_client.get(f"{prefix}/fields/{stage['id']}/options")).json()

    created = await authed_client.post(
        f"{prefix}/records",
        json={"values": {str(score["id"]): "12.5", str(stage["id"]): options[0]["id"]}},
    )
    assert created.status_code == 201
    record = created.json()
    assert record["values"] == {str(score["id"]): 12.5, str(stage["id"]): options[0]["id"]}

    cell = await authed_client.put(
        f"{prefix}/records/{record['id']}/cells/{score['id']}", json={"value": "not a number"},
    )
    assert cell.status_code == 400

    cell = await authed_client.put(f"{prefix}/records/{record['id']}/cells/{score['id']}", json={"value": 7})
    assert cell.status_code == 200
    assert cell.json() == {"record_id": record["id"], "field_id": score["id"], "value": 7}

    listing = (await authed_client.get(f"{prefix}/records")).json()
    assert listing["total"] == 1
    assert [f["name"] for f in listing["fields"]] == ["Score", "Stage"]
    assert listing["items"][0]["values"][str(score["id"])] == 7

    changed = await authed_client.post(f"{prefix}/fields/{score['id']}/type", json={"type": "TEXT"})
    assert changed.status_code == 409

    deleted = await authed_client.delete(f"{prefix}/records/{record['id']}")
    assert deleted.status_code == 204
    assert (await authed_client.get(f"{prefix}/records/{record['id']}")).status_code == 404


# =============================================================================
# Trash and audit
# =============================================================================

@pytest.mark.asyncio
async def test_trash_and_restore_table(authed_client: AsyncClient, base, table):
    trashed = await authed_client.delete(f"/bases/{base.id}/tables/{table.id}")
    assert trashed.status_code == 200
    assert trashed.json()["is_trashed"] is True

    rename = await authed_client.patch(f"/bases/{base.id}/tables/{table.id}", json={"name": "X"})
    assert rename.status_code == 409

    listing = (await authed_client.get("/trash/table")).json()
    assert [item["id"] for item in listing] == [table.id]
    assert listing[0]["parent_id"] == base.id

    restored = await authed_client.post(f"/trash/table/{table.id}/restore")
    assert restored.status_code == 200
    assert restored.json()["name"] == "Contacts"

    again = await authed_client.post(f"/trash/table/{table.id}/restore")
    assert again.status_code == 409
    assert again.json()["code"] == "invalid_state"


@pytest.mark.asyncio
async def test_trash_of_others_is_invisible(client: AsyncClient, db, base, table, owner_session, other_auth):
    table_service.trash_table(db, base.id, table.id, owner_session)

    listing = await client.get("/trash/table", headers=other_auth.headers)
    restore = await client.post(f"/trash/table/{table.id}/restore", headers=other_auth.headers)

    assert listing.json() == []
    assert restore.status_code == 403


@pytest.mark.asyncio
async def test_unknown_trash_entity(authed_client: AsyncClient):
    response = await authed_client.get("/trash/spreadsheet")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_audit_never_exposes_ip(authed_client: AsyncClient, base, table):
    response = await authed_client.get(f"/bases/{base.id}/audit")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert all("ip" not in item for item in body["items"])
    assert body["items"][0]["action"] == "TABLE_CREATED"
