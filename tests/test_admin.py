import json

import pytest

from app.auth.models import UserRole

PROPERTY = {
    "title": "Appartement meublé",
    "description": "Deux chambres, proche du marché Total.",
    "price": 350000,
    "status": "Location",
    "type": "Appartement",
    "address": {"district": "Bacongo"},
}


@pytest.fixture
async def pending_property(client, owner, auth_headers):
    res = await client.post(
        "/api/properties",
        headers=auth_headers(owner),
        data={"property_data": json.dumps(PROPERTY)},
    )
    assert res.status_code == 201
    return res.json()["data"]["property"]


async def test_admin_routes_are_staff_only(client, client_user, owner, auth_headers):
    for user in (client_user, owner):
        res = await client.get("/api/admin/stats", headers=auth_headers(user))
        assert res.status_code == 403
    res = await client.get("/api/admin/stats")
    assert res.status_code == 401


async def test_stats(client, admin, owner, client_user, auth_headers, pending_property):
    res = await client.get("/api/admin/stats", headers=auth_headers(admin))
    stats = res.json()["data"]
    assert stats["total_users"] == 3
    assert stats["total_owners"] == 1
    assert stats["total_properties"] == 1
    assert stats["pending_properties"] == 1
    assert stats["total_events"] == 0
    assert stats["total_portfolio_items"] == 0


async def test_recent_activity(client, collaborator, auth_headers, pending_property):
    res = await client.get("/api/admin/activity", headers=auth_headers(collaborator))
    activity = res.json()["data"]
    assert activity["new_properties"] == 1
    assert activity["new_users"] >= 2
    assert "hashed_password" not in activity["users"][0]


async def test_moderate_properties(client, collaborator, auth_headers, pending_property):
    headers = auth_headers(collaborator)

    res = await client.get("/api/admin/properties/status/pending", headers=headers)
    assert res.json()["results"] == 1

    res = await client.get("/api/admin/properties", headers=headers)
    assert res.json()["total"] == 1
    assert res.json()["data"]["properties"][0]["owner"]["role"] == "Propriétaire"

    res = await client.patch(f"/api/admin/properties/{pending_property['_id']}/approve", headers=headers)
    assert res.json()["message"] == "Propriété approuvée."
    assert res.json()["data"]["property"]["status_admin"] == "Validée"

    res = await client.patch(f"/api/admin/properties/{pending_property['_id']}/reject", headers=headers)
    assert res.json()["data"]["property"]["status_admin"] == "Rejetée"

    res = await client.delete(f"/api/admin/properties/{pending_property['_id']}", headers=headers)
    assert res.status_code == 204
    res = await client.patch(f"/api/admin/properties/{pending_property['_id']}/approve", headers=headers)
    assert res.status_code == 404


async def test_user_listing_and_detail(client, admin, owner, auth_headers):
    headers = auth_headers(admin)
    res = await client.get("/api/admin/owners", headers=headers)
    assert res.json()["results"] == 2

    res = await client.get(f"/api/admin/owners/{owner.id}", headers=headers)
    assert res.json()["data"]["user"]["email"] == owner.email

    res = await client.get("/api/admin/owners/9999", headers=headers)
    assert res.status_code == 404


async def test_verify_owner(client, admin, owner, client_user, auth_headers):
    headers = auth_headers(admin)
    res = await client.patch(f"/api/admin/owners/{owner.id}/verify", headers=headers)
    assert res.json()["data"]["user"]["is_verified"] is True

    res = await client.patch(f"/api/admin/owners/{client_user.id}/verify", headers=headers)
    assert res.status_code == 400


async def test_ban_revokes_sessions(client, admin, client_user, auth_headers):
    user_headers = auth_headers(client_user)
    assert (await client.get("/api/users/me", headers=user_headers)).status_code == 200

    res = await client.patch(f"/api/admin/owners/{client_user.id}/ban", headers=auth_headers(admin))
    assert res.json()["data"]["user"]["status"] == "Banni"

    res = await client.get("/api/users/me", headers=user_headers)
    assert res.status_code == 401

    res = await client.post("/api/users/login", json={"email": client_user.email, "password": "password123"})
    assert res.status_code == 403


async def test_suspend_then_activate(client, admin, client_user, auth_headers):
    headers = auth_headers(admin)
    res = await client.patch(f"/api/admin/owners/{client_user.id}/suspend", headers=headers)
    assert res.json()["data"]["user"]["status"] == "Suspendu"

    res = await client.patch(f"/api/admin/owners/{client_user.id}/activate", headers=headers)
    assert res.json()["data"]["user"]["status"] == "Actif"
    assert res.json()["data"]["user"]["is_active"] is True

    res = await client.post("/api/users/login", json={"email": client_user.email, "password": "password123"})
    assert res.status_code == 200


async def test_admins_cannot_be_banned(client, admin, make_user, auth_headers):
    other_admin = await make_user(UserRole.ADMIN)
    res = await client.patch(f"/api/admin/owners/{other_admin.id}/ban", headers=auth_headers(admin))
    assert res.status_code == 400
    res = await client.patch(f"/api/admin/owners/{other_admin.id}/suspend", headers=auth_headers(admin))
    assert res.status_code == 400


async def test_active_sessions_exclude_caller(client, admin, client_user, auth_headers):
    await client.get("/api/users/me", headers=auth_headers(client_user))
    res = await client.get("/api/admin/owners/active-sessions", headers=auth_headers(admin))
    ids = [u["id"] for u in res.json()["data"]["active_users"]]
    assert ids == [client_user.id]


async def test_delete_user(client, admin, client_user, auth_headers):
    res = await client.delete(f"/api/admin/owners/{client_user.id}", headers=auth_headers(admin))
    assert res.status_code == 204
    res = await client.get(f"/api/admin/owners/{client_user.id}", headers=auth_headers(admin))
    assert res.status_code == 404
