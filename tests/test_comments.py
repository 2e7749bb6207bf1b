from datetime import datetime, timedelta

import pytest

from app.auth.models import UserRole


@pytest.fixture
async def event(client, collaborator, auth_headers):
    payload = {
        "name": "Festival des saveurs",
        "description": "Gastronomie congolaise.",
        "guests": 300,
        "date": (datetime.utcnow() + timedelta(days=15)).isoformat(),
        "location": "Pointe-Noire",
    }
    res = await client.post("/api/events", headers=auth_headers(collaborator), json=payload)
    return res.json()["data"]["event"]


async def _comment(client, headers, target_id, content="Superbe événement !", target_type="Event"):
    return await client.post(
        "/api/comments",
        headers=headers,
        json={"target_type": target_type, "target_id": target_id, "content": content},
    )


async def test_create_and_list_comments(client, client_user, owner, auth_headers, event):
    res = await _comment(client, auth_headers(client_user), event["_id"], content="  J'y serai !  ")
    assert res.status_code == 201
    comment = res.json()["data"]["comment"]
    assert comment["content"] == "J'y serai !"
    assert comment["author"]["id"] == client_user.id
    assert comment["is_edited"] is False

    await _comment(client, auth_headers(owner), event["_id"])

    res = await client.get(f"/api/comments/Event/{event['_id']}")
    body = res.json()
    assert body["total_comments"] == 2
    assert body["data"]["comments"][0]["author"]["id"] == owner.id

    res = await client.get(f"/api/comments/Event/{event['_id']}/count")
    assert res.json()["data"]["count"] == 2

    res = await client.get("/api/comments/user/me", headers=auth_headers(client_user))
    assert res.json()["results"] == 1


async def test_comment_validation(client, client_user, auth_headers, event):
    headers = auth_headers(client_user)
    assert (await _comment(client, headers, event["_id"], content=" ok ")).status_code == 422
    assert (await _comment(client, headers, event["_id"], content="x" * 1001)).status_code == 422
    assert (await _comment(client, headers, event["_id"], target_type="Concert")).status_code == 422

    res = await _comment(client, headers, "0123456789abcdef01234567")
    assert res.status_code == 404
    assert res.json()["message"] == "Événement non trouvé(e)."

    res = await _comment(client, headers, event["_id"], target_type="Property")
    assert res.status_code == 404


async def test_comment_on_catalog_service(client, collaborator, client_user, auth_headers):
    res = await client.post(
        "/api/services",
        headers=auth_headers(collaborator),
        json={"title": "Shooting photo", "description": "Séance en studio.", "pole": "Altcom", "price": 50000},
    )
    service_id = res.json()["data"]["service"]["_id"]
    res = await _comment(client, auth_headers(client_user), service_id, target_type="Service")
    assert res.status_code == 201


async def test_only_author_edits(client, client_user, make_user, auth_headers, event):
    res = await _comment(client, auth_headers(client_user), event["_id"])
    comment_id = res.json()["data"]["comment"]["_id"]
    other = await make_user(UserRole.CLIENT)

    res = await client.patch(f"/api/comments/{comment_id}", headers=auth_headers(other), json={"content": "Piraté"})
    assert res.status_code == 403

    res = await client.patch(f"/api/comments/{comment_id}", headers=auth_headers(client_user), json={"content": "Modifié"})
    comment = res.json()["data"]["comment"]
    assert comment["content"] == "Modifié"
    assert comment["is_edited"] is True
    assert comment["edited_at"]


async def test_author_or_admin_deletes(client, client_user, make_user, admin, auth_headers, event):
    first = (await _comment(client, auth_headers(client_user), event["_id"])).json()["data"]["comment"]
    second = (await _comment(client, auth_headers(client_user), event["_id"])).json()["data"]["comment"]
    other = await make_user(UserRole.CLIENT)

    res = await client.delete(f"/api/comments/{first['_id']}", headers=auth_headers(other))
    assert res.status_code == 403
    res = await client.delete(f"/api/comments/{first['_id']}", headers=auth_headers(client_user))
    assert res.status_code == 204
    res = await client.delete(f"/api/comments/{second['_id']}", headers=auth_headers(admin))
    assert res.status_code == 204

    res = await client.get(f"/api/comments/Event/{event['_id']}/count")
    assert res.json()["data"]["count"] == 0


async def test_comment_requires_authentication(client, event):
    res = await client.post("/api/comments", json={"target_type": "Event", "target_id": event["_id"], "content": "Salut"})
    assert res.status_code == 401
