import pytest

from app.auth.models import UserRole


@pytest.fixture
async def agent(make_user):
    return await make_user(UserRole.COLLABORATOR, name="Agent Immo")


async def _message(client, headers, **payload):
    return await client.post("/api/messages", headers=headers, json=payload)


async def test_create_or_get_conversation(client, client_user, agent, auth_headers):
    headers = auth_headers(client_user)
    res = await client.post("/api/conversations", headers=headers, json={"recipient_id": agent.id})
    assert res.status_code == 201
    conversation = res.json()["data"]["conversation"]
    assert set(conversation["participants"]) == {client_user.id, agent.id}
    assert conversation["other_user"]["id"] == agent.id

    res = await client.post("/api/conversations", headers=auth_headers(agent), json={"user_id": client_user.id})
    assert res.status_code == 200
    assert res.json()["data"]["conversation"]["_id"] == conversation["_id"]


async def test_conversation_validation(client, client_user, auth_headers):
    headers = auth_headers(client_user)
    res = await client.post("/api/conversations", headers=headers, json={})
    assert res.status_code == 400
    res = await client.post("/api/conversations", headers=headers, json={"participant_id": client_user.id})
    assert res.status_code == 400
    res = await client.post("/api/conversations", headers=headers, json={"participant_id": 4242})
    assert res.status_code == 404


async def test_send_message_updates_conversation(client, client_user, agent, auth_headers):
    res = await _message(client, auth_headers(client_user), receiver_id=agent.id, content="  Le bien est-il disponible ?  ")
    assert res.status_code == 201
    message = res.json()["data"]["message"]
    assert message["content"] == "Le bien est-il disponible ?"
    assert message["receiver"]["id"] == agent.id

    await _message(client, auth_headers(client_user), conversation_id=agent.id, content="Merci d'avance")

    res = await client.get("/api/conversations", headers=auth_headers(agent))
    conversations = res.json()["data"]["conversations"]
    assert len(conversations) == 1
    assert conversations[0]["other_user"]["id"] == client_user.id
    assert conversations[0]["unread_count"] == 2
    assert conversations[0]["last_message"]["content"] == "Merci d'avance"

    res = await client.get("/api/messages", headers=auth_headers(agent))
    entry = res.json()["data"]["conversations"][0]
    assert entry["user"]["id"] == client_user.id
    assert entry["unread_count"] == 2


async def test_send_message_validation(client, client_user, agent, auth_headers):
    headers = auth_headers(client_user)
    assert (await _message(client, headers, receiver_id=agent.id, content="   ")).status_code == 400
    assert (await _message(client, headers, content="Bonjour")).status_code == 400
    assert (await _message(client, headers, receiver_id=9999, content="Bonjour")).status_code == 404
    assert (await _message(client, headers, receiver_id=agent.id, content="x" * 5001)).status_code == 400


async def test_reading_thread_marks_messages_read(client, client_user, agent, auth_headers):
    await _message(client, auth_headers(client_user), receiver_id=agent.id, content="Premier")
    await _message(client, auth_headers(agent), receiver_id=client_user.id, content="Réponse")
    await _message(client, auth_headers(client_user), receiver_id=agent.id, content="Second")

    res = await client.get("/api/messages/unread/total", headers=auth_headers(agent))
    assert res.json()["data"] == {"internal_mails": 0, "messages": 2, "total": 2}

    res = await client.get(f"/api/messages/{client_user.id}", headers=auth_headers(agent))
    body = res.json()
    assert body["total"] == 3
    assert [m["content"] for m in body["data"]["messages"]] == ["Premier", "Réponse", "Second"]

    res = await client.get("/api/conversations/count/unread", headers=auth_headers(agent))
    assert res.json()["data"]["count"] == 0
    res = await client.get("/api/conversations", headers=auth_headers(agent))
    assert res.json()["data"]["conversations"][0]["unread_count"] == 0


async def test_mark_conversation_read(client, client_user, agent, auth_headers):
    await _message(client, auth_headers(client_user), receiver_id=agent.id, content="Bonjour")
    res = await client.patch(f"/api/conversations/{client_user.id}/read", headers=auth_headers(agent))
    assert res.json()["data"]["marked_count"] == 1


async def test_mark_single_message_read(client, client_user, agent, auth_headers):
    res = await _message(client, auth_headers(client_user), receiver_id=agent.id, content="Bonjour")
    message_id = res.json()["data"]["message"]["_id"]

    res = await client.patch(f"/api/messages/{message_id}/read", headers=auth_headers(client_user))
    assert res.status_code == 403
    res = await client.patch(f"/api/messages/{message_id}/read", headers=auth_headers(agent))
    assert res.json()["data"]["message"]["is_read"] is True


async def test_conversation_unread_count_follows_single_messages(client, client_user, agent, auth_headers):
    sender = auth_headers(client_user)
    first = (await _message(client, sender, receiver_id=agent.id, content="Bonjour")).json()["data"]["message"]
    second = (await _message(client, sender, receiver_id=agent.id, content="Relance")).json()["data"]["message"]
    await _message(client, sender, receiver_id=agent.id, content="Dernier")

    async def unread():
        res = await client.get("/api/conversations", headers=auth_headers(agent))
        count = (await client.get("/api/conversations/count/unread", headers=auth_headers(agent))).json()
        return res.json()["data"]["conversations"][0]["unread_count"], count["data"]["count"]

    await client.patch(f"/api/messages/{first['_id']}/read", headers=auth_headers(agent))
    assert await unread() == (2, 2)

    # une seconde lecture ne décompte pas deux fois
    await client.patch(f"/api/messages/{first['_id']}/read", headers=auth_headers(agent))
    assert await unread() == (2, 2)

    res = await client.delete(f"/api/messages/{second['_id']}", headers=sender)
    assert res.status_code == 204
    assert await unread() == (1, 1)

    res = await client.delete(f"/api/messages/{first['_id']}", headers=sender)
    assert await unread() == (1, 1)


async def test_delete_message_and_thread(client, client_user, agent, make_user, auth_headers):
    res = await _message(client, auth_headers(client_user), receiver_id=agent.id, content="À supprimer")
    message_id = res.json()["data"]["message"]["_id"]
    await _message(client, auth_headers(client_user), receiver_id=agent.id, content="Reste")

    outsider = await make_user()
    res = await client.delete(f"/api/messages/{message_id}", headers=auth_headers(outsider))
    assert res.status_code == 403
    res = await client.delete(f"/api/messages/{message_id}", headers=auth_headers(agent))
    assert res.status_code == 204

    res = await client.delete(f"/api/conversations/{agent.id}", headers=auth_headers(client_user))
    assert res.json()["data"]["deleted_count"] == 1
    res = await client.get("/api/conversations", headers=auth_headers(client_user))
    assert res.json()["results"] == 0
