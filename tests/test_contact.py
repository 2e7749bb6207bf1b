import pytest

MESSAGE = {
    "name": "Grâce Mabiala",
    "email": "Grace.Mabiala@Example.com",
    "subject": "Partenariat",
    "message": "Bonjour, nous souhaitons organiser un salon avec vous.",
}


@pytest.fixture
async def contact_message(client):
    res = await client.post("/api/contact", json=MESSAGE)
    assert res.status_code == 201
    return res.json()["data"]["contact_message"]


async def test_public_submission(contact_message):
    assert contact_message["email"] == "grace.mabiala@example.com"
    assert contact_message["subject"] == "Partenariat"
    assert contact_message["submitted_at"]
    assert set(contact_message) == {"id", "name", "email", "subject", "submitted_at"}


async def test_blank_fields_are_rejected(client):
    res = await client.post("/api/contact", json={**MESSAGE, "message": "   "})
    assert res.status_code == 422
    res = await client.post("/api/contact", json={**MESSAGE, "email": "pas-un-email"})
    assert res.status_code == 422


async def test_listing_is_admin_only(client, collaborator, auth_headers, contact_message):
    res = await client.get("/api/contact", headers=auth_headers(collaborator))
    assert res.status_code == 403
    res = await client.get("/api/contact")
    assert res.status_code == 401


async def test_reading_marks_message_read(client, admin, auth_headers, contact_message):
    headers = auth_headers(admin)
    res = await client.get("/api/contact", headers=headers, params={"status": "Non lu"})
    assert res.json()["total"] == 1

    res = await client.get(f"/api/contact/{contact_message['id']}", headers=headers)
    message = res.json()["data"]["message"]
    assert message["status"] == "Lu"
    assert message["ip_address"]

    res = await client.get("/api/contact", headers=headers, params={"status": "Non lu"})
    assert res.json()["total"] == 0


async def test_update_status_and_stats(client, admin, auth_headers, contact_message):
    headers = auth_headers(admin)
    await client.post("/api/contact", json={**MESSAGE, "subject": "Autre demande"})

    res = await client.patch(
        f"/api/contact/{contact_message['id']}/status",
        headers=headers,
        json={"status": "Traité", "response_note": "Rappelé par téléphone"},
    )
    message = res.json()["data"]["message"]
    assert message["status"] == "Traité"
    assert message["response_note"] == "Rappelé par téléphone"
    assert message["responded_at"]

    res = await client.patch(f"/api/contact/{contact_message['id']}/status", headers=headers, json={"status": "Oublié"})
    assert res.status_code == 422

    res = await client.get("/api/contact/stats", headers=headers)
    stats = res.json()["data"]["stats"]
    assert stats["total"] == 2
    assert stats["this_month"] == 2
    assert stats["by_status"] == {"Traité": 1, "Non lu": 1}


async def test_delete_message(client, admin, auth_headers, contact_message):
    headers = auth_headers(admin)
    res = await client.delete(f"/api/contact/{contact_message['id']}", headers=headers)
    assert res.status_code == 204
    res = await client.get(f"/api/contact/{contact_message['id']}", headers=headers)
    assert res.status_code == 404
