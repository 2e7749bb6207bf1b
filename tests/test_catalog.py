SERVICE = {
    "title": "Couverture photo et vidéo",
    "description": "Reportage complet de votre événement.",
    "pole": "MilaEvents",
    "price": 150000,
    "options": [{"name": "Drone", "price": 50000}],
}


async def _create(client, headers, **overrides):
    return await client.post("/api/services", headers=headers, json={**SERVICE, **overrides})


async def test_staff_creates_service(client, collaborator, client_user, auth_headers):
    res = await _create(client, auth_headers(client_user))
    assert res.status_code == 403

    res = await _create(client, auth_headers(collaborator), title="  Couverture photo et vidéo ")
    assert res.status_code == 201
    service = res.json()["data"]["service"]
    assert service["title"] == "Couverture photo et vidéo"
    assert service["options"] == [{"name": "Drone", "price": 50000, "description": None}]


async def test_duplicate_title_is_rejected(client, collaborator, auth_headers):
    headers = auth_headers(collaborator)
    await _create(client, headers)
    res = await _create(client, headers, pole="Altcom")
    assert res.status_code == 400


async def test_public_listing_by_pole(client, collaborator, auth_headers):
    headers = auth_headers(collaborator)
    await _create(client, headers)
    await _create(client, headers, title="Gestion locative", pole="Altimmo", price=0)
    await _create(client, headers, title="Community management", pole="Altcom")
    await _create(client, headers, title="Animation DJ", pole="MilaEvents")

    res = await client.get("/api/services")
    assert [s["pole"] for s in res.json()["data"]["services"]] == ["Altcom", "Altimmo", "MilaEvents", "MilaEvents"]

    res = await client.get("/api/services", params={"pole": "MilaEvents"})
    assert [s["title"] for s in res.json()["data"]["services"]] == ["Animation DJ", "Couverture photo et vidéo"]

    res = await client.get("/api/services", params={"pole": "Inconnu"})
    assert res.status_code == 422


async def test_update_and_delete(client, admin, collaborator, auth_headers):
    headers = auth_headers(collaborator)
    service = (await _create(client, headers)).json()["data"]["service"]
    other = (await _create(client, headers, title="Sonorisation")).json()["data"]["service"]

    res = await client.patch(f"/api/services/{service['_id']}", headers=headers, json={"price": 175000})
    assert res.json()["data"]["service"]["price"] == 175000

    res = await client.patch(f"/api/services/{other['_id']}", headers=headers, json={"title": service["title"]})
    assert res.status_code == 400

    res = await client.patch(f"/api/services/{service['_id']}", headers=headers, json={})
    assert res.status_code == 400

    res = await client.delete(f"/api/services/{service['_id']}", headers=headers)
    assert res.status_code == 403
    res = await client.delete(f"/api/services/{service['_id']}", headers=auth_headers(admin))
    assert res.status_code == 204
    assert (await client.get(f"/api/services/{service['_id']}")).status_code == 404
