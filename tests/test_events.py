from datetime import datetime, timedelta

import pytest

from app.events.services import with_virtuals

MP4 = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 32
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _event(name, days, **extra):
    return {
        "name": name,
        "description": "Une soirée inoubliable.",
        "guests": 120,
        "date": (datetime.utcnow() + timedelta(days=days)).isoformat(),
        "location": "Brazzaville",
        **extra,
    }


@pytest.fixture
async def staff_headers(collaborator, auth_headers):
    return auth_headers(collaborator)


async def _create(client, headers, payload):
    res = await client.post("/api/events", headers=headers, json=payload)
    assert res.status_code == 201, res.text
    return res.json()["data"]["event"]


def test_with_virtuals_counts_media_and_days():
    now = datetime(2026, 1, 1, 12, 0)
    doc = with_virtuals(
        {"images": ["a", "b"], "videos": ["v"], "date": now + timedelta(days=2, hours=1)},
        now=now,
    )
    assert doc["media_count"] == 3
    assert doc["is_upcoming"] is True
    assert doc["is_past"] is False
    assert doc["days_until_event"] == 3


async def test_staff_creates_event(client, collaborator, staff_headers):
    event = await _create(client, staff_headers, _event("Gala annuel", 10, category="Gala"))
    assert event["created_by"] == collaborator.id
    assert event["status"] == "Publié"
    assert event["is_upcoming"] is True
    assert event["media_count"] == 0


async def test_client_cannot_create_event(client, client_user, auth_headers):
    res = await client.post("/api/events", headers=auth_headers(client_user), json=_event("Gala", 3))
    assert res.status_code == 403


async def test_create_rejects_too_many_videos(client, staff_headers):
    videos = [f"https://cdn.example.com/v{i}.mp4" for i in range(4)]
    res = await client.post("/api/events", headers=staff_headers, json=_event("Gala", 3, videos=videos))
    assert res.status_code == 422


async def test_public_listings(client, staff_headers):
    await _create(client, staff_headers, _event("Mariage Ngoma", 5, category="Mariage", featured=True))
    await _create(client, staff_headers, _event("Conférence Tech", 20, category="Conférence"))
    await _create(client, staff_headers, _event("Lancement passé", -10, category="Lancement"))
    await _create(client, staff_headers, _event("Brouillon futur", 2, status="Brouillon"))

    res = await client.get("/api/events")
    body = res.json()
    assert body["total"] == 4
    assert body["data"]["events"][0]["name"] == "Conférence Tech"

    res = await client.get("/api/events/upcoming")
    assert [e["name"] for e in res.json()["data"]["events"]] == ["Mariage Ngoma", "Conférence Tech"]

    res = await client.get("/api/events/upcoming", params={"limit": 1})
    assert res.json()["results"] == 1

    res = await client.get("/api/events/featured")
    assert [e["name"] for e in res.json()["data"]["events"]] == ["Mariage Ngoma"]

    res = await client.get("/api/events/category/Mariage")
    assert res.json()["results"] == 1

    res = await client.get("/api/events/category/Pique-nique")
    assert res.status_code == 400


async def test_list_filters_by_date(client, staff_headers):
    await _create(client, staff_headers, _event("Gala de fin d'année", 30))
    await _create(client, staff_headers, _event("Atelier passé", -400))

    since = (datetime.utcnow() - timedelta(days=1)).date().isoformat()
    res = await client.get("/api/events", params={"date[gte]": since})
    body = res.json()
    assert body["total"] == 1
    assert body["data"]["events"][0]["name"] == "Gala de fin d'année"

    res = await client.get("/api/events", params={"date[gte]": "2020-01-01", "date[lt]": since})
    assert [e["name"] for e in res.json()["data"]["events"]] == ["Atelier passé"]


async def test_list_rejects_unknown_sort(client):
    res = await client.get("/api/events", params={"sort": "guests"})
    assert res.status_code == 400


async def test_update_and_delete(client, staff_headers):
    event = await _create(client, staff_headers, _event("Gala", 5))

    res = await client.patch(f"/api/events/{event['_id']}", headers=staff_headers, json={"guests": 300})
    assert res.json()["data"]["event"]["guests"] == 300

    res = await client.put(f"/api/events/{event['_id']}", headers=staff_headers, json={"location": "Pointe-Noire"})
    assert res.json()["data"]["event"]["location"] == "Pointe-Noire"

    res = await client.patch(f"/api/events/{event['_id']}", headers=staff_headers, json={})
    assert res.status_code == 400

    res = await client.delete(f"/api/events/{event['_id']}", headers=staff_headers)
    assert res.status_code == 204
    assert (await client.get(f"/api/events/{event['_id']}")).status_code == 404


async def test_upload_images(client, staff_headers, upload_dir):
    event = await _create(client, staff_headers, _event("Gala", 5))
    res = await client.post(
        f"/api/events/{event['_id']}/images",
        headers=staff_headers,
        files=[("images", ("a.png", PNG, "image/png")), ("images", ("b.jpg", PNG, "image/jpeg"))],
    )
    assert res.status_code == 200
    updated = res.json()["data"]["event"]
    assert updated["image_count"] == 2
    assert all(url.startswith("/static/uploads/events/") for url in updated["images"])

    res = await client.post(f"/api/events/{event['_id']}/images", headers=staff_headers)
    assert res.status_code == 400


async def test_video_limit_checked_before_saving(client, staff_headers, upload_dir):
    existing = [f"https://cdn.example.com/v{i}.mp4" for i in range(2)]
    event = await _create(client, staff_headers, _event("Gala", 5, videos=existing))

    res = await client.post(
        f"/api/events/{event['_id']}/videos",
        headers=staff_headers,
        files=[("videos", ("c.mp4", MP4, "video/mp4")), ("videos", ("d.mp4", MP4, "video/mp4"))],
    )
    assert res.status_code == 400
    assert not (upload_dir / "events").exists()

    res = await client.post(
        f"/api/events/{event['_id']}/videos",
        headers=staff_headers,
        files=[("videos", ("c.mp4", MP4, "video/mp4"))],
    )
    assert res.status_code == 200
    assert res.json()["data"]["event"]["video_count"] == 3
