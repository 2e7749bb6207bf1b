from datetime import datetime, timedelta
import json

import pytest

BRIEF = {
    "contact_name": "Nadia Loemba",
    "company_name": "Brasserie du Congo",
    "email": "N.Loemba@Brasserie.cg",
    "project_name": "Lancement nouvelle boisson",
    "project_type": "Campagne Publicitaire",
    "target_audience": "18-35 ans, zones urbaines",
    "objectives": "Notoriété et essai produit",
    "budget": "5M-10M",
    "detailed_description": "Campagne 360 : affichage, radio et réseaux sociaux.",
}


@pytest.fixture
async def project(client):
    res = await client.post("/api/altcom/projects", json=BRIEF)
    assert res.status_code == 201
    return res.json()["data"]["project"]


async def test_root(client):
    res = await client.get("/")
    body = res.json()
    assert body["status"] == "success"
    assert body["version"]


async def test_submit_project(client, project, mongo):
    assert project["status"] == "En attente"
    assert set(project) == {"id", "project_name", "status", "submitted_at"}

    stored = await mongo["altcom_projects"].find_one({})
    assert stored["email"] == "n.loemba@brasserie.cg"
    assert stored["project_category"] == "Stratégie"
    assert stored["has_existing_materials"] is False


async def test_submit_validation(client):
    res = await client.post("/api/altcom/projects", json={**BRIEF, "project_name": "   "})
    assert res.status_code == 422
    res = await client.post("/api/altcom/projects", json={**BRIEF, "budget": "Illimité"})
    assert res.status_code == 422
    res = await client.post("/api/altcom/projects", json={**BRIEF, "detailed_description": "x" * 2001})
    assert res.status_code == 422


async def test_admin_manages_projects(client, admin, collaborator, auth_headers, project):
    res = await client.get("/api/altcom/projects", headers=auth_headers(collaborator))
    assert res.status_code == 403

    headers = auth_headers(admin)
    await client.post("/api/altcom/projects", json={**BRIEF, "project_name": "Site vitrine"})

    res = await client.patch(
        f"/api/altcom/projects/{project['id']}/status", headers=headers, json={"status": "En cours d'analyse"}
    )
    assert res.json()["data"]["project"]["status"] == "En cours d'analyse"

    res = await client.get("/api/altcom/projects", headers=headers, params={"status": "En attente"})
    assert [p["project_name"] for p in res.json()["data"]["projects"]] == ["Site vitrine"]

    res = await client.get(f"/api/altcom/projects/{project['id']}", headers=headers)
    assert res.json()["data"]["project"]["company_name"] == "Brasserie du Congo"

    res = await client.delete(f"/api/altcom/projects/{project['id']}", headers=headers)
    assert res.status_code == 204
    res = await client.get(f"/api/altcom/projects/{project['id']}", headers=headers)
    assert res.status_code == 404


async def test_dashboard_stats(client, admin, owner, collaborator, client_user, auth_headers):
    staff = auth_headers(collaborator)
    await client.post(
        "/api/properties",
        headers=auth_headers(owner),
        data={"property_data": json.dumps({
            "title": "Terrain à Kintélé",
            "description": "Terrain titré de 500 m².",
            "price": 8000000,
            "status": "Vente",
            "type": "Terrain",
            "address": {"district": "Kintélé"},
        })},
    )
    await client.post("/api/events", headers=staff, json={
        "name": "Salon de l'habitat",
        "description": "Exposants et conférences.",
        "guests": 500,
        "date": (datetime.utcnow() + timedelta(days=30)).isoformat(),
        "location": "Brazzaville",
    })
    await client.post("/api/portfolio", headers=staff, json={
        "title": "Campagne rentrée",
        "description": "Affichage urbain.",
        "category": "Branding & Design",
    })
    await client.post("/api/services", headers=staff, json={
        "title": "Gestion réseaux sociaux", "description": "Animation mensuelle.", "pole": "Altcom", "price": 100000,
    })
    await client.post("/api/services", headers=staff, json={
        "title": "Location sono", "description": "Matériel son.", "pole": "MilaEvents", "price": 40000,
    })

    res = await client.get("/api/dashboard/stats", headers=auth_headers(admin))
    assert res.json()["data"]["stats"] == {
        "Altimmo": 1,
        "MilaEvents": 1,
        "Altcom": 2,
        "Users": 4,
        "Owners": 1,
    }

    res = await client.get("/api/dashboard/stats", headers=auth_headers(client_user))
    assert res.status_code == 403
