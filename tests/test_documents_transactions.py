import json

import pytest
from bson import ObjectId

from app.documents.services import compute_totals
from app.transactions.services import compute_commission

PROPERTY = {
    "title": "Maison R+1 à Mpila",
    "description": "Maison familiale avec jardin.",
    "price": 1000000,
    "status": "Vente",
    "type": "Maison",
    "address": {"district": "Mpila"},
    "has_special_commission": True,
}


@pytest.fixture
async def staff_headers(collaborator, auth_headers):
    return auth_headers(collaborator)


@pytest.fixture
async def property_id(client, owner, auth_headers):
    res = await client.post(
        "/api/properties",
        headers=auth_headers(owner),
        data={"property_data": json.dumps(PROPERTY)},
    )
    assert res.status_code == 201
    return res.json()["data"]["property"]["_id"]


def test_compute_totals():
    totals = compute_totals([{"description": "Frais", "quantity": 2, "unit_price": 1500}], tax=450)
    assert totals["items"][0]["total"] == 3000
    assert totals["sub_total"] == 3000
    assert totals["total_amount"] == 3450


def test_compute_commission():
    assert compute_commission(2000000, False) == {"total": pytest.approx(200000), "owner_payout": 0}
    assert compute_commission(2000000, True)["owner_payout"] == pytest.approx(60000)


async def test_documents_are_numbered_and_priced(client, staff_headers, client_user, collaborator):
    res = await client.post(
        "/api/documents",
        headers=staff_headers,
        json={
            "type": "Devis",
            "client_id": client_user.id,
            "items": [
                {"description": "Location salle", "unit_price": 200000},
                {"description": "Traiteur", "quantity": 100, "unit_price": 5000},
            ],
            "tax": 10000,
        },
    )
    assert res.status_code == 201
    quote = res.json()["data"]["document"]
    assert quote["doc_number"] == 1
    assert quote["status"] == "Brouillon"
    assert quote["sub_total"] == 700000
    assert quote["total_amount"] == 710000
    assert quote["created_by"] == collaborator.id
    assert quote["issue_date"]

    res = await client.post(
        "/api/documents",
        headers=staff_headers,
        json={"type": "Contrat", "client_id": client_user.id, "content": "Contrat de bail", "items": [
            {"description": "Loyer", "unit_price": 300000},
        ]},
    )
    contract = res.json()["data"]["document"]
    assert contract["doc_number"] == 2
    assert contract["total_amount"] == 0


async def test_document_client_must_exist(client, staff_headers):
    res = await client.post("/api/documents", headers=staff_headers, json={"type": "Facture", "client_id": 9999})
    assert res.status_code == 404
    assert res.json()["message"] == "Client non trouvé."


async def test_documents_are_staff_only(client, client_user, auth_headers):
    res = await client.get("/api/documents", headers=auth_headers(client_user))
    assert res.status_code == 403


async def test_update_recomputes_totals(client, staff_headers, client_user):
    res = await client.post(
        "/api/documents",
        headers=staff_headers,
        json={"type": "Facture", "client_id": client_user.id, "items": [{"description": "Frais", "unit_price": 1000}]},
    )
    document = res.json()["data"]["document"]

    res = await client.patch(f"/api/documents/{document['_id']}", headers=staff_headers, json={"tax": 180})
    assert res.json()["data"]["document"]["total_amount"] == 1180

    res = await client.patch(
        f"/api/documents/{document['_id']}",
        headers=staff_headers,
        json={"items": [{"description": "Frais", "quantity": 3, "unit_price": 1000}], "status": "Payé"},
    )
    updated = res.json()["data"]["document"]
    assert updated["sub_total"] == 3000
    assert updated["total_amount"] == 3180
    assert updated["status"] == "Payé"

    res = await client.patch(f"/api/documents/{document['_id']}", headers=staff_headers, json={})
    assert res.status_code == 400


async def test_list_filter_and_delete(client, staff_headers, client_user, owner):
    for client_id in (client_user.id, owner.id):
        await client.post("/api/documents", headers=staff_headers, json={"type": "Facture", "client_id": client_id})

    res = await client.get("/api/documents", headers=staff_headers, params={"client_id": owner.id})
    body = res.json()
    assert body["total"] == 1
    document = body["data"]["documents"][0]
    assert document["client"]["email"] == owner.email
    assert set(document["client"]) == {"id", "name", "email", "photo", "role"}
    assert document["author"]["role"] == "Collaborateur"

    res = await client.delete(f"/api/documents/{document['_id']}", headers=staff_headers)
    assert res.status_code == 204
    assert (await client.get(f"/api/documents/{document['_id']}", headers=staff_headers)).status_code == 404


async def test_transaction_lifecycle(client, staff_headers, client_user, collaborator, property_id, mongo):
    res = await client.post(
        "/api/transactions",
        headers=staff_headers,
        json={
            "property_id": property_id,
            "client_id": client_user.id,
            "final_amount": 1000000,
            "transaction_type": "vente",
        },
    )
    assert res.status_code == 201
    transaction = res.json()["data"]["transaction"]
    assert transaction["status"] == "En cours"
    assert transaction["agent_id"] == collaborator.id
    assert transaction["commission"] == {"total": 0, "owner_payout": 0}

    res = await client.post(f"/api/transactions/{transaction['_id']}/finalize", headers=staff_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    finalized, invoice = data["transaction"], data["invoice"]
    assert finalized["status"] == "Réussie"
    assert finalized["commission"]["total"] == pytest.approx(100000)
    assert finalized["commission"]["owner_payout"] == pytest.approx(30000)
    assert finalized["linked_invoice_id"] == invoice["_id"]

    assert invoice["type"] == "Facture"
    assert invoice["status"] == "Envoyé"
    assert invoice["client_id"] == client_user.id
    assert invoice["items"][0]["description"] == "Commission pour vente du bien: Maison R+1 à Mpila"
    assert invoice["total_amount"] == pytest.approx(100000)
    assert invoice["due_date"]

    prop = await mongo["properties"].find_one({"_id": ObjectId(property_id)})
    assert prop["availability"] == "Vendu"
    assert prop["is_published"] is False

    res = await client.post(f"/api/transactions/{transaction['_id']}/finalize", headers=staff_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Cette transaction est déjà finalisée."


async def test_rental_transaction_marks_property_rented(client, staff_headers, client_user, property_id, mongo):
    res = await client.post(
        "/api/transactions",
        headers=staff_headers,
        json={"property_id": property_id, "client_id": client_user.id, "final_amount": 250000, "transaction_type": "location"},
    )
    await client.post(f"/api/transactions/{res.json()['data']['transaction']['_id']}/finalize", headers=staff_headers)

    prop = await mongo["properties"].find_one({"_id": ObjectId(property_id)})
    assert prop["availability"] == "Loué"


async def test_transaction_validation(client, staff_headers, client_user, property_id):
    base = {"property_id": property_id, "client_id": client_user.id, "final_amount": 1000, "transaction_type": "vente"}

    res = await client.post("/api/transactions", headers=staff_headers, json={**base, "client_id": 9999})
    assert res.status_code == 404
    res = await client.post("/api/transactions", headers=staff_headers, json={**base, "property_id": "0123456789abcdef01234567"})
    assert res.status_code == 404
    res = await client.post("/api/transactions", headers=staff_headers, json={**base, "final_amount": 0})
    assert res.status_code == 422
    res = await client.post("/api/transactions", headers=staff_headers, json={**base, "transaction_type": "don"})
    assert res.status_code == 422


async def test_list_transactions(client, staff_headers, client_user, property_id):
    base = {"property_id": property_id, "client_id": client_user.id, "transaction_type": "vente"}
    await client.post("/api/transactions", headers=staff_headers,
                      json={**base, "final_amount": 1000, "transaction_date": "2026-01-10T10:00:00"})
    await client.post("/api/transactions", headers=staff_headers,
                      json={**base, "final_amount": 2000, "transaction_date": "2026-03-10T10:00:00"})

    res = await client.get("/api/transactions", headers=staff_headers)
    transactions = res.json()["data"]["transactions"]
    assert [t["final_amount"] for t in transactions] == [2000, 1000]
    assert transactions[0]["client"]["id"] == client_user.id
    assert transactions[0]["agent"]["role"] == "Collaborateur"
