from datetime import datetime, timedelta

import pytest

from app.config import settings
from app.quotes.services import format_amount

EVENT_QUOTE = {
    "service": "Organisation de mariage",
    "event_type": "Mariage",
    "date": (datetime.utcnow() + timedelta(days=90)).isoformat(),
    "guests": 250,
    "budget": "5M-10M",
    "description": "Mariage civil et religieux, réception le soir.",
    "name": "Famille Okemba",
    "email": "Okemba@Example.com",
    "phone": "+242 06 000 00 00",
}


@pytest.fixture
async def quote(client):
    res = await client.post("/api/quotes", json=EVENT_QUOTE)
    assert res.status_code == 201
    return res.json()["data"]["quote"]


def test_format_amount():
    assert format_amount(12500000) == "12 500 000"
    assert format_amount(950) == "950"


async def test_event_quote_notifies_requester_and_team(client, mail_mock, quote):
    assert quote["status"] == "Nouveau"
    assert quote["email"] == "okemba@example.com"
    assert quote["user_id"] is None

    recipients = [call.args[1] for call in mail_mock.await_args_list]
    assert recipients == ["okemba@example.com", settings.ADMIN_NOTIFICATION_EMAIL]
    assert "Mila Events" in mail_mock.await_args_list[0].args[0]


async def test_event_quote_requires_event_fields(client):
    payload = {k: v for k, v in EVENT_QUOTE.items() if k not in ("guests", "date")}
    res = await client.post("/api/quotes", json=payload)
    assert res.status_code == 400
    assert "guests" in res.json()["message"]


async def test_altcom_quote_gets_defaults(client, client_user, auth_headers):
    res = await client.post(
        "/api/quotes",
        headers=auth_headers(client_user),
        json={
            "source": "Altcom",
            "request_type": "Projet Complet",
            "budget": "",
            "description": "Refonte de notre site vitrine.",
            "name": "Société Likouala",
            "email": "contact@likouala.cg",
            "project_details": {"pages": 8},
        },
    )
    assert res.status_code == 201
    quote = res.json()["data"]["quote"]
    assert quote["service"] == "Communication & Branding"
    assert quote["event_type"] == "Projet Altcom"
    assert quote["guests"] == 1
    assert quote["budget"] is None
    assert quote["user_id"] == client_user.id
    assert quote["project_details"] == {"pages": 8}


async def test_mail_failure_does_not_block_request(client, mail_mock):
    mail_mock.side_effect = ConnectionError("SMTP indisponible")
    res = await client.post("/api/quotes", json=EVENT_QUOTE)
    assert res.status_code == 201


async def test_staff_lists_and_filters(client, collaborator, client_user, auth_headers, quote):
    await client.post("/api/quotes", json={**EVENT_QUOTE, "budget": "Moins de 1M"})

    res = await client.get("/api/quotes", headers=auth_headers(client_user))
    assert res.status_code == 403

    res = await client.get("/api/quotes", headers=auth_headers(collaborator), params={"budget": "5M-10M"})
    assert res.json()["total"] == 1

    res = await client.get(f"/api/quotes/{quote['_id']}", headers=auth_headers(collaborator))
    assert res.json()["data"]["quote"]["name"] == "Famille Okemba"


async def test_status_update_and_stats(client, collaborator, auth_headers, quote):
    headers = auth_headers(collaborator)
    await client.post("/api/quotes", json=EVENT_QUOTE)

    res = await client.patch(
        f"/api/quotes/{quote['_id']}/status",
        headers=headers,
        json={"status": "Converti", "internal_notes": "Acompte reçu"},
    )
    assert res.json()["data"]["quote"]["internal_notes"] == "Acompte reçu"

    res = await client.get("/api/quotes/stats", headers=headers)
    stats = res.json()["data"]["stats"]
    assert stats["total"] == 2
    assert stats["converted"] == 1
    assert stats["conversion_rate"] == "50.00%"


async def test_respond_sends_quote(client, collaborator, auth_headers, mail_mock, quote):
    mail_mock.reset_mock()
    res = await client.post(
        f"/api/quotes/{quote['_id']}/respond",
        headers=auth_headers(collaborator),
        json={"subject": "Votre devis", "message": "Voici notre proposition.", "quoted_amount": 7500000},
    )
    assert res.status_code == 200
    updated = res.json()["data"]["quote"]
    assert updated["status"] == "Devis Envoyé"
    assert updated["quoted_amount"] == 7500000

    subject, recipient, body = mail_mock.await_args.args
    assert subject == "Votre devis"
    assert recipient == "okemba@example.com"
    assert "7 500 000 FCFA" in body


async def test_respond_requires_all_fields(client, collaborator, auth_headers, quote):
    res = await client.post(
        f"/api/quotes/{quote['_id']}/respond",
        headers=auth_headers(collaborator),
        json={"subject": "Votre devis", "message": "Proposition"},
    )
    assert res.status_code == 400


async def test_respond_failure_leaves_quote_unchanged(client, collaborator, auth_headers, mail_mock, quote):
    mail_mock.side_effect = ConnectionError("SMTP indisponible")
    headers = auth_headers(collaborator)
    res = await client.post(
        f"/api/quotes/{quote['_id']}/respond",
        headers=headers,
        json={"subject": "Votre devis", "message": "Proposition", "quoted_amount": 1000000},
    )
    assert res.status_code == 500

    res = await client.get(f"/api/quotes/{quote['_id']}", headers=headers)
    assert res.json()["data"]["quote"]["status"] == "Nouveau"
    assert res.json()["data"]["quote"]["quoted_amount"] is None


async def test_delete_is_admin_only(client, admin, collaborator, auth_headers, quote):
    res = await client.delete(f"/api/quotes/{quote['_id']}", headers=auth_headers(collaborator))
    assert res.status_code == 403
    res = await client.delete(f"/api/quotes/{quote['_id']}", headers=auth_headers(admin))
    assert res.status_code == 204
