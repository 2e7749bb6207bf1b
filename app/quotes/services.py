import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.config import settings
from app.db.mongo import QUOTE_REQUESTS
from app.quotes.schemas import ALTCOM_DEFAULTS, QuoteRequestCreate, QuoteSource, QuoteStatus, QuoteStatusUpdate
from app.utils.api_features import APIFeatures
from app.utils.email import send_email_async
from app.utils.errors import AppError, BadRequestError, NotFoundError
from app.utils.mongodb_utils import convert_pydantic_for_mongodb, serialize_document, to_object_id

logger = logging.getLogger(__name__)

EVENT_FIELDS = ("service", "event_type", "date", "guests")


def brand_name(source: str) -> str:
    return "Altcom" if source == QuoteSource.ALTCOM.value else "Mila Events"


def format_amount(amount: float) -> str:
    """12500000 -> '12 500 000'"""
    return f"{int(amount):,}".replace(",", " ")


class QuoteService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[QUOTE_REQUESTS]

    async def _get_raw(self, quote_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(quote_id, "Devis introuvable")})
        if not doc:
            raise NotFoundError("Devis introuvable")
        return doc

    async def create(self, data: QuoteRequestCreate, user_id: Optional[int] = None) -> dict:
        doc = convert_pydantic_for_mongodb(data.model_dump())

        if data.source == QuoteSource.ALTCOM:
            for field, default in ALTCOM_DEFAULTS.items():
                doc[field] = doc.get(field) or default
            doc["date"] = doc.get("date") or datetime.utcnow()
        else:
            missing = [field for field in EVENT_FIELDS if not doc.get(field)]
            if missing:
                raise BadRequestError(f"Données de devis invalides. Champs requis : {', '.join(missing)}")

        now = datetime.utcnow()
        doc.update({
            "status": QuoteStatus.NEW.value,
            "internal_notes": None,
            "quoted_amount": None,
            "user_id": user_id,
            "created_at": now,
            "updated_at": now,
        })
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"🧾 Demande de devis {data.source.value} enregistrée : id={result.inserted_id}")
        return serialize_document(doc)

    async def notify_new_quote(self, quote: dict) -> None:
        """Confirmation au demandeur et alerte à l'équipe. Un échec d'envoi est journalisé, jamais propagé."""
        brand = brand_name(quote["source"])
        confirmation = (
            f"Bonjour {quote['name']},\n\n"
            f"Nous avons bien reçu votre demande pour votre projet de {quote['service']}.\n"
            "Notre équipe va étudier votre demande et vous reviendra sous 24-48 heures.\n\n"
            f"Cordialement,\nL'équipe {brand}"
        )
        alert = (
            f"Nouvelle demande de devis ({quote['source']}) de {quote['name']} <{quote['email']}>\n"
            f"Service : {quote['service']}\nBudget : {quote.get('budget') or 'non précisé'}\n\n"
            f"{quote['description']}"
        )
        try:
            await send_email_async(f"Confirmation de votre demande - {brand}", quote["email"], confirmation)
        except Exception as e:
            logger.error(f"❌ Erreur d'envoi de la confirmation de devis à {quote['email']} : {e}")
        try:
            await send_email_async(f"Nouvelle demande de devis - {brand}", settings.ADMIN_NOTIFICATION_EMAIL, alert)
        except Exception as e:
            logger.error(f"❌ Erreur d'envoi de la notification de devis : {e}")

    async def list_quotes(self, params: Mapping[str, str]) -> dict:
        features = (
            APIFeatures(self.collection, params, allowed_filters={"status", "source", "request_type", "budget"})
            .filter()
            .sort()
            .paginate(default_limit=100)
        )
        items = await features.to_list()
        total = await features.count()
        return {"items": items, "total": total, "page": features.page, "total_pages": features.total_pages(total)}

    async def stats(self) -> dict:
        rows = await self.collection.aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}]).to_list(length=None)
        by_status = {row["_id"]: row["count"] for row in rows}
        total = sum(by_status.values())
        converted = by_status.get(QuoteStatus.CONVERTED.value, 0)
        rate = (converted / total * 100) if total else 0
        return {"total": total, "converted": converted, "conversion_rate": f"{rate:.2f}%", "by_status": by_status}

    async def get_quote(self, quote_id: Any) -> dict:
        return serialize_document(await self._get_raw(quote_id))

    async def update_status(self, quote_id: Any, data: QuoteStatusUpdate) -> dict:
        doc = await self._get_raw(quote_id)
        updates = {"status": data.status.value, "updated_at": datetime.utcnow()}
        if data.internal_notes is not None:
            updates["internal_notes"] = data.internal_notes
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
        logger.info(f"✅ Statut du devis {doc['_id']} : {data.status.value}")
        return serialize_document(updated)

    async def respond(self, quote_id: Any, subject: str, message: str, quoted_amount: float) -> dict:
        doc = await self._get_raw(quote_id)
        brand = brand_name(doc.get("source"))
        body = (
            f"Bonjour {doc['name']},\n\n{message}\n\n"
            f"MONTANT DU DEVIS : {format_amount(quoted_amount)} FCFA\n"
            f"Service : {doc.get('service')}\n\n"
            f"Cordialement,\nL'équipe {brand}"
        )
        try:
            await send_email_async(subject, doc["email"], body)
        except Exception as e:
            # Le devis reste inchangé si le client n'a pas reçu la réponse
            logger.error(f"❌ Erreur d'envoi de la réponse au devis {doc['_id']} : {e}")
            raise AppError("Erreur lors de l'envoi de l'email de devis.", 500)

        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]},
            {"$set": {
                "quoted_amount": quoted_amount,
                "status": QuoteStatus.SENT.value,
                "updated_at": datetime.utcnow(),
            }},
            return_document=ReturnDocument.AFTER,
        )
        logger.info(f"📧 Devis {doc['_id']} envoyé à {doc['email']} ({format_amount(quoted_amount)} FCFA)")
        return serialize_document(updated)

    async def delete(self, quote_id: Any) -> None:
        doc = await self._get_raw(quote_id)
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Devis {doc['_id']} supprimé")
