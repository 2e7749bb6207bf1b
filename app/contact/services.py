import logging
from datetime import datetime
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.contact.schemas import ContactMessageCreate, ContactStatus, ContactStatusUpdate
from app.db.mongo import CONTACT_MESSAGES
from app.utils.errors import NotFoundError
from app.utils.mongodb_utils import serialize_document, serialize_documents, to_object_id

logger = logging.getLogger(__name__)


class ContactService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[CONTACT_MESSAGES]

    async def _get_raw(self, message_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(message_id, "Message non trouvé.")})
        if not doc:
            raise NotFoundError("Message non trouvé.")
        return doc

    async def create(self, data: ContactMessageCreate, ip_address: Optional[str], user_agent: Optional[str]) -> dict:
        now = datetime.utcnow()
        doc = {
            **data.model_dump(),
            "status": ContactStatus.UNREAD.value,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "response_note": None,
            "responded_at": None,
            "submitted_at": now,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"📥 Message de contact reçu : id={result.inserted_id}, email={data.email}")
        return serialize_document(doc)

    async def list_messages(self, status: Optional[ContactStatus], page: int, limit: int) -> dict:
        query = {"status": status.value} if status else {}
        skip = (page - 1) * limit
        cursor = self.collection.find(query).sort("submitted_at", DESCENDING).skip(skip).limit(limit)
        items = serialize_documents(await cursor.to_list(length=limit))
        total = await self.collection.count_documents(query)
        return {"items": items, "total": total, "page": page, "total_pages": (total + limit - 1) // limit}

    async def stats(self) -> dict:
        rows = await self.collection.aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}]).to_list(length=None)
        now = datetime.utcnow()
        month_start = datetime(now.year, now.month, 1)
        return {
            "total": await self.collection.count_documents({}),
            "this_month": await self.collection.count_documents({"submitted_at": {"$gte": month_start}}),
            "by_status": {row["_id"]: row["count"] for row in rows},
        }

    async def get_message(self, message_id: Any) -> dict:
        """Lecture par l'administrateur : un message « Non lu » passe à « Lu »."""
        doc = await self._get_raw(message_id)
        if doc.get("status") == ContactStatus.UNREAD.value:
            doc = await self.collection.find_one_and_update(
                {"_id": doc["_id"]},
                {"$set": {"status": ContactStatus.READ.value, "updated_at": datetime.utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        return serialize_document(doc)

    async def update_status(self, message_id: Any, data: ContactStatusUpdate) -> dict:
        doc = await self._get_raw(message_id)
        now = datetime.utcnow()
        updates = {"status": data.status.value, "updated_at": now}
        if data.response_note:
            updates["response_note"] = data.response_note
        if data.status == ContactStatus.HANDLED:
            updates["responded_at"] = now
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
        logger.info(f"✅ Statut du message de contact {doc['_id']} : {data.status.value}")
        return serialize_document(updated)

    async def delete(self, message_id: Any) -> None:
        doc = await self._get_raw(message_id)
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Message de contact {doc['_id']} supprimé")
