import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from app.db.mongo import CONVERSATIONS, MESSAGES
from app.messaging.schemas import MAX_MESSAGE_LENGTH
from app.utils.errors import BadRequestError, ForbiddenError, NotFoundError
from app.utils.mongodb_utils import serialize_document, serialize_documents, to_object_id

logger = logging.getLogger(__name__)


def between(user_a: int, user_b: int) -> dict:
    """Messages échangés dans les deux sens entre deux utilisateurs."""
    return {"$or": [
        {"sender_id": user_a, "receiver_id": user_b},
        {"sender_id": user_b, "receiver_id": user_a},
    ]}


class MessagingService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.messages = db[MESSAGES]
        self.conversations = db[CONVERSATIONS]

    # ─── Conversations ───
    async def find_conversation(self, user_a: int, user_b: int) -> Optional[dict]:
        return await self.conversations.find_one({"participants": {"$all": [user_a, user_b]}})

    async def get_or_create_conversation(self, me: int, other: int, related_property_id: Optional[str] = None,
                                         related_event_id: Optional[str] = None) -> Tuple[dict, bool]:
        if me == other:
            raise BadRequestError("Impossible de créer une conversation avec vous-même.")

        existing = await self.find_conversation(me, other)
        if existing:
            return serialize_document(existing), False

        now = datetime.utcnow()
        doc = {
            "participants": [me, other],
            "last_message": None,
            "unread_count": {str(me): 0, str(other): 0},
            "is_archived": False,
            "related_property_id": related_property_id,
            "related_event_id": related_event_id,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.conversations.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"💬 Conversation créée entre {me} et {other}")
        return serialize_document(doc), True

    async def list_conversations(self, me: int) -> List[dict]:
        cursor = self.conversations.find({"participants": me}).sort("updated_at", DESCENDING)
        conversations = serialize_documents(await cursor.to_list(length=None))
        for conv in conversations:
            others = [p for p in conv.get("participants", []) if p != me]
            conv["other_user_id"] = others[0] if others else None
            conv["my_unread_count"] = (conv.get("unread_count") or {}).get(str(me), 0)
        return conversations

    async def _reset_unread(self, me: int, other: int) -> None:
        await self.conversations.update_one(
            {"participants": {"$all": [me, other]}},
            {"$set": {f"unread_count.{me}": 0}},
        )

    async def _decrement_unread(self, message: dict) -> None:
        receiver = message["receiver_id"]
        await self.conversations.update_one(
            {
                "participants": {"$all": [message["sender_id"], receiver]},
                f"unread_count.{receiver}": {"$gt": 0},
            },
            {"$inc": {f"unread_count.{receiver}": -1}},
        )

    async def conversation_map(self, me: int) -> List[dict]:
        """Une entrée par interlocuteur, construite à partir des messages (le plus récent en premier)."""
        cursor = self.messages.find({"$or": [{"sender_id": me}, {"receiver_id": me}]}).sort("created_at", DESCENDING)
        entries: Dict[int, dict] = {}
        for message in await cursor.to_list(length=None):
            other = message["receiver_id"] if message["sender_id"] == me else message["sender_id"]
            if other not in entries:
                entries[other] = {
                    "other_user_id": other,
                    "last_message": serialize_document(message),
                    "unread_count": 0,
                    "updated_at": message["created_at"],
                }
            if message["receiver_id"] == me and not message.get("is_read"):
                entries[other]["unread_count"] += 1
        return list(entries.values())

    # ─── Messages ───
    async def send_message(self, sender_id: int, receiver_id: int, content: str,
                           subject: Optional[str] = None) -> dict:
        content = (content or "").strip()
        if not content:
            raise BadRequestError("Le contenu du message est requis.")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise BadRequestError(f"Le message ne peut pas dépasser {MAX_MESSAGE_LENGTH} caractères")

        conversation, _ = await self.get_or_create_conversation(sender_id, receiver_id)
        now = datetime.utcnow()
        doc = {
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "subject": subject,
            "content": content,
            "is_read": False,
            "read_at": None,
            "is_starred": False,
            "attachments": [],
            "conversation_id": conversation["_id"],
            "created_at": now,
            "updated_at": now,
        }
        result = await self.messages.insert_one(doc)
        doc["_id"] = result.inserted_id

        await self.conversations.update_one(
            {"_id": to_object_id(conversation["_id"])},
            {
                "$set": {
                    "last_message": {"content": content, "sender_id": sender_id, "created_at": now},
                    "updated_at": now,
                },
                "$inc": {f"unread_count.{receiver_id}": 1},
            },
        )
        logger.info(f"✉️ Message envoyé de {sender_id} à {receiver_id}")
        return serialize_document(doc)

    async def thread(self, me: int, other: int, page: int = 1, limit: int = 50) -> dict:
        query = between(me, other)
        skip = (page - 1) * limit
        cursor = self.messages.find(query).sort("created_at", ASCENDING).skip(skip).limit(limit)
        items = serialize_documents(await cursor.to_list(length=limit))
        total = await self.messages.count_documents(query)
        await self.mark_thread_read(me, other)
        return {"items": items, "total": total, "page": page, "total_pages": (total + limit - 1) // limit}

    async def mark_thread_read(self, me: int, other: int) -> int:
        result = await self.messages.update_many(
            {"sender_id": other, "receiver_id": me, "is_read": False},
            {"$set": {"is_read": True, "read_at": datetime.utcnow()}},
        )
        await self._reset_unread(me, other)
        return result.modified_count

    async def delete_thread(self, me: int, other: int) -> int:
        result = await self.messages.delete_many(between(me, other))
        await self.conversations.delete_many({"participants": {"$all": [me, other]}})
        logger.info(f"🗑️ Conversation {me}/{other} supprimée : {result.deleted_count} message(s)")
        return result.deleted_count

    async def count_unread(self, me: int) -> int:
        return await self.messages.count_documents({"receiver_id": me, "is_read": False})

    async def _get_message(self, message_id: Any) -> dict:
        doc = await self.messages.find_one({"_id": to_object_id(message_id, "Message non trouvé.")})
        if not doc:
            raise NotFoundError("Message non trouvé.")
        return doc

    async def mark_message_read(self, message_id: Any, me: int) -> dict:
        doc = await self._get_message(message_id)
        if doc.get("receiver_id") != me:
            logger.warning(f"⛔ user_id={me} n'est pas destinataire du message {doc['_id']}")
            raise ForbiddenError("Non autorisé.")
        if doc.get("is_read"):
            return serialize_document(doc)
        updated = await self.messages.find_one_and_update(
            {"_id": doc["_id"], "is_read": False},
            {"$set": {"is_read": True, "read_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            return serialize_document(await self._get_message(doc["_id"]))
        await self._decrement_unread(doc)
        return serialize_document(updated)

    async def delete_message(self, message_id: Any, me: int) -> None:
        doc = await self._get_message(message_id)
        if me not in (doc.get("sender_id"), doc.get("receiver_id")):
            logger.warning(f"⛔ user_id={me} ne peut pas supprimer le message {doc['_id']}")
            raise ForbiddenError("Non autorisé.")
        await self.messages.delete_one({"_id": doc["_id"]})
        if not doc.get("is_read"):
            await self._decrement_unread(doc)
        logger.info(f"🗑️ Message {doc['_id']} supprimé")
