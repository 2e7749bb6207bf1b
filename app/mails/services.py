import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.db.mongo import INTERNAL_MAILS
from app.mails.schemas import DEFAULT_SUBJECT, MailBox, MailPriority, check_content, clean_subject
from app.utils.errors import BadRequestError, ForbiddenError, NotFoundError
from app.utils.mongodb_utils import serialize_document, serialize_documents, to_object_id

logger = logging.getLogger(__name__)

MESSAGE_TYPE = "Email"


def box_query(box: MailBox, user_id: int) -> dict:
    """Filtre MongoDB de chaque dossier de la messagerie interne."""
    if box == MailBox.RECEIVED:
        return {"receiver_id": user_id, "is_draft": False, "is_deleted": False}
    if box == MailBox.SENT:
        return {"sender_id": user_id, "is_draft": False, "is_deleted": False}
    if box == MailBox.UNREAD:
        return {"receiver_id": user_id, "is_read": False, "is_draft": False, "is_deleted": False}
    if box == MailBox.STARRED:
        return {
            "$or": [{"receiver_id": user_id}, {"sender_id": user_id}],
            "is_starred": True,
            "is_draft": False,
            "is_deleted": False,
        }
    if box == MailBox.DRAFTS:
        return {"sender_id": user_id, "is_draft": True, "is_deleted": False}
    return {"$or": [{"receiver_id": user_id}, {"sender_id": user_id}], "is_deleted": True}


class InternalMailService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[INTERNAL_MAILS]

    async def _get_raw(self, mail_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(mail_id, "Email non trouvé.")})
        if not doc:
            raise NotFoundError("Email non trouvé.")
        return doc

    @staticmethod
    def _ensure_participant(doc: dict, user_id: int) -> None:
        if user_id not in (doc.get("sender_id"), doc.get("receiver_id")):
            logger.warning(f"⛔ user_id={user_id} n'a pas accès à l'email {doc['_id']}")
            raise ForbiddenError("Non autorisé.")

    async def _set(self, doc: dict, fields: dict) -> dict:
        fields["updated_at"] = datetime.utcnow()
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]}, {"$set": fields}, return_document=ReturnDocument.AFTER
        )
        return serialize_document(updated)

    # ─── Dossiers ───
    async def list_box(self, box: MailBox, user_id: int, page: int, limit: int) -> dict:
        query = box_query(box, user_id)
        sort_field = "deleted_at" if box == MailBox.TRASH else "created_at"
        skip = (page - 1) * limit
        cursor = self.collection.find(query).sort(sort_field, DESCENDING).skip(skip).limit(limit)
        items = serialize_documents(await cursor.to_list(length=limit))
        total = await self.collection.count_documents(query)
        return {"items": items, "total": total, "page": page, "total_pages": (total + limit - 1) // limit}

    async def count_unread(self, user_id: int) -> int:
        return await self.collection.count_documents(box_query(MailBox.UNREAD, user_id))

    # ─── Envoi / brouillons ───
    async def send(self, sender_id: int, receiver_id: int, content: str, subject: Optional[str] = None,
                   priority: Optional[MailPriority] = None, attachments: Optional[List[Dict]] = None) -> dict:
        now = datetime.utcnow()
        doc = {
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "subject": clean_subject(subject),
            "content": check_content(content),
            "priority": (priority or MailPriority.NORMAL).value,
            "is_read": False,
            "read_at": None,
            "is_starred": False,
            "is_draft": False,
            "is_deleted": False,
            "deleted_at": None,
            "attachments": attachments or [],
            "message_type": MESSAGE_TYPE,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"✅ Email interne envoyé de {sender_id} à {receiver_id}")
        return serialize_document(doc)

    async def save_draft(self, sender_id: int, receiver_id: Optional[int], content: Optional[str],
                         subject: Optional[str] = None, priority: Optional[MailPriority] = None,
                         attachments: Optional[List[Dict]] = None) -> dict:
        if not content and not attachments:
            raise BadRequestError("Le brouillon doit contenir au moins du texte ou une pièce jointe.")
        now = datetime.utcnow()
        doc = {
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "subject": clean_subject(subject),
            "content": check_content(content or ""),
            "priority": (priority or MailPriority.NORMAL).value,
            "is_read": False,
            "read_at": None,
            "is_starred": False,
            "is_draft": True,
            "is_deleted": False,
            "deleted_at": None,
            "attachments": attachments or [],
            "message_type": MESSAGE_TYPE,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"📝 Brouillon enregistré : id={result.inserted_id}, sender_id={sender_id}")
        return serialize_document(doc)

    async def get_draft(self, draft_id: Any, user_id: int) -> dict:
        doc = await self._get_raw(draft_id)
        if not doc.get("is_draft") or doc.get("is_deleted"):
            raise NotFoundError("Brouillon non trouvé.")
        if doc.get("sender_id") != user_id:
            logger.warning(f"⛔ user_id={user_id} n'est pas l'auteur du brouillon {doc['_id']}")
            raise ForbiddenError("Non autorisé.")
        return doc

    async def update_draft(self, draft_id: Any, user_id: int, changes: Dict[str, Any],
                           attachments: Optional[List[Dict]] = None, send: bool = False) -> dict:
        """
        `changes` ne contient que les champs fournis. `receiver_id` à None vide le destinataire.
        Avec `send=True` le brouillon devient un email envoyé.
        """
        doc = await self.get_draft(draft_id, user_id)
        fields: Dict[str, Any] = {}

        if "receiver_id" in changes:
            fields["receiver_id"] = changes["receiver_id"]
        if changes.get("content") is not None:
            fields["content"] = check_content(changes["content"])
        if "subject" in changes:
            fields["subject"] = clean_subject(changes["subject"])
        if changes.get("priority") is not None:
            fields["priority"] = changes["priority"].value
        if attachments:
            fields["attachments"] = list(doc.get("attachments") or []) + attachments

        if send:
            receiver_id = fields.get("receiver_id", doc.get("receiver_id"))
            content = fields.get("content", doc.get("content"))
            if not receiver_id or not content:
                raise BadRequestError("Le destinataire et le contenu sont requis.")
            fields.update({"is_draft": False, "created_at": datetime.utcnow()})
            fields.setdefault("subject", doc.get("subject") or DEFAULT_SUBJECT)

        updated = await self._set(doc, fields)
        logger.info(f"{'📤 Brouillon envoyé' if send else '✏️ Brouillon mis à jour'} : id={doc['_id']}")
        return updated

    async def delete_draft(self, draft_id: Any, user_id: int) -> None:
        doc = await self.get_draft(draft_id, user_id)
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Brouillon {doc['_id']} supprimé")

    # ─── Actions sur un email ───
    async def mark_read(self, mail_id: Any, user_id: int, read: bool = True) -> dict:
        doc = await self._get_raw(mail_id)
        if doc.get("receiver_id") != user_id:
            logger.warning(f"⛔ user_id={user_id} n'est pas destinataire de l'email {doc['_id']}")
            raise ForbiddenError("Non autorisé.")
        return await self._set(doc, {"is_read": read, "read_at": datetime.utcnow() if read else None})

    async def set_starred(self, mail_id: Any, user_id: int, starred: bool) -> dict:
        doc = await self._get_raw(mail_id)
        self._ensure_participant(doc, user_id)
        return await self._set(doc, {"is_starred": starred})

    async def set_trashed(self, mail_id: Any, user_id: int, trashed: bool) -> dict:
        doc = await self._get_raw(mail_id)
        self._ensure_participant(doc, user_id)
        return await self._set(doc, {"is_deleted": trashed, "deleted_at": datetime.utcnow() if trashed else None})

    async def delete_permanently(self, mail_id: Any, user_id: int) -> None:
        doc = await self._get_raw(mail_id)
        self._ensure_participant(doc, user_id)
        if not doc.get("is_deleted"):
            raise BadRequestError("L'email doit d'abord être placé dans la corbeille.")
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Email {doc['_id']} supprimé définitivement")

    async def empty_trash(self, user_id: int) -> int:
        result = await self.collection.delete_many(box_query(MailBox.TRASH, user_id))
        logger.info(f"🗑️ Corbeille vidée pour user_id={user_id} : {result.deleted_count} email(s)")
        return result.deleted_count
