import logging
from datetime import datetime
from typing import Any, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.auth.models import User
from app.comments.schemas import CommentCreate, CommentUpdate
from app.db.mongo import COMMENTS
from app.utils.errors import ForbiddenError, NotFoundError
from app.utils.mongodb_utils import serialize_document, serialize_documents, to_object_id
from app.utils.targets import TargetType, ensure_target_exists

logger = logging.getLogger(__name__)


class CommentService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[COMMENTS]

    async def _get_raw(self, comment_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(comment_id, "Commentaire non trouvé.")})
        if not doc:
            raise NotFoundError("Commentaire non trouvé.")
        return doc

    async def create_comment(self, data: CommentCreate, author: User) -> dict:
        target = await ensure_target_exists(self.db, data.target_type, data.target_id)
        now = datetime.utcnow()
        doc = {
            "author_id": author.id,
            "target_type": data.target_type.value,
            "target_id": str(target["_id"]),
            "content": data.content,
            "is_edited": False,
            "edited_at": None,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"💬 Commentaire ajouté sur {data.target_type.value} {data.target_id} par user_id={author.id}")
        return serialize_document(doc)

    async def for_target(self, target_type: TargetType, target_id: str, page: int, limit: int) -> dict:
        query = {"target_type": target_type.value, "target_id": target_id}
        skip = (page - 1) * limit
        cursor = self.collection.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)
        items = serialize_documents(await cursor.to_list(length=limit))
        total = await self.collection.count_documents(query)
        return {"items": items, "total": total, "page": page, "total_pages": (total + limit - 1) // limit}

    async def count_for_target(self, target_type: TargetType, target_id: str) -> int:
        return await self.collection.count_documents({"target_type": target_type.value, "target_id": target_id})

    async def by_author(self, author_id: int) -> List[dict]:
        cursor = self.collection.find({"author_id": author_id}).sort("created_at", DESCENDING)
        return serialize_documents(await cursor.to_list(length=None))

    async def update_comment(self, comment_id: Any, data: CommentUpdate, user: User) -> dict:
        doc = await self._get_raw(comment_id)
        if doc.get("author_id") != user.id:
            logger.warning(f"⛔ user_id={user.id} n'est pas l'auteur du commentaire {doc['_id']}")
            raise ForbiddenError("Vous ne pouvez modifier que vos propres commentaires.")
        now = datetime.utcnow()
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]},
            {"$set": {"content": data.content, "is_edited": True, "edited_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        return serialize_document(updated)

    async def delete_comment(self, comment_id: Any, user: User) -> None:
        doc = await self._get_raw(comment_id)
        if doc.get("author_id") != user.id and not user.is_admin:
            logger.warning(f"⛔ user_id={user.id} ne peut pas supprimer le commentaire {doc['_id']}")
            raise ForbiddenError("Vous ne pouvez supprimer que vos propres commentaires.")
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Commentaire {doc['_id']} supprimé par user_id={user.id}")
