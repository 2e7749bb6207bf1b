import logging
from datetime import datetime
from typing import Any, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

from app.catalog.schemas import Pole, ServiceCreate, ServiceUpdate
from app.db.mongo import SERVICES
from app.utils.errors import BadRequestError, ConflictError, NotFoundError
from app.utils.mongodb_utils import convert_pydantic_for_mongodb, serialize_document, serialize_documents, to_object_id

logger = logging.getLogger(__name__)


class CatalogService:
    """Offres des trois pôles (collection `services`)."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[SERVICES]

    async def _get_raw(self, service_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(service_id, "Service introuvable.")})
        if not doc:
            raise NotFoundError("Service introuvable.")
        return doc

    async def _ensure_title_available(self, title: str, exclude_id=None) -> None:
        query = {"title": title}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if await self.collection.find_one(query):
            raise ConflictError(f"Un service nommé « {title} » existe déjà.")

    async def list_services(self, pole: Optional[Pole] = None) -> List[dict]:
        query = {"pole": pole.value} if pole else {}
        cursor = self.collection.find(query).sort([("pole", ASCENDING), ("title", ASCENDING)])
        return serialize_documents(await cursor.to_list(length=None))

    async def get_service(self, service_id: Any) -> dict:
        return serialize_document(await self._get_raw(service_id))

    async def create_service(self, data: ServiceCreate) -> dict:
        title = data.title.strip()
        await self._ensure_title_available(title)
        now = datetime.utcnow()
        doc = convert_pydantic_for_mongodb(data.model_dump())
        doc.update({"title": title, "created_at": now, "updated_at": now})
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"🛎️ Service créé : {title} ({data.pole.value})")
        return serialize_document(doc)

    async def update_service(self, service_id: Any, data: ServiceUpdate) -> dict:
        doc = await self._get_raw(service_id)
        updates = convert_pydantic_for_mongodb(data.model_dump(exclude_unset=True, exclude_none=True))
        if not updates:
            raise BadRequestError("Aucune donnée à mettre à jour.")
        if "title" in updates:
            updates["title"] = updates["title"].strip()
            await self._ensure_title_available(updates["title"], exclude_id=doc["_id"])
        updates["updated_at"] = datetime.utcnow()
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
        logger.info(f"✏️ Service {doc['_id']} mis à jour")
        return serialize_document(updated)

    async def delete_service(self, service_id: Any) -> None:
        doc = await self._get_raw(service_id)
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Service {doc['_id']} supprimé")

    async def count(self, query: dict = None) -> int:
        return await self.collection.count_documents(query or {})
