import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from app.auth.models import User
from app.db.mongo import EVENTS
from app.events.schemas import MAX_VIDEOS, SORTABLE_FIELDS, EventCategory, EventCreate, EventStatus, EventUpdate
from app.utils.api_features import APIFeatures
from app.utils.errors import BadRequestError, NotFoundError
from app.utils.mongodb_utils import convert_pydantic_for_mongodb, serialize_document, to_object_id

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("name", "description", "location", "category")


class EventNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Événement introuvable.")


def with_virtuals(doc: Dict[str, Any], now: datetime = None) -> Dict[str, Any]:
    """Ajoute les champs calculés : compteurs de médias et position dans le temps."""
    now = now or datetime.utcnow()
    images = doc.get("images") or []
    videos = doc.get("videos") or []
    doc["image_count"] = len(images)
    doc["video_count"] = len(videos)
    doc["media_count"] = len(images) + len(videos)

    event_date = doc.get("date")
    if isinstance(event_date, datetime):
        doc["is_past"] = event_date < now
        doc["is_upcoming"] = event_date >= now
        doc["days_until_event"] = math.ceil((event_date - now).total_seconds() / 86400)
    return doc


class EventService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[EVENTS]

    async def _get_raw(self, event_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(event_id, "Événement introuvable.")})
        if not doc:
            raise EventNotFoundError()
        return doc

    def _present(self, doc: dict) -> dict:
        return with_virtuals(serialize_document(doc))

    async def create_event(self, data: EventCreate, creator: User) -> dict:
        now = datetime.utcnow()
        doc = convert_pydantic_for_mongodb(data.model_dump())
        doc.update({"created_by": creator.id, "created_at": now, "updated_at": now})
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"🎉 Événement créé : id={result.inserted_id}, name={data.name}, by user_id={creator.id}")
        return self._present(doc)

    async def list_events(self, params: Mapping[str, str]) -> dict:
        features = (
            APIFeatures(self.collection, params)
            .filter()
            .search(SEARCH_FIELDS)
            .sort(default="-date", allowed=SORTABLE_FIELDS)
            .limit_fields()
            .paginate()
        )
        items = [with_virtuals(doc) for doc in await features.to_list()]
        total = await features.count()
        return {"items": items, "total": total, "page": features.page, "total_pages": features.total_pages(total)}

    async def _find(self, query: dict, sort: list, limit: int = 0) -> List[dict]:
        cursor = self.collection.find(query).sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        docs = await cursor.to_list(length=limit or None)
        return [self._present(doc) for doc in docs]

    async def upcoming(self, limit: int = 10) -> List[dict]:
        query = {"status": EventStatus.PUBLISHED.value, "date": {"$gte": datetime.utcnow()}}
        return await self._find(query, [("date", ASCENDING)], limit)

    async def featured(self, limit: int = 0) -> List[dict]:
        query = {"status": EventStatus.PUBLISHED.value, "featured": True}
        return await self._find(query, [("date", DESCENDING)], limit)

    async def by_category(self, category: EventCategory) -> List[dict]:
        query = {"status": EventStatus.PUBLISHED.value, "category": category.value}
        return await self._find(query, [("date", DESCENDING)])

    async def get_event(self, event_id: Any) -> dict:
        return self._present(await self._get_raw(event_id))

    async def update_event(self, event_id: Any, data: EventUpdate) -> dict:
        doc = await self._get_raw(event_id)
        updates = convert_pydantic_for_mongodb(data.model_dump(exclude_unset=True, exclude_none=True))
        if not updates:
            raise BadRequestError("Aucune donnée à mettre à jour.")
        updates["updated_at"] = datetime.utcnow()
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
        logger.info(f"✏️ Événement {doc['_id']} mis à jour : {sorted(updates)}")
        return self._present(updated)

    async def delete_event(self, event_id: Any) -> None:
        doc = await self._get_raw(event_id)
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Événement {doc['_id']} supprimé")

    async def add_media(self, event_id: Any, field: str, urls: List[str]) -> dict:
        doc = await self._get_raw(event_id)
        if field == "videos" and len(doc.get("videos") or []) + len(urls) > MAX_VIDEOS:
            raise BadRequestError(f"Un événement ne peut pas avoir plus de {MAX_VIDEOS} vidéos")
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]},
            {"$push": {field: {"$each": urls}}, "$set": {"updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        logger.info(f"📁 {len(urls)} fichier(s) ajouté(s) à {field} de l'événement {doc['_id']}")
        return self._present(updated)

    async def ensure_exists(self, event_id: Any) -> None:
        await self._get_raw(event_id)

    async def count(self, query: dict = None) -> int:
        return await self.collection.count_documents(query or {})
