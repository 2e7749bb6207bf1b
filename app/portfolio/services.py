import logging
from datetime import datetime
from typing import Any, Mapping

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.auth.models import User
from app.db.mongo import PORTFOLIO_ITEMS, REVIEWS
from app.portfolio.schemas import PortfolioItemCreate, PortfolioItemUpdate
from app.utils.api_features import APIFeatures
from app.utils.errors import BadRequestError, NotFoundError
from app.utils.mongodb_utils import convert_pydantic_for_mongodb, serialize_document, to_object_id

logger = logging.getLogger(__name__)

POLE = "Altcom"
SEARCH_FIELDS = ("title", "description", "client", "tags")


class PortfolioItemNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Réalisation introuvable.")


class PortfolioService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[PORTFOLIO_ITEMS]
        self.reviews = db[REVIEWS]

    async def _get_raw(self, item_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(item_id, "Réalisation introuvable.")})
        if not doc:
            raise PortfolioItemNotFoundError()
        return doc

    async def list_items(self, params: Mapping[str, str]) -> dict:
        features = (
            APIFeatures(self.collection, params, base_filter={"is_published": True})
            .filter()
            .search(SEARCH_FIELDS)
            .sort(default="-project_date")
            .limit_fields()
            .paginate()
        )
        items = await features.to_list()
        total = await features.count()
        return {"items": items, "total": total, "page": features.page, "total_pages": features.total_pages(total)}

    async def get_item(self, item_id: Any) -> dict:
        return serialize_document(await self._get_raw(item_id))

    async def stats(self) -> dict:
        total = await self.collection.count_documents({})
        published = await self.collection.count_documents({"is_published": True})
        pipeline = [
            {"$match": {"is_published": True}},
            {"$group": {"_id": "$category", "count": {"$sum": 1}, "average_rating": {"$avg": "$average_rating"}}},
        ]
        rows = await self.collection.aggregate(pipeline).to_list(length=None)
        by_category = sorted(
            (
                {
                    "category": row["_id"],
                    "count": row["count"],
                    "average_rating": round(row.get("average_rating") or 0, 1),
                }
                for row in rows
            ),
            key=lambda row: row["count"],
            reverse=True,
        )
        return {"total": total, "published": published, "by_category": by_category}

    async def create_item(self, data: PortfolioItemCreate, creator: User) -> dict:
        now = datetime.utcnow()
        doc = convert_pydantic_for_mongodb(data.model_dump())
        doc.update({
            "pole": POLE,
            "project_date": doc.get("project_date") or now,
            "average_rating": 0,
            "review_count": 0,
            "created_by": creator.id,
            "created_at": now,
            "updated_at": now,
        })
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"🎨 Réalisation créée : id={result.inserted_id}, title={data.title}")
        return serialize_document(doc)

    async def update_item(self, item_id: Any, data: PortfolioItemUpdate) -> dict:
        doc = await self._get_raw(item_id)
        updates = convert_pydantic_for_mongodb(data.model_dump(exclude_unset=True, exclude_none=True))
        if not updates:
            raise BadRequestError("Aucune donnée à mettre à jour.")
        updates.update({"pole": POLE, "updated_at": datetime.utcnow()})
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
        logger.info(f"✏️ Réalisation {doc['_id']} mise à jour")
        return serialize_document(updated)

    async def delete_item(self, item_id: Any) -> None:
        doc = await self._get_raw(item_id)
        result = await self.reviews.delete_many({"portfolio_item_id": str(doc["_id"])})
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Réalisation {doc['_id']} supprimée avec {result.deleted_count} avis")

    async def ensure_exists(self, item_id: Any) -> dict:
        return await self._get_raw(item_id)

    async def count(self, query: dict = None) -> int:
        return await self.collection.count_documents(query or {})
