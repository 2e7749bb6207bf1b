import logging
import math
from datetime import datetime
from typing import Any, List, Mapping

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.auth.models import User
from app.db.mongo import PORTFOLIO_ITEMS, REVIEWS
from app.portfolio.services import PortfolioService
from app.reviews.schemas import ReviewCreate, ReviewUpdate
from app.utils.api_features import APIFeatures
from app.utils.errors import BadRequestError, ForbiddenError, NotFoundError
from app.utils.mongodb_utils import serialize_document, serialize_documents, to_object_id

logger = logging.getLogger(__name__)


def round_rating(value: float) -> float:
    """Arrondi à une décimale, la moitié vers le haut (4.25 -> 4.3)."""
    return math.floor(value * 10 + 0.5) / 10


class ReviewService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[REVIEWS]
        self.items = db[PORTFOLIO_ITEMS]
        self.portfolio = PortfolioService(db)

    async def _get_raw(self, review_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(review_id, "Avis introuvable.")})
        if not doc:
            raise NotFoundError("Avis introuvable.")
        return doc

    @staticmethod
    def _ensure_author_or_admin(doc: dict, user: User, message: str) -> None:
        if doc.get("author_id") != user.id and not user.is_admin:
            logger.warning(f"⛔ user_id={user.id} refusé sur l'avis {doc['_id']}")
            raise ForbiddenError(message)

    async def recompute_rating(self, portfolio_item_id: str) -> dict:
        pipeline = [
            {"$match": {"portfolio_item_id": portfolio_item_id}},
            {"$group": {"_id": "$portfolio_item_id", "avg_rating": {"$avg": "$rating"}, "count": {"$sum": 1}}},
        ]
        rows = await self.collection.aggregate(pipeline).to_list(length=None)
        if rows:
            stats = {"average_rating": round_rating(rows[0]["avg_rating"]), "review_count": rows[0]["count"]}
        else:
            stats = {"average_rating": 0, "review_count": 0}

        await self.items.update_one({"_id": to_object_id(portfolio_item_id)}, {"$set": stats})
        logger.info(f"⭐ Notes recalculées pour {portfolio_item_id} : {stats['average_rating']}/5 ({stats['review_count']} avis)")
        return stats

    async def list_reviews(self, params: Mapping[str, str]) -> dict:
        params = dict(params)
        base = {}
        item_id = params.pop("portfolio_item_id", None)
        if item_id:
            base["portfolio_item_id"] = item_id

        features = APIFeatures(self.collection, params, base_filter=base).filter().sort().paginate()
        items = await features.to_list()
        total = await features.count()
        return {"items": items, "total": total, "page": features.page, "total_pages": features.total_pages(total)}

    async def for_item(self, portfolio_item_id: Any) -> List[dict]:
        item = await self.portfolio.ensure_exists(portfolio_item_id)
        cursor = self.collection.find({"portfolio_item_id": str(item["_id"])}).sort("created_at", DESCENDING)
        return serialize_documents(await cursor.to_list(length=None))

    async def create_review(self, portfolio_item_id: Any, data: ReviewCreate, author: User) -> dict:
        item = await self.portfolio.ensure_exists(portfolio_item_id)
        item_id = str(item["_id"])

        if await self.collection.find_one({"portfolio_item_id": item_id, "author_id": author.id}):
            raise BadRequestError("Vous avez déjà laissé un avis pour cette réalisation.")

        now = datetime.utcnow()
        doc = {
            "portfolio_item_id": item_id,
            "author_id": author.id,
            "rating": data.rating,
            "comment": data.comment,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"📝 Avis créé : item={item_id}, author_id={author.id}, note={data.rating}")
        await self.recompute_rating(item_id)
        return serialize_document(doc)

    async def update_review(self, review_id: Any, data: ReviewUpdate, user: User) -> dict:
        doc = await self._get_raw(review_id)
        self._ensure_author_or_admin(doc, user, "Vous ne pouvez modifier que vos propres avis.")

        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if not updates:
            raise BadRequestError("Aucune donnée à mettre à jour.")
        updates["updated_at"] = datetime.utcnow()
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
        await self.recompute_rating(doc["portfolio_item_id"])
        return serialize_document(updated)

    async def delete_review(self, review_id: Any, user: User) -> None:
        doc = await self._get_raw(review_id)
        self._ensure_author_or_admin(doc, user, "Vous ne pouvez supprimer que vos propres avis.")
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Avis {doc['_id']} supprimé")
        await self.recompute_rating(doc["portfolio_item_id"])
