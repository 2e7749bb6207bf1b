import logging
from datetime import datetime
from typing import Dict, List, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from app.db.mongo import LIKES
from app.utils.mongodb_utils import serialize_document, serialize_documents
from app.utils.targets import TargetType, ensure_target_exists, find_target

logger = logging.getLogger(__name__)

FAVORITE_GROUPS = {
    TargetType.PROPERTY: "properties",
    TargetType.EVENT: "events",
    TargetType.SERVICE: "services",
}


class LikeService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[LIKES]

    async def count(self, target_type: TargetType, target_id: str) -> int:
        return await self.collection.count_documents({"target_type": target_type.value, "target_id": target_id})

    async def has_liked(self, user_id: int, target_type: TargetType, target_id: str) -> bool:
        like = await self.collection.find_one(
            {"user_id": user_id, "target_type": target_type.value, "target_id": target_id}
        )
        return like is not None

    async def toggle(self, user_id: int, target_type: TargetType, target_id: str) -> Tuple[bool, int]:
        """Ajoute le like s'il n'existe pas, le retire sinon. Retourne (liked, likes_count)."""
        await ensure_target_exists(self.db, target_type, target_id)
        query = {"user_id": user_id, "target_type": target_type.value, "target_id": target_id}

        result = await self.collection.delete_one(query)
        if result.deleted_count:
            liked = False
            logger.info(f"💔 Like retiré : user_id={user_id}, {target_type.value} {target_id}")
        else:
            await self.collection.insert_one({**query, "created_at": datetime.utcnow()})
            liked = True
            logger.info(f"❤️ Like ajouté : user_id={user_id}, {target_type.value} {target_id}")

        return liked, await self.count(target_type, target_id)

    async def likers(self, target_type: TargetType, target_id: str) -> List[dict]:
        cursor = self.collection.find(
            {"target_type": target_type.value, "target_id": target_id}
        ).sort("created_at", DESCENDING)
        return serialize_documents(await cursor.to_list(length=None))

    async def favorites(self, user_id: int) -> Dict[str, List[dict]]:
        favorites: Dict[str, List[dict]] = {group: [] for group in FAVORITE_GROUPS.values()}
        cursor = self.collection.find({"user_id": user_id}).sort("created_at", DESCENDING)
        for like in await cursor.to_list(length=None):
            target_type = TargetType(like["target_type"])
            target = await find_target(self.db, target_type, like["target_id"])
            # Cible supprimée depuis
            if not target:
                continue
            item = serialize_document(target)
            item["liked_at"] = like["created_at"]
            favorites[FAVORITE_GROUPS[target_type]].append(item)
        return favorites
