from enum import Enum
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.mongo import EVENTS, PROPERTIES, SERVICES
from app.utils.errors import NotFoundError
from app.utils.mongodb_utils import is_object_id, to_object_id


class TargetType(str, Enum):
    """Éléments pouvant recevoir des commentaires et des likes."""
    PROPERTY = "Property"
    EVENT = "Event"
    SERVICE = "Service"


TARGET_COLLECTIONS = {
    TargetType.PROPERTY: PROPERTIES,
    TargetType.EVENT: EVENTS,
    TargetType.SERVICE: SERVICES,
}

TARGET_LABELS = {
    TargetType.PROPERTY: "Propriété",
    TargetType.EVENT: "Événement",
    TargetType.SERVICE: "Service",
}


async def find_target(db: AsyncIOMotorDatabase, target_type: TargetType, target_id: Any) -> Optional[dict]:
    if not is_object_id(target_id):
        return None
    return await db[TARGET_COLLECTIONS[target_type]].find_one({"_id": to_object_id(target_id)})


async def ensure_target_exists(db: AsyncIOMotorDatabase, target_type: TargetType, target_id: Any) -> dict:
    target = await find_target(db, target_type, target_id)
    if not target:
        raise NotFoundError(f"{TARGET_LABELS[target_type]} non trouvé(e).")
    return target
