import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.auth.models import User
from app.db.mongo import PROPERTIES
from app.properties.schemas import AdminStatus, PropertyCreate, PropertyUpdate
from app.utils.api_features import APIFeatures
from app.utils.errors import ForbiddenError, NotFoundError
from app.utils.mongodb_utils import convert_pydantic_for_mongodb, serialize_document, serialize_documents, to_object_id

logger = logging.getLogger(__name__)

LATEST_LIMIT = 5


class PropertyNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Propriété introuvable.")


def _geo_point(longitude: Optional[float], latitude: Optional[float]) -> Optional[dict]:
    if longitude is None or latitude is None:
        return None
    return {"type": "Point", "coordinates": [longitude, latitude]}


class PropertyService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[PROPERTIES]

    async def _get_raw(self, property_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(property_id, "Propriété introuvable.")})
        if not doc:
            raise PropertyNotFoundError()
        return doc

    @staticmethod
    def can_manage(doc: dict, user: Optional[User]) -> bool:
        return bool(user) and (user.is_admin or doc.get("owner_id") == user.id)

    async def ensure_can_manage(self, property_id: Any, user: User) -> dict:
        doc = await self._get_raw(property_id)
        if not self.can_manage(doc, user):
            logger.warning(f"⛔ user_id={user.id} n'est pas propriétaire de {property_id}")
            raise ForbiddenError("Vous n'êtes pas autorisé à modifier cette propriété.")
        return doc

    # ─── Création ───
    async def create_property(self, data: PropertyCreate, owner: User, images: List[str]) -> dict:
        now = datetime.utcnow()
        doc = convert_pydantic_for_mongodb(data.model_dump())
        doc.update({
            "location": _geo_point(data.longitude, data.latitude),
            "images": images,
            "owner_id": owner.id,
            "status_admin": AdminStatus.PENDING.value,
            "reviewed_at": None,
            "is_published": False,
            "created_at": now,
            "updated_at": now,
        })
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"✅ Propriété créée : id={result.inserted_id} par owner_id={owner.id}")
        return serialize_document(doc)

    # ─── Lectures ───
    async def list_properties(self, params: Mapping[str, str], user: Optional[User],
                              base_filter: Optional[Dict[str, Any]] = None, include_unapproved: bool = False) -> dict:
        base = dict(base_filter or {})
        # Seul l'administrateur (ou l'espace de modération) voit les annonces non validées
        if not (include_unapproved or (user and user.is_admin)):
            base["status_admin"] = AdminStatus.APPROVED.value

        features = APIFeatures(self.collection, params, base_filter=base).filter().search().sort().limit_fields().paginate()
        items = await features.to_list()
        total = await features.count()
        return {
            "items": items,
            "total": total,
            "page": features.page,
            "total_pages": features.total_pages(total),
        }

    async def latest(self, limit: int = LATEST_LIMIT) -> List[dict]:
        cursor = self.collection.find({"status_admin": AdminStatus.APPROVED.value}).sort("created_at", DESCENDING).limit(limit)
        return serialize_documents(await cursor.to_list(length=limit))

    async def pending(self) -> List[dict]:
        cursor = self.collection.find({"status_admin": AdminStatus.PENDING.value}).sort("created_at", DESCENDING)
        return serialize_documents(await cursor.to_list(length=None))

    async def by_owner(self, owner_id: int) -> List[dict]:
        cursor = self.collection.find({"owner_id": owner_id}).sort("created_at", DESCENDING)
        return serialize_documents(await cursor.to_list(length=None))

    async def get_property(self, property_id: Any, user: Optional[User]) -> dict:
        doc = await self._get_raw(property_id)
        if doc.get("status_admin") != AdminStatus.APPROVED.value and not self.can_manage(doc, user):
            logger.warning(f"⛔ Accès refusé à la propriété non validée {property_id}")
            raise ForbiddenError("Cette propriété n'est pas encore disponible.")
        return serialize_document(doc)

    async def get_any(self, property_id: Any) -> dict:
        """Lecture sans contrôle de modération (espace agence)."""
        return serialize_document(await self._get_raw(property_id))

    async def exists(self, property_id: Any) -> bool:
        try:
            await self._get_raw(property_id)
        except NotFoundError:
            return False
        return True

    # ─── Modification ───
    async def update_property(self, property_id: Any, data: PropertyUpdate, user: User, new_images: List[str]) -> dict:
        doc = await self.ensure_can_manage(property_id, user)

        updates = convert_pydantic_for_mongodb(data.model_dump(exclude_unset=True, exclude_none=True))
        existing_images = updates.pop("existing_images", None)

        if "address" in updates:
            address = dict(doc.get("address") or {})
            address.update(updates["address"])
            updates["address"] = address

        longitude = updates.get("longitude", doc.get("longitude"))
        latitude = updates.get("latitude", doc.get("latitude"))
        if "longitude" in updates or "latitude" in updates:
            updates["location"] = _geo_point(longitude, latitude)

        images = existing_images if existing_images is not None else list(doc.get("images") or [])
        updates["images"] = images + new_images

        # Une annonce validée modifiée par son propriétaire repasse en modération
        if not user.is_admin and doc.get("status_admin") == AdminStatus.APPROVED.value:
            updates["status_admin"] = AdminStatus.PENDING.value
            updates["is_published"] = False
            updates["reviewed_at"] = None

        updates["updated_at"] = datetime.utcnow()
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
        logger.info(f"✏️ Propriété {doc['_id']} mise à jour par user_id={user.id}")
        return serialize_document(updated)

    async def set_admin_status(self, property_id: Any, admin_status: AdminStatus) -> dict:
        doc = await self._get_raw(property_id)
        now = datetime.utcnow()
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]},
            {"$set": {
                "status_admin": admin_status.value,
                "is_published": admin_status == AdminStatus.APPROVED,
                "reviewed_at": now,
                "updated_at": now,
            }},
            return_document=ReturnDocument.AFTER,
        )
        logger.info(f"🛡️ Propriété {doc['_id']} -> {admin_status.value}")
        return serialize_document(updated)

    async def mark_closed(self, property_id: Any, availability: str) -> None:
        """Appelé à la finalisation d'une transaction : vendu / loué et dépublié."""
        await self.collection.update_one(
            {"_id": to_object_id(property_id)},
            {"$set": {"availability": availability, "is_published": False, "updated_at": datetime.utcnow()}},
        )

    # ─── Suppression ───
    async def delete_property(self, property_id: Any, user: Optional[User] = None) -> dict:
        doc = await self._get_raw(property_id)
        if user is not None and not self.can_manage(doc, user):
            raise ForbiddenError("Vous n'êtes pas autorisé à supprimer cette propriété.")
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Propriété {doc['_id']} supprimée")
        return serialize_document(doc)

    async def created_since(self, since: datetime) -> List[dict]:
        cursor = self.collection.find({"created_at": {"$gte": since}}).sort("created_at", DESCENDING)
        return serialize_documents(await cursor.to_list(length=None))

    async def count(self, query: Optional[dict] = None) -> int:
        return await self.collection.count_documents(query or {})
