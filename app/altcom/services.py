import logging
from datetime import datetime
from typing import Any, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.altcom.schemas import AltcomProjectCreate, ProjectStatus
from app.db.mongo import ALTCOM_PROJECTS
from app.utils.errors import NotFoundError
from app.utils.mongodb_utils import convert_pydantic_for_mongodb, serialize_document, serialize_documents, to_object_id

logger = logging.getLogger(__name__)


class AltcomProjectService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[ALTCOM_PROJECTS]

    async def _get_raw(self, project_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(project_id, "Projet introuvable.")})
        if not doc:
            raise NotFoundError("Projet introuvable.")
        return doc

    async def submit(self, data: AltcomProjectCreate) -> dict:
        now = datetime.utcnow()
        doc = convert_pydantic_for_mongodb(data.model_dump())
        doc.update({
            "status": ProjectStatus.PENDING.value,
            "submitted_at": now,
            "created_at": now,
            "updated_at": now,
        })
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"📂 [Altcom] Nouveau projet : {data.project_name} ({data.email})")
        return serialize_document(doc)

    async def list_projects(self, status: Optional[ProjectStatus] = None) -> List[dict]:
        query = {"status": status.value} if status else {}
        cursor = self.collection.find(query).sort("submitted_at", DESCENDING)
        return serialize_documents(await cursor.to_list(length=None))

    async def get_project(self, project_id: Any) -> dict:
        return serialize_document(await self._get_raw(project_id))

    async def update_status(self, project_id: Any, status: ProjectStatus) -> dict:
        doc = await self._get_raw(project_id)
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]},
            {"$set": {"status": status.value, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        logger.info(f"✅ [Altcom] Statut du projet {doc['project_name']} mis à jour : {status.value}")
        return serialize_document(updated)

    async def delete_project(self, project_id: Any) -> None:
        doc = await self._get_raw(project_id)
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ [Altcom] Projet supprimé : {doc['project_name']}")
