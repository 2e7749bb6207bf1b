import logging
from datetime import datetime
from typing import Any, List, Mapping

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.db.mongo import COUNTERS, DOCUMENTS
from app.documents.schemas import PRICED_TYPES, DocumentCreate, DocumentStatus, DocumentType, DocumentUpdate
from app.utils.api_features import APIFeatures
from app.utils.errors import BadRequestError, NotFoundError
from app.utils.mongodb_utils import convert_pydantic_for_mongodb, serialize_document, to_object_id

logger = logging.getLogger(__name__)

DOCUMENT_FILTERS = {"type", "status", "client_id", "created_by", "related_property_id", "total_amount"}


def compute_totals(items: List[dict], tax: float) -> dict:
    """Recalcule le total de chaque ligne, le sous-total et le montant TTC."""
    for item in items:
        item["total"] = item.get("quantity", 1) * item["unit_price"]
    sub_total = sum(item["total"] for item in items)
    return {"items": items, "sub_total": sub_total, "tax": tax, "total_amount": sub_total + tax}


class DocumentService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[DOCUMENTS]
        self.counters = db[COUNTERS]

    async def next_number(self) -> int:
        counter = await self.counters.find_one_and_update(
            {"_id": DOCUMENTS},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["seq"]

    async def _get_raw(self, document_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(document_id, "Document introuvable.")})
        if not doc:
            raise NotFoundError("Document introuvable.")
        return doc

    async def list_documents(self, params: Mapping[str, str]) -> dict:
        features = (
            APIFeatures(self.collection, params, allowed_filters=DOCUMENT_FILTERS)
            .filter()
            .sort()
            .limit_fields()
            .paginate()
        )
        items = await features.to_list()
        total = await features.count()
        return {"items": items, "total": total, "page": features.page, "total_pages": features.total_pages(total)}

    async def create_document(self, data: DocumentCreate, created_by: int) -> dict:
        doc = convert_pydantic_for_mongodb(data.model_dump())
        if doc["type"] in PRICED_TYPES:
            doc.update(compute_totals(doc["items"], doc["tax"]))
        else:
            doc.update({"sub_total": 0, "total_amount": 0})

        now = datetime.utcnow()
        doc.update({
            "doc_number": await self.next_number(),
            "created_by": created_by,
            "issue_date": doc.get("issue_date") or now,
            "created_at": now,
            "updated_at": now,
        })
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"📄 {doc['type']} n°{doc['doc_number']} créé pour client_id={doc['client_id']}")
        return serialize_document(doc)

    async def create_invoice(self, client_id: int, created_by: int, description: str, amount: float,
                             due_date: datetime, related_property_id: str = None) -> dict:
        """Facture envoyée d'une seule ligne, utilisée à la finalisation d'une transaction."""
        data = DocumentCreate(
            type=DocumentType.INVOICE,
            status=DocumentStatus.SENT,
            client_id=client_id,
            related_property_id=related_property_id,
            items=[{"description": description, "quantity": 1, "unit_price": amount}],
            due_date=due_date,
        )
        return await self.create_document(data, created_by)

    async def get_document(self, document_id: Any) -> dict:
        return serialize_document(await self._get_raw(document_id))

    async def update_document(self, document_id: Any, data: DocumentUpdate) -> dict:
        doc = await self._get_raw(document_id)
        updates = convert_pydantic_for_mongodb(data.model_dump(exclude_unset=True, exclude_none=True))
        if not updates:
            raise BadRequestError("Aucune donnée à mettre à jour.")

        if doc["type"] in PRICED_TYPES and ("items" in updates or "tax" in updates):
            updates.update(compute_totals(updates.get("items", doc.get("items", [])), updates.get("tax", doc.get("tax", 0))))

        updates["updated_at"] = datetime.utcnow()
        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
        logger.info(f"✏️ Document n°{doc.get('doc_number')} mis à jour")
        return serialize_document(updated)

    async def delete_document(self, document_id: Any) -> None:
        doc = await self._get_raw(document_id)
        await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"🗑️ Document n°{doc.get('doc_number')} supprimé")
