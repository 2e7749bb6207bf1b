import logging
from datetime import datetime, timedelta
from typing import Any, Mapping

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.db.mongo import TRANSACTIONS
from app.documents.services import DocumentService
from app.properties.schemas import Availability
from app.properties.services import PropertyService
from app.transactions.schemas import (
    AGENCY_COMMISSION_RATE,
    OWNER_PAYOUT_RATE,
    TransactionCreate,
    TransactionStatus,
    TransactionType,
)
from app.utils.api_features import APIFeatures
from app.utils.errors import BadRequestError, NotFoundError
from app.utils.mongodb_utils import convert_pydantic_for_mongodb, serialize_document, to_object_id

logger = logging.getLogger(__name__)

INVOICE_DUE_DAYS = 30


def compute_commission(final_amount: float, has_special_commission: bool) -> dict:
    total = final_amount * AGENCY_COMMISSION_RATE
    owner_payout = total * OWNER_PAYOUT_RATE if has_special_commission else 0
    return {"total": total, "owner_payout": owner_payout}


class TransactionService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[TRANSACTIONS]
        self.properties = PropertyService(db)

    async def _get_raw(self, transaction_id: Any) -> dict:
        doc = await self.collection.find_one({"_id": to_object_id(transaction_id, "Transaction introuvable.")})
        if not doc:
            raise NotFoundError("Transaction introuvable.")
        return doc

    async def create_transaction(self, data: TransactionCreate, agent_id: int) -> dict:
        await self.properties.get_any(data.property_id)

        now = datetime.utcnow()
        doc = convert_pydantic_for_mongodb(data.model_dump())
        doc.update({
            "agent_id": agent_id,
            "status": TransactionStatus.IN_PROGRESS.value,
            "commission": {"total": 0, "owner_payout": 0},
            "linked_invoice_id": None,
            "transaction_date": doc.get("transaction_date") or now,
            "created_at": now,
            "updated_at": now,
        })
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"🤝 Transaction {data.transaction_type.value} ouverte sur {data.property_id} par agent_id={agent_id}")
        return serialize_document(doc)

    async def list_transactions(self, params: Mapping[str, str]) -> dict:
        features = (
            APIFeatures(self.collection, params,
                        allowed_filters={"status", "transaction_type", "property_id", "client_id", "agent_id"})
            .filter()
            .sort(default="-transaction_date")
            .paginate()
        )
        items = await features.to_list()
        total = await features.count()
        return {"items": items, "total": total, "page": features.page, "total_pages": features.total_pages(total)}

    async def get_transaction(self, transaction_id: Any) -> dict:
        return serialize_document(await self._get_raw(transaction_id))

    async def finalize(self, transaction_id: Any, agent_id: int) -> dict:
        """
        Clôture une transaction :
        le bien passe Vendu / Loué et est dépublié, la commission est calculée
        et une facture envoyée (échéance à 30 jours) est rattachée.
        """
        doc = await self._get_raw(transaction_id)
        if doc["status"] == TransactionStatus.SUCCEEDED.value:
            raise BadRequestError("Cette transaction est déjà finalisée.")

        prop = await self.properties.get_any(doc["property_id"])
        is_sale = doc["transaction_type"] == TransactionType.SALE.value
        availability = Availability.SOLD if is_sale else Availability.RENTED
        await self.properties.mark_closed(doc["property_id"], availability.value)

        commission = compute_commission(doc["final_amount"], bool(prop.get("has_special_commission")))
        invoice = await DocumentService(self.db).create_invoice(
            client_id=doc["client_id"],
            created_by=agent_id,
            description=f"Commission pour {doc['transaction_type']} du bien: {prop.get('title')}",
            amount=commission["total"],
            due_date=datetime.utcnow() + timedelta(days=INVOICE_DUE_DAYS),
            related_property_id=doc["property_id"],
        )

        updated = await self.collection.find_one_and_update(
            {"_id": doc["_id"]},
            {"$set": {
                "status": TransactionStatus.SUCCEEDED.value,
                "commission": commission,
                "linked_invoice_id": invoice["_id"],
                "updated_at": datetime.utcnow(),
            }},
            return_document=ReturnDocument.AFTER,
        )
        logger.info(
            f"🏁 Transaction {doc['_id']} finalisée : bien {availability.value}, "
            f"commission {commission['total']} (facture n°{invoice['doc_number']})"
        )
        return {"transaction": serialize_document(updated), "invoice": invoice}
