import logging

from fastapi import APIRouter, Depends, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.permissions import staff_only
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.transactions.schemas import TransactionCreate
from app.transactions.services import TransactionService
from app.users.services import attach_users, get_user_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await get_user_or_404(db, payload.client_id, "Client non trouvé.")
    transaction = await TransactionService(mongo).create_transaction(payload, current_user.id)
    return {"status": "success", "data": {"transaction": transaction}}


@router.get("")
async def list_transactions(
    request: Request,
    _: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    result = await TransactionService(mongo).list_transactions(request.query_params)
    await attach_users(db, result["items"], {"client_id": "client", "agent_id": "agent"})
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"transactions": result["items"]},
    }


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return {"status": "success", "data": {"transaction": await TransactionService(mongo).get_transaction(transaction_id)}}


# 🏁 Vente / location conclue : bien clôturé, commission et facture
@router.post("/{transaction_id}/finalize")
async def finalize_transaction(
    transaction_id: str,
    current_user: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    result = await TransactionService(mongo).finalize(transaction_id, current_user.id)
    return {"status": "success", "message": "Transaction finalisée et facture générée.", "data": result}
