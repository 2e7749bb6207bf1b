import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user_optional
from app.auth.models import User
from app.auth.permissions import admin_only, staff_only
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.quotes.schemas import QuoteRequestCreate, QuoteResponse, QuoteStatusUpdate
from app.quotes.services import QuoteService
from app.users.services import attach_users
from app.utils.errors import BadRequestError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quotes", tags=["quotes"])


# 📤 Demande de devis publique (liée au compte si l'utilisateur est connecté)
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_quote_request(
    payload: QuoteRequestCreate,
    current_user: Optional[User] = Depends(get_current_user_optional),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        service = QuoteService(mongo)
        quote = await service.create(payload, current_user.id if current_user else None)
        await service.notify_new_quote(quote)
        return {"status": "success", "message": "Demande de devis enregistrée avec succès.", "data": {"quote": quote}}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur création demande de devis : {e}")
        raise HTTPException(status_code=500, detail="Une erreur interne du serveur est survenue.")


@router.get("")
async def list_quotes(
    request: Request,
    _: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    result = await QuoteService(mongo).list_quotes(request.query_params)
    await attach_users(db, result["items"], {"user_id": "user"})
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"quotes": result["items"]},
    }


@router.get("/stats")
async def quote_stats(_: User = Depends(staff_only), mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    return {"status": "success", "data": {"stats": await QuoteService(mongo).stats()}}


@router.get("/{quote_id}")
async def get_quote(
    quote_id: str,
    _: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    quote = await QuoteService(mongo).get_quote(quote_id)
    await attach_users(db, [quote], {"user_id": "user"})
    return {"status": "success", "data": {"quote": quote}}


@router.patch("/{quote_id}/status")
async def update_quote_status(
    quote_id: str,
    payload: QuoteStatusUpdate,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    quote = await QuoteService(mongo).update_status(quote_id, payload)
    return {"status": "success", "message": "Statut mis à jour avec succès", "data": {"quote": quote}}


@router.post("/{quote_id}/respond")
async def respond_to_quote(
    quote_id: str,
    payload: QuoteResponse,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    if not payload.subject or not payload.message or not payload.quoted_amount:
        raise BadRequestError("Sujet, message et montant du devis sont requis.")
    quote = await QuoteService(mongo).respond(quote_id, payload.subject, payload.message, payload.quoted_amount)
    return {"status": "success", "message": "Devis envoyé au client avec succès.", "data": {"quote": quote}}


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(
    quote_id: str,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await QuoteService(mongo).delete(quote_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
