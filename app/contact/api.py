import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import User
from app.auth.permissions import admin_only
from app.contact.schemas import ContactMessageCreate, ContactStatus, ContactStatusUpdate
from app.contact.services import ContactService
from app.db.mongo import get_mongo_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_contact_message(
    payload: ContactMessageCreate,
    request: Request,
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        ip_address = request.client.host if request.client else None
        message = await ContactService(mongo).create(payload, ip_address, request.headers.get("user-agent"))
        return {
            "status": "success",
            "message": "Votre message a été envoyé avec succès. Nous vous répondrons dans les plus brefs délais.",
            "data": {
                "contact_message": {
                    "id": message["_id"],
                    "name": message["name"],
                    "email": message["email"],
                    "subject": message["subject"],
                    "submitted_at": message["submitted_at"],
                }
            },
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur enregistrement message de contact : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de l'envoi du message")


@router.get("")
async def list_contact_messages(
    status_filter: Optional[ContactStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    result = await ContactService(mongo).list_messages(status_filter, page, limit)
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"messages": result["items"]},
    }


@router.get("/stats")
async def contact_stats(_: User = Depends(admin_only), mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    return {"status": "success", "data": {"stats": await ContactService(mongo).stats()}}


@router.get("/{message_id}")
async def get_contact_message(
    message_id: str,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return {"status": "success", "data": {"message": await ContactService(mongo).get_message(message_id)}}


@router.patch("/{message_id}/status")
async def update_contact_status(
    message_id: str,
    payload: ContactStatusUpdate,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    message = await ContactService(mongo).update_status(message_id, payload)
    return {"status": "success", "message": "Statut mis à jour avec succès", "data": {"message": message}}


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact_message(
    message_id: str,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await ContactService(mongo).delete(message_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
