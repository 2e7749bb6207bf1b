import logging

from fastapi import APIRouter, Depends, Request, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.permissions import staff_only
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.documents.schemas import DocumentCreate, DocumentUpdate
from app.documents.services import DocumentService
from app.users.services import attach_users, get_user_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("")
async def list_documents(
    request: Request,
    _: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    result = await DocumentService(mongo).list_documents(request.query_params)
    await attach_users(db, result["items"], {"client_id": "client", "created_by": "author"})
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"documents": result["items"]},
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_document(
    payload: DocumentCreate,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await get_user_or_404(db, payload.client_id, "Client non trouvé.")
    document = await DocumentService(mongo).create_document(payload, current_user.id)
    return {"status": "success", "data": {"document": document}}


@router.get("/{document_id}")
async def get_document(
    document_id: str,
    _: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    document = await DocumentService(mongo).get_document(document_id)
    await attach_users(db, [document], {"client_id": "client", "created_by": "author"})
    return {"status": "success", "data": {"document": document}}


@router.patch("/{document_id}")
async def update_document(
    document_id: str,
    payload: DocumentUpdate,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    document = await DocumentService(mongo).update_document(document_id, payload)
    return {"status": "success", "data": {"document": document}}


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await DocumentService(mongo).delete_document(document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
