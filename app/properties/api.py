import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, get_current_user_optional
from app.auth.models import User, UserRole
from app.auth.permissions import admin_only, require_roles
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.properties.schemas import MODERATION_ACTIONS, PropertyCreate, PropertyUpdate
from app.properties.services import PropertyService
from app.users.services import attach_users
from app.utils.errors import BadRequestError
from app.utils.uploads import save_uploads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/properties", tags=["properties"])

MAX_IMAGES = 10


def _parse_payload(raw: str, model):
    """Le formulaire multipart transporte les champs sous forme de JSON (`property_data`)."""
    try:
        payload = json.loads(raw or "{}")
    except ValueError:
        raise BadRequestError("property_data doit être un JSON valide")
    try:
        return model(**payload)
    except ValidationError as e:
        messages = ". ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise BadRequestError(f"Données invalides. {messages}")


async def _upload_images(images: Optional[List[UploadFile]], user: User) -> List[str]:
    saved = await save_uploads(images, "properties", f"property_{user.id}", kind="image", max_count=MAX_IMAGES)
    return [item["filepath"] for item in saved]


# ============================================================
# 1. ROUTES STATIQUES (avant /{property_id})
# ============================================================
@router.get("/latest")
async def latest_properties(mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    properties = await PropertyService(mongo).latest()
    return {"status": "success", "results": len(properties), "data": {"properties": properties}}


@router.get("/status/pending")
async def pending_properties(
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    properties = await PropertyService(mongo).pending()
    await attach_users(db, properties, {"owner_id": "owner"})
    return {"status": "success", "results": len(properties), "data": {"properties": properties}}


@router.get("/my-properties")
async def my_properties(
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    properties = await PropertyService(mongo).by_owner(current_user.id)
    return {"status": "success", "results": len(properties), "data": {"properties": properties}}


@router.get("")
async def list_properties(
    request: Request,
    current_user: Optional[User] = Depends(get_current_user_optional),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    """
    Liste filtrable : `?price[gte]=100000&status=Vente&search=plateau&sort=-price&page=2&limit=10`.
    Les visiteurs ne voient que les annonces validées.
    """
    result = await PropertyService(mongo).list_properties(request.query_params, current_user)
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"properties": result["items"]},
    }


# ============================================================
# 2. CRÉATION
# ============================================================
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_property(
    property_data: str = Form(...),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OWNER)),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        data = _parse_payload(property_data, PropertyCreate)
        image_urls = await _upload_images(images, current_user)
        created = await PropertyService(mongo).create_property(data, current_user, image_urls)
        return {"status": "success", "data": {"property": created}}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur création propriété : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de la création de la propriété")


# ============================================================
# 3. ROUTES DYNAMIQUES
# ============================================================
@router.delete("/admin/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_property(
    property_id: str,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await PropertyService(mongo).delete_property(property_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{property_id}/{action}")
async def moderate_property(
    property_id: str,
    action: str,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    admin_status = MODERATION_ACTIONS.get(action)
    if admin_status is None:
        raise BadRequestError("Action invalide. Utilisez 'validate' ou 'reject'.")
    updated = await PropertyService(mongo).set_admin_status(property_id, admin_status)
    return {"status": "success", "data": {"property": updated}}


@router.put("/{property_id}")
async def update_property(
    property_id: str,
    property_data: str = Form("{}"),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        data = _parse_payload(property_data, PropertyUpdate)
        service = PropertyService(mongo)
        # Droits vérifiés avant d'écrire les fichiers
        await service.ensure_can_manage(property_id, current_user)
        image_urls = await _upload_images(images, current_user)
        updated = await service.update_property(property_id, data, current_user, image_urls)
        return {"status": "success", "data": {"property": updated}}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur mise à jour propriété {property_id} : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de la mise à jour de la propriété")


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_property(
    property_id: str,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await PropertyService(mongo).delete_property(property_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{property_id}")
async def get_property(
    property_id: str,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    prop = await PropertyService(mongo).get_property(property_id, current_user)
    await attach_users(db, [prop], {"owner_id": "owner"})
    return {"status": "success", "data": {"property": prop}}
