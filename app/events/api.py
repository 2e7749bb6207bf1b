import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import User
from app.auth.permissions import staff_only
from app.db.mongo import get_mongo_db
from app.events.schemas import MAX_IMAGES_PER_UPLOAD, MAX_VIDEOS, EventCategory, EventCreate, EventUpdate
from app.events.services import EventService
from app.utils.errors import BadRequestError
from app.utils.uploads import save_uploads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


def _many(events: List[dict]) -> dict:
    return {"status": "success", "results": len(events), "data": {"events": events}}


# ===============================
# LECTURE PUBLIQUE
# ===============================
@router.get("")
async def list_events(request: Request, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    """
    Liste paginée : `?category=Mariage&date[gte]=2025-01-01&sort=-date&page=1&limit=10`.
    Le tri n'accepte que name, title, date, location, created_at et updated_at.
    """
    result = await EventService(mongo).list_events(request.query_params)
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"events": result["items"]},
    }


@router.get("/upcoming")
async def upcoming_events(
    limit: int = Query(10, ge=1, le=100),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return _many(await EventService(mongo).upcoming(limit))


@router.get("/featured")
async def featured_events(mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    return _many(await EventService(mongo).featured())


@router.get("/category/{category}")
async def events_by_category(category: str, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    try:
        parsed = EventCategory(category)
    except ValueError:
        raise BadRequestError(f"Catégorie invalide : {category}")
    return _many(await EventService(mongo).by_category(parsed))


@router.get("/{event_id}")
async def get_event(event_id: str, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    event = await EventService(mongo).get_event(event_id)
    return {"status": "success", "data": {"event": event}}


# ===============================
# GESTION (Admin / Collaborateur)
# ===============================
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    current_user: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        event = await EventService(mongo).create_event(payload, current_user)
        return {"status": "success", "data": {"event": event}}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur création événement : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de la création de l'événement")


@router.put("/{event_id}")
@router.patch("/{event_id}")
async def update_event(
    event_id: str,
    payload: EventUpdate,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    event = await EventService(mongo).update_event(event_id, payload)
    return {"status": "success", "data": {"event": event}}


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: str,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await EventService(mongo).delete_event(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===============================
# MÉDIAS
# ===============================
@router.post("/{event_id}/images")
async def add_event_images(
    event_id: str,
    images: Optional[List[UploadFile]] = File(None),
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    service = EventService(mongo)
    await service.ensure_exists(event_id)
    saved = await save_uploads(images, "events", f"event_{event_id}", kind="image", max_count=MAX_IMAGES_PER_UPLOAD)
    if not saved:
        raise BadRequestError("Aucune image fournie")
    event = await service.add_media(event_id, "images", [item["filepath"] for item in saved])
    return {"status": "success", "data": {"event": event}}


@router.post("/{event_id}/videos")
async def add_event_videos(
    event_id: str,
    videos: Optional[List[UploadFile]] = File(None),
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    service = EventService(mongo)
    event = await service.get_event(event_id)
    incoming = [f for f in (videos or []) if f is not None and f.filename]
    if not incoming:
        raise BadRequestError("Aucune vidéo fournie")
    # Contrôle du total avant d'écrire les fichiers
    if event["video_count"] + len(incoming) > MAX_VIDEOS:
        raise BadRequestError(f"Un événement ne peut pas avoir plus de {MAX_VIDEOS} vidéos")
    saved = await save_uploads(incoming, "events", f"event_{event_id}", kind="video", max_count=MAX_VIDEOS)
    event = await service.add_media(event_id, "videos", [item["filepath"] for item in saved])
    return {"status": "success", "data": {"event": event}}
