import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import User
from app.auth.permissions import admin_only, staff_only
from app.catalog.schemas import Pole, ServiceCreate, ServiceUpdate
from app.catalog.services import CatalogService
from app.db.mongo import get_mongo_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/services", tags=["services"])


@router.get("")
async def list_services(pole: Optional[Pole] = None, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    services = await CatalogService(mongo).list_services(pole)
    return {"status": "success", "results": len(services), "data": {"services": services}}


@router.get("/{service_id}")
async def get_service(service_id: str, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    return {"status": "success", "data": {"service": await CatalogService(mongo).get_service(service_id)}}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return {"status": "success", "data": {"service": await CatalogService(mongo).create_service(payload)}}


@router.patch("/{service_id}")
async def update_service(
    service_id: str,
    payload: ServiceUpdate,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return {"status": "success", "data": {"service": await CatalogService(mongo).update_service(service_id, payload)}}


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    service_id: str,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await CatalogService(mongo).delete_service(service_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
