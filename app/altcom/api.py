import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.altcom.schemas import AltcomProjectCreate, ProjectStatus, ProjectStatusUpdate
from app.altcom.services import AltcomProjectService
from app.auth.models import User
from app.auth.permissions import admin_only
from app.db.mongo import get_mongo_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/altcom/projects", tags=["altcom"])


# 📤 Formulaire de brief projet (public)
@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_project(payload: AltcomProjectCreate, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    try:
        project = await AltcomProjectService(mongo).submit(payload)
        return {
            "status": "success",
            "message": "Votre projet a été soumis avec succès. Notre équipe vous contactera rapidement.",
            "data": {
                "project": {
                    "id": project["_id"],
                    "project_name": project["project_name"],
                    "status": project["status"],
                    "submitted_at": project["submitted_at"],
                }
            },
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ [Altcom] Erreur soumission projet : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de la soumission du projet")


@router.get("")
async def list_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    projects = await AltcomProjectService(mongo).list_projects(status_filter)
    return {"status": "success", "results": len(projects), "data": {"projects": projects}}


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return {"status": "success", "data": {"project": await AltcomProjectService(mongo).get_project(project_id)}}


@router.patch("/{project_id}/status")
async def update_project_status(
    project_id: str,
    payload: ProjectStatusUpdate,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    project = await AltcomProjectService(mongo).update_status(project_id, payload.status)
    return {"status": "success", "data": {"project": project}}


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await AltcomProjectService(mongo).delete_project(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
