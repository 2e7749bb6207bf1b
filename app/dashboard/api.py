import logging

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.permissions import staff_only
from app.dashboard.services import pole_stats
from app.db.mongo import get_mongo_db
from app.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats")
async def dashboard_stats(
    _: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        return {"status": "success", "data": {"stats": await pole_stats(db, mongo)}}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur lors du chargement des statistiques : {e}")
        raise HTTPException(status_code=500, detail="Impossible de récupérer les statistiques.")
