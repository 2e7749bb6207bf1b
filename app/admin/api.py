import logging

from fastapi import APIRouter, Depends, Request, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.admin.services import AdminService
from app.auth.models import User
from app.auth.permissions import staff_only
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.properties.schemas import AdminStatus
from app.properties.services import PropertyService
from app.users import services as user_services
from app.users.schemas import UserAdminUpdate

logger = logging.getLogger(__name__)

# Toutes les routes : Admin ou Collaborateur
router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(staff_only)])


def _user_response(user: User, message: str = None) -> dict:
    body = {"status": "success", "data": {"user": user.to_public_dict()}}
    if message:
        body["message"] = message
    return body


# ============================================================
# 📊 STATISTIQUES
# ============================================================
@router.get("/stats")
async def dashboard_stats(db: AsyncSession = Depends(get_db), mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    return {"status": "success", "data": await AdminService(db, mongo).stats()}


@router.get("/activity")
async def recent_activity(db: AsyncSession = Depends(get_db), mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    return {"status": "success", "data": await AdminService(db, mongo).recent_activity()}


# ============================================================
# 🏠 PROPRIÉTÉS
# ============================================================
@router.get("/properties")
async def all_properties(
    request: Request,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    """Toutes les annonces, quel que soit leur statut de modération."""
    result = await PropertyService(mongo).list_properties(request.query_params, current_user, include_unapproved=True)
    await user_services.attach_users(db, result["items"], {"owner_id": "owner"})
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"properties": result["items"]},
    }


@router.get("/properties/status/pending")
async def pending_properties(db: AsyncSession = Depends(get_db), mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    properties = await PropertyService(mongo).pending()
    await user_services.attach_users(db, properties, {"owner_id": "owner"})
    return {"status": "success", "results": len(properties), "data": {"properties": properties}}


@router.patch("/properties/{property_id}/approve")
async def approve_property(property_id: str, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    prop = await PropertyService(mongo).set_admin_status(property_id, AdminStatus.APPROVED)
    return {"status": "success", "message": "Propriété approuvée.", "data": {"property": prop}}


@router.patch("/properties/{property_id}/reject")
async def reject_property(property_id: str, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    prop = await PropertyService(mongo).set_admin_status(property_id, AdminStatus.REJECTED)
    return {"status": "success", "message": "Propriété rejetée.", "data": {"property": prop}}


@router.delete("/properties/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_property(property_id: str, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    await PropertyService(mongo).delete_property(property_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================
# 👥 UTILISATEURS
# ============================================================
@router.get("/owners/active-sessions")
async def active_sessions(
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    users = await AdminService(db, mongo).active_sessions(exclude_id=current_user.id)
    return {"status": "success", "results": len(users), "data": {"active_users": users}}


@router.get("/owners")
async def all_users(db: AsyncSession = Depends(get_db)):
    users = await user_services.list_users(db)
    return {"status": "success", "results": len(users), "data": {"users": [u.to_public_dict() for u in users]}}


@router.patch("/owners/{user_id}/verify")
async def verify_owner(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await user_services.get_user_or_404(db, user_id)
    user.verify_owner()
    await db.commit()
    logger.info(f"✅ Propriétaire {user.id} vérifié")
    return _user_response(user, "Propriétaire vérifié avec succès.")


@router.patch("/owners/{user_id}/suspend")
async def suspend_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await user_services.get_user_or_404(db, user_id)
    user.suspend()
    await db.commit()
    logger.warning(f"⏸️ Utilisateur {user.id} suspendu, sessions invalidées")
    return _user_response(user, "Utilisateur suspendu avec succès.")


@router.patch("/owners/{user_id}/activate")
async def activate_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await user_services.get_user_or_404(db, user_id)
    user.activate()
    await db.commit()
    logger.info(f"▶️ Utilisateur {user.id} réactivé")
    return _user_response(user, "Utilisateur réactivé avec succès.")


@router.patch("/owners/{user_id}/ban")
async def ban_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await user_services.get_user_or_404(db, user_id)
    user.ban()
    await db.commit()
    logger.warning(f"🚫 Utilisateur {user.id} banni, sessions invalidées")
    return _user_response(user, "Utilisateur banni et déconnecté de force.")


@router.get("/owners/{user_id}")
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return _user_response(await user_services.get_user_or_404(db, user_id))


@router.patch("/owners/{user_id}")
async def update_user(user_id: int, updates: UserAdminUpdate, db: AsyncSession = Depends(get_db)):
    user = await user_services.apply_admin_update(db, user_id, updates)
    return _user_response(user, "Utilisateur mis à jour avec succès.")


@router.delete("/owners/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    user = await user_services.get_user_or_404(db, user_id)
    await user_services.delete_user_cascade(db, mongo, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
