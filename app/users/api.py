from typing import Optional
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.models import User, UserRole
from app.auth.permissions import admin_only
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.users import services
from app.users.schemas import UserAdminUpdate
from app.utils.errors import BadRequestError
from app.utils.uploads import delete_local_file, save_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


# 👤 GET /api/users/me
@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return {"status": "success", "data": {"user": current_user.to_public_dict()}}


# ✏️ PATCH /api/users/updateMe - nom, email, téléphone, bio, photo
@router.patch("/updateMe")
async def update_me(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    password_confirm: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mise à jour du profil connecté. Le mot de passe passe par /updateMyPassword."""
    try:
        if password or password_confirm:
            raise BadRequestError("Cette route n'est pas destinée à la mise à jour du mot de passe. Utilisez /updateMyPassword.")

        if name is not None:
            name = name.strip()
            if not 2 <= len(name) <= 50:
                raise BadRequestError("Le nom doit contenir entre 2 et 50 caractères")
            current_user.name = name
        if email is not None:
            email = email.strip().lower()
            if "@" not in email:
                raise BadRequestError("Adresse email invalide")
            await services.ensure_email_available(db, email, exclude_id=current_user.id)
            current_user.email = email
        if phone is not None:
            current_user.phone = phone.strip() or None
        if bio is not None:
            if len(bio) > 300:
                raise BadRequestError("La bio ne peut pas dépasser 300 caractères")
            current_user.bio = bio

        if photo is not None and photo.filename:
            saved = await save_upload(photo, "users", f"user_{current_user.id}", kind="image")
            delete_local_file(current_user.photo)
            current_user.photo = saved["filepath"]

        await db.commit()
        logger.info(f"✏️ Profil mis à jour : user_id={current_user.id}")
        return {"status": "success", "data": {"user": current_user.to_public_dict()}}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur mise à jour profil: {e}")
        raise HTTPException(status_code=500, detail="Erreur interne du serveur")


# ===============================
# ADMINISTRATION DES UTILISATEURS
# ===============================
@router.get("")
async def list_users(
    role: Optional[UserRole] = None,
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    users = await services.list_users(db, role.value if role else None)
    return {"status": "success", "results": len(users), "data": {"users": [u.to_public_dict() for u in users]}}


@router.get("/owners")
async def list_owners(_: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    owners = await services.list_users(db, UserRole.OWNER.value)
    return {"status": "success", "results": len(owners), "data": {"users": [u.to_public_dict() for u in owners]}}


@router.get("/{user_id}")
async def get_user(user_id: int, _: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    user = await services.get_user_or_404(db, user_id)
    return {"status": "success", "data": {"user": user.to_public_dict()}}


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    updates: UserAdminUpdate,
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    user = await services.apply_admin_update(db, user_id, updates)
    return {"status": "success", "data": {"user": user.to_public_dict()}}


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    user = await services.get_user_or_404(db, user_id)
    await services.delete_user_cascade(db, mongo, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

