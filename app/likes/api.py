import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, get_current_user_optional
from app.auth.models import User
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.likes.services import LikeService
from app.users.services import attach_users
from app.utils.targets import TargetType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/likes", tags=["likes"])


@router.get("/my-favorites")
async def my_favorites(
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    favorites = await LikeService(mongo).favorites(current_user.id)
    total = sum(len(items) for items in favorites.values())
    return {"status": "success", "results": total, "data": {"favorites": favorites}}


@router.post("/{target_type}/{target_id}")
async def toggle_like(
    target_type: TargetType,
    target_id: str,
    response: Response,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    liked, likes_count = await LikeService(mongo).toggle(current_user.id, target_type, target_id)
    response.status_code = status.HTTP_201_CREATED if liked else status.HTTP_200_OK
    return {
        "status": "success",
        "message": "Like ajouté" if liked else "Like retiré",
        "data": {"liked": liked, "likes_count": likes_count},
    }


@router.get("/{target_type}/{target_id}/status")
async def like_status(
    target_type: TargetType,
    target_id: str,
    current_user: Optional[User] = Depends(get_current_user_optional),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    service = LikeService(mongo)
    liked = await service.has_liked(current_user.id, target_type, target_id) if current_user else False
    return {"status": "success", "data": {"liked": liked, "likes_count": await service.count(target_type, target_id)}}


@router.get("/{target_type}/{target_id}/users")
async def like_users(
    target_type: TargetType,
    target_id: str,
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    likes = await LikeService(mongo).likers(target_type, target_id)
    await attach_users(db, likes, {"user_id": "user"})
    users = [{"user": like["user"], "liked_at": like["created_at"]} for like in likes]
    return {"status": "success", "results": len(users), "data": {"users": users}}
