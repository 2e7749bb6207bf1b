import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.models import User
from app.comments.schemas import DEFAULT_PAGE_SIZE, CommentCreate, CommentUpdate
from app.comments.services import CommentService
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.users.services import attach_users
from app.utils.targets import TargetType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/comments", tags=["comments"])

AUTHOR = {"author_id": "author"}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_comment(
    payload: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        comment = await CommentService(mongo).create_comment(payload, current_user)
        await attach_users(db, [comment], AUTHOR)
        return {"status": "success", "data": {"comment": comment}}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur création commentaire : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de l'ajout du commentaire")


# Avant /{target_type}/{target_id} : "user/me" aurait la même forme
@router.get("/user/me")
async def my_comments(
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    comments = await CommentService(mongo).by_author(current_user.id)
    return {"status": "success", "results": len(comments), "data": {"comments": comments}}


@router.get("/{target_type}/{target_id}")
async def target_comments(
    target_type: TargetType,
    target_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    result = await CommentService(mongo).for_target(target_type, target_id, page, limit)
    await attach_users(db, result["items"], AUTHOR)
    return {
        "status": "success",
        "results": len(result["items"]),
        "total_comments": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"comments": result["items"]},
    }


@router.get("/{target_type}/{target_id}/count")
async def target_comments_count(
    target_type: TargetType,
    target_id: str,
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    count = await CommentService(mongo).count_for_target(target_type, target_id)
    return {"status": "success", "data": {"count": count}}


@router.patch("/{comment_id}")
async def update_comment(
    comment_id: str,
    payload: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    comment = await CommentService(mongo).update_comment(comment_id, payload, current_user)
    await attach_users(db, [comment], AUTHOR)
    return {"status": "success", "data": {"comment": comment}}


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await CommentService(mongo).delete_comment(comment_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
