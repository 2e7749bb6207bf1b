import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.models import User, UserRole
from app.auth.permissions import require_roles
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.reviews.schemas import ReviewCreate, ReviewUpdate
from app.reviews.services import ReviewService
from app.users.services import attach_users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])
# Avis imbriqués sous une réalisation : /api/portfolio/{item_id}/reviews
portfolio_router = APIRouter(prefix="/api/portfolio", tags=["reviews"])

reviewer_roles = require_roles(UserRole.CLIENT, UserRole.PROVIDER, UserRole.ADMIN)


@router.get("")
async def list_reviews(
    request: Request,
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    """`?portfolio_item_id=...&rating[gte]=4&sort=-created_at&page=1&limit=10`"""
    result = await ReviewService(mongo).list_reviews(request.query_params)
    await attach_users(db, result["items"], {"author_id": "author"})
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"reviews": result["items"]},
    }


@router.patch("/{review_id}")
async def update_review(
    review_id: str,
    payload: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    review = await ReviewService(mongo).update_review(review_id, payload, current_user)
    return {"status": "success", "data": {"review": review}}


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: str,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await ReviewService(mongo).delete_review(review_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@portfolio_router.get("/{item_id}/reviews")
async def item_reviews(
    item_id: str,
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    reviews = await ReviewService(mongo).for_item(item_id)
    await attach_users(db, reviews, {"author_id": "author"})
    return {"status": "success", "results": len(reviews), "data": {"reviews": reviews}}


@portfolio_router.post("/{item_id}/reviews", status_code=status.HTTP_201_CREATED)
async def create_review(
    item_id: str,
    payload: ReviewCreate,
    current_user: User = Depends(reviewer_roles),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        review = await ReviewService(mongo).create_review(item_id, payload, current_user)
        return {"status": "success", "data": {"review": review}}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur création avis : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de la création de l'avis")
