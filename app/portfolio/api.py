import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import User
from app.auth.permissions import admin_only, staff_only
from app.db.mongo import get_mongo_db
from app.portfolio.schemas import PortfolioItemCreate, PortfolioItemUpdate
from app.portfolio.services import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])


@router.get("")
async def list_portfolio(request: Request, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    """Réalisations publiées, filtrables par `category`, triées par date de projet."""
    result = await PortfolioService(mongo).list_items(request.query_params)
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"items": result["items"]},
    }


@router.get("/stats")
async def portfolio_stats(mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    stats = await PortfolioService(mongo).stats()
    return {"status": "success", "data": stats}


@router.get("/{item_id}")
async def get_portfolio_item(item_id: str, mongo: AsyncIOMotorDatabase = Depends(get_mongo_db)):
    item = await PortfolioService(mongo).get_item(item_id)
    return {"status": "success", "data": {"item": item}}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_portfolio_item(
    payload: PortfolioItemCreate,
    current_user: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        item = await PortfolioService(mongo).create_item(payload, current_user)
        return {"status": "success", "data": {"item": item}}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur création réalisation : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de la création de la réalisation")


@router.patch("/{item_id}")
async def update_portfolio_item(
    item_id: str,
    payload: PortfolioItemUpdate,
    _: User = Depends(staff_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    item = await PortfolioService(mongo).update_item(item_id, payload)
    return {"status": "success", "data": {"item": item}}


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_portfolio_item(
    item_id: str,
    _: User = Depends(admin_only),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await PortfolioService(mongo).delete_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
