import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import UserRole
from app.catalog.schemas import Pole
from app.catalog.services import CatalogService
from app.events.services import EventService
from app.portfolio.services import PortfolioService
from app.properties.services import PropertyService
from app.users import services as user_services

logger = logging.getLogger(__name__)


async def pole_stats(db: AsyncSession, mongo: AsyncIOMotorDatabase) -> dict:
    """Compteurs par pôle pour le tableau de bord de l'agence."""
    altcom = await PortfolioService(mongo).count() + await CatalogService(mongo).count({"pole": Pole.ALTCOM.value})
    stats = {
        "Altimmo": await PropertyService(mongo).count(),
        "MilaEvents": await EventService(mongo).count(),
        "Altcom": altcom,
        "Users": await user_services.count_users(db),
        "Owners": await user_services.count_users(db, UserRole.OWNER.value),
    }
    logger.info(f"📊 Statistiques du tableau de bord : {stats}")
    return stats
