import logging
from datetime import datetime, timedelta

from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import UserRole
from app.events.services import EventService
from app.portfolio.services import PortfolioService
from app.properties.schemas import AdminStatus
from app.properties.services import PropertyService
from app.users import services as user_services

logger = logging.getLogger(__name__)

ACTIVITY_WINDOW_DAYS = 30
ACTIVE_SESSION_MINUTES = 5


class AdminService:
    def __init__(self, db: AsyncSession, mongo: AsyncIOMotorDatabase):
        self.db = db
        self.properties = PropertyService(mongo)
        self.events = EventService(mongo)
        self.portfolio = PortfolioService(mongo)

    async def stats(self) -> dict:
        return {
            "total_users": await user_services.count_users(self.db),
            "total_owners": await user_services.count_users(self.db, UserRole.OWNER.value),
            "total_properties": await self.properties.count(),
            "pending_properties": await self.properties.count({"status_admin": AdminStatus.PENDING.value}),
            "total_events": await self.events.count(),
            "total_portfolio_items": await self.portfolio.count(),
        }

    async def recent_activity(self, days: int = ACTIVITY_WINDOW_DAYS) -> dict:
        since = datetime.utcnow() - timedelta(days=days)
        users = await user_services.users_created_since(self.db, since)
        properties = await self.properties.created_since(since)
        return {
            "since": since,
            "new_users": len(users),
            "new_properties": len(properties),
            "users": [u.to_public_dict() for u in users],
            "properties": properties,
        }

    async def active_sessions(self, exclude_id: int, minutes: int = ACTIVE_SESSION_MINUTES) -> list:
        since = datetime.utcnow() - timedelta(minutes=minutes)
        users = await user_services.active_users_since(self.db, since, exclude_id=exclude_id)
        return [u.to_public_dict() for u in users]
