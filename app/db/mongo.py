import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.config import settings

logger = logging.getLogger(__name__)

# Client MongoDB asynchrone
client = AsyncIOMotorClient(settings.MONGO_URL)
db = client[settings.MONGO_DB]

# Collections
PROPERTIES = "properties"
EVENTS = "events"
PORTFOLIO_ITEMS = "portfolio_items"
REVIEWS = "reviews"
INTERNAL_MAILS = "internal_mails"
CONVERSATIONS = "conversations"
MESSAGES = "messages"
COMMENTS = "comments"
LIKES = "likes"
CONTACT_MESSAGES = "contact_messages"
QUOTE_REQUESTS = "quote_requests"
SERVICES = "services"
DOCUMENTS = "documents"
TRANSACTIONS = "transactions"
ALTCOM_PROJECTS = "altcom_projects"
COUNTERS = "counters"


# Dépendance FastAPI (surchargée dans les tests)
def get_mongo_db() -> AsyncIOMotorDatabase:
    return db


async def ensure_indexes(database: AsyncIOMotorDatabase) -> None:
    """Crée les index utilisés par les listes et les contraintes d'unicité."""
    await database[PROPERTIES].create_index([("status_admin", ASCENDING), ("created_at", DESCENDING)])
    await database[PROPERTIES].create_index([("owner_id", ASCENDING)])
    await database[EVENTS].create_index([("status", ASCENDING), ("date", ASCENDING)])
    await database[REVIEWS].create_index(
        [("portfolio_item_id", ASCENDING), ("author_id", ASCENDING)], unique=True
    )
    await database[LIKES].create_index(
        [("user_id", ASCENDING), ("target_type", ASCENDING), ("target_id", ASCENDING)], unique=True
    )
    await database[COMMENTS].create_index([("target_type", ASCENDING), ("target_id", ASCENDING)])
    await database[INTERNAL_MAILS].create_index([("receiver_id", ASCENDING), ("is_deleted", ASCENDING)])
    await database[INTERNAL_MAILS].create_index([("sender_id", ASCENDING), ("is_draft", ASCENDING)])
    await database[MESSAGES].create_index([("sender_id", ASCENDING), ("receiver_id", ASCENDING)])
    await database[CONVERSATIONS].create_index([("participants", ASCENDING)])
    await database[SERVICES].create_index([("title", ASCENDING)], unique=True)
    await database[CONTACT_MESSAGES].create_index([("status", ASCENDING)])
    await database[ALTCOM_PROJECTS].create_index([("email", ASCENDING), ("submitted_at", DESCENDING)])
    logger.info("✅ Index MongoDB vérifiés")
