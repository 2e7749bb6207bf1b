import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import DuplicateKeyError

from app.config import settings
from app.db.mongo import ensure_indexes, get_mongo_db
from app.utils.errors import AppError

from app.auth.api import router as auth_router
from app.users.api import router as users_router
from app.properties.api import router as properties_router
from app.events.api import router as events_router
from app.portfolio.api import router as portfolio_router
from app.reviews.api import router as reviews_router, portfolio_router as portfolio_reviews_router
from app.mails.api import router as mails_router
from app.messaging.api import conversations_router, messages_router
from app.comments.api import router as comments_router
from app.likes.api import router as likes_router
from app.admin.api import router as admin_router
from app.contact.api import router as contact_router
from app.quotes.api import router as quotes_router
from app.catalog.api import router as catalog_router
from app.documents.api import router as documents_router
from app.transactions.api import router as transactions_router
from app.altcom.api import router as altcom_router
from app.dashboard.api import router as dashboard_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

API_VERSION = "1.4.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_indexes(get_mongo_db())
    logger.info("🚀 API Altitude-Vision démarrée")
    yield


app = FastAPI(title="Altitude-Vision API", version=API_VERSION, lifespan=lifespan)

# Création dossier statique uploads
upload_dir = Path(settings.UPLOAD_DIR)
upload_dir.mkdir(parents=True, exist_ok=True)

# Monture des fichiers statiques
app.mount("/static", StaticFiles(directory=upload_dir.parent), name="static")

# Ajout des routers (auth avant users : même préfixe /api/users)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(properties_router)
app.include_router(events_router)
app.include_router(portfolio_router)
app.include_router(portfolio_reviews_router)
app.include_router(reviews_router)
app.include_router(mails_router)
app.include_router(conversations_router)
app.include_router(messages_router)
app.include_router(comments_router)
app.include_router(likes_router)
app.include_router(admin_router)
app.include_router(contact_router)
app.include_router(quotes_router)
app.include_router(catalog_router)
app.include_router(documents_router)
app.include_router(transactions_router)
app.include_router(altcom_router)
app.include_router(dashboard_router)

# Middleware CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"status": exc.status, "message": exc.message})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.warning(f"⚠️ Clé dupliquée sur {request.url.path} : {exc.details}")
    return JSONResponse(status_code=400, content={"status": "fail", "message": "Valeur dupliquée"})


@app.get("/")
async def root():
    return {"status": "success", "message": "Bienvenue sur l'API Altitude-Vision", "version": API_VERSION}
