"""
Fixtures partagées.

- base SQL : un fichier SQLite (aiosqlite) par test
- MongoDB : mongomock_motor, une base vierge par test
- envoi d'emails : remplacé par des AsyncMock
- uploads : écrits dans un dossier temporaire
"""
import os
import uuid
from unittest.mock import AsyncMock, patch

os.environ.setdefault("POSTGRES_URL", "sqlite+aiosqlite:///./test_bootstrap.db")
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB", "altitude_vision_test")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from mongomock_motor import AsyncMongoMockClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.auth.jwt_handler import create_user_token  # noqa: E402
from app.auth.models import User, UserRole  # noqa: E402
from app.auth.password import hash_password  # noqa: E402
from app.db.mongo import ensure_indexes, get_mongo_db  # noqa: E402
from app.db.session import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.utils import uploads  # noqa: E402

DEFAULT_PASSWORD = "password123"


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def mongo():
    database = AsyncMongoMockClient()[f"test_{uuid.uuid4().hex}"]
    await ensure_indexes(database)
    return database


@pytest.fixture(autouse=True)
def mail_mock():
    """Aucun email réel : les deux points d'envoi sont remplacés."""
    sent = AsyncMock()
    with patch("app.auth.api.send_email_async", sent), patch("app.quotes.services.send_email_async", sent):
        yield sent


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    monkeypatch.setattr(uploads, "BASE_UPLOAD_DIR", target)
    return target


@pytest.fixture
async def client(session_factory, mongo):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mongo_db] = lambda: mongo

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Fabrique d'utilisateurs vérifiés : `await make_user(role=UserRole.ADMIN)`."""
    counter = {"n": 0}

    async def _make(role=UserRole.CLIENT, email=None, name=None, password=DEFAULT_PASSWORD, **fields):
        counter["n"] += 1
        role_value = role.value if isinstance(role, UserRole) else role
        user = User(
            name=name or f"Utilisateur {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            hashed_password=hash_password(password),
            role=role_value,
            is_email_verified=fields.pop("is_email_verified", True),
            token_version=0,
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_user_token(user)}"}

    return _headers


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN, email="admin@altitudevision.cg", name="Admin")


@pytest.fixture
async def collaborator(make_user):
    return await make_user(UserRole.COLLABORATOR, email="collab@altitudevision.cg", name="Collaborateur")


@pytest.fixture
async def owner(make_user):
    return await make_user(UserRole.OWNER, email="owner@example.com", name="Propriétaire")


@pytest.fixture
async def client_user(make_user):
    return await make_user(UserRole.CLIENT, email="client@example.com", name="Client")
