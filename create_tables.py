import asyncio

from dotenv import load_dotenv

load_dotenv()

from app.db.session import Base, engine  # noqa: E402
from app.db.mongo import db, ensure_indexes  # noqa: E402

# IMPORTER TOUS LES MODULES DE MODÈLES pour enregistrer toutes les tables dans metadata
import app.auth.models  # noqa: E402,F401


async def create_all():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        print("Toutes les tables ont été créées")
    await ensure_indexes(db)
    print("Index MongoDB créés")


if __name__ == "__main__":
    asyncio.run(create_all())
