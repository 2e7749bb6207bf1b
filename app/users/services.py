from typing import Any, Dict, Iterable, List, Optional
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.users.schemas import UserAdminUpdate
from app.db.mongo import PROPERTIES
from app.utils.errors import BadRequestError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: Any) -> Optional[User]:
    try:
        user_id_int = int(user_id)
    except (TypeError, ValueError):
        return None
    result = await db.execute(select(User).where(User.id == user_id_int))
    return result.scalars().first()


async def get_user_or_404(db: AsyncSession, user_id: Any, message: str = "Utilisateur non trouvé.") -> User:
    user = await get_user(db, user_id)
    if not user:
        raise NotFoundError(message)
    return user


async def ensure_email_available(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> None:
    query = select(User).where(User.email == email.lower())
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    if result.scalars().first():
        raise ConflictError("Adresse email déjà utilisée.")


async def list_users(db: AsyncSession, role: Optional[str] = None) -> List[User]:
    query = select(User).order_by(User.created_at.desc(), User.id.desc())
    if role:
        query = query.where(User.role == role)
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_users(db: AsyncSession, role: Optional[str] = None) -> int:
    query = select(func.count(User.id))
    if role:
        query = query.where(User.role == role)
    result = await db.execute(query)
    return result.scalar_one()


async def get_user_summaries(db: AsyncSession, user_ids: Iterable[Any]) -> Dict[int, dict]:
    """Charge en une requête les résumés {id, name, email, photo, role} des utilisateurs cités."""
    ids = set()
    for value in user_ids:
        try:
            ids.add(int(value))
        except (TypeError, ValueError):
            continue
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user.to_summary() for user in result.scalars().all()}


async def attach_users(db: AsyncSession, documents: List[dict], mapping: Dict[str, str]) -> List[dict]:
    """
    Équivalent d'un "populate" : pour chaque couple champ_id -> champ_cible,
    ajoute au document le résumé de l'utilisateur référencé (ou None).

        await attach_users(db, mails, {"sender_id": "sender", "receiver_id": "receiver"})
    """
    wanted = [doc.get(field) for doc in documents for field in mapping if doc.get(field) is not None]
    summaries = await get_user_summaries(db, wanted)
    for doc in documents:
        for id_field, target in mapping.items():
            value = doc.get(id_field)
            doc[target] = summaries.get(int(value)) if value is not None else None
    return documents


async def delete_user_cascade(db: AsyncSession, mongo: AsyncIOMotorDatabase, user: User) -> int:
    """Supprime l'utilisateur et ses annonces immobilières."""
    result = await mongo[PROPERTIES].delete_many({"owner_id": user.id})
    await db.delete(user)
    await db.commit()
    logger.info(f"🗑️ Utilisateur {user.id} supprimé avec {result.deleted_count} propriété(s)")
    return result.deleted_count


async def apply_admin_update(db: AsyncSession, user_id: int, updates: UserAdminUpdate) -> User:
    """Mise à jour par un administrateur (/api/users/{id} et /api/admin/owners/{id})."""
    if updates.has_password_fields():
        raise BadRequestError("Cette route ne permet pas de modifier le mot de passe.")

    user = await get_user_or_404(db, user_id)
    data = updates.model_dump(exclude_unset=True, exclude_none=True)
    # Les champs inconnus (extra) sont ignorés
    data = {key: value for key, value in data.items() if key in UserAdminUpdate.model_fields}

    if "email" in data:
        await ensure_email_available(db, data["email"], exclude_id=user.id)
    for key, value in data.items():
        setattr(user, key, value.value if hasattr(value, "value") else value)

    await db.commit()
    logger.info(f"🛠️ Utilisateur {user.id} modifié par un administrateur : {list(data)}")
    return user


async def users_created_since(db: AsyncSession, since) -> List[User]:
    result = await db.execute(select(User).where(User.created_at >= since).order_by(User.created_at.desc()))
    return list(result.scalars().all())


async def active_users_since(db: AsyncSession, since, exclude_id: Optional[int] = None) -> List[User]:
    """Utilisateurs actifs dont la dernière requête authentifiée date d'après `since`."""
    query = select(User).where(User.is_active.is_(True), User.last_activity_at >= since)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query.order_by(User.last_activity_at.desc()))
    return list(result.scalars().all())
