from datetime import datetime
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
import logging

from app.db.session import get_db
from app.auth.models import User
from app.auth.jwt_handler import decode_access_token

# Initialiser le logger
logger = logging.getLogger(__name__)

# Utilisé pour extraire le token depuis le header Authorization
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/users/login", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_user(token: Optional[str], db: AsyncSession) -> User:
    """
    Vérifie le token et retourne l'utilisateur correspondant.
    Lève une HTTPException 401/403 si la session n'est plus valable.
    """
    if not token:
        logger.warning("⛔ Accès refusé : token manquant")
        raise _unauthorized("Vous n'êtes pas connecté. Veuillez vous connecter pour accéder à cette ressource.")

    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Token invalide ou expiré")

    try:
        user_id_int = int(payload.get("user_id"))
    except (ValueError, TypeError) as e:
        logger.warning(f"⚠️ Champ 'user_id' mal formé dans token : {payload.get('user_id')} ({e})")
        raise _unauthorized("Token invalide : 'user_id' mal formé")

    result = await db.execute(select(User).where(User.id == user_id_int))
    user = result.scalars().first()
    if not user:
        logger.warning(f"❌ Utilisateur introuvable : id={user_id_int}")
        raise _unauthorized("L'utilisateur associé à ce token n'existe plus.")

    # Session invalidée par une connexion plus récente, un bannissement ou un changement de mot de passe
    token_version = payload.get("token_version", 0)
    if not isinstance(token_version, int) or (user.token_version or 0) > token_version:
        logger.warning(
            f"🔒 Session révoquée pour user_id={user.id} (token v{token_version}, compte v{user.token_version})"
        )
        raise _unauthorized("Session expirée. Veuillez vous reconnecter.")

    issued_at = payload.get("iat")
    if isinstance(issued_at, int) and user.changed_password_after(issued_at):
        logger.warning(f"🔒 Mot de passe modifié après émission du token : user_id={user.id}")
        raise _unauthorized("Mot de passe récemment modifié. Veuillez vous reconnecter.")

    if user.is_blocked:
        logger.warning(f"🚫 Compte bloqué : user_id={user.id}, statut={user.status}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Votre compte est {user.status.lower()}. Contactez l'administrateur.",
        )

    return user


# 🔒 Récupération obligatoire de l'utilisateur
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    🔐 Récupère l'utilisateur courant à partir du token JWT
    et met à jour sa dernière activité.
    """
    user = await _resolve_user(token, db)

    user.last_activity_at = datetime.utcnow()
    await db.commit()

    logger.debug(f"✅ Utilisateur authentifié : id={user.id}, email={user.email}")
    return user


# 🔓 Version optionnelle : ne bloque jamais la requête
async def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """
    Version non bloquante. Retourne l'utilisateur si le token est valide,
    sinon retourne None.
    """
    if not token:
        return None
    try:
        return await _resolve_user(token, db)
    except HTTPException as e:
        logger.info(f"ℹ️ Token optionnel ignoré : {e.detail}")
        return None
