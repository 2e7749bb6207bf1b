import logging

from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.models import User, UserRole

logger = logging.getLogger(__name__)


def require_roles(*roles: str):
    allowed = {r.value if isinstance(r, UserRole) else r for r in roles}

    def wrapper(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.warning(f"⛔ Rôle {user.role} refusé (requis : {', '.join(sorted(allowed))}) pour user_id={user.id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Accès interdit (rôle requis)"
            )
        return user
    return wrapper


admin_only = require_roles(UserRole.ADMIN)
staff_only = require_roles(UserRole.ADMIN, UserRole.COLLABORATOR)
