from datetime import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.auth import models, schemas, jwt_handler, password
from app.auth.dependencies import get_current_user
from app.config import settings
from app.db.session import get_db
from app.utils.code import generate_verification_code, hash_token
from app.utils.email import send_email_async
from app.utils.errors import AppError, BadRequestError, NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["auth"])


async def get_user_by_email(db: AsyncSession, email: str):
    result = await db.execute(select(models.User).where(models.User.email == email.lower()))
    return result.scalars().first()


def auth_response(user: models.User, message: str = None) -> dict:
    """Réponse commune connexion / vérification : token + profil public."""
    token = jwt_handler.create_user_token(user)
    body = {
        "status": "success",
        "token": token,
        "access_token": token,
        "token_type": "bearer",
        "data": {"user": user.to_public_dict()},
    }
    if message:
        body["message"] = message
    return body


# ─────────────────────────────────────────────
# 1. Inscription
# ─────────────────────────────────────────────
@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(user: schemas.UserSignup, db: AsyncSession = Depends(get_db)):
    try:
        if user.password != user.password_confirm:
            raise BadRequestError("Les mots de passe ne correspondent pas.")
        role = user.role or models.UserRole.CLIENT.value
        if role not in schemas.SIGNUP_ROLES:
            raise BadRequestError(f"Rôle non autorisé à l'inscription : {role}")
        if await get_user_by_email(db, user.email):
            raise BadRequestError("Adresse email déjà utilisée.")

        new_user = models.User(
            name=user.name,
            email=user.email,
            role=role,
            phone=user.phone or None,
            token_version=0,
        )
        new_user.hashed_password = password.hash_password(user.password)
        verification_token = new_user.create_email_verification_token()
        db.add(new_user)
        await db.commit()
        await db.refresh(new_user)
        logger.info(f"✅ Utilisateur créé : id={new_user.id}, role={new_user.role}")

        verify_url = f"{settings.FRONTEND_URL}/verify-email/{verification_token}"
        body = (
            f"Bonjour {new_user.name},\n\n"
            "Bienvenue chez Altitude Vision !\n\n"
            f"Pour activer votre compte, veuillez cliquer sur le lien ci-dessous :\n\n{verify_url}\n\n"
            "Ce lien est valide pendant 24 heures.\n\n"
            "Si vous n'avez pas créé de compte, veuillez ignorer cet email."
        )
        try:
            await send_email_async("Altitude Vision - Activez votre compte", new_user.email, body)
        except Exception as e:
            logger.error(f"❌ Envoi de l'email de vérification impossible pour {new_user.email} : {e}")
            new_user.clear_email_verification_token()
            await db.commit()
            raise AppError("Erreur lors de l'envoi de l'email. Veuillez réessayer plus tard.", 500)

        return {
            "status": "success",
            "message": "Compte créé ! Un email de confirmation a été envoyé à votre adresse.",
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur inscription : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de l'inscription")


# ─────────────────────────────────────────────
# 2. Vérification de l'email
# ─────────────────────────────────────────────
@router.get("/verify-email/{token}")
async def verify_email(token: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(models.User).where(
            models.User.email_verification_token == hash_token(token),
            models.User.email_verification_expires > datetime.utcnow(),
        )
    )
    user = result.scalars().first()
    if not user:
        raise BadRequestError("Le lien est invalide ou a expiré.")

    user.is_email_verified = True
    user.clear_email_verification_token()
    await db.commit()
    logger.info(f"✅ Email vérifié : user_id={user.id}")

    return auth_response(user, "Email vérifié avec succès.")


# ─────────────────────────────────────────────
# 3. Connexion
# ─────────────────────────────────────────────
@router.post("/login")
async def login(credentials: schemas.UserLogin, db: AsyncSession = Depends(get_db)):
    try:
        db_user = await get_user_by_email(db, credentials.email)
        if not db_user or not db_user.check_password(credentials.password):
            logger.warning(f"⛔ Échec de connexion pour {credentials.email}")
            raise UnauthorizedError("Email ou mot de passe incorrect.")

        if not db_user.is_email_verified:
            raise UnauthorizedError("Veuillez vérifier votre adresse email avant de vous connecter.")

        if db_user.is_blocked:
            raise AppError(f"Votre compte est {db_user.status.lower()}. Contactez l'administrateur.", 403)

        # Une seule session active : les anciens tokens deviennent invalides
        db_user.last_login_at = datetime.utcnow()
        db_user.token_version = (db_user.token_version or 0) + 1
        await db.commit()
        logger.info(f"🔑 Connexion : user_id={db_user.id}, token_version={db_user.token_version}")

        return auth_response(db_user)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur connexion : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de la connexion")


@router.post("/logout")
async def logout(current_user: models.User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    current_user.token_version = (current_user.token_version or 0) + 1
    await db.commit()
    logger.info(f"👋 Déconnexion : user_id={current_user.id}")
    return {"status": "success", "message": "Déconnecté avec succès"}


# ─────────────────────────────────────────────
# 4. Mot de passe oublié
# ─────────────────────────────────────────────
@router.post("/forgot-password")
async def forgot_password(data: schemas.ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    try:
        db_user = await get_user_by_email(db, data.email)
        if not db_user:
            raise NotFoundError("Utilisateur non trouvé")

        code = generate_verification_code()
        db_user.set_password_reset_code(code)
        await db.commit()

        body = f"Voici votre code de réinitialisation : {code}\nIl expire dans 10 minutes."
        await send_email_async("Réinitialisation de mot de passe", db_user.email, body)

        return {"status": "success", "message": "Code de réinitialisation envoyé"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur mot de passe oublié : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne")


@router.post("/verify-code")
async def verify_code(data: schemas.VerifyCodeRequest, db: AsyncSession = Depends(get_db)):
    db_user = await get_user_by_email(db, data.email)
    if not db_user or not db_user.password_reset_code_matches(data.code):
        raise BadRequestError("Code invalide ou expiré")
    return {"status": "success", "message": "Code vérifié avec succès"}


@router.post("/reset-password")
async def reset_password(data: schemas.ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    db_user = await get_user_by_email(db, data.email)
    if not db_user or not db_user.password_reset_code_matches(data.code):
        raise BadRequestError("Code invalide ou expiré")

    db_user.set_password(data.new_password)
    db_user.clear_password_reset_code()
    await db.commit()
    logger.info(f"🔑 Mot de passe réinitialisé : user_id={db_user.id}")

    return {"status": "success", "message": "Mot de passe réinitialisé avec succès"}


# ─────────────────────────────────────────────
# 5. Changement de mot de passe (connecté)
# ─────────────────────────────────────────────
@router.patch("/updateMyPassword")
async def update_my_password(
    data: schemas.UpdatePasswordRequest,
    current_user: models.User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not current_user.check_password(data.password_current):
        raise UnauthorizedError("Votre mot de passe actuel est incorrect.")
    if data.password != data.password_confirm:
        raise BadRequestError("Les mots de passe ne correspondent pas.")

    current_user.set_password(data.password)
    await db.commit()
    logger.info(f"🔑 Mot de passe modifié : user_id={current_user.id}")

    return auth_response(current_user, "Mot de passe mis à jour.")
