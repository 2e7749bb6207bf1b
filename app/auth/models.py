# app/auth/models.py
import calendar
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text
from sqlalchemy.sql import func

from app.auth import password
from app.db.session import Base
from app.utils.code import generate_token, hash_token
from app.utils.errors import BadRequestError

EMAIL_VERIFICATION_TTL = timedelta(hours=24)
PASSWORD_RESET_TTL = timedelta(minutes=10)


class UserRole(str, Enum):
    CLIENT = "Client"
    OWNER = "Propriétaire"
    COLLABORATOR = "Collaborateur"
    ADMIN = "Admin"
    PROVIDER = "Prestataire"


class UserStatus(str, Enum):
    ACTIVE = "Actif"
    SUSPENDED = "Suspendu"
    BANNED = "Banni"
    DELETED = "Supprimé"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=UserRole.CLIENT.value)
    status = Column(String, nullable=False, default=UserStatus.ACTIVE.value)
    phone = Column(String, nullable=True)
    photo = Column(String, nullable=False, default="default.jpg")
    bio = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token = Column(String, nullable=True, index=True)
    email_verification_expires = Column(DateTime, nullable=True)
    password_reset_code = Column(String, nullable=True)
    password_reset_expires = Column(DateTime, nullable=True)

    # Incrémenté à chaque connexion, bannissement ou changement de mot de passe
    token_version = Column(Integer, nullable=False, default=0)
    last_login_at = Column(DateTime, nullable=True)
    last_activity_at = Column(DateTime, nullable=True)
    password_changed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow,
                        server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_blocked(self) -> bool:
        blocked = (UserStatus.SUSPENDED.value, UserStatus.BANNED.value, UserStatus.DELETED.value)
        return self.status in blocked or not self.is_active

    # ─── Mot de passe ───
    def set_password(self, raw_password: str) -> None:
        """Change le mot de passe et invalide toutes les sessions existantes."""
        self.hashed_password = password.hash_password(raw_password)
        # Une seconde en arrière : le nouveau token émis juste après reste valide
        self.password_changed_at = datetime.utcnow() - timedelta(seconds=1)
        self.token_version = (self.token_version or 0) + 1

    def check_password(self, raw_password: str) -> bool:
        return password.verify_password(raw_password, self.hashed_password)

    def changed_password_after(self, issued_at: int) -> bool:
        if not self.password_changed_at:
            return False
        changed_ts = calendar.timegm(self.password_changed_at.utctimetuple())
        return issued_at < changed_ts

    # ─── Vérification email / réinitialisation ───
    def create_email_verification_token(self) -> str:
        token = generate_token()
        self.email_verification_token = hash_token(token)
        self.email_verification_expires = datetime.utcnow() + EMAIL_VERIFICATION_TTL
        return token

    def clear_email_verification_token(self) -> None:
        self.email_verification_token = None
        self.email_verification_expires = None

    def set_password_reset_code(self, code: str) -> None:
        self.password_reset_code = hash_token(code)
        self.password_reset_expires = datetime.utcnow() + PASSWORD_RESET_TTL

    def password_reset_code_matches(self, code: str) -> bool:
        if not self.password_reset_code or not self.password_reset_expires:
            return False
        if datetime.utcnow() > self.password_reset_expires:
            return False
        return self.password_reset_code == hash_token(code)

    def clear_password_reset_code(self) -> None:
        self.password_reset_code = None
        self.password_reset_expires = None

    # ─── Modération ───
    def ban(self) -> None:
        if self.is_admin:
            raise BadRequestError("Impossible de bannir un administrateur.")
        self.status = UserStatus.BANNED.value
        self.is_active = False
        self.token_version = (self.token_version or 0) + 1

    def suspend(self) -> None:
        if self.is_admin:
            raise BadRequestError("Impossible de suspendre un administrateur.")
        self.status = UserStatus.SUSPENDED.value
        self.is_active = False
        self.token_version = (self.token_version or 0) + 1

    def activate(self) -> None:
        self.status = UserStatus.ACTIVE.value
        self.is_active = True

    def verify_owner(self) -> None:
        if self.role != UserRole.OWNER.value:
            raise BadRequestError("Cet utilisateur n'est pas un propriétaire.")
        self.is_verified = True

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "phone": self.phone,
            "photo": self.photo,
            "bio": self.bio,
            "is_active": self.is_active,
            "is_verified": self.is_verified,
            "is_email_verified": self.is_email_verified,
            "last_login_at": self.last_login_at,
            "last_activity_at": self.last_activity_at,
            "created_at": self.created_at,
        }

    def to_summary(self) -> dict:
        """Version courte utilisée pour enrichir les documents MongoDB (auteur, expéditeur...)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "photo": self.photo,
            "role": self.role,
        }
