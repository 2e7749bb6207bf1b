from pydantic import BaseModel, EmailStr, Field, validator, ConfigDict
from typing import Optional

from app.auth.models import UserRole, UserStatus


class UserAdminUpdate(BaseModel):
    """Champs modifiables par un administrateur (jamais le mot de passe)."""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=300)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None

    @validator('email')
    def email_lowercase(cls, v):
        return v.lower() if v else v

    def has_password_fields(self) -> bool:
        extra = self.model_extra or {}
        return any(key in extra for key in ("password", "password_confirm", "hashed_password"))

