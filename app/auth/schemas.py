from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional

from app.auth.models import UserRole

# Rôles qu'un visiteur peut choisir lui-même à l'inscription
SIGNUP_ROLES = {UserRole.CLIENT.value, UserRole.OWNER.value, UserRole.PROVIDER.value}


class UserSignup(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    password_confirm: str
    role: Optional[str] = UserRole.CLIENT.value
    phone: Optional[str] = None

    @validator('name')
    def name_required(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Le nom doit contenir au moins 2 caractères")
        return v

    @validator('email')
    def email_lowercase(cls, v):
        return v.lower()

    @validator('phone')
    def validate_phone_format(cls, v):
        if v and not v.startswith('+'):
            if not v.replace(' ', '').replace('-', '').isdigit():
                raise ValueError('Format de téléphone invalide')
        return v


class UserLogin(BaseModel):
    email: str
    password: str

    @validator('email')
    def email_required(cls, v):
        if not v or v.strip() == "":
            raise ValueError("Veuillez fournir un email et un mot de passe.")
        return v.strip().lower()


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @validator('email')
    def email_lowercase(cls, v):
        return v.lower()


class VerifyCodeRequest(BaseModel):
    email: EmailStr
    code: str

    @validator('code')
    def code_required(cls, v):
        if not v or v.strip() == "":
            raise ValueError("Code de vérification requis")
        return v.strip()


class ResetPasswordRequest(VerifyCodeRequest):
    new_password: str = Field(..., min_length=8)
    confirm_password: str

    @validator('confirm_password')
    def passwords_match(cls, v, values):
        new_password = values.get('new_password')
        if new_password and v != new_password:
            raise ValueError('Les mots de passe ne correspondent pas')
        return v


class UpdatePasswordRequest(BaseModel):
    password_current: str
    password: str = Field(..., min_length=8)
    password_confirm: str
