from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, validator


class ContactStatus(str, Enum):
    UNREAD = "Non lu"
    READ = "Lu"
    IN_PROGRESS = "En cours"
    HANDLED = "Traité"
    ARCHIVED = "Archivé"


class ContactMessageCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)

    @validator('email')
    def email_lowercase(cls, v):
        return v.lower()

    @validator('name', 'subject', 'message')
    def not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Veuillez remplir tous les champs.")
        return v


class ContactStatusUpdate(BaseModel):
    status: ContactStatus
    response_note: Optional[str] = Field(None, max_length=2000)
