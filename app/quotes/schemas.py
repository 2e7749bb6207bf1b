from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field, validator


class QuoteSource(str, Enum):
    MILA_EVENTS = "MilaEvents"
    ALTCOM = "Altcom"


class RequestType(str, Enum):
    SIMPLE = "Simple"
    FULL_PROJECT = "Projet Complet"


class QuoteBudget(str, Enum):
    UNDER_1M = "Moins de 1M"
    FROM_1M_TO_5M = "1M-5M"
    FROM_5M_TO_10M = "5M-10M"
    OVER_10M = "Plus de 10M"


class QuoteStatus(str, Enum):
    NEW = "Nouveau"
    IN_PROGRESS = "En cours"
    SENT = "Devis Envoyé"
    CONVERTED = "Converti"
    ARCHIVED = "Archivé"


# Valeurs appliquées aux demandes Altcom (formulaire sans événement)
ALTCOM_DEFAULTS = {
    "event_type": "Projet Altcom",
    "guests": 1,
    "service": "Communication & Branding",
}


class QuoteRequestCreate(BaseModel):
    source: QuoteSource = QuoteSource.MILA_EVENTS
    request_type: RequestType = RequestType.SIMPLE
    service: Optional[str] = None
    event_type: Optional[str] = None
    date: Optional[datetime] = None
    guests: Optional[int] = Field(None, ge=1)
    budget: Optional[QuoteBudget] = None
    description: str = Field(..., min_length=1, max_length=5000)
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = None
    project_details: Dict[str, Any] = {}

    @validator('budget', pre=True)
    def empty_budget(cls, v):
        return None if v == "" else v

    @validator('email')
    def email_lowercase(cls, v):
        return v.lower()


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus
    internal_notes: Optional[str] = None


class QuoteResponse(BaseModel):
    subject: Optional[str] = None
    message: Optional[str] = None
    quoted_amount: Optional[float] = Field(None, gt=0)
