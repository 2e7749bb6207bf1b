from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, validator


class PortfolioCategory(str, Enum):
    DIGITAL = "Communication Digitale"
    BRANDING = "Branding & Design"
    CONTENT = "Stratégie de Contenu"
    ADVERTISING = "Campagne Publicitaire"
    AUDIOVISUAL = "Production Audiovisuelle"
    PUBLIC_RELATIONS = "Relations Publiques"
    EVENTS = "Événementiel"
    OTHER = "Autre"


def _clean_tags(tags: List[str]) -> List[str]:
    return [t.strip() for t in tags if t and t.strip()]


class PortfolioItemCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    category: PortfolioCategory = PortfolioCategory.DIGITAL
    images: List[str] = []
    link: Optional[str] = None
    project_date: Optional[datetime] = None
    client: Optional[str] = None
    tags: List[str] = []
    is_published: bool = True

    @validator('title', 'description')
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Ce champ ne peut pas être vide")
        return v

    @validator('tags')
    def clean_tags(cls, v):
        return _clean_tags(v)


class PortfolioItemUpdate(BaseModel):
    # average_rating / review_count sont calculés à partir des avis
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[PortfolioCategory] = None
    images: Optional[List[str]] = None
    link: Optional[str] = None
    project_date: Optional[datetime] = None
    client: Optional[str] = None
    tags: Optional[List[str]] = None
    is_published: Optional[bool] = None

    @validator('tags')
    def clean_tags(cls, v):
        return None if v is None else _clean_tags(v)
