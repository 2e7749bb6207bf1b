from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime
from enum import Enum

MAX_VIDEOS = 3
MAX_IMAGES_PER_UPLOAD = 10

# ===========================
# ENUMS
# ===========================
class EventCategory(str, Enum):
    EVENT = "Événement"
    WEDDING = "Mariage"
    GALA = "Gala"
    CONFERENCE = "Conférence"
    BIRTHDAY = "Anniversaire"
    LAUNCH = "Lancement"
    OTHER = "Autre"


class EventStatus(str, Enum):
    DRAFT = "Brouillon"
    PUBLISHED = "Publié"
    ARCHIVED = "Archivé"


# Tri autorisé sur GET /api/events
SORTABLE_FIELDS = {"name", "title", "date", "location", "created_at", "updated_at"}


def _check_media_url(url: str) -> str:
    url = url.strip()
    if not (url.startswith("http://") or url.startswith("https://") or url.startswith("/static/")):
        raise ValueError(f"URL de média invalide : {url}")
    return url


# ===========================
# ÉVÉNEMENTS
# ===========================
class EventBase(BaseModel):
    name: str = Field(..., min_length=3, max_length=150)
    description: str = Field(..., min_length=1, max_length=5000)
    about: Optional[str] = Field(None, max_length=5000)
    missions: List[str] = []
    guests: int = Field(..., ge=1)
    objective: Optional[str] = None
    creative_concept: Optional[str] = None
    realization: Optional[str] = None
    result: Optional[str] = None
    date: datetime
    location: str = Field(..., min_length=1, max_length=255)
    category: EventCategory = EventCategory.EVENT
    images: List[str] = []
    videos: List[str] = []
    status: EventStatus = EventStatus.PUBLISHED
    featured: bool = False

    @validator('images')
    def validate_images(cls, v):
        return [_check_media_url(url) for url in v]

    @validator('videos')
    def validate_videos(cls, v):
        if len(v) > MAX_VIDEOS:
            raise ValueError(f"Un événement ne peut pas avoir plus de {MAX_VIDEOS} vidéos")
        return [_check_media_url(url) for url in v]


class EventCreate(EventBase):
    pass


class EventUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=150)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    about: Optional[str] = Field(None, max_length=5000)
    missions: Optional[List[str]] = None
    guests: Optional[int] = Field(None, ge=1)
    objective: Optional[str] = None
    creative_concept: Optional[str] = None
    realization: Optional[str] = None
    result: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[EventCategory] = None
    images: Optional[List[str]] = None
    videos: Optional[List[str]] = None
    status: Optional[EventStatus] = None
    featured: Optional[bool] = None

    @validator('images')
    def validate_images(cls, v):
        return None if v is None else [_check_media_url(url) for url in v]

    @validator('videos')
    def validate_videos(cls, v):
        if v is None:
            return v
        if len(v) > MAX_VIDEOS:
            raise ValueError(f"Un événement ne peut pas avoir plus de {MAX_VIDEOS} vidéos")
        return [_check_media_url(url) for url in v]
