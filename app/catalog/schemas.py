from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Pole(str, Enum):
    ALTIMMO = "Altimmo"
    MILA_EVENTS = "MilaEvents"
    ALTCOM = "Altcom"


class ServiceOption(BaseModel):
    name: str = Field(..., min_length=1)
    price: float = Field(0, ge=0)
    description: Optional[str] = None


class ServiceCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=150)
    description: str = Field(..., min_length=1)
    pole: Pole
    # Prix "à partir de"
    price: float = Field(..., ge=0)
    image_url: Optional[str] = None
    options: List[ServiceOption] = []


class ServiceUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=150)
    description: Optional[str] = Field(None, min_length=1)
    pole: Optional[Pole] = None
    price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    options: Optional[List[ServiceOption]] = None
