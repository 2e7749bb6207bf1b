import json
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, validator

# ===========================
# ENUMS
# ===========================
class TransactionKind(str, Enum):
    SALE = "Vente"
    RENTAL = "Location"


class Availability(str, Enum):
    AVAILABLE = "Disponible"
    SOLD = "Vendu"
    RENTED = "Loué"


class AdminStatus(str, Enum):
    PENDING = "En attente"
    APPROVED = "Validée"
    REJECTED = "Rejetée"


# Actions de modération : PATCH /api/properties/{id}/{action}
MODERATION_ACTIONS = {
    "validate": AdminStatus.APPROVED,
    "approve": AdminStatus.APPROVED,
    "reject": AdminStatus.REJECTED,
}


def parse_amenities(value: Any) -> List[str]:
    """Accepte une liste, une chaîne JSON (tableau) ou une liste séparée par des virgules."""
    if value is None:
        return []
    if isinstance(value, list):
        return [a.strip() if isinstance(a, str) else a for a in value if a and (not isinstance(a, str) or a.strip())]
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return [a.strip() for a in value.split(",") if a.strip()]
        if isinstance(parsed, list):
            return parse_amenities(parsed)
        return [a.strip() for a in value.split(",") if a.strip()]
    return []


# ===========================
# ADRESSE
# ===========================
class Address(BaseModel):
    district: str = Field(..., min_length=1)
    street: Optional[str] = None
    city: str = "Brazzaville"


class AddressUpdate(BaseModel):
    district: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None


# ===========================
# PROPRIÉTÉS
# ===========================
class PropertyBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=150)
    description: str = Field(..., min_length=10)
    price: float = Field(..., gt=0)
    pole: str = "Altimmo"
    status: TransactionKind
    availability: Availability = Availability.AVAILABLE
    type: str = Field(..., min_length=2)
    address: Address
    surface: Optional[float] = Field(None, ge=0)
    bedrooms: int = Field(0, ge=0)
    bathrooms: int = Field(0, ge=0)
    living_rooms: int = Field(0, ge=0)
    kitchens: int = Field(0, ge=0)
    construction_type: Optional[str] = None
    amenities: List[str] = []
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    has_special_commission: bool = False

    @validator('amenities', pre=True)
    def clean_amenities(cls, v):
        return parse_amenities(v)

    @validator('address', pre=True)
    def parse_address(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except ValueError:
                return {"district": v}
        return v


class PropertyCreate(PropertyBase):
    pass


class PropertyUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=150)
    description: Optional[str] = Field(None, min_length=10)
    price: Optional[float] = Field(None, gt=0)
    status: Optional[TransactionKind] = None
    availability: Optional[Availability] = None
    type: Optional[str] = None
    address: Optional[AddressUpdate] = None
    surface: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    living_rooms: Optional[int] = Field(None, ge=0)
    kitchens: Optional[int] = Field(None, ge=0)
    construction_type: Optional[str] = None
    amenities: Optional[List[str]] = None
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    has_special_commission: Optional[bool] = None
    is_published: Optional[bool] = None
    # Images déjà en ligne à conserver (les nouvelles sont ajoutées à la suite)
    existing_images: Optional[List[str]] = None

    @validator('amenities', pre=True)
    def clean_amenities(cls, v):
        return None if v is None else parse_amenities(v)
