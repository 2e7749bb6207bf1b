from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    SALE = "vente"
    RENTAL = "location"


class TransactionStatus(str, Enum):
    IN_PROGRESS = "En cours"
    SUCCEEDED = "Réussie"
    CANCELLED = "Annulée"


AGENCY_COMMISSION_RATE = 0.10
OWNER_PAYOUT_RATE = 0.30


class TransactionCreate(BaseModel):
    property_id: str
    client_id: int
    final_amount: float = Field(..., gt=0)
    transaction_type: TransactionType
    transaction_date: Optional[datetime] = None
