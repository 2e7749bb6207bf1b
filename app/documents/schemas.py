from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DocumentType(str, Enum):
    QUOTE = "Devis"
    INVOICE = "Facture"
    CONTRACT = "Contrat"
    INVENTORY = "Etat des Lieux"


class DocumentStatus(str, Enum):
    DRAFT = "Brouillon"
    SENT = "Envoyé"
    ACCEPTED = "Accepté"
    REFUSED = "Refusé"
    PAID = "Payé"
    OVERDUE = "En retard"


# Types dont les montants sont calculés à partir des lignes
PRICED_TYPES = {DocumentType.QUOTE.value, DocumentType.INVOICE.value}


class DocumentItem(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: float = Field(1, gt=0)
    unit_price: float = Field(..., ge=0)
    total: Optional[float] = None


class DocumentCreate(BaseModel):
    type: DocumentType
    status: DocumentStatus = DocumentStatus.DRAFT
    client_id: int
    related_property_id: Optional[str] = None
    items: List[DocumentItem] = []
    tax: float = Field(0, ge=0)
    content: Optional[str] = None
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class DocumentUpdate(BaseModel):
    status: Optional[DocumentStatus] = None
    related_property_id: Optional[str] = None
    items: Optional[List[DocumentItem]] = None
    tax: Optional[float] = Field(None, ge=0)
    content: Optional[str] = None
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
