from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, validator


class ProjectType(str, Enum):
    DIGITAL = "Communication Digitale"
    BRANDING = "Branding & Design"
    CONTENT = "Stratégie de Contenu"
    ADVERTISING = "Campagne Publicitaire"
    PUBLIC_RELATIONS = "Relations Publiques"
    EVENT = "Événementiel"
    WEBSITE = "Refonte Site Web"
    AUDIOVISUAL = "Production Audiovisuelle"
    OTHER = "Autre"


class ProjectCategory(str, Enum):
    STRATEGY = "Stratégie"
    CREATION = "Création"
    PRODUCTION = "Production"
    BROADCAST = "Diffusion"
    CONSULTING = "Conseil"


class ProjectBudget(str, Enum):
    UNDER_500K = "Moins de 500K"
    FROM_500K_TO_1M = "500K-1M"
    FROM_1M_TO_3M = "1M-3M"
    FROM_3M_TO_5M = "3M-5M"
    FROM_5M_TO_10M = "5M-10M"
    OVER_10M = "Plus de 10M"
    TO_BE_DEFINED = "À définir"


class ProjectStatus(str, Enum):
    PENDING = "En attente"
    ANALYSING = "En cours d'analyse"
    ACCEPTED = "Accepté"
    REFUSED = "Refusé"
    IN_PROGRESS = "En cours"
    DONE = "Terminé"


class AltcomProjectCreate(BaseModel):
    contact_name: str = Field(..., min_length=1)
    company_name: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None

    project_name: str = Field(..., min_length=1)
    project_type: ProjectType
    project_category: ProjectCategory = ProjectCategory.STRATEGY

    target_audience: str = Field(..., min_length=1)
    objectives: str = Field(..., min_length=1)

    budget: ProjectBudget
    start_date: Optional[datetime] = None
    deadline: Optional[datetime] = None

    detailed_description: str = Field(..., min_length=1, max_length=2000)
    current_situation: Optional[str] = Field(None, max_length=1000)
    expected_results: Optional[str] = Field(None, max_length=1000)

    has_existing_materials: bool = False
    materials_description: Optional[str] = Field(None, max_length=500)

    @validator('email')
    def email_lowercase(cls, v):
        return v.lower()

    @validator('contact_name', 'project_name', 'detailed_description')
    def not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Champ requis.")
        return v


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus
