from typing import Optional

from pydantic import BaseModel, Field, validator


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=1000)

    @validator('comment')
    def strip_comment(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Le commentaire ne peut pas être vide")
        return v


class ReviewUpdate(BaseModel):
    # Seuls la note et le commentaire sont modifiables
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1, max_length=1000)
