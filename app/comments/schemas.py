from pydantic import BaseModel, Field, validator

from app.utils.targets import TargetType

DEFAULT_PAGE_SIZE = 20


class CommentCreate(BaseModel):
    target_type: TargetType
    target_id: str
    content: str = Field(..., max_length=1000)

    @validator('content')
    def check_content(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Le commentaire doit contenir au moins 3 caractères")
        return v


class CommentUpdate(BaseModel):
    content: str = Field(..., max_length=1000)

    @validator('content')
    def check_content(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Le commentaire doit contenir au moins 3 caractères")
        return v
