from datetime import datetime
from enum import Enum
from typing import Annotated, Optional
from pydantic import AfterValidator, BaseModel, Field, field_validator


class NewsCategory(str, Enum):
    political = "political"
    movie = "movie"


class UserRole(str, Enum):
    admin = "admin"
    user = "user"
    guest = "guest"


def _not_blank(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be blank")
    return value.strip()


NonBlank = Annotated[str, AfterValidator(_not_blank)]


class NewsIn(BaseModel):
    """Payload de criação de artigo (admin ou ingestão)."""
    id: Optional[str] = None
    title: NonBlank
    summary: NonBlank
    full_content: NonBlank
    category: NewsCategory
    author: NonBlank
    publication_date: NonBlank
    image_url: Optional[str] = None  # URL ou data: URI

    @field_validator("image_url")
    @classmethod
    def _empty_image_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class News(BaseModel):
    id: str
    title: str
    summary: str
    full_content: str
    category: NewsCategory
    author: str
    publication_date: str
    image_url: Optional[str] = None
    created_at: datetime
    expires_at: datetime  # created_at + TTL
    source_url: Optional[str] = None
    source: Optional[str] = None  # chave da fonte de ingestão; None = admin


class ReviewIn(BaseModel):
    reviewer_name: NonBlank
    rating: int = Field(ge=1, le=5)
    review_text: NonBlank


class Review(BaseModel):
    id: int
    article_id: str
    reviewer_name: str
    rating: int = Field(ge=1, le=5)
    review_text: str
    created_at: datetime


class UserProfile(BaseModel):
    name: NonBlank


class LiveStatus(BaseModel):
    is_live: bool = False
    started_at: Optional[datetime] = None
