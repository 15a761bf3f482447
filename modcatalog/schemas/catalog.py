from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, constr, field_validator

from ..core.validation import is_bounded_text, is_valid_url
from .common import CamelModel

MAX_TAGS = 20
Tag = constr(max_length=50)

class CategoryIn(BaseModel):
    name: str
    icon: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=200)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Category name must not be empty")
        if len(value) > 50:
            raise ValueError("Category name must be at most 50 characters")
        return value

class CategoryOut(BaseModel):
    id: int
    name: str
    icon: Optional[str] = None
    description: Optional[str] = None

class ModCreate(CamelModel):
    name: str = Field(..., max_length=255)
    description: str
    category: str = Field(..., max_length=50)
    tags: List[Tag] = Field(default_factory=list, max_length=MAX_TAGS)
    rating: Optional[float] = Field(None, ge=0, le=5)
    downloads: Optional[int] = Field(None, ge=0)
    icon: Optional[str] = Field(None, max_length=50)
    cloud_link: Optional[str] = None
    source_link: Optional[str] = None
    background_image: Optional[str] = None

    @field_validator("name", "description", "category")
    @classmethod
    def check_text(cls, value: str) -> str:
        if not is_bounded_text(value.strip()):
            raise ValueError("must be non-empty text of at most 1000 characters")
        return value

    @field_validator("cloud_link", "source_link", "background_image", mode="before")
    @classmethod
    def check_link(cls, value):
        if value in (None, ""):
            return None
        if not is_valid_url(value):
            raise ValueError("must be an http(s) URL")
        return value

class ModUpdate(ModCreate):
    """Full replacement: every field but the background image is expected."""
    tags: List[Tag] = Field(..., max_length=MAX_TAGS)
    icon: str = Field(..., max_length=50)
    cloud_link: Optional[str] = Field(...)

    @field_validator("cloud_link", mode="after")
    @classmethod
    def require_cloud_link(cls, value):
        if value is None:
            raise ValueError("cloud link is required")
        return value

class ModOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    rating: float = 0
    downloads: int = 0
    icon: Optional[str] = None
    cloud_link: Optional[str] = None
    source_link: Optional[str] = None
    background_image: Optional[str] = None
    created_at: Optional[datetime] = None

class DownloadResponse(BaseModel):
    success: bool = True
    downloads: int

class RateRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)

    @field_validator("rating", mode="before")
    @classmethod
    def check_whole_number(cls, value):
        # 4.0 is a whole number, "4" and true are not
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("rating must be a whole number between 1 and 5")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError("rating must be a whole number between 1 and 5")
            return int(value)
        return value

class RatingOut(CamelModel):
    id: int
    mod_id: int
    user_id: int
    username: Optional[str] = None
    rating: int
    created_at: Optional[datetime] = None

class RatingResult(CamelModel):
    id: int
    mod_id: int
    user_id: int
    rating: int

class RateResponse(BaseModel):
    success: bool = True
    rating: RatingResult

class RatedResponse(CamelModel):
    has_rated: bool
    rating: Optional[int] = None
