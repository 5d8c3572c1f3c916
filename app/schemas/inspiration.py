# app/schemas/inspiration.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.models.inspiration import Visibility
from app.models.profile import UserProfile


class InspirationCreate(SQLModel):
    """
    Payload for creating an inspiration.

    - content and category are required and cannot be blank.
    - tags may be given as a list or as one comma-separated string
      ("AI, design, product").
    """

    model_config = ConfigDict(extra="forbid")

    content: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str = Field(max_length=50)
    status: Visibility = "private"

    @field_validator("content", "category")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str | None) -> str:
        return (v or "").strip()

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [tag.strip() for tag in v if tag and tag.strip()]


class InspirationRead(SQLModel):
    """
    Inspiration representation for clients.
    """

    id: str
    user_id: str
    content: str
    description: str | None = None
    tags: list[str]
    category: str
    status: Visibility
    image_url: str | None = None
    created_at: datetime
    user_profiles: UserProfile | None = None


class InspirationStats(SQLModel):
    """
    Counters shown under the personal dashboard.
    """

    total: int = 0
    public: int = 0
    private: int = 0


class CategoryList(SQLModel):
    default: list[str]
    in_use: list[str]
