# app/models/inspiration.py
from datetime import datetime, timezone
from typing import Literal

from sqlmodel import SQLModel, Field

from app.models.profile import UserProfile

Visibility = Literal["private", "public"]

ALL_CATEGORIES = "all"

# Categories offered by the create form
DEFAULT_CATEGORIES: list[str] = ["项目点子", "书籍摘录", "技术学习", "生活感悟"]


class Inspiration(SQLModel):
    """
    Row of the Supabase `inspirations` table, plus the author profile
    joined client-side.

    Ownership:
      - user_id is the creator; only the creator may delete the row.
      - rows are never edited, only created and deleted.
    """

    id: str

    user_id: str = Field(description="Owner (Supabase auth.users.id)")

    content: str = Field(description="Free text, a link, or an image caption")

    description: str | None = Field(
        default=None,
        description="Optional short description",
    )

    tags: list[str] = Field(default_factory=list)

    category: str = ""

    status: Visibility = Field(
        default="private",
        description="private | public",
    )

    image_url: str | None = Field(
        default=None,
        description="Public URL stored in Supabase Storage",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    # Denormalized author, attached after the profile query
    user_profiles: UserProfile | None = None

    @property
    def is_link(self) -> bool:
        return self.content.startswith(("http://", "https://"))

    @property
    def is_public(self) -> bool:
        return self.status == "public"
