# app/models/profile.py
from datetime import datetime

from sqlmodel import SQLModel, Field


class UserProfile(SQLModel):
    """
    Row of the Supabase `user_profiles` table.

    Identity:
      - id: MUST match Supabase auth.users.id

    Supabase Auth stores credentials in its own schema; this row only
    carries what the wall displays next to an inspiration.
    """

    id: str = Field(description="Matches Supabase auth.users.id")

    username: str | None = Field(
        default=None,
        description="Handle chosen at sign-up; email local part by default",
    )

    full_name: str | None = Field(
        default=None,
        description="Display name",
    )

    avatar_url: str | None = Field(
        default=None,
        description="Image URL, or a pixel-avatar DNA string",
    )

    created_at: datetime | None = None
    updated_at: datetime | None = None
