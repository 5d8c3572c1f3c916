# app/schemas/profile.py
from pydantic import ConfigDict
from sqlmodel import SQLModel


class PixelAvatarUpdate(SQLModel):
    """
    Body of the avatar editor's save.

    `dna` omitted or null means "pick a random one".
    """

    model_config = ConfigDict(extra="forbid")

    dna: str | None = None


class PixelAvatarRead(SQLModel):
    dna: str
    avatar_url: str
