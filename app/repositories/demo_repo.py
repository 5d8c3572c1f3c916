# app/repositories/demo_repo.py
"""
Read-only stand-ins used when Supabase is not configured.

Reads return fixed sample data so the wall can still be browsed;
every write raises DemoModeError before anything else happens.
"""

from datetime import datetime, timezone
from typing import Any

from app.core.errors import DemoModeError
from app.models.inspiration import Inspiration
from app.models.profile import UserProfile

DEMO_OWNER_ID = "demo-user"


def demo_public_inspirations() -> list[Inspiration]:
    now = datetime.now(timezone.utc)
    return [
        Inspiration(
            id="demo-1",
            user_id=DEMO_OWNER_ID,
            content="Demo idea: use AI to generate code comments automatically and speed up development",
            description="An AI-assisted developer tool",
            tags=["AI", "dev tools", "productivity"],
            category="技术学习",
            status="public",
            created_at=now,
        ),
        Inspiration(
            id="demo-2",
            user_id=DEMO_OWNER_ID,
            content="Design a minimal task manager with only three states: todo, doing, done",
            description="Simplifying task management",
            tags=["product design", "minimalism", "productivity"],
            category="项目点子",
            status="public",
            created_at=now,
        ),
    ]


def demo_user_inspirations(user_id: str) -> list[Inspiration]:
    now = datetime.now(timezone.utc)
    return [
        Inspiration(
            id="demo-user-1",
            user_id=user_id,
            content="My first idea: an AI-driven code review tool",
            description="Static analysis plus machine learning for smarter suggestions",
            tags=["AI", "code review", "dev tools"],
            category="技术学习",
            status="private",
            created_at=now,
        ),
        Inspiration(
            id="demo-user-2",
            user_id=user_id,
            content="Product idea: a minimalist time management app",
            description="Focus on the three most important things, avoid feature bloat",
            tags=["product design", "time management", "minimalism"],
            category="项目点子",
            status="public",
            created_at=now,
        ),
    ]


class DemoInspirationRepository:
    async def list_by_owner(self, user_id: str) -> list[Inspiration]:
        return demo_user_inspirations(user_id)

    async def list_public(self, limit: int = 20) -> list[Inspiration]:
        return demo_public_inspirations()[:limit]

    async def insert(self, row: dict[str, Any]) -> Inspiration | None:
        raise DemoModeError()

    async def delete(self, inspiration_id: str, user_id: str) -> None:
        raise DemoModeError()


class DemoProfileRepository:
    async def get_many(self, user_ids: list[str]) -> list[UserProfile]:
        return []

    async def exists(self, user_id: str) -> bool:
        return False

    async def create(self, row: dict[str, Any]) -> None:
        raise DemoModeError()

    async def update_avatar(self, user_id: str, avatar_url: str) -> bool:
        raise DemoModeError()
