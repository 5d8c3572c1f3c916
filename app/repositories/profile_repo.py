# app/repositories/profile_repo.py
from typing import Any

from app.core.supabase_client import BackendClient
from app.models.profile import UserProfile

TABLE = "user_profiles"


class ProfileRepository:
    """
    Data access layer for the `user_profiles` table.
    """

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def get_many(self, user_ids: list[str]) -> list[UserProfile]:
        """Batch fetch profiles by id. Unknown ids are simply absent."""
        if not user_ids:
            return []
        client = await self.backend.get()
        resp = await (
            client.table(TABLE)
            .select("id, username, full_name, avatar_url")
            .in_("id", user_ids)
            .execute()
        )
        return [UserProfile.model_validate(row) for row in resp.data or []]

    async def exists(self, user_id: str) -> bool:
        client = await self.backend.get()
        resp = await client.table(TABLE).select("id").eq("id", user_id).limit(1).execute()
        return bool(resp.data)

    async def create(self, row: dict[str, Any]) -> None:
        client = await self.backend.get()
        await client.table(TABLE).insert(row).execute()

    async def update_avatar(self, user_id: str, avatar_url: str) -> bool:
        """Set `avatar_url` on the user's row. Returns False if no row matched."""
        client = await self.backend.get()
        resp = await (
            client.table(TABLE)
            .update({"avatar_url": avatar_url})
            .eq("id", user_id)
            .execute()
        )
        return bool(resp.data)
