# app/repositories/inspiration_repo.py
from typing import Any

from app.core.supabase_client import BackendClient
from app.models.inspiration import Inspiration

TABLE = "inspirations"


class InspirationRepository:
    """
    Data access layer for the `inspirations` table.

    - Pure Supabase calls (reads, insert, delete).
    - No FastAPI, no state, no business logic.
    """

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def list_by_owner(self, user_id: str) -> list[Inspiration]:
        """All rows owned by `user_id`, newest first."""
        client = await self.backend.get()
        resp = await (
            client.table(TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [Inspiration.model_validate(row) for row in resp.data or []]

    async def list_public(self, limit: int = 20) -> list[Inspiration]:
        """Public rows of every user, newest first, capped at `limit`."""
        client = await self.backend.get()
        resp = await (
            client.table(TABLE)
            .select("*")
            .eq("status", "public")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [Inspiration.model_validate(row) for row in resp.data or []]

    async def insert(self, row: dict[str, Any]) -> Inspiration | None:
        """Insert one row and return it as stored (None if not echoed back)."""
        client = await self.backend.get()
        resp = await client.table(TABLE).insert(row).execute()
        if not resp.data:
            return None
        return Inspiration.model_validate(resp.data[0])

    async def delete(self, inspiration_id: str, user_id: str) -> None:
        """
        Delete one row.

        The predicate includes the owner, so a caller can never delete
        another user's row even with a guessed id.
        """
        client = await self.backend.get()
        await (
            client.table(TABLE)
            .delete()
            .eq("id", inspiration_id)
            .eq("user_id", user_id)
            .execute()
        )
