# app/core/supabase_client.py
import asyncio
import logging
from functools import lru_cache

from supabase import AsyncClient, acreate_client

from app.core.config import get_settings
from app.core.errors import DemoModeError

logger = logging.getLogger(__name__)


class BackendClient:
    """
    Shared handle on the Supabase async client.

    Every repository/service receives the same BackendClient instance and
    asks it for the SDK client on each call, so a `reset()` (used after
    the SDK connection has gone stale) is seen by all holders at once.

    Use cases:
      - table reads/writes (PostgREST)
      - auth (sign in/out, current user, auth events)
      - storage (image upload, public URL)
    """

    def __init__(self, url: str | None, key: str | None):
        self.url = url
        self.key = key
        self._client: AsyncClient | None = None
        self._lock = asyncio.Lock()
        self.generation = 0

    @property
    def is_configured(self) -> bool:
        if not self.url or not self.key:
            return False
        return "placeholder" not in self.url

    async def get(self) -> AsyncClient:
        """
        Return the live SDK client, creating it on first use.

        Raises:
            DemoModeError: if no Supabase credentials are configured.
        """
        if not self.is_configured:
            raise DemoModeError()

        async with self._lock:
            if self._client is None:
                self._client = await acreate_client(self.url, self.key)
                self.generation += 1
                logger.info("Supabase client created (generation %s)", self.generation)
            return self._client

    def reset(self) -> None:
        """
        Drop the current SDK client; the next `get()` builds a fresh one.

        This is the "rebuild the connection" escape hatch used when the
        auth channel or HTTP transport is suspected stale.
        """
        if self._client is not None:
            logger.warning("Resetting Supabase client (generation %s)", self.generation)
        self._client = None


@lru_cache
def backend_public() -> BackendClient:
    """
    BackendClient with the anon/public key.

    This client still respects RLS; it is what a signed-in browser session
    would use.
    """
    settings = get_settings()
    return BackendClient(settings.SUPABASE_URL, settings.SUPABASE_KEY)


@lru_cache
def backend_server() -> BackendClient:
    """
    BackendClient used by the HTTP surface.

    Prefers the service role key (bypasses RLS). Ownership is still
    enforced because every write is scoped by the caller's user id.

    WARNING:
      - Never expose service role key to a browser.
    """
    settings = get_settings()
    return BackendClient(settings.SUPABASE_URL, settings.backend_key)
