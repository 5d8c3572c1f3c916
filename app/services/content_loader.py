# app/services/content_loader.py
import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from app.core.errors import (
    InspirationWallError,
    LoadFailedError,
    LoadTimeoutError,
)
from app.models.inspiration import Inspiration
from app.models.profile import UserProfile

logger = logging.getLogger(__name__)


class InspirationSource(Protocol):
    async def list_by_owner(self, user_id: str) -> list[Inspiration]: ...

    async def list_public(self, limit: int = 20) -> list[Inspiration]: ...


class ProfileSource(Protocol):
    async def get_many(self, user_ids: list[str]) -> list[UserProfile]: ...


@dataclass(frozen=True)
class LoadScope:
    """Either one user's inspirations (`mine`) or the public feed."""

    kind: str
    user_id: str | None = None

    @classmethod
    def mine(cls, user_id: str) -> "LoadScope":
        return cls("mine", user_id)

    @classmethod
    def public(cls) -> "LoadScope":
        return cls("public")

    @property
    def is_public(self) -> bool:
        return self.kind == "public"


class LoadErrorKind(str, Enum):
    TIMEOUT = "timeout"
    FAILED = "failed"


class ContentLoader:
    """
    Fetches inspirations for a scope and holds the result for views.

    State exposed to views:
      - items:          last committed list (replaced wholesale)
      - is_loading:     True while the latest request is in flight
      - error:          user-visible message, None after a success
      - error_kind:     TIMEOUT or FAILED
      - last_loaded_at: clock() of the last successful commit

    Every call takes a request id; when `discard_stale` is on, only the
    most recently issued request may commit, so a slow earlier request
    can't overwrite a newer result.
    """

    def __init__(
        self,
        inspirations: InspirationSource,
        profiles: ProfileSource,
        timeout: float = 10.0,
        public_limit: int = 20,
        discard_stale: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.inspirations = inspirations
        self.profiles = profiles
        self.timeout = timeout
        self.public_limit = public_limit
        self.discard_stale = discard_stale
        self.clock = clock

        self.items: list[Inspiration] = []
        self.is_loading = False
        self.error: str | None = None
        self.error_kind: LoadErrorKind | None = None
        self.last_loaded_at: float | None = None
        self.scope: LoadScope | None = None

        self._request_id = 0
        self._listeners: list[Callable[[list[Inspiration]], None]] = []

    def subscribe(self, listener: Callable[[list[Inspiration]], None]) -> None:
        """Call `listener(items)` after every change to `items`."""
        self._listeners.append(listener)

    def replace_items(self, items: list[Inspiration]) -> None:
        self.items = list(items)
        for listener in self._listeners:
            listener(self.items)

    @property
    def request_id(self) -> int:
        """Id of the latest issued request; bumped by `load()` and `reset()`."""
        return self._request_id

    def reset(self) -> None:
        """
        Forget the current list and supersede any in-flight request.

        Used when the identity goes away: a load issued for the previous
        user must not commit afterwards.
        """
        self._request_id += 1
        self.scope = None
        self.is_loading = False
        self.clear_error()
        self.replace_items([])

    def clear_error(self) -> None:
        self.error = None
        self.error_kind = None

    def set_error(self, message: str, kind: LoadErrorKind = LoadErrorKind.FAILED) -> None:
        self.error = message
        self.error_kind = kind

    async def load(self, scope: LoadScope) -> bool:
        """
        Load `scope` and commit the result.

        Returns:
            True if this call committed its result, False on failure or
            when a newer request superseded it.
        """
        self._request_id += 1
        request_id = self._request_id
        self.scope = scope
        self.is_loading = True
        self.clear_error()

        try:
            items = await asyncio.wait_for(self._fetch(scope), timeout=self.timeout)
        except asyncio.TimeoutError:
            return self._fail(request_id, scope, LoadTimeoutError())
        except InspirationWallError as e:
            return self._fail(request_id, scope, e)
        except Exception as e:
            logger.error("Loading %s inspirations failed: %s", scope.kind, e)
            return self._fail(request_id, scope, LoadFailedError())

        if self._is_stale(request_id):
            logger.info(
                "Discarding stale %s result (request %s, latest %s)",
                scope.kind,
                request_id,
                self._request_id,
            )
            return False

        self.replace_items(items)
        self.last_loaded_at = self.clock()
        self.is_loading = False
        logger.info("Loaded %s %s inspirations", len(items), scope.kind)
        return True

    def _is_stale(self, request_id: int) -> bool:
        return self.discard_stale and request_id != self._request_id

    def _fail(self, request_id: int, scope: LoadScope, error: InspirationWallError) -> bool:
        if self._is_stale(request_id):
            return False
        kind = LoadErrorKind.TIMEOUT if isinstance(error, LoadTimeoutError) else LoadErrorKind.FAILED
        logger.warning("Loading %s inspirations: %s", scope.kind, error.message)
        self.set_error(error.message, kind)
        self.is_loading = False
        return False

    async def _fetch(self, scope: LoadScope) -> list[Inspiration]:
        if scope.is_public:
            rows = await self.inspirations.list_public(limit=self.public_limit)
        else:
            rows = await self.inspirations.list_by_owner(scope.user_id)

        if not rows:
            return []
        return await self._attach_profiles(rows)

    async def _attach_profiles(self, rows: list[Inspiration]) -> list[Inspiration]:
        owner_ids = list(dict.fromkeys(row.user_id for row in rows))
        try:
            profiles = await self.profiles.get_many(owner_ids)
        except Exception as e:
            # Rows are still shown, just without author info
            logger.error("Fetching author profiles failed: %s", e)
            profiles = []

        by_id = {profile.id: profile for profile in profiles}
        return [row.model_copy(update={"user_profiles": by_id.get(row.user_id)}) for row in rows]
