# app/services/wall.py
"""
Page-level composition of the wall.

One WallController backs one open page: the public feed or the
personal dashboard. It wires the session tracker, content loader,
category filter, visibility watchdog and mutation handlers together, and
is where errors are caught and turned into page state.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence

from app.core.config import Settings, get_settings
from app.core.errors import AuthError, DemoModeError, InspirationWallError
from app.core.storage_utils import ImageStorage
from app.core.supabase_client import BackendClient, backend_public
from app.models.inspiration import DEFAULT_CATEGORIES, Inspiration
from app.repositories.demo_repo import (
    DEMO_OWNER_ID,
    DemoInspirationRepository,
    DemoProfileRepository,
)
from app.repositories.inspiration_repo import InspirationRepository
from app.repositories.profile_repo import ProfileRepository
from app.schemas.inspiration import InspirationStats
from app.services.auth_service import AuthService
from app.services.category_filter import CategoryFilter
from app.services.content_loader import ContentLoader, LoadScope
from app.services.mutations import (
    ImageUpload,
    InspirationForm,
    InspirationMutations,
    validate_fields,
)
from app.services.profile_service import ProfileService, normalize_dna
from app.services.session_tracker import SessionTracker
from app.services.visibility_watchdog import VisibilityPolicy, VisibilityWatchdog, WatchdogAction

logger = logging.getLogger(__name__)


class WallView(str, Enum):
    FEED = "feed"
    DASHBOARD = "dashboard"


def compute_stats(items: Sequence[Inspiration]) -> InspirationStats:
    public = sum(1 for item in items if item.status == "public")
    return InspirationStats(total=len(items), public=public, private=len(items) - public)


class WallController:
    def __init__(
        self,
        view: WallView,
        backend: BackendClient | None = None,
        settings: Settings | None = None,
        *,
        auth: AuthService | None = None,
        inspirations=None,
        profiles=None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        settings = settings or get_settings()
        # Pages act as the signed-in user, so they use the anon key
        backend = backend or backend_public()
        self.view = WallView(view)
        self.backend = backend
        self.demo = not backend.is_configured

        if inspirations is None:
            inspirations = DemoInspirationRepository() if self.demo else InspirationRepository(backend)
        if profiles is None:
            profiles = DemoProfileRepository() if self.demo else ProfileRepository(backend)

        self.auth = auth or AuthService(backend, settings.SITE_URL)
        self.loader = ContentLoader(
            inspirations,
            profiles,
            timeout=settings.LOAD_TIMEOUT_SECONDS,
            public_limit=settings.PUBLIC_FEED_LIMIT,
            clock=clock,
        )
        self.filter = CategoryFilter()
        self.loader.subscribe(self.filter.set_items)

        self.tracker = SessionTracker(
            fetch_identity=self.auth.current_user_id,
            on_identity_change=self._load_for,
            on_hard_reload=self.hard_reload,
            reload_on_spurious_sign_in=settings.RELOAD_ON_SPURIOUS_SIGN_IN,
        )
        self.watchdog = VisibilityWatchdog(
            on_refresh=self.refresh,
            on_hard_reload=self.hard_reload,
            is_loading=lambda: self.loader.is_loading,
            last_loaded_at=lambda: self.loader.last_loaded_at,
            policy=VisibilityPolicy(settings.VISIBILITY_POLICY),
            debounce=settings.VISIBILITY_DEBOUNCE_SECONDS,
            settle_delay=settings.VISIBILITY_SETTLE_SECONDS,
            freshness_window=settings.FRESHNESS_WINDOW_SECONDS,
            hidden_threshold=settings.HIDDEN_RELOAD_THRESHOLD_SECONDS,
            liveness_probe=None if self.demo else self.auth.ping,
            clock=clock,
            sleep=sleep,
        )
        self.profiles = ProfileService(profiles)
        self.mutations = InspirationMutations(
            inspirations,
            self.profiles,
            None if self.demo else ImageStorage(backend, settings.IMAGE_BUCKET, settings.MAX_IMAGE_BYTES),
            self.loader,
            demo=self.demo,
            max_attempts=settings.MUTATION_MAX_ATTEMPTS,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            max_delay=settings.RETRY_MAX_DELAY_SECONDS,
            sleep=sleep,
        )

        self.needs_sign_in = False
        self.notice: str | None = None
        self._subscription = None

    # ----- State for views -----

    @property
    def identity(self) -> str | None:
        return self.tracker.identity

    @property
    def visible_items(self) -> list[Inspiration]:
        return self.filter.visible

    @property
    def error(self) -> str | None:
        return self.loader.error

    @property
    def categories(self) -> list[str]:
        """Feed: categories present in the loaded list. Dashboard: the form's defaults."""
        if self.view is WallView.FEED:
            return self.filter.available_categories
        return list(DEFAULT_CATEGORIES)

    def stats(self) -> InspirationStats:
        return compute_stats(self.loader.items)

    # ----- Lifecycle -----

    async def start(self) -> None:
        """Check who is signed in, load content, then follow auth events."""
        await self.tracker.start(self._load_for)
        self._subscription = await self.auth.subscribe(self.tracker.handle_event)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def hard_reload(self) -> None:
        """
        Rebuild everything from scratch: drop the SDK client, re-check the
        session, reload, resubscribe.
        """
        logger.warning("Hard reload of %s view", self.view.value)
        self.close()
        self.backend.reset()
        await self.start()

    async def refresh(self) -> None:
        """Manual refresh / retry after an error."""
        self.loader.clear_error()
        await self._load_for(self.tracker.identity)

    async def _load_for(self, identity: str | None) -> None:
        if self.view is WallView.FEED:
            await self.loader.load(LoadScope.public())
            return

        if identity is None and self.demo:
            identity = DEMO_OWNER_ID
        if identity is None:
            # Dashboard without a session: the page sends the user to sign in
            self.needs_sign_in = True
            self.loader.reset()
            return
        self.needs_sign_in = False
        await self.loader.load(LoadScope.mine(identity))

    # ----- User actions -----

    def select_category(self, category: str) -> None:
        self.filter.select(category)

    async def on_visibility_change(self, visible: bool) -> WatchdogAction:
        if self.view is WallView.DASHBOARD and self.tracker.identity is None:
            return WatchdogAction.SKIPPED
        return await self.watchdog.on_visibility_change(visible)

    async def create(
        self,
        form: InspirationForm,
        image: ImageUpload | None = None,
        confirm_without_image=None,
    ) -> Inspiration | None:
        """
        Submit the form. Errors end up in `notice`; returns the created row
        (or None when it was not saved).
        """
        self.notice = None
        try:
            user = None
            if not self.demo:
                # Nothing reaches the backend for an invalid form
                validate_fields(form.to_fields())
                user = await self._signed_in_user()
            return await self.mutations.create(
                user,
                form,
                image=image,
                confirm_without_image=confirm_without_image,
            )
        except InspirationWallError as e:
            self.notice = e.message
            return None

    async def delete(self, inspiration_id: str) -> bool:
        self.notice = None
        try:
            if not self.demo and self.tracker.identity is None:
                raise AuthError("Please sign in first")
            await self.mutations.delete(self.tracker.identity, inspiration_id)
        except InspirationWallError as e:
            self.notice = e.message
            return False
        return True

    async def set_pixel_avatar(self, dna: str | None = None) -> str | None:
        """
        Save the avatar editor's DNA (random when None). Errors end up in
        `notice`; returns the saved DNA.
        """
        self.notice = None
        try:
            if self.demo:
                raise DemoModeError()
            if dna is not None:
                dna = normalize_dna(dna)
            user = await self._signed_in_user()
            return await self.profiles.set_pixel_avatar(user, dna)
        except InspirationWallError as e:
            self.notice = e.message
            return None

    async def _signed_in_user(self):
        try:
            user = await self.auth.current_user()
        except Exception as e:
            logger.error("Current user check failed: %s", e)
            raise AuthError("Could not verify the current session") from e
        if user is None:
            raise AuthError("Please sign in first")
        return user
