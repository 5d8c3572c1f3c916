"""
Integration tests for the page-level controller.

A fake AuthService stands in for Supabase Auth; repositories are the
in-memory fakes.
"""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from app.core.config import Settings
from app.core.supabase_client import BackendClient, backend_public
from app.models.inspiration import DEFAULT_CATEGORIES
from app.schemas.auth import AuthUser
from app.services.mutations import InspirationForm
from app.services.visibility_watchdog import WatchdogAction
from app.services.wall import WallController, WallView, compute_stats
from tests.fakes import FakeClock, RecordingSleep


class FakeAuth:
    """Minimal AuthService replacement."""

    def __init__(self, user: AuthUser | None):
        self.user = user
        self.handler = None
        self.subscription = Mock()
        self.ping = AsyncMock(return_value=True)
        self.current_user_calls = 0

    async def current_user(self):
        self.current_user_calls += 1
        return self.user

    async def current_user_id(self):
        return self.user.id if self.user else None

    async def subscribe(self, handler):
        self.handler = handler
        return self.subscription


def make_controller(view, settings, inspiration_repo, profile_repo, user=None, backend=None):
    backend = backend or BackendClient(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    auth = FakeAuth(user)
    controller = WallController(
        view,
        backend,
        settings,
        auth=auth,
        inspirations=inspiration_repo,
        profiles=profile_repo,
        clock=FakeClock(),
        sleep=RecordingSleep(),
    )
    return controller, auth


class TestComputeStats:
    def test_counts(self, sample_inspirations):
        stats = compute_stats(sample_inspirations)
        assert (stats.total, stats.public, stats.private) == (5, 3, 2)

    def test_empty(self):
        stats = compute_stats([])
        assert (stats.total, stats.public, stats.private) == (0, 0, 0)


class TestFeed:
    @pytest.mark.asyncio
    async def test_start_loads_public_feed_and_subscribes(self, settings, inspiration_repo, profile_repo):
        controller, auth = make_controller(WallView.FEED, settings, inspiration_repo, profile_repo)

        await controller.start()

        assert [i.id for i in controller.visible_items] == ["i1", "i2", "i4"]
        assert controller.categories == ["技术学习", "项目点子"]
        assert auth.handler is not None

    @pytest.mark.asyncio
    async def test_category_selection(self, settings, inspiration_repo, profile_repo):
        controller, _ = make_controller(WallView.FEED, settings, inspiration_repo, profile_repo)
        await controller.start()

        controller.select_category("项目点子")
        assert [i.id for i in controller.visible_items] == ["i2"]

    @pytest.mark.asyncio
    async def test_load_error_then_refresh(self, settings, inspiration_repo, profile_repo):
        controller, _ = make_controller(WallView.FEED, settings, inspiration_repo, profile_repo)
        inspiration_repo.fail_with = RuntimeError("down")
        await controller.start()
        assert controller.error is not None

        inspiration_repo.fail_with = None
        await controller.refresh()
        assert controller.error is None
        assert len(controller.visible_items) == 3


class TestDashboard:
    @pytest.mark.asyncio
    async def test_signed_in_loads_own_items(self, settings, inspiration_repo, profile_repo, auth_user):
        controller, _ = make_controller(
            WallView.DASHBOARD, settings, inspiration_repo, profile_repo, user=auth_user
        )

        await controller.start()

        assert [i.id for i in controller.visible_items] == ["i1", "i3", "i4"]
        assert controller.categories == DEFAULT_CATEGORIES
        stats = controller.stats()
        assert (stats.total, stats.public, stats.private) == (3, 2, 1)

    @pytest.mark.asyncio
    async def test_anonymous_needs_sign_in(self, settings, inspiration_repo, profile_repo):
        controller, _ = make_controller(WallView.DASHBOARD, settings, inspiration_repo, profile_repo)

        await controller.start()

        assert controller.needs_sign_in is True
        assert controller.visible_items == []
        assert "list_by_owner" not in inspiration_repo.call_names()

    @pytest.mark.asyncio
    async def test_sign_in_event_reloads_for_new_user(self, settings, inspiration_repo, profile_repo):
        controller, auth = make_controller(WallView.DASHBOARD, settings, inspiration_repo, profile_repo)
        await controller.start()

        await auth.handler("SIGNED_IN", "user-b")

        assert controller.needs_sign_in is False
        assert [i.id for i in controller.visible_items] == ["i2"]

    @pytest.mark.asyncio
    async def test_duplicate_sign_in_hard_reloads_without_identity_reload(
        self, settings, inspiration_repo, profile_repo, auth_user
    ):
        backend = Mock()
        backend.is_configured = True
        controller, auth = make_controller(
            WallView.DASHBOARD, settings, inspiration_repo, profile_repo, user=auth_user, backend=backend
        )
        await controller.start()
        loads_before = inspiration_repo.call_names().count("list_by_owner")

        await auth.handler("SIGNED_IN", "user-a")

        backend.reset.assert_called_once()
        auth.subscription.unsubscribe.assert_called_once()
        # Exactly one reload, from the hard reload's restart
        assert inspiration_repo.call_names().count("list_by_owner") == loads_before + 1

    @pytest.mark.asyncio
    async def test_token_refresh_does_nothing(self, settings, inspiration_repo, profile_repo, auth_user):
        controller, auth = make_controller(
            WallView.DASHBOARD, settings, inspiration_repo, profile_repo, user=auth_user
        )
        await controller.start()
        calls_before = len(inspiration_repo.calls)

        await auth.handler("TOKEN_REFRESHED", "user-a")
        assert len(inspiration_repo.calls) == calls_before

    @pytest.mark.asyncio
    async def test_create_then_delete(self, settings, inspiration_repo, profile_repo, auth_user):
        controller, _ = make_controller(
            WallView.DASHBOARD, settings, inspiration_repo, profile_repo, user=auth_user
        )
        await controller.start()

        created = await controller.create(
            InspirationForm(content="New idea", category="技术学习", status="public")
        )
        assert created is not None
        assert created.id in [i.id for i in controller.visible_items]

        assert await controller.delete(created.id) is True
        assert created.id not in [i.id for i in controller.visible_items]

    @pytest.mark.asyncio
    async def test_create_validation_error_becomes_notice(self, settings, inspiration_repo, profile_repo, auth_user):
        controller, auth = make_controller(
            WallView.DASHBOARD, settings, inspiration_repo, profile_repo, user=auth_user
        )
        await controller.start()

        assert await controller.create(InspirationForm(content="", category="技术学习")) is None
        assert controller.notice.startswith("content")
        assert "insert" not in inspiration_repo.call_names()
        # Invalid input never reaches auth either
        assert auth.current_user_calls == 0

    @pytest.mark.asyncio
    async def test_invalid_form_reported_before_sign_in_check(self, settings, inspiration_repo, profile_repo):
        controller, auth = make_controller(WallView.DASHBOARD, settings, inspiration_repo, profile_repo)
        await controller.start()

        assert await controller.create(InspirationForm(content="x", category="")) is None
        assert controller.notice.startswith("category")
        assert auth.current_user_calls == 0

    @pytest.mark.asyncio
    async def test_create_requires_session(self, settings, inspiration_repo, profile_repo):
        controller, _ = make_controller(WallView.DASHBOARD, settings, inspiration_repo, profile_repo)
        await controller.start()

        assert await controller.create(InspirationForm(content="x", category="技术学习")) is None
        assert controller.notice == "Please sign in first"

    @pytest.mark.asyncio
    async def test_delete_failure_rolls_back(self, settings, inspiration_repo, profile_repo, auth_user):
        controller, _ = make_controller(
            WallView.DASHBOARD, settings, inspiration_repo, profile_repo, user=auth_user
        )
        await controller.start()
        before = [i.id for i in controller.visible_items]
        inspiration_repo.delete_error = RuntimeError("permission denied")

        assert await controller.delete("i3") is False
        assert [i.id for i in controller.visible_items] == before
        assert controller.notice.startswith("Delete failed:")

    @pytest.mark.asyncio
    async def test_visibility_skipped_without_session(self, settings, inspiration_repo, profile_repo):
        controller, _ = make_controller(WallView.DASHBOARD, settings, inspiration_repo, profile_repo)
        await controller.start()

        assert await controller.on_visibility_change(True) is WatchdogAction.SKIPPED

    @pytest.mark.asyncio
    async def test_sign_out_during_load_drops_previous_users_items(
        self, settings, inspiration_repo, profile_repo, auth_user
    ):
        controller, auth = make_controller(
            WallView.DASHBOARD, settings, inspiration_repo, profile_repo, user=auth_user
        )
        await controller.start()
        inspiration_repo.delays = [0.05]

        task = asyncio.create_task(controller.refresh())
        await asyncio.sleep(0)
        await auth.handler("SIGNED_OUT", None)
        await task

        assert controller.needs_sign_in is True
        assert controller.visible_items == []
        assert controller.loader.is_loading is False

    @pytest.mark.asyncio
    async def test_set_pixel_avatar(self, settings, inspiration_repo, profile_repo, auth_user):
        controller, _ = make_controller(
            WallView.DASHBOARD, settings, inspiration_repo, profile_repo, user=auth_user
        )
        await controller.start()

        assert await controller.set_pixel_avatar(" 9-8-7-6-5-4 ") == "9-8-7-6-5-4"
        assert controller.notice is None
        assert profile_repo.profiles["user-a"].avatar_url == "pixel:9-8-7-6-5-4"

    @pytest.mark.asyncio
    async def test_set_pixel_avatar_errors_become_notice(self, settings, inspiration_repo, profile_repo):
        controller, _ = make_controller(WallView.DASHBOARD, settings, inspiration_repo, profile_repo)
        await controller.start()

        assert await controller.set_pixel_avatar("1-2-3") is None
        assert controller.notice.startswith("dna")

        assert await controller.set_pixel_avatar() is None
        assert controller.notice == "Please sign in first"
        assert "update_avatar" not in [name for name, _ in profile_repo.calls]


class TestDemoMode:
    @pytest.fixture
    def demo_settings(self):
        return Settings(_env_file=None, SUPABASE_URL=None, SUPABASE_KEY=None)

    @pytest.mark.asyncio
    async def test_demo_feed(self, demo_settings):
        controller = WallController(WallView.FEED, BackendClient(None, None), demo_settings)

        await controller.start()
        controller.select_category("技术学习")

        assert controller.demo is True
        assert len(controller.visible_items) == 1

    @pytest.mark.asyncio
    async def test_demo_dashboard_shows_sample_items(self, demo_settings):
        controller = WallController(WallView.DASHBOARD, BackendClient(None, None), demo_settings)

        await controller.start()

        assert controller.needs_sign_in is False
        assert len(controller.visible_items) == 2

    @pytest.mark.asyncio
    async def test_demo_mutations_disabled(self, demo_settings):
        controller = WallController(WallView.DASHBOARD, BackendClient(None, None), demo_settings)
        await controller.start()

        assert await controller.create(InspirationForm(content="x", category="技术学习")) is None
        assert controller.notice.startswith("Demo mode")

        assert await controller.delete("demo-user-1") is False
        assert len(controller.visible_items) == 2

    def test_placeholder_url_is_demo(self, settings):
        backend = BackendClient("https://placeholder.supabase.co", "key")
        controller = WallController(WallView.FEED, backend, settings)
        assert controller.demo is True
    @pytest.mark.asyncio
    async def test_demo_avatar_save_disabled(self, demo_settings):
        controller = WallController(WallView.DASHBOARD, BackendClient(None, None), demo_settings)
        await controller.start()

        assert await controller.set_pixel_avatar("0-1-2-3-4-5") is None
        assert controller.notice.startswith("Demo mode")


class TestBackendSelection:
    @pytest.fixture
    def public_backend(self, settings):
        settings.SUPABASE_SERVICE_ROLE_KEY = "service-key"
        backend_public.cache_clear()
        with patch("app.core.supabase_client.get_settings", return_value=settings):
            yield
        backend_public.cache_clear()

    def test_defaults_to_anon_key_client(self, settings, public_backend):
        controller = WallController(WallView.FEED, settings=settings)

        assert controller.backend is backend_public()
        assert controller.backend.key == "anon-key"
        assert controller.demo is False
