"""
Pytest configuration and shared fixtures.
"""

import pytest

from app.core.config import Settings
from app.models.inspiration import Inspiration
from app.models.profile import UserProfile
from app.schemas.auth import AuthUser
from tests.fakes import (
    FakeClock,
    FakeInspirationRepository,
    FakeProfileRepository,
    RecordingSleep,
    make_inspiration,
)


# =============================================================================
# SAMPLE DATA
# =============================================================================


@pytest.fixture
def sample_inspirations() -> list[Inspiration]:
    """Mixed owners, categories and visibility, newest first."""
    return [
        make_inspiration("i1", "user-a", "技术学习", "public", minutes_ago=1),
        make_inspiration("i2", "user-b", "项目点子", "public", minutes_ago=2),
        make_inspiration("i3", "user-a", "书籍摘录", "private", minutes_ago=3),
        make_inspiration("i4", "user-a", "技术学习", "public", minutes_ago=4),
        make_inspiration("i5", "user-c", "生活感悟", "private", minutes_ago=5),
    ]


@pytest.fixture
def sample_profiles() -> list[UserProfile]:
    return [
        UserProfile(id="user-a", username="alice", full_name="Alice"),
        UserProfile(id="user-b", username="bob", full_name="Bob"),
    ]


@pytest.fixture
def inspiration_repo(sample_inspirations) -> FakeInspirationRepository:
    return FakeInspirationRepository(sample_inspirations)


@pytest.fixture
def profile_repo(sample_profiles) -> FakeProfileRepository:
    return FakeProfileRepository(sample_profiles)


@pytest.fixture
def auth_user() -> AuthUser:
    return AuthUser(
        id="user-a",
        email="alice@example.com",
        user_metadata={"username": "alice", "full_name": "Alice"},
    )


# =============================================================================
# TIME / SETTINGS
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        SUPABASE_URL="https://project.supabase.co",
        SUPABASE_KEY="anon-key",
        SUPABASE_JWT_SECRET="test-secret",
        VISIBILITY_SETTLE_SECONDS=0.0,
        RETRY_BASE_DELAY_SECONDS=0.0,
        RETRY_MAX_DELAY_SECONDS=0.0,
    )
