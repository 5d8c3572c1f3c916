# app/services/profile_service.py
import logging
import random
import re

from app.core.errors import (
    DemoModeError,
    InspirationValidationError,
    ProfileUpdateError,
)
from app.models.profile import UserProfile
from app.repositories.profile_repo import ProfileRepository
from app.schemas.auth import AuthUser

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anonymous"

# avatar_url values starting with this prefix hold a pixel-avatar DNA
PIXEL_AVATAR_PREFIX = "pixel:"
DEFAULT_PIXEL_DNA = "0-1-2-3-4-5"
PIXEL_DNA_GENES = 6
_PIXEL_DNA_RE = re.compile(r"^\d(?:-\d){%d}$" % (PIXEL_DNA_GENES - 1))


def _default_name_from_email(email: str | None) -> str | None:
    """
    Derive a default handle from email if the user never picked one.
    """
    if not email:
        return None
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def display_name(profile: UserProfile | None) -> str:
    """full_name, else username, else a generic label."""
    if profile is None:
        return ANONYMOUS_NAME
    return profile.full_name or profile.username or ANONYMOUS_NAME


def display_initial(profile: UserProfile | None) -> str:
    return display_name(profile)[:1].upper()


def generate_dna(rng: random.Random | None = None) -> str:
    """Random pixel-avatar DNA: six digits joined by dashes ("3-0-7-1-9-4")."""
    rng = rng or random
    return "-".join(str(rng.randrange(10)) for _ in range(PIXEL_DNA_GENES))


def normalize_dna(dna: str) -> str:
    """
    Trim a user-typed DNA and check its shape.

    Raises:
        InspirationValidationError: not six dash-separated digits.
    """
    dna = (dna or "").strip()
    if not _PIXEL_DNA_RE.match(dna):
        raise InspirationValidationError(
            [f"dna: expected {PIXEL_DNA_GENES} digits separated by '-', e.g. {DEFAULT_PIXEL_DNA}"]
        )
    return dna


def pixel_dna(profile: UserProfile | None) -> str | None:
    """DNA of a pixel avatar, or None when the profile uses an image URL."""
    if profile is None or not profile.avatar_url:
        return None
    if not profile.avatar_url.startswith(PIXEL_AVATAR_PREFIX):
        return None
    return profile.avatar_url[len(PIXEL_AVATAR_PREFIX):]


def avatar_image_url(profile: UserProfile | None, user: AuthUser | None = None) -> str | None:
    """
    Image URL to show, or None when a pixel avatar (or nothing) should be drawn.

    Falls back to the avatar in the auth user's metadata.
    """
    if pixel_dna(profile) is not None:
        return None
    if profile is not None and profile.avatar_url:
        return profile.avatar_url
    if user is not None:
        return user.user_metadata.get("avatar_url") or None
    return None


class ProfileService:
    """
    Business logic for user profiles.

    Responsibilities:
      - make sure a profile row exists before the user's first insert
        (author info on the public feed is joined from it)
      - save the pixel avatar chosen in the avatar editor
    """

    def __init__(self, repo: ProfileRepository):
        self.repo = repo

    @staticmethod
    def build_profile_row(user: AuthUser) -> dict[str, str]:
        meta = user.user_metadata or {}
        return {
            "id": user.id,
            "username": meta.get("username") or _default_name_from_email(user.email) or "user",
            "full_name": meta.get("full_name") or user.email or ANONYMOUS_NAME,
            "avatar_url": meta.get("avatar_url") or "",
        }

    async def ensure_profile(self, user: AuthUser) -> bool:
        """
        Create the profile row if missing.

        Best effort: a failure is logged and never blocks the caller.

        Returns:
            True if the row exists afterwards.
        """
        try:
            if await self.repo.exists(user.id):
                return True
            await self.repo.create(self.build_profile_row(user))
        except DemoModeError:
            raise
        except Exception as e:
            logger.error("Could not ensure profile for %s: %s", user.id, e)
            return False
        logger.info("Created profile for %s", user.id)
        return True

    async def set_pixel_avatar(self, user: AuthUser, dna: str | None = None) -> str:
        """
        Store `pixel:<dna>` as the user's avatar.

        No DNA means a random one. The profile row is created first if
        the user never had one.

        Returns:
            The DNA saved.

        Raises:
            InspirationValidationError: malformed DNA (nothing is sent).
            DemoModeError: Supabase not configured.
            ProfileUpdateError: the backend refused the update.
        """
        dna = generate_dna() if dna is None else normalize_dna(dna)

        await self.ensure_profile(user)
        try:
            updated = await self.repo.update_avatar(user.id, f"{PIXEL_AVATAR_PREFIX}{dna}")
        except DemoModeError:
            raise
        except Exception as e:
            logger.error("Saving avatar for %s failed: %s", user.id, e)
            raise ProfileUpdateError(f"Saving avatar failed: {e}") from e

        if not updated:
            raise ProfileUpdateError("Saving avatar failed: profile not found")
        logger.info("Saved pixel avatar %s for %s", dna, user.id)
        return dna
