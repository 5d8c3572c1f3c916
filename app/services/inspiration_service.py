# app/services/inspiration_service.py
from fastapi import HTTPException, status

from app.core.config import Settings
from app.core.errors import (
    DemoModeError,
    ImageUploadError,
    InspirationCreateError,
    InspirationDeleteError,
    InspirationValidationError,
    ProfileUpdateError,
)
from app.core.storage_utils import ImageStorage
from app.models.inspiration import DEFAULT_CATEGORIES, Inspiration
from app.schemas.auth import AuthUser
from app.schemas.inspiration import CategoryList, InspirationStats
from app.schemas.profile import PixelAvatarRead
from app.services.category_filter import categories_in_use, filter_by_category
from app.services.content_loader import ContentLoader, LoadErrorKind, LoadScope
from app.services.mutations import ImageUpload, InspirationMutations
from app.services.profile_service import PIXEL_AVATAR_PREFIX, ProfileService
from app.services.wall import compute_stats


class InspirationService:
    """
    Request-scoped orchestration for the HTTP surface.

    Responsibilities:
      - run the same loader / filter / mutation handlers the wall uses,
        with a fresh loader per request (no state shared between callers)
      - map domain errors to HTTP errors
    """

    def __init__(
        self,
        inspirations,
        profiles,
        storage: ImageStorage | None,
        settings: Settings,
        demo: bool = False,
    ):
        self.inspirations = inspirations
        self.profiles = profiles
        self.storage = storage
        self.settings = settings
        self.demo = demo

    def _loader(self) -> ContentLoader:
        return ContentLoader(
            self.inspirations,
            self.profiles,
            timeout=self.settings.LOAD_TIMEOUT_SECONDS,
            public_limit=self.settings.PUBLIC_FEED_LIMIT,
        )

    async def _load(self, scope: LoadScope) -> list[Inspiration]:
        loader = self._loader()
        if not await loader.load(scope):
            if loader.error_kind is LoadErrorKind.TIMEOUT:
                raise HTTPException(
                    status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                    detail=loader.error,
                )
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=loader.error,
            )
        return loader.items

    # ----- Reads -----

    async def list_public(self, category: str) -> list[Inspiration]:
        items = await self._load(LoadScope.public())
        return filter_by_category(items, category)

    async def list_mine(self, user_id: str, category: str) -> list[Inspiration]:
        items = await self._load(LoadScope.mine(user_id))
        return filter_by_category(items, category)

    async def stats(self, user_id: str) -> InspirationStats:
        return compute_stats(await self._load(LoadScope.mine(user_id)))

    async def categories(self) -> CategoryList:
        items = await self._load(LoadScope.public())
        return CategoryList(default=list(DEFAULT_CATEGORIES), in_use=categories_in_use(items))

    # ----- Writes -----

    def _mutations(self, loader: ContentLoader) -> InspirationMutations:
        return InspirationMutations(
            self.inspirations,
            ProfileService(self.profiles),
            self.storage,
            loader,
            demo=self.demo,
            max_attempts=self.settings.MUTATION_MAX_ATTEMPTS,
            base_delay=self.settings.RETRY_BASE_DELAY_SECONDS,
            max_delay=self.settings.RETRY_MAX_DELAY_SECONDS,
        )

    async def create(
        self,
        user: AuthUser,
        fields: dict,
        image: ImageUpload | None = None,
        continue_without_image: bool = False,
    ) -> Inspiration | None:
        mutations = self._mutations(self._loader())
        try:
            return await mutations.create(
                user,
                fields,
                image=image,
                confirm_without_image=lambda error: continue_without_image,
                reload=False,
            )
        except DemoModeError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
        except InspirationValidationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.errors)
        except ImageUploadError as e:
            code = (
                status.HTTP_400_BAD_REQUEST
                if e.reason == "invalid"
                else status.HTTP_502_BAD_GATEWAY
            )
            raise HTTPException(status_code=code, detail=e.message)
        except InspirationCreateError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    async def delete(self, user_id: str, inspiration_id: str) -> None:
        mutations = self._mutations(self._loader())
        try:
            await mutations.delete(user_id, inspiration_id)
        except DemoModeError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
        except InspirationDeleteError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    async def set_pixel_avatar(self, user: AuthUser, dna: str | None = None) -> PixelAvatarRead:
        if self.demo:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=DemoModeError().message)
        try:
            saved = await ProfileService(self.profiles).set_pixel_avatar(user, dna)
        except DemoModeError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
        except InspirationValidationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.errors)
        except ProfileUpdateError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
        return PixelAvatarRead(dna=saved, avatar_url=f"{PIXEL_AVATAR_PREFIX}{saved}")
