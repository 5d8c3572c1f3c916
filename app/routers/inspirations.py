# app/routers/inspirations.py
from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    UploadFile,
    status,
)
from fastapi.security import HTTPAuthorizationCredentials

from app.core.auth import bearer_scheme, get_current_user, require_auth
from app.core.config import get_settings
from app.core.storage_utils import ImageStorage
from app.core.supabase_client import backend_server
from app.models.inspiration import ALL_CATEGORIES
from app.repositories.demo_repo import (
    DEMO_OWNER_ID,
    DemoInspirationRepository,
    DemoProfileRepository,
)
from app.repositories.inspiration_repo import InspirationRepository
from app.repositories.profile_repo import ProfileRepository
from app.schemas.auth import AuthUser
from app.schemas.inspiration import CategoryList, InspirationRead, InspirationStats
from app.schemas.profile import PixelAvatarRead, PixelAvatarUpdate
from app.services.inspiration_service import InspirationService
from app.services.mutations import ImageUpload

router = APIRouter(prefix="/inspirations", tags=["Inspirations"])


def get_inspiration_service() -> InspirationService:
    """
    Build the service on the server-side backend client.

    Without Supabase credentials the service runs on the built-in demo
    data and refuses writes.
    """
    settings = get_settings()
    backend = backend_server()
    if not backend.is_configured:
        return InspirationService(
            DemoInspirationRepository(),
            DemoProfileRepository(),
            None,
            settings,
            demo=True,
        )
    return InspirationService(
        InspirationRepository(backend),
        ProfileRepository(backend),
        ImageStorage(backend, settings.IMAGE_BUCKET, settings.MAX_IMAGE_BYTES),
        settings,
    )


def get_dashboard_owner(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    service: InspirationService = Depends(get_inspiration_service),
) -> str:
    """
    Owner whose dashboard is shown.

    Demo mode shows the demo user's inspirations to everyone.
    """
    if service.demo:
        return DEMO_OWNER_ID
    return require_auth(get_current_user(credentials)).id


# -------- Public endpoints --------


@router.get("/public", response_model=list[InspirationRead])
async def list_public(
    category: str = ALL_CATEGORIES,
    service: InspirationService = Depends(get_inspiration_service),
):
    """
    Newest public inspirations, with author profiles.

    - Public endpoint.
    - `category=all` (default) disables filtering.
    """
    return await service.list_public(category)


@router.get("/categories", response_model=CategoryList)
async def list_categories(
    service: InspirationService = Depends(get_inspiration_service),
):
    """
    Categories offered by the create form, and those used in the public feed.
    """
    return await service.categories()


# -------- Dashboard endpoints --------


@router.get("/me", response_model=list[InspirationRead])
async def list_mine(
    category: str = ALL_CATEGORIES,
    owner_id: str = Depends(get_dashboard_owner),
    service: InspirationService = Depends(get_inspiration_service),
):
    """
    The caller's inspirations, newest first.
    """
    return await service.list_mine(owner_id, category)


@router.get("/me/stats", response_model=InspirationStats)
async def my_stats(
    owner_id: str = Depends(get_dashboard_owner),
    service: InspirationService = Depends(get_inspiration_service),
):
    return await service.stats(owner_id)


@router.put("/me/avatar", response_model=PixelAvatarRead)
async def set_my_avatar(
    payload: PixelAvatarUpdate,
    user: AuthUser = Depends(require_auth),
    service: InspirationService = Depends(get_inspiration_service),
):
    """
    Save the caller's pixel avatar.

    - `dna`: six digits joined by "-", e.g. "0-1-2-3-4-5".
    - No `dna` picks a random one.
    """
    return await service.set_pixel_avatar(user, payload.dna)


@router.post(
    "",
    response_model=InspirationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create an inspiration, optionally with an image",
)
async def create_inspiration(
    content: str = Form(""),
    description: str = Form(""),
    tags: str = Form("", description="Comma-separated"),
    category: str = Form(""),
    visibility: str = Form("private", alias="status"),
    continue_without_image: bool = Form(False),
    image: UploadFile | None = File(None),
    user: AuthUser = Depends(require_auth),
    service: InspirationService = Depends(get_inspiration_service),
):
    """
    Create an inspiration owned by the caller.

    - Accepts JPEG, PNG, WEBP, GIF images.
    - If the image upload fails the request fails, unless
      `continue_without_image` is set; then the row is saved without it.
    """
    upload = None
    if image is not None and image.filename:
        if not image.content_type:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing content-type for uploaded file",
            )
        upload = ImageUpload(
            content_type=image.content_type,
            data=await image.read(),
            filename=image.filename,
        )

    fields = {
        "content": content,
        "description": description,
        "tags": tags,
        "category": category,
        "status": visibility,
    }
    created = await service.create(
        user,
        fields,
        image=upload,
        continue_without_image=continue_without_image,
    )
    if created is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Save failed: no row returned",
        )
    return created


@router.delete(
    "/{inspiration_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_inspiration(
    inspiration_id: str,
    user: AuthUser = Depends(require_auth),
    service: InspirationService = Depends(get_inspiration_service),
):
    """
    Delete one of the caller's inspirations.
    """
    await service.delete(user.id, inspiration_id)
    return None
