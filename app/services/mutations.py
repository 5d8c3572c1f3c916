# app/services/mutations.py
import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import ValidationError

from app.core.errors import (
    DemoModeError,
    ImageUploadError,
    InspirationCreateError,
    InspirationDeleteError,
    InspirationValidationError,
)
from app.core.retry import retry_async
from app.core.storage_utils import ImageStorage
from app.models.inspiration import Inspiration
from app.schemas.auth import AuthUser
from app.schemas.inspiration import InspirationCreate
from app.services.content_loader import ContentLoader, LoadScope
from app.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

T = TypeVar("T")

ConfirmWithoutImage = Callable[[ImageUploadError], "bool | Awaitable[bool]"]


async def apply_then_confirm(
    local_mutation: Callable[[], None],
    remote_call: Callable[[], Awaitable[T]],
    rollback: Callable[[], None],
) -> T:
    """
    Optimistic update: apply locally, confirm remotely, undo on failure.

    The remote error is re-raised after the rollback.
    """
    local_mutation()
    try:
        return await remote_call()
    except Exception:
        rollback()
        raise


@dataclass
class ImageUpload:
    content_type: str | None
    data: bytes
    filename: str | None = None


@dataclass
class InspirationForm:
    """
    Input state of the "new inspiration" form.

    `tags` is the raw comma-separated text the user typed.
    """

    content: str = ""
    description: str = ""
    tags: str = ""
    category: str = ""
    status: str = "private"
    image: ImageUpload | None = None

    def to_fields(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "description": self.description,
            "tags": self.tags,
            "category": self.category,
            "status": self.status,
        }

    def reset(self) -> None:
        self.content = ""
        self.description = ""
        self.tags = ""
        self.category = ""
        self.status = "private"
        self.image = None


def validate_fields(fields: dict[str, Any]) -> InspirationCreate:
    """
    Client-side validation, run before any request is issued.

    Raises:
        InspirationValidationError: with one message per failing field.
    """
    try:
        return InspirationCreate.model_validate(fields)
    except ValidationError as e:
        errors = []
        for err in e.errors():
            loc = ".".join(str(part) for part in err["loc"]) or "payload"
            errors.append(f"{loc}: {err['msg']}")
        raise InspirationValidationError(errors) from e


class InspirationMutations:
    """
    Create and delete handlers.

    Responsibilities:
      - block everything in demo mode
      - validate before touching the backend
      - image upload, with a caller decision when it fails
      - insert with capped exponential backoff on transient errors
      - optimistic delete with rollback on the loader's list
    """

    def __init__(
        self,
        inspirations,
        profiles: ProfileService,
        storage: ImageStorage | None,
        loader: ContentLoader,
        demo: bool = False,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 4.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.inspirations = inspirations
        self.profiles = profiles
        self.storage = storage
        self.loader = loader
        self.demo = demo
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sleep = sleep

    async def create(
        self,
        user: AuthUser,
        form: InspirationForm | dict[str, Any],
        image: ImageUpload | None = None,
        confirm_without_image: ConfirmWithoutImage | None = None,
        reload: bool = True,
    ) -> Inspiration | None:
        """
        Create an inspiration owned by `user`.

        Steps:
          1. Refuse in demo mode.
          2. Validate fields (no request on failure).
          3. Ensure the author's profile row exists (best effort).
          4. Upload the image, if any. On failure ask
             `confirm_without_image(error)`; no callback means abort.
          5. Insert with retries on transient errors.
          6. Reset the form and reload the owner's inspirations.

        Raises:
            DemoModeError, InspirationValidationError, ImageUploadError,
            InspirationCreateError
        """
        if self.demo:
            raise DemoModeError()

        if isinstance(form, InspirationForm):
            fields = form.to_fields()
            image = image or form.image
        else:
            fields = dict(form)
        payload = validate_fields(fields)

        await self.profiles.ensure_profile(user)

        image_url = None
        if image is not None:
            image_url = await self._upload_image(user.id, image, confirm_without_image)

        row = {
            "user_id": user.id,
            "content": payload.content,
            "description": payload.description,
            "tags": payload.tags,
            "category": payload.category,
            "status": payload.status,
            "image_url": image_url,
        }

        async def insert_inspiration():
            return await self.inspirations.insert(row)

        try:
            created = await retry_async(
                insert_inspiration,
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                max_delay=self.max_delay,
                sleep=self.sleep,
            )
        except Exception as e:
            logger.error("Saving inspiration for %s failed: %s", user.id, e)
            raise InspirationCreateError(f"Save failed: {e}") from e

        logger.info("Created inspiration for %s", user.id)
        if isinstance(form, InspirationForm):
            form.reset()
        if reload:
            await self.loader.load(LoadScope.mine(user.id))
        return created

    async def delete(self, user_id: str, inspiration_id: str) -> None:
        """
        Optimistically remove `inspiration_id` from the loaded list and
        delete it remotely, scoped to its owner.

        Raises:
            DemoModeError: in demo mode (nothing changes).
            InspirationDeleteError: the backend refused; the previous
                list has been restored and the loader error set.
        """
        if self.demo:
            raise DemoModeError()

        snapshot = list(self.loader.items)
        issued_at = self.loader.request_id

        def rollback() -> None:
            # A load committed meanwhile is newer than the snapshot
            if self.loader.request_id != issued_at:
                logger.info("List reloaded during delete of %s, not restoring snapshot", inspiration_id)
                return
            self.loader.replace_items(snapshot)

        try:
            await apply_then_confirm(
                lambda: self.loader.replace_items(
                    [item for item in snapshot if item.id != inspiration_id]
                ),
                lambda: self.inspirations.delete(inspiration_id, user_id),
                rollback,
            )
        except Exception as e:
            message = f"Delete failed: {e}"
            logger.error("Deleting %s for %s failed, list restored: %s", inspiration_id, user_id, e)
            self.loader.set_error(message)
            raise InspirationDeleteError(message) from e

        logger.info("Deleted inspiration %s", inspiration_id)

    async def _upload_image(
        self,
        owner_id: str,
        image: ImageUpload,
        confirm_without_image: ConfirmWithoutImage | None,
    ) -> str | None:
        if self.storage is None:
            error = ImageUploadError("Image storage is not available", reason="failed")
        else:
            try:
                return await self.storage.upload_image(owner_id, image.content_type, image.data)
            except ImageUploadError as e:
                error = e

        if confirm_without_image is None:
            raise error
        decision = confirm_without_image(error)
        if inspect.isawaitable(decision):
            decision = await decision
        if not decision:
            raise error
        logger.warning("Continuing without image: %s", error.message)
        return None
