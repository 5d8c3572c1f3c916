# app/core/storage_utils.py
import logging
import time

from app.core.errors import ImageUploadError
from app.core.supabase_client import BackendClient

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def generate_filename(owner_id: str, ext: str, now: float | None = None) -> str:
    """
    Build a flat object name for an uploaded image.

    Pattern:
        <epoch-ms>_<owner_id>.<ext>

    No folder prefix: nested paths trip the bucket's RLS policies.
    """
    millis = int((time.time() if now is None else now) * 1000)
    return f"{millis}_{owner_id}.{ext}"


def validate_image(content_type: str | None, file_bytes: bytes, max_bytes: int) -> str:
    """
    Check an image before upload and return its file extension.

    Raises:
        ImageUploadError(reason="invalid"): unsupported type or too large.
    """
    if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        raise ImageUploadError(
            "Unsupported image type. Allowed: JPEG, PNG, WEBP, GIF.",
            reason="invalid",
        )
    if len(file_bytes) > max_bytes:
        raise ImageUploadError(
            f"Image too large (max {max_bytes // (1024 * 1024)}MB).",
            reason="invalid",
        )
    return ALLOWED_IMAGE_CONTENT_TYPES[content_type]


def classify_upload_error(exc: Exception, bucket: str) -> ImageUploadError:
    """
    Map a Storage failure to a user-facing ImageUploadError.

      - missing bucket        -> reason "bucket_missing"
      - row-level security    -> reason "permission"
      - anything else         -> reason "failed"
    """
    text = str(exc)
    lowered = text.lower()
    if "bucket not found" in lowered or "bucket does not exist" in lowered:
        return ImageUploadError(
            f'Image storage is not set up: create a public bucket named "{bucket}" '
            "in the Supabase dashboard.",
            reason="bucket_missing",
        )
    if "row-level security" in lowered:
        return ImageUploadError(
            "Image storage permissions are not configured for this bucket.",
            reason="permission",
        )
    return ImageUploadError(f"Image upload failed: {text}", reason="failed")


class ImageStorage:
    """
    Upload images to Supabase Storage and resolve their public URLs.
    """

    def __init__(self, backend: BackendClient, bucket: str, max_bytes: int):
        self.backend = backend
        self.bucket = bucket
        self.max_bytes = max_bytes

    async def upload_image(
        self,
        owner_id: str,
        content_type: str | None,
        file_bytes: bytes,
    ) -> str:
        """
        Upload raw bytes and return the public URL.

        Objects are never overwritten (upsert off): every upload gets a
        fresh timestamped name.

        Raises:
            ImageUploadError: on validation or Storage failure.
        """
        ext = validate_image(content_type, file_bytes, self.max_bytes)
        path = generate_filename(owner_id, ext)

        client = await self.backend.get()
        bucket = client.storage.from_(self.bucket)
        try:
            await bucket.upload(
                path,
                file_bytes,
                {
                    "content-type": content_type,
                    "cache-control": "3600",
                    "upsert": "false",
                },
            )
        except Exception as e:
            logger.error("Image upload to %s failed: %s", self.bucket, e)
            raise classify_upload_error(e, self.bucket) from e

        return await bucket.get_public_url(path)
