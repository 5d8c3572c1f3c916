# app/core/errors.py
"""
Domain exceptions.

Services raise these; callers recover locally (reset a flag, record a
message, roll back). Routers translate them into HTTP errors.
"""

LOAD_TIMEOUT_MESSAGE = "Loading timed out, please check your network connection"
LOAD_FAILED_MESSAGE = "Failed to load inspirations"
DEMO_MODE_MESSAGE = (
    "Demo mode: configure SUPABASE_URL and SUPABASE_KEY to enable this action"
)


class InspirationWallError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DemoModeError(InspirationWallError):
    """Supabase credentials are absent; mutations are disabled."""

    def __init__(self, message: str = DEMO_MODE_MESSAGE):
        super().__init__(message)


class LoadTimeoutError(InspirationWallError):
    def __init__(self, message: str = LOAD_TIMEOUT_MESSAGE):
        super().__init__(message)


class LoadFailedError(InspirationWallError):
    def __init__(self, message: str = LOAD_FAILED_MESSAGE):
        super().__init__(message)


class InspirationValidationError(InspirationWallError):
    """Client-side validation failed; nothing was sent to the backend."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class ImageUploadError(InspirationWallError):
    """
    Image upload failed.

    `reason` is one of: "bucket_missing", "permission", "invalid", "failed".
    """

    def __init__(self, message: str, reason: str = "failed"):
        super().__init__(message)
        self.reason = reason


class InspirationCreateError(InspirationWallError):
    pass


class InspirationDeleteError(InspirationWallError):
    pass


class AuthError(InspirationWallError):
    pass


class ProfileUpdateError(InspirationWallError):
    pass
