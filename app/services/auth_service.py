# app/services/auth_service.py
import asyncio
import logging
from typing import Any, Awaitable, Callable

from app.core.errors import AuthError, DemoModeError
from app.core.supabase_client import BackendClient
from app.schemas.auth import AuthUser, SignInRequest, SignUpRequest

logger = logging.getLogger(__name__)


def _to_auth_user(user: Any) -> AuthUser | None:
    if user is None:
        return None
    return AuthUser(
        id=str(user.id),
        email=getattr(user, "email", None),
        user_metadata=getattr(user, "user_metadata", None) or {},
    )


class AuthService:
    """
    Thin wrapper over Supabase Auth.

    Responsibilities:
      - sign up / sign in / sign out
      - current-user query and liveness ping
      - exchanging an email-confirmation code for a session
      - forwarding auth events as (event, user id) pairs
    """

    def __init__(self, backend: BackendClient, site_url: str = "http://localhost:3000"):
        self.backend = backend
        self.site_url = site_url.rstrip("/")
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_configured(self) -> bool:
        return self.backend.is_configured

    async def current_user(self) -> AuthUser | None:
        """Return the signed-in user, or None (always None in demo mode)."""
        if not self.is_configured:
            return None
        client = await self.backend.get()
        resp = await client.auth.get_user()
        return _to_auth_user(resp.user if resp else None)

    async def current_user_id(self) -> str | None:
        user = await self.current_user()
        return user.id if user else None

    async def ping(self, timeout: float = 5.0) -> bool:
        """True if the auth endpoint answers within `timeout` seconds."""
        if not self.is_configured:
            return True
        try:
            await asyncio.wait_for(self.current_user(), timeout=timeout)
        except Exception as e:
            logger.warning("Auth ping failed: %s", e)
            return False
        return True

    async def sign_in(self, payload: SignInRequest) -> AuthUser:
        client = await self._client()
        try:
            resp = await client.auth.sign_in_with_password(
                {"email": payload.email, "password": payload.password}
            )
        except Exception as e:
            logger.error("Sign in failed for %s: %s", payload.email, e)
            raise AuthError(str(e) or "Sign in failed, check your email and password") from e
        return _to_auth_user(resp.user)

    async def sign_up(self, payload: SignUpRequest) -> AuthUser | None:
        """
        Register a new account.

        The username is stored in user metadata (also as full_name) and
        the confirmation email links back to `<SITE_URL>/auth/callback`.
        """
        client = await self._client()
        try:
            resp = await client.auth.sign_up(
                {
                    "email": payload.email,
                    "password": payload.password,
                    "options": {
                        "data": {
                            "username": payload.username,
                            "full_name": payload.username,
                        },
                        "email_redirect_to": f"{self.site_url}/auth/callback",
                    },
                }
            )
        except Exception as e:
            logger.error("Sign up failed for %s: %s", payload.email, e)
            raise AuthError(str(e) or "Sign up failed") from e
        return _to_auth_user(resp.user)

    async def exchange_code(self, code: str) -> AuthUser | None:
        """Finish the email-confirmation flow (`?code=` on the callback URL)."""
        client = await self._client()
        try:
            resp = await client.auth.exchange_code_for_session({"auth_code": code})
        except Exception as e:
            raise AuthError(str(e) or "Email confirmation failed") from e
        return _to_auth_user(resp.user)

    async def sign_out(self) -> None:
        client = await self._client()
        await client.auth.sign_out()

    async def subscribe(
        self,
        handler: Callable[[Any, str | None], Awaitable[Any]],
    ):
        """
        Forward SDK auth events to `handler(event, user_id)`.

        Returns the SDK subscription (call `.unsubscribe()`), or None in
        demo mode.
        """
        if not self.is_configured:
            return None
        client = await self.backend.get()
        loop = asyncio.get_running_loop()

        def _callback(event, session) -> None:
            user = getattr(session, "user", None) if session else None
            task = loop.create_task(handler(event, str(user.id) if user else None))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return client.auth.on_auth_state_change(_callback)

    async def _client(self):
        if not self.is_configured:
            raise DemoModeError("Demo mode: configure Supabase to sign in")
        return await self.backend.get()
