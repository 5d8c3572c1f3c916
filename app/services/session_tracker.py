# app/services/session_tracker.py
"""
Session tracker.

Reconciles the startup "who is signed in" query with the stream of auth
events pushed by the Supabase SDK, and decides when content must be
reloaded.

The SDK re-emits SIGNED_IN when a backgrounded tab regains focus even
though nobody signed in; those duplicates must not trigger a reload.
When one arrives after the initial load it usually means the auth
channel went stale while the OS suspended the tab, so the tracker can
ask for a hard reload (reset the client, then reload) instead.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class AuthEventKind(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    INITIAL_SESSION = "INITIAL_SESSION"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw) -> "AuthEventKind":
        """Map an SDK event (string or enum) to a kind; unknown values are OTHER."""
        value = getattr(raw, "value", raw)
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


class SessionState(str, Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class TrackerDecision(str, Enum):
    IGNORED = "ignored"
    RELOAD = "reload"
    HARD_RELOAD = "hard_reload"


class SessionTracker:
    """
    State machine: UNKNOWN -> CHECKING -> {AUTHENTICATED(id), ANONYMOUS}.

    Args:
        fetch_identity: one-shot current-user query, returns a user id or None.
        on_identity_change: awaited with the new identity when a real
            sign-in/sign-out happened after the initial load.
        on_hard_reload: awaited for a spurious SIGNED_IN when
            `reload_on_spurious_sign_in` is set.
    """

    def __init__(
        self,
        fetch_identity: Callable[[], Awaitable[str | None]],
        on_identity_change: Callable[[str | None], Awaitable[None]],
        on_hard_reload: Callable[[], Awaitable[None]] | None = None,
        reload_on_spurious_sign_in: bool = True,
    ):
        self.fetch_identity = fetch_identity
        self.on_identity_change = on_identity_change
        self.on_hard_reload = on_hard_reload
        self.reload_on_spurious_sign_in = reload_on_spurious_sign_in

        self.state = SessionState.UNKNOWN
        self.identity: str | None = None
        self.initial_load_done = False

    async def start(self, initial_load: Callable[[str | None], Awaitable[None]]) -> str | None:
        """
        Run the startup query, then the initial load for the identity found.

        A failing query leaves the tracker ANONYMOUS; the initial load is
        marked complete either way so later events are judged normally.
        """
        self.state = SessionState.CHECKING
        self.initial_load_done = False
        try:
            identity = await self.fetch_identity()
        except Exception as e:
            logger.error("Current user check failed: %s", e)
            identity = None

        self._set_identity(identity)
        try:
            await initial_load(identity)
        finally:
            self.initial_load_done = True
        return identity

    async def handle_event(self, event, user_id: str | None) -> TrackerDecision:
        """Process one pushed auth event and act on the decision."""
        kind = AuthEventKind.parse(event)
        decision = self.decide(kind, user_id)

        if decision is TrackerDecision.RELOAD:
            await self.on_identity_change(self.identity)
        elif decision is TrackerDecision.HARD_RELOAD and self.on_hard_reload is not None:
            await self.on_hard_reload()
        return decision

    def decide(self, kind: AuthEventKind, user_id: str | None) -> TrackerDecision:
        """
        Update the identity and return what the event calls for.

        Only SIGNED_IN / SIGNED_OUT with a changed identity after the
        initial load reload content.
        """
        changed = user_id != self.identity
        self._set_identity(user_id)

        logger.info(
            "Auth event %s: identity=%s changed=%s initial_load_done=%s",
            kind.value,
            user_id,
            changed,
            self.initial_load_done,
        )

        if not self.initial_load_done:
            return TrackerDecision.IGNORED

        if kind is AuthEventKind.SIGNED_IN:
            if changed:
                return TrackerDecision.RELOAD
            logger.warning("Duplicate SIGNED_IN with unchanged identity")
            if self.reload_on_spurious_sign_in:
                return TrackerDecision.HARD_RELOAD
            return TrackerDecision.IGNORED
        elif kind is AuthEventKind.SIGNED_OUT:
            return TrackerDecision.RELOAD if changed else TrackerDecision.IGNORED
        elif kind is AuthEventKind.TOKEN_REFRESHED:
            return TrackerDecision.IGNORED
        elif kind is AuthEventKind.INITIAL_SESSION:
            return TrackerDecision.IGNORED
        elif kind is AuthEventKind.OTHER:
            return TrackerDecision.IGNORED
        raise ValueError(f"unhandled auth event kind: {kind!r}")

    def _set_identity(self, identity: str | None) -> None:
        self.identity = identity
        self.state = SessionState.AUTHENTICATED if identity else SessionState.ANONYMOUS
