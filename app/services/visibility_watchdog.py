# app/services/visibility_watchdog.py
"""
Visibility watchdog.

When the OS suspends a backgrounded tab, the Supabase realtime/auth
channel can come back stale. Two policies are available when the page
becomes visible again:

  - FRESHNESS:        reload only if the data is older than the
                      freshness window and nothing is loading; if the
                      data is fresh, optionally ping the backend and hard
                      reload when the ping fails.
  - HIDDEN_DURATION:  hard reload whenever the page stayed hidden longer
                      than a threshold.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class VisibilityPolicy(str, Enum):
    FRESHNESS = "freshness"
    HIDDEN_DURATION = "hidden_duration"


class WatchdogAction(str, Enum):
    IGNORED = "ignored"  # hidden transition, or debounced
    SKIPPED = "skipped"  # qualifying transition, nothing to do
    REFRESH = "refresh"
    HARD_RELOAD = "hard_reload"


class VisibilityWatchdog:
    def __init__(
        self,
        on_refresh: Callable[[], Awaitable[None]],
        on_hard_reload: Callable[[], Awaitable[None]],
        is_loading: Callable[[], bool],
        last_loaded_at: Callable[[], float | None],
        policy: VisibilityPolicy = VisibilityPolicy.FRESHNESS,
        debounce: float = 1.0,
        settle_delay: float = 0.0,
        freshness_window: float = 300.0,
        hidden_threshold: float = 2.0,
        liveness_probe: Callable[[], Awaitable[bool]] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.on_refresh = on_refresh
        self.on_hard_reload = on_hard_reload
        self.is_loading = is_loading
        self.last_loaded_at = last_loaded_at
        self.policy = VisibilityPolicy(policy)
        self.debounce = debounce
        self.settle_delay = settle_delay
        self.freshness_window = freshness_window
        self.hidden_threshold = hidden_threshold
        self.liveness_probe = liveness_probe
        self.clock = clock
        self.sleep = sleep

        self.visible = True
        self.hidden_at: float | None = None
        self._last_transition: float | None = None

    async def on_visibility_change(self, visible: bool) -> WatchdogAction:
        now = self.clock()

        if not visible:
            self.visible = False
            self.hidden_at = now
            self._last_transition = now
            return WatchdogAction.IGNORED

        self.visible = True
        if self._last_transition is not None and now - self._last_transition < self.debounce:
            logger.debug("Visibility change debounced")
            return WatchdogAction.IGNORED
        self._last_transition = now

        if self.policy is VisibilityPolicy.HIDDEN_DURATION:
            action = await self._check_hidden_duration(now)
        else:
            action = await self._check_freshness()
        logger.info("Page visible again: %s", action.value)
        return action

    async def _check_hidden_duration(self, now: float) -> WatchdogAction:
        if self.hidden_at is None:
            return WatchdogAction.SKIPPED
        hidden_for = now - self.hidden_at
        if hidden_for <= self.hidden_threshold:
            return WatchdogAction.SKIPPED
        logger.warning("Page was hidden for %.1fs, rebuilding backend connection", hidden_for)
        await self.on_hard_reload()
        return WatchdogAction.HARD_RELOAD

    async def _check_freshness(self) -> WatchdogAction:
        if self.is_loading():
            return WatchdogAction.SKIPPED

        if self.settle_delay > 0:
            # The user may only be flicking through windows
            await self.sleep(self.settle_delay)
            if not self.visible or self.is_loading():
                return WatchdogAction.SKIPPED

        loaded_at = self.last_loaded_at()
        if loaded_at is None or self.clock() - loaded_at > self.freshness_window:
            await self.on_refresh()
            return WatchdogAction.REFRESH

        if self.liveness_probe is not None and not await self.liveness_probe():
            logger.warning("Backend liveness probe failed after visibility change")
            await self.on_hard_reload()
            return WatchdogAction.HARD_RELOAD

        return WatchdogAction.SKIPPED
