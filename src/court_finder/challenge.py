"""Wait for a venue page's schedule data while riding out the anti-bot challenge.

The page either defines its schedule object directly or first bounces the
browser through a reCAPTCHA interstitial that redirects back to the venue
once it is satisfied::

    LOADING -> READY
    LOADING -> CHALLENGE_PENDING -> REDIRECTED -> LOADING -> READY
    LOADING -> ... -> TIMED_OUT

``TIMED_OUT`` is a degraded outcome, never an exception; the caller extracts
whatever the page holds at that point.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import structlog
from playwright.async_api import Error as PlaywrightError

LOGGER = structlog.get_logger(__name__)

CHALLENGE_PATH = "recaptcha"

SCHEDULE_READY_JS = "() => typeof mmDataPickup !== 'undefined'"

CHALLENGE_PAGE_JS = """
() => {
    const title = document.title || '';
    const body = document.body ? (document.body.textContent || '') : '';
    return title.includes('reCAPTCHA') ||
           body.includes('正在檢查瀏覽器') ||
           window.location.href.toLowerCase().includes('recaptcha');
}
"""


class LoadState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    CHALLENGE_PENDING = "challenge_pending"
    REDIRECTED = "redirected"
    TIMED_OUT = "timed_out"


def is_venue_url(url: str) -> bool:
    """True for a venue page that is not the challenge interstitial."""
    return "venues" in url and CHALLENGE_PATH not in url.lower()


class ScheduleWaiter:
    """Poll a page until its schedule object exists or the budget runs out."""

    def __init__(
        self,
        page: Any,
        *,
        budget_ms: int,
        interval_ms: int = 500,
        redirect_timeout_ms: int = 45_000,
        settle_ms: int = 8_000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._page = page
        self._budget = budget_ms / 1000
        self._interval = interval_ms / 1000
        self._redirect_timeout_ms = redirect_timeout_ms
        self._settle = settle_ms / 1000
        self._clock = clock
        self._sleep = sleep
        self._started: Optional[float] = None
        self.state = LoadState.LOADING
        self.transitions: list[tuple[LoadState, LoadState]] = []

    async def wait(self) -> LoadState:
        self._started = self._clock()
        deadline = self._started + self._budget
        challenge_seen = False

        while self._clock() < deadline:
            if await self._evaluate_flag(SCHEDULE_READY_JS):
                self._transition(LoadState.READY)
                return self.state

            if not challenge_seen and await self._evaluate_flag(CHALLENGE_PAGE_JS):
                challenge_seen = True
                self._transition(LoadState.CHALLENGE_PENDING)
                challenge_started = self._clock()
                if await self._await_redirect():
                    self._transition(LoadState.REDIRECTED)
                    await self._sleep(self._settle)
                    self._transition(LoadState.LOADING)
                else:
                    LOGGER.warning("challenge.redirect_timeout", url=self._page_url())
                # Only polling counts against the budget.
                deadline += self._clock() - challenge_started
                continue

            await self._sleep(self._interval)

        if await self._evaluate_flag(SCHEDULE_READY_JS):
            self._transition(LoadState.READY)
            return self.state

        self._transition(LoadState.TIMED_OUT)
        if await self._evaluate_flag(CHALLENGE_PAGE_JS):
            LOGGER.warning(
                "challenge.still_blocked",
                url=self._page_url(),
                hint="set COURTFINDER_HEADLESS=false and pass the check in the opened browser",
            )
        return self.state

    async def _evaluate_flag(self, script: str) -> bool:
        try:
            return bool(await self._page.evaluate(script))
        except PlaywrightError as exc:
            # Navigations tear down the execution context mid-poll.
            LOGGER.debug("challenge.evaluate_failed", error=str(exc))
            return False

    async def _await_redirect(self) -> bool:
        try:
            await self._page.wait_for_url(is_venue_url, timeout=self._redirect_timeout_ms)
        except PlaywrightError as exc:
            LOGGER.debug("challenge.wait_for_url_failed", error=str(exc))
            return False
        return True

    def _page_url(self) -> str:
        return str(getattr(self._page, "url", ""))

    def _transition(self, new_state: LoadState) -> None:
        elapsed_ms = int((self._clock() - (self._started or self._clock())) * 1000)
        LOGGER.info(
            "challenge.state",
            from_state=self.state.value,
            to_state=new_state.value,
            elapsed_ms=elapsed_ms,
            url=self._page_url(),
        )
        self.transitions.append((self.state, new_state))
        self.state = new_state
