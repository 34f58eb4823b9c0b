"""Playwright automation for the Taipei venue booking pages."""

from __future__ import annotations

import asyncio
import json
import sys
import time
from contextlib import suppress
from datetime import date
from typing import Any, Awaitable, Callable, Optional

import structlog
from playwright.async_api import Browser, BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .cache import TTLCache
from .challenge import LoadState, ScheduleWaiter
from .config import Settings
from .court_labels import CourtLabelConfig, collect_court_slots, needs_court_labels, prefer_labeled
from .models import Availability, Venue, VenueInfo
from .provider import EngineUnavailableError
from .schedule import ScheduleResult, parse_schedule_payload, parse_venue_info
from .web_provider import availability_key

LOGGER = structlog.get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
LAUNCH_ARGS = ["--disable-blink-features=AutomationControlled"]

SCHEDULE_SNAPSHOT_JS = """
() => {
    const result = {};
    if (typeof mmDataPickup !== 'undefined') {
        result.mmDataPickup = mmDataPickup;
    }
    if (typeof VenuesCalendarJson !== 'undefined') {
        result.VenuesCalendarJson = VenuesCalendarJson;
    }
    return Object.keys(result).length > 0 ? JSON.stringify(result) : null;
}
"""

VENUE_INFO_READY_JS = "() => typeof VenuesInfoJson !== 'undefined'"
VENUE_INFO_JS = "() => typeof VenuesInfoJson !== 'undefined' ? JSON.stringify(VenuesInfoJson) : null"

Installer = Callable[[], Awaitable[bool]]


async def install_chromium() -> bool:
    """Run ``python -m playwright install chromium``; True on success."""
    LOGGER.warning("engine.install.start")
    process = await asyncio.create_subprocess_exec(sys.executable, "-m", "playwright", "install", "chromium")
    try:
        returncode = await process.wait()
    except BaseException:
        if process.returncode is None:
            with suppress(ProcessLookupError):
                process.kill()
            await process.wait()
        LOGGER.warning("engine.install.aborted")
        raise
    LOGGER.info("engine.install.finished", returncode=returncode)
    return returncode == 0


class EngineLauncher:
    """Launch Chromium, installing it once when the first launch fails."""

    def __init__(self, settings: Settings, installer: Installer = install_chromium):
        self._settings = settings
        self._installer = installer

    async def launch(self, playwright: Any) -> Browser:
        try:
            return await self._launch(playwright)
        except PlaywrightError as exc:
            LOGGER.warning("engine.launch_failed", error=str(exc))

        if not await self._installer():
            raise EngineUnavailableError("Failed to install the Chromium browser for Playwright")

        try:
            return await self._launch(playwright)
        except PlaywrightError as exc:
            raise EngineUnavailableError(f"Chromium still cannot be launched after install: {exc}") from exc

    async def _launch(self, playwright: Any) -> Browser:
        LOGGER.info("engine.launch", headless=self._settings.headless, slowmo_ms=self._settings.slowmo_ms)
        return await playwright.chromium.launch(
            headless=self._settings.headless,
            slow_mo=self._settings.slowmo_ms,
            args=LAUNCH_ARGS,
        )


class BrowserSession:
    """A throwaway engine, context and page, closed on every exit path."""

    def __init__(self, launcher: EngineLauncher, playwright_factory: Callable[[], Any] = async_playwright):
        self._launcher = launcher
        self._playwright_factory = playwright_factory
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> Page:
        self._playwright = await self._playwright_factory().start()
        try:
            self._browser = await self._launcher.launch(self._playwright)
            self._context = await self._browser.new_context(user_agent=USER_AGENT)
            return await self._context.new_page()
        except BaseException:
            await self._close()
            raise

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._close()

    async def _close(self) -> None:
        if self._context is not None:
            with suppress(PlaywrightError):
                await self._context.close()
        if self._browser is not None:
            with suppress(PlaywrightError):
                await self._browser.close()
        if self._playwright is not None:
            with suppress(PlaywrightError):
                await self._playwright.stop()
        self._context = self._browser = self._playwright = None


class TaipeiBrowserProvider:
    """Read availability by driving a real browser through the venue page.

    Each availability lookup gets a fresh engine so consecutive requests do
    not share a browser fingerprint. Venue metadata lookups reuse one lazily
    launched engine.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        launcher: Optional[EngineLauncher] = None,
        playwright_factory: Callable[[], Any] = async_playwright,
        label_config: Optional[CourtLabelConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._settings = settings
        self._launcher = launcher or EngineLauncher(settings)
        self._playwright_factory = playwright_factory
        self._labels = label_config or CourtLabelConfig(settings.labels_path)
        self._clock = clock
        self._sleep = sleep
        self._availability: TTLCache[Availability] = TTLCache(settings.cache_seconds)
        self._venue_info: TTLCache[VenueInfo] = TTLCache(settings.cache_seconds)
        self._shared_playwright = None
        self._shared_browser: Optional[Browser] = None
        self._browser_lock = asyncio.Lock()

    async def list_courts(self) -> list[Venue]:
        return []

    async def get_availability(self, court_id: str, day: date) -> Availability:
        key = availability_key(court_id, day)
        cached = self._availability.get(key)
        if cached is not None:
            return cached

        LOGGER.info("browser.availability.start", court_id=court_id, date=day.isoformat())
        try:
            async with BrowserSession(self._launcher, self._playwright_factory) as page:
                availability = await self._collect(page, court_id, day)
        except EngineUnavailableError:
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("browser.availability.failed", court_id=court_id, error=str(exc))
            return Availability(court_id=court_id, date=day)

        LOGGER.info(
            "browser.availability.success",
            court_id=court_id,
            date=day.isoformat(),
            slots=len(availability.slots),
            degraded=availability.degraded,
        )
        if availability.slots or not availability.degraded:
            self._availability.set(key, availability)
        return availability

    async def _collect(self, page: Page, court_id: str, day: date) -> Availability:
        url = self._settings.venue_url(court_id)
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self._settings.navigation_timeout_ms)
        except PlaywrightError as exc:
            LOGGER.warning("browser.navigation_failed", url=url, error=str(exc))

        waiter = ScheduleWaiter(
            page,
            budget_ms=self._settings.wait_ms,
            interval_ms=self._settings.poll_interval_ms,
            redirect_timeout_ms=self._settings.redirect_timeout_ms,
            settle_ms=self._settings.settle_ms,
            clock=self._clock,
            sleep=self._sleep,
        )
        state = await waiter.wait()

        await self._remember_venue_info(page, court_id)
        result = await self._snapshot_schedule(page, day)
        slots = result.slots
        if needs_court_labels(slots):
            collected = await collect_court_slots(
                page,
                day,
                hours=result.hours,
                configured=self._labels.labels_for(court_id),
                limit=self._settings.max_court_labels,
                settle_ms=self._settings.label_settle_ms,
                sleep=self._sleep,
            )
            slots = prefer_labeled([*slots, *collected])

        return Availability(
            court_id=court_id,
            date=day,
            slots=slots,
            degraded=state is LoadState.TIMED_OUT,
        )

    async def _snapshot_schedule(self, page: Page, day: date) -> ScheduleResult:
        raw = await self._evaluate_json(page, SCHEDULE_SNAPSHOT_JS)
        if not isinstance(raw, dict):
            return ScheduleResult()
        return parse_schedule_payload(raw, day)

    async def _remember_venue_info(self, page: Page, court_id: str) -> None:
        info = parse_venue_info(await self._evaluate_json(page, VENUE_INFO_JS))
        if info is not None:
            self._venue_info.set(court_id, info)

    @staticmethod
    async def _evaluate_json(page: Page, script: str) -> Any:
        try:
            raw = await page.evaluate(script)
        except PlaywrightError as exc:
            LOGGER.warning("browser.evaluate_failed", error=str(exc))
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError) as exc:
            LOGGER.warning("browser.snapshot_invalid", error=str(exc))
            return None

    async def get_venue_info(self, court_id: str) -> Optional[VenueInfo]:
        cached = self._venue_info.get(court_id)
        if cached is not None:
            return cached

        browser = await self._get_shared_browser()
        url = self._settings.venue_url(court_id)
        try:
            context = await browser.new_context(user_agent=USER_AGENT)
        except PlaywrightError as exc:
            LOGGER.warning("browser.venue_info.context_failed", error=str(exc))
            return None
        try:
            page = await context.new_page()
            await page.goto(url, wait_until="networkidle", timeout=self._settings.navigation_timeout_ms)
            with suppress(PlaywrightError):
                await page.wait_for_function(VENUE_INFO_READY_JS, timeout=self._settings.navigation_timeout_ms)
            info = parse_venue_info(await self._evaluate_json(page, VENUE_INFO_JS))
        except PlaywrightError as exc:
            LOGGER.warning("browser.venue_info.failed", court_id=court_id, error=str(exc))
            return None
        finally:
            with suppress(PlaywrightError):
                await context.close()

        if info is not None:
            self._venue_info.set(court_id, info)
        return info

    async def _get_shared_browser(self) -> Browser:
        if self._shared_browser is not None and self._shared_browser.is_connected():
            return self._shared_browser
        async with self._browser_lock:
            if self._shared_browser is not None and self._shared_browser.is_connected():
                return self._shared_browser
            if self._shared_playwright is None:
                self._shared_playwright = await self._playwright_factory().start()
            self._shared_browser = await self._launcher.launch(self._shared_playwright)
            return self._shared_browser

    async def aclose(self) -> None:
        async with self._browser_lock:
            if self._shared_browser is not None:
                with suppress(PlaywrightError):
                    await self._shared_browser.close()
            if self._shared_playwright is not None:
                with suppress(PlaywrightError):
                    await self._shared_playwright.stop()
            self._shared_browser = None
            self._shared_playwright = None

    async def __aenter__(self) -> "TaipeiBrowserProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
