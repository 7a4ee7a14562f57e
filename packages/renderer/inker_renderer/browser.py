"""Headless Chromium capture of HTML markup and remote pages at exact panel size."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import ArtifactWriteError, RenderFailure, RenderTimeout, RenderUnavailable
from .models import BrowserState

logger = logging.getLogger("inker.renderer.browser")

DEFAULT_LAUNCH_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
    "--disable-dev-tools",
    "--font-render-hinting=none",
    "--disable-font-subpixel-positioning",
    "--force-color-profile=srgb",
)

NAVIGATION_TIMEOUT_S = 30.0
FONT_TIMEOUT_S = 2.0

Launcher = Callable[[], Awaitable[Browser]]


def apply_template(template: str, variables: Mapping[str, Any]) -> str:
    """Replace ``{{ key }}`` placeholders; unknown placeholders stay as written."""
    out = template
    for key, value in variables.items():
        pattern = re.compile(r"\{\{\s*" + re.escape(str(key)) + r"\s*\}\}")
        out = pattern.sub(lambda _m, text=str(value): text, out)
    return out


class BrowserRenderer:
    """Owns one lazily launched browser shared by all render calls.

    Every call gets its own browser context, closed on every exit path. A
    browser that crashed or disconnected is replaced on the next call.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        launch_args: tuple[str, ...] | list[str] = DEFAULT_LAUNCH_ARGS,
        navigation_timeout_s: float = NAVIGATION_TIMEOUT_S,
        font_timeout_s: float = FONT_TIMEOUT_S,
        launcher: Launcher | None = None,
    ) -> None:
        self.headless = headless
        self.launch_args = tuple(launch_args)
        self.navigation_timeout_s = float(navigation_timeout_s)
        self.font_timeout_s = float(font_timeout_s)

        self._launcher = launcher or self._launch_chromium
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._state = BrowserState.UNINITIALIZED
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> BrowserRenderer:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def state(self) -> BrowserState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> None:
        await self._ensure_browser()

    async def close(self) -> None:
        async with self._lock:
            browser, self._browser = self._browser, None
            self._state = BrowserState.UNINITIALIZED
            if browser is not None:
                try:
                    await browser.close()
                except PlaywrightError as exc:
                    logger.debug("browser already gone on close: %s", exc)
                logger.info("browser closed", extra={"event": "browser_closed"})
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None

    async def render_html(self, html: str, width: int, height: int, output_path: str | Path) -> Path:
        path = Path(output_path)
        logger.debug("rendering html %sx%s -> %s", width, height, path)
        async with self._page(width, height) as page:
            await self._load(
                page.set_content(html, wait_until="domcontentloaded", timeout=self._timeout_ms),
                "html content",
            )
            await self._wait_for_fonts(page)
            await self._capture(page, path)
        return path

    async def render_url(self, url: str, width: int, height: int, output_path: str | Path) -> Path:
        path = Path(output_path)
        logger.debug("rendering url %s %sx%s -> %s", url, width, height, path)
        async with self._page(width, height) as page:
            await self._load(
                page.goto(url, wait_until="networkidle", timeout=self._timeout_ms),
                f"url {url}",
            )
            await self._capture(page, path)
        return path

    async def render_template(
        self,
        template_html: str,
        variables: Mapping[str, Any],
        width: int,
        height: int,
        output_path: str | Path,
    ) -> Path:
        return await self.render_html(apply_template(template_html, variables), width, height, output_path)

    @property
    def _timeout_ms(self) -> float:
        return self.navigation_timeout_s * 1000

    async def _launch_chromium(self) -> Browser:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(headless=self.headless, args=list(self.launch_args))

    def _on_disconnected(self, browser: Browser) -> None:
        if browser is self._browser:
            logger.warning("browser disconnected unexpectedly", extra={"event": "browser_disconnected"})
            self._browser = None
            self._state = BrowserState.UNINITIALIZED

    def _forget(self, browser: Browser) -> None:
        if browser is self._browser:
            self._browser = None
            self._state = BrowserState.UNINITIALIZED

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            current = self._browser
            if current is not None and not current.is_connected():
                logger.warning("browser no longer connected, relaunching", extra={"event": "browser_relaunch"})
                self._forget(current)
            if self._browser is not None:
                return self._browser

            self._state = BrowserState.LAUNCHING
            logger.info("launching headless browser", extra={"event": "browser_launch"})
            try:
                browser = await self._launcher()
            except Exception as exc:
                self._state = BrowserState.UNINITIALIZED
                logger.warning(
                    "browser launch failed, html and url rendering unavailable: %s",
                    exc,
                    extra={"event": "browser_launch_failed"},
                )
                raise RenderUnavailable(f"headless browser could not be started: {exc}") from exc

            browser.on("disconnected", self._on_disconnected)
            self._browser = browser
            self._state = BrowserState.READY
            logger.info("browser ready", extra={"event": "browser_ready"})
            return browser

    async def _new_context(self, browser: Browser, width: int, height: int) -> BrowserContext:
        return await browser.new_context(
            viewport={"width": width, "height": height},
            device_scale_factor=1,
        )

    async def _open_context(self, width: int, height: int) -> BrowserContext:
        browser = await self._ensure_browser()
        try:
            return await self._new_context(browser, width, height)
        except PlaywrightError as exc:
            if browser.is_connected():
                raise RenderFailure(f"could not open rendering context: {exc}") from exc
            self._forget(browser)

        # The browser died between the liveness check and use; one relaunch.
        browser = await self._ensure_browser()
        try:
            return await self._new_context(browser, width, height)
        except PlaywrightError as exc:
            raise RenderFailure(f"could not open rendering context: {exc}") from exc

    async def _close_context(self, context: BrowserContext) -> None:
        try:
            await context.close()
        except PlaywrightError as exc:
            logger.debug("rendering context already closed: %s", exc)

    @asynccontextmanager
    async def _page(self, width: int, height: int) -> AsyncIterator[Page]:
        context = await self._open_context(width, height)
        try:
            try:
                page = await context.new_page()
            except PlaywrightError as exc:
                raise RenderFailure(f"could not open page: {exc}") from exc
            yield page
        finally:
            await self._close_context(context)

    async def _load(self, navigation: Awaitable[Any], what: str) -> None:
        try:
            await asyncio.wait_for(navigation, timeout=self.navigation_timeout_s)
        except (asyncio.TimeoutError, PlaywrightTimeoutError) as exc:
            raise RenderTimeout(f"{what} did not load within {self.navigation_timeout_s:g}s") from exc
        except PlaywrightError as exc:
            raise RenderTimeout(f"{what} failed to load: {exc}") from exc

    async def _wait_for_fonts(self, page: Page) -> None:
        try:
            await asyncio.wait_for(
                page.evaluate("document.fonts.ready.then(() => true)"),
                timeout=self.font_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.debug("fonts not ready after %ss, capturing anyway", self.font_timeout_s)
        except PlaywrightError as exc:
            logger.debug("font readiness check failed, capturing anyway: %s", exc)

    async def _capture(self, page: Page, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactWriteError(f"cannot create {path.parent}: {exc}") from exc
        try:
            await page.screenshot(path=str(path), type="png", full_page=False)
        except PlaywrightError as exc:
            raise RenderFailure(f"screenshot capture failed: {exc}") from exc
        logger.debug("screenshot saved to %s", path)
