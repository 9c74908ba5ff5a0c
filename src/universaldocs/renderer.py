"""Headless Chromium renderer built on async Playwright.

The browser is launched lazily on the first ``new_page()`` call and shared by
every page handle until ``close()``. A launch failure is the one renderer
error that aborts a whole crawl (RENDERER_UNAVAILABLE); everything that goes
wrong on an individual page is that page's problem (NAVIGATION_FAILED).
"""

from __future__ import annotations

import asyncio

import structlog
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from universaldocs.errors import ErrorCode, UniversalDocsError
from universaldocs.models.crawl import RenderedPage

log = structlog.get_logger()

MAX_REVEAL_CLICKS = 50

# Overlays hidden before content is read
_OVERLAY_SELECTORS = [
    "#cookie-banner",
    ".cookie-banner",
    "#onetrust-consent-sdk",
    ".overlay",
    ".modal",
    '[id*="cookie"]',
    '[class*="cookie"]',
]

_HIDE_OVERLAYS_JS = """
(selectors) => {
    for (const sel of selectors) {
        document.querySelectorAll(sel).forEach(el => { el.style.display = 'none'; });
    }
}
"""

_OPEN_DETAILS_JS = """
() => {
    const closed = document.querySelectorAll('details:not([open])');
    closed.forEach(el => el.setAttribute('open', ''));
    return closed.length;
}
"""

_EXTRACT_LINKS_JS = "els => els.map(el => el.href).filter(Boolean)"


class PlaywrightPage:
    """PageHandleProtocol implementation over one Playwright tab."""

    def __init__(
        self,
        page: Page,
        *,
        navigation_timeout: float,
        settle_timeout: float,
        reveal_timeout: float,
    ) -> None:
        self._page = page
        self._navigation_timeout_ms = navigation_timeout * 1000
        self._settle_timeout_ms = settle_timeout * 1000
        self._reveal_timeout = reveal_timeout
        self._last: RenderedPage | None = None

    async def goto(self, url: str) -> RenderedPage:
        try:
            response = await self._page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self._navigation_timeout_ms,
            )
        except PlaywrightError as exc:
            raise UniversalDocsError(
                code=ErrorCode.NAVIGATION_FAILED,
                message=f"Navigation to {url} failed: {exc}",
                suggestion="The page may be slow or unreachable; it is skipped for this run.",
                recoverable=True,
            ) from exc

        status = response.status if response is not None else None
        if status is not None and status >= 400:
            raise UniversalDocsError(
                code=ErrorCode.NAVIGATION_FAILED,
                message=f"HTTP {status} rendering {url}",
                suggestion="The page does not exist or is not publicly readable.",
                recoverable=False,
            )

        # SPAs keep fetching after DOMContentLoaded; settling is best effort
        try:
            await self._page.wait_for_load_state("networkidle", timeout=self._settle_timeout_ms)
        except PlaywrightTimeout:
            log.debug("render_settle_timeout", url=url)

        headers = response.headers if response is not None else {}
        rendered = await self.snapshot()
        self._last = rendered.model_copy(
            update={
                "status": status,
                "etag": headers.get("etag"),
                "last_modified": headers.get("last-modified"),
            }
        )
        return self._last

    async def reveal_hidden(self) -> None:
        try:
            await asyncio.wait_for(self._reveal(), timeout=self._reveal_timeout)
        except TimeoutError:
            log.debug("reveal_timeout", url=self._page.url)
        except Exception:
            log.debug("reveal_failed", url=self._page.url, exc_info=True)

    async def _reveal(self) -> None:
        await self._page.evaluate(_HIDE_OVERLAYS_JS, _OVERLAY_SELECTORS)
        opened = await self._page.evaluate(_OPEN_DETAILS_JS)

        clicked = 0
        toggles = await self._page.query_selector_all('[aria-expanded="false"]')
        for toggle in toggles[:MAX_REVEAL_CLICKS]:
            try:
                if await toggle.is_visible():
                    await toggle.click(timeout=1000)
                    clicked += 1
            except PlaywrightError:
                continue
        if opened or clicked:
            log.debug("reveal_complete", url=self._page.url, details_opened=opened, clicked=clicked)

    async def snapshot(self) -> RenderedPage:
        html = await self._page.content()
        title = await self._page.title()
        previous = self._last
        return RenderedPage(
            final_url=self._page.url,
            html=html,
            title=title,
            status=previous.status if previous else None,
            etag=previous.etag if previous else None,
            last_modified=previous.last_modified if previous else None,
        )

    async def extract_links(self) -> list[str]:
        try:
            return await self._page.eval_on_selector_all("a[href]", _EXTRACT_LINKS_JS)
        except PlaywrightError:
            log.debug("extract_links_failed", url=self._page.url, exc_info=True)
            return []

    async def close(self) -> None:
        try:
            await self._page.close()
        except PlaywrightError:
            log.debug("page_close_failed", exc_info=True)


class PlaywrightRenderer:
    """RendererProtocol implementation. One browser, one context, many pages."""

    def __init__(
        self,
        *,
        user_agent: str,
        headless: bool = True,
        navigation_timeout: float = 30.0,
        settle_timeout: float = 10.0,
        reveal_timeout: float = 5.0,
    ) -> None:
        self._user_agent = user_agent
        self._headless = headless
        self._navigation_timeout = navigation_timeout
        self._settle_timeout = settle_timeout
        self._reveal_timeout = reveal_timeout

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._start_lock = asyncio.Lock()

    async def _ensure_started(self) -> BrowserContext:
        async with self._start_lock:
            if self._context is not None:
                return self._context
            try:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=self._headless)
                self._context = await self._browser.new_context(user_agent=self._user_agent)
            except Exception as exc:
                await self.close()
                raise UniversalDocsError(
                    code=ErrorCode.RENDERER_UNAVAILABLE,
                    message=f"Headless browser failed to start: {exc}",
                    suggestion="Run 'playwright install chromium' and try again.",
                    recoverable=False,
                ) from exc
            log.info("renderer_started", headless=self._headless)
            return self._context

    async def new_page(self) -> PlaywrightPage:
        context = await self._ensure_started()
        try:
            page = await context.new_page()
        except PlaywrightError as exc:
            raise UniversalDocsError(
                code=ErrorCode.RENDERER_UNAVAILABLE,
                message=f"Could not open a browser page: {exc}",
                suggestion="The browser may have crashed; restart the server.",
                recoverable=False,
            ) from exc
        return PlaywrightPage(
            page,
            navigation_timeout=self._navigation_timeout,
            settle_timeout=self._settle_timeout,
            reveal_timeout=self._reveal_timeout,
        )

    async def close(self) -> None:
        """Tear down context, browser and driver. Safe to call repeatedly."""
        context, browser, playwright = self._context, self._browser, self._playwright
        self._context = self._browser = self._playwright = None
        for closer in (
            context.close if context else None,
            browser.close if browser else None,
            playwright.stop if playwright else None,
        ):
            if closer is None:
                continue
            try:
                await closer()
            except Exception:
                log.debug("renderer_close_failed", exc_info=True)
