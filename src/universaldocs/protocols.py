"""Protocol interfaces for the crawler's external collaborators.

The crawler references these protocols, not Playwright or BeautifulSoup
directly. This allows:
- Tests to drive the crawler with in-memory fake pages
- A different rendering engine or extraction strategy without touching crawler.py
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from universaldocs.models.crawl import RenderedPage
    from universaldocs.profiles import SiteProfile


class PageHandleProtocol(Protocol):
    """One renderer tab. Owned by a single worker for its lifetime."""

    async def goto(self, url: str) -> RenderedPage:
        """Navigate and wait (best effort) for the page to settle.

        Raises UniversalDocsError(NAVIGATION_FAILED) on navigation timeout or
        an HTTP error status.
        """
        ...

    async def reveal_hidden(self) -> None:
        """Open disclosure controls before content is read. Never raises."""
        ...

    async def snapshot(self) -> RenderedPage:
        """Re-read the current DOM (html + title) without navigating."""
        ...

    async def extract_links(self) -> list[str]:
        """Absolute hrefs of every anchor on the current page."""
        ...

    async def close(self) -> None: ...


class RendererProtocol(Protocol):
    """Headless rendering engine."""

    async def new_page(self) -> PageHandleProtocol:
        """Open a page handle. Raises UniversalDocsError(RENDERER_UNAVAILABLE)
        if the engine itself cannot start."""
        ...

    async def close(self) -> None: ...


class ExtractorProtocol(Protocol):
    """HTML → Markdown content extraction."""

    def extract(self, html: str, url: str, profile: SiteProfile | None = None) -> str: ...
