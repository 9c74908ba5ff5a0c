"""Shared test fixtures for the universal-docs test suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import aiosqlite
import httpx
import pytest
import respx

from universaldocs.config import CrawlerSettings
from universaldocs.crawler import Crawler
from universaldocs.errors import ErrorCode, UniversalDocsError
from universaldocs.extractor import MarkdownExtractor
from universaldocs.models.crawl import RenderedPage
from universaldocs.politeness import PolitenessGovernor
from universaldocs.recrawl import RecrawlCache
from universaldocs.sitemap import SitemapResolver
from universaldocs.store import Store

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable, Iterator

LOREM = (
    "This page documents the component in enough detail to pass the minimum "
    "content threshold used by the crawler before persisting anything."
)


def doc_html(title: str, body: str = LOREM, links: list[str] | None = None) -> str:
    """A small documentation page: a nav bar (noise) and a main article listing ``links``."""
    items = "".join(f'<li><a href="{href}">{href}</a></li>' for href in links or [])
    return (
        f"<html><head><title>{title}</title></head><body>"
        '<nav><a href="/">Home</a></nav>'
        f"<main><h1>{title}</h1><p>{body}</p><ul>{items}</ul></main>"
        "</body></html>"
    )


# ---------------------------------------------------------------------------
# Fake renderer
# ---------------------------------------------------------------------------


@dataclass
class FakeSitePage:
    html: str
    links: list[str] = field(default_factory=list)
    title: str = ""
    etag: str | None = None


@dataclass
class FakeSite:
    """In-memory website served by FakeRenderer. Keys are normalised URLs."""

    pages: dict[str, FakeSitePage] = field(default_factory=dict)
    visits: list[str] = field(default_factory=list)
    closed_pages: int = 0

    def add(
        self,
        url: str,
        title: str,
        *,
        links: list[str] | None = None,
        body: str = LOREM,
        etag: str | None = None,
    ) -> None:
        self.pages[url] = FakeSitePage(
            html=doc_html(title, body, links),
            links=list(links or []),
            title=title,
            etag=etag,
        )


class FakePage:
    def __init__(self, site: FakeSite) -> None:
        self._site = site
        self._current: RenderedPage | None = None
        self._links: list[str] = []

    async def goto(self, url: str) -> RenderedPage:
        self._site.visits.append(url)
        page = self._site.pages.get(url)
        if page is None:
            raise UniversalDocsError(
                code=ErrorCode.NAVIGATION_FAILED,
                message=f"HTTP 404 rendering {url}",
                suggestion="",
                recoverable=False,
            )
        self._links = page.links
        self._current = RenderedPage(
            final_url=url,
            html=page.html,
            title=page.title,
            status=200,
            etag=page.etag,
        )
        return self._current

    async def reveal_hidden(self) -> None:
        return None

    async def snapshot(self) -> RenderedPage:
        assert self._current is not None
        return self._current

    async def extract_links(self) -> list[str]:
        return list(self._links)

    async def close(self) -> None:
        self._site.closed_pages += 1


class FakeRenderer:
    def __init__(self, site: FakeSite, *, fail_start: bool = False) -> None:
        self.site = site
        self.fail_start = fail_start
        self.pages_opened = 0

    async def new_page(self) -> FakePage:
        if self.fail_start:
            raise UniversalDocsError(
                code=ErrorCode.RENDERER_UNAVAILABLE,
                message="Headless browser failed to start",
                suggestion="Run 'playwright install chromium' and try again.",
                recoverable=False,
            )
        self.pages_opened += 1
        return FakePage(self.site)

    async def close(self) -> None:
        return None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
async def store() -> AsyncGenerator[Store, None]:
    """Store over a disposable in-memory database."""
    async with aiosqlite.connect(":memory:") as db:
        s = Store(db)
        await s.init_db()
        yield s


@pytest.fixture()
def mock_http() -> Iterator[respx.MockRouter]:
    """respx router where anything without an explicit route gets an empty 200."""
    with respx.mock(assert_all_called=False, assert_all_mocked=False) as router:
        yield router


@pytest.fixture()
async def http_client(mock_http: respx.MockRouter) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture()
def renderer(site: FakeSite) -> FakeRenderer:
    return FakeRenderer(site)


@pytest.fixture()
def failing_renderer(site: FakeSite) -> FakeRenderer:
    """Renderer whose engine never starts."""
    return FakeRenderer(site, fail_start=True)


@pytest.fixture()
def make_crawler(
    renderer: FakeRenderer,
    store: Store,
    http_client: httpx.AsyncClient,
) -> Callable[..., Crawler]:
    """Factory for a Crawler over the fake site, with no politeness delay."""

    def _make(*, renderer_override: FakeRenderer | None = None, **settings: object) -> Crawler:
        governor = PolitenessGovernor(http_client, user_agent="universal-docs-test", default_delay_ms=0)
        return Crawler(
            renderer=renderer_override or renderer,
            extractor=MarkdownExtractor(),
            store=store,
            governor=governor,
            recrawl=RecrawlCache(store, http_client),
            sitemap=SitemapResolver(http_client),
            settings=CrawlerSettings(**settings),
        )

    return _make
