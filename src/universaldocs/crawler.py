"""Crawl scheduling: frontier, visit lifecycle and the two crawl modes.

Breadth-first mode (``crawl_site``) runs one page at a time because link
discovery keeps extending the same queue against the same discovered set.
Component mode (``crawl_component_index``) knows its whole queue up front, so
it drains it with a small worker pool, one renderer page per worker.

Every visit goes through ``_visit``: robots check, recrawl check, politeness
delay, render, extract, persist. Per-page failures are logged and skipped;
only RENDERER_UNAVAILABLE escapes a crawl.
"""

from __future__ import annotations

import asyncio
import re
from collections import deque
from typing import TYPE_CHECKING
from urllib.parse import urldefrag, urljoin, urlparse, urlunparse

import structlog

from universaldocs.chunker import chunk_markdown
from universaldocs.errors import ErrorCode, UniversalDocsError
from universaldocs.models.crawl import DiscoveryOrigin, FrontierEntry, VisitResult
from universaldocs.profiles import get_profile

if TYPE_CHECKING:
    from universaldocs.config import CrawlerSettings
    from universaldocs.models.crawl import RenderedPage
    from universaldocs.politeness import PolitenessGovernor
    from universaldocs.protocols import ExtractorProtocol, PageHandleProtocol, RendererProtocol
    from universaldocs.recrawl import RecrawlCache
    from universaldocs.sitemap import SitemapResolver
    from universaldocs.store import Store

log = structlog.get_logger()

_ASSET_EXTENSIONS = frozenset(
    {
        ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico",
        ".pdf", ".zip", ".gz", ".tar", ".css", ".js", ".json", ".xml",
        ".woff", ".woff2", ".ttf", ".mp4", ".mp3", ".webm",
    }
)  # fmt: skip

_MARKDOWN_LINK_RE = re.compile(r"\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
_AUTOLINK_RE = re.compile(r"<(https?://[^>\s]+)>")


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


def normalize_url(url: str) -> str:
    """Drop the fragment and any trailing slash: the dedup key for a page."""
    url, _fragment = urldefrag(url.strip())
    parsed = urlparse(url)
    return urlunparse(parsed._replace(path=parsed.path.rstrip("/")))


def _is_crawlable(url: str, hostname: str | None) -> bool:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or parsed.hostname != hostname:
        return False
    last_segment = parsed.path.rsplit("/", 1)[-1].lower()
    dot = last_segment.rfind(".")
    return dot == -1 or last_segment[dot:] not in _ASSET_EXTENSIONS


def subtab_variants(url: str, suffixes: list[str]) -> list[str]:
    """``url`` with each sub-tab suffix appended as a path segment.

    URLs that already end in one of the suffixes have no variants.
    """
    parsed = urlparse(normalize_url(url))
    path = parsed.path
    if path.rsplit("/", 1)[-1] in suffixes:
        return []
    return [urlunparse(parsed._replace(path=f"{path}/{suffix}", query="")) for suffix in suffixes]


def links_from_markdown(markdown: str, base_url: str) -> list[str]:
    """Absolute targets of the inline links and autolinks in ``markdown``."""
    targets = _MARKDOWN_LINK_RE.findall(markdown) + _AUTOLINK_RE.findall(markdown)
    return [urljoin(base_url, target) for target in targets]


def derive_component_bases(
    index_url: str,
    links: list[str],
    *,
    min_segments: int = 1,
    max_segments: int = 2,
) -> list[str]:
    """Reduce the links found on a component index page to component base URLs.

    A link qualifies when, after dropping a trailing ``/index`` segment, its
    path sits strictly under the index page's path with between
    ``min_segments`` and ``max_segments`` remaining segments. The base URL is
    the index path plus the first remaining segment, so ``/components/button``
    and ``/components/button/usage`` both reduce to ``/components/button``.
    Order of first appearance is kept; duplicates are dropped.
    """
    index = urlparse(normalize_url(index_url))
    index_segments = [s for s in index.path.split("/") if s]
    if index_segments and index_segments[-1] == "index":
        index_segments.pop()

    bases: dict[str, None] = {}
    for link in links:
        parsed = urlparse(normalize_url(link))
        if parsed.scheme not in ("http", "https") or parsed.hostname != index.hostname:
            continue
        segments = [s for s in parsed.path.split("/") if s]
        if segments and segments[-1] == "index":
            segments.pop()
        if segments[: len(index_segments)] != index_segments:
            continue
        remainder = segments[len(index_segments) :]
        if not remainder or not min_segments <= len(remainder) <= max_segments:
            continue
        base_path = "/" + "/".join([*index_segments, remainder[0]])
        bases.setdefault(urlunparse((parsed.scheme, parsed.netloc, base_path, "", "", "")), None)
    return list(bases)


def build_component_queue(bases: list[str], suffixes: list[str]) -> list[str]:
    """Every base URL followed by its sub-tab variants. Not deduplicated."""
    queue: list[str] = []
    for base in bases:
        queue.append(base)
        queue.extend(f"{base.rstrip('/')}/{suffix}" for suffix in suffixes)
    return queue


# ---------------------------------------------------------------------------
# Crawler
# ---------------------------------------------------------------------------


class Crawler:
    """Drives the renderer, extractor, politeness and recrawl checks, and the store."""

    def __init__(
        self,
        *,
        renderer: RendererProtocol,
        extractor: ExtractorProtocol,
        store: Store,
        governor: PolitenessGovernor,
        recrawl: RecrawlCache,
        sitemap: SitemapResolver,
        settings: CrawlerSettings,
    ) -> None:
        self._renderer = renderer
        self._extractor = extractor
        self._store = store
        self._governor = governor
        self._recrawl = recrawl
        self._sitemap = sitemap
        self._settings = settings

    def _suffixes_for(self, url: str) -> list[str]:
        return get_profile(url).sub_tab_suffixes or self._settings.subtab_suffixes

    # ------------------------------------------------------------------
    # Breadth-first mode
    # ------------------------------------------------------------------

    async def crawl_site(
        self,
        start_url: str,
        version: str = "latest",
        max_pages: int | None = None,
        path_filter: str | None = None,
        expand_subtabs: bool | None = None,
    ) -> list[str]:
        """Crawl a site breadth-first from ``start_url``.

        Returns the URLs whose extraction produced content, in visit order.
        """
        max_pages = max_pages or self._settings.default_max_pages
        expand = self._settings.expand_subtabs if expand_subtabs is None else expand_subtabs
        start = normalize_url(start_url)
        hostname = urlparse(start).hostname
        suffixes = self._suffixes_for(start)
        crawl_log = log.bind(start_url=start, version=version)
        crawl_log.info("crawl_started", mode="site", max_pages=max_pages, path_filter=path_filter)

        frontier: deque[FrontierEntry] = deque()
        discovered: set[str] = set()

        def enqueue(url: str, origin: DiscoveryOrigin) -> None:
            if url in discovered:
                return
            discovered.add(url)
            frontier.append(FrontierEntry(url=url, origin=origin))

        enqueue(start, DiscoveryOrigin.SEED)
        sitemap_urls = await self._sitemap.discover_urls(start, path_filter)
        for url in sitemap_urls[: max_pages * self._settings.sitemap_seed_multiplier]:
            candidate = normalize_url(url)
            if _is_crawlable(candidate, hostname):
                enqueue(candidate, DiscoveryOrigin.SITEMAP)
        if expand:
            for entry in list(frontier):
                for variant in subtab_variants(entry.url, suffixes):
                    enqueue(variant, DiscoveryOrigin.SUBTAB)

        crawled: list[str] = []
        attempts = 0
        max_attempts = max_pages * self._settings.visit_attempt_multiplier
        page = await self._renderer.new_page()
        try:
            while frontier and len(crawled) < max_pages:
                if attempts >= max_attempts:
                    crawl_log.warning(
                        "crawl_attempt_limit_reached", attempts=attempts, crawled=len(crawled)
                    )
                    break
                entry = frontier.popleft()
                attempts += 1
                result = await self._visit(page, entry.url, version)
                if result is None:
                    continue
                if result.succeeded:
                    crawled.append(entry.url)

                for link in result.links:
                    candidate = normalize_url(link)
                    if not _is_crawlable(candidate, hostname):
                        continue
                    if path_filter and path_filter not in urlparse(candidate).path:
                        continue
                    enqueue(candidate, DiscoveryOrigin.LINK)
                if expand:
                    for variant in subtab_variants(entry.url, suffixes):
                        enqueue(variant, DiscoveryOrigin.SUBTAB)
        finally:
            await page.close()

        crawl_log.info(
            "crawl_complete",
            mode="site",
            attempts=attempts,
            crawled=len(crawled),
            remaining=len(frontier),
        )
        return crawled

    # ------------------------------------------------------------------
    # Component mode
    # ------------------------------------------------------------------

    async def crawl_component_index(
        self,
        index_url: str,
        version: str = "latest",
        max_pages: int | None = None,
        *,
        min_segments: int | None = None,
        max_segments: int | None = None,
        concurrency: int | None = None,
    ) -> list[str]:
        """Crawl every component (and its sub-tabs) linked from an index page."""
        max_pages = max_pages or self._settings.component_max_pages
        concurrency = max(1, self._settings.component_concurrency if concurrency is None else concurrency)
        if min_segments is None:
            min_segments = self._settings.component_min_segments
        if max_segments is None:
            max_segments = self._settings.component_max_segments
        index = normalize_url(index_url)
        suffixes = self._suffixes_for(index)
        crawl_log = log.bind(index_url=index, version=version)
        crawl_log.info("crawl_started", mode="components", max_pages=max_pages)

        pages: list[PageHandleProtocol] = []
        try:
            pages.append(await self._renderer.new_page())
            links = await self._index_links(pages[0], index)
            bases = derive_component_bases(
                index,
                links,
                min_segments=min_segments,
                max_segments=max_segments,
            )
            work = build_component_queue(bases, suffixes)
            crawl_log.info("component_queue_built", base_count=len(bases), queue_size=len(work))

            while len(pages) < concurrency:
                pages.append(await self._renderer.new_page())
            crawled = await self._drain(pages, work, version, max_pages)
        finally:
            for page in pages:
                await page.close()

        crawl_log.info("crawl_complete", mode="components", crawled=len(crawled))
        return crawled

    async def _index_links(self, page: PageHandleProtocol, index_url: str) -> list[str]:
        """Render the index page once and return its links. Not persisted."""
        if not await self._governor.is_allowed(index_url):
            log.info("page_disallowed_by_robots", url=index_url)
            return []
        await self._governor.enforce_delay(index_url)
        try:
            await self._render(page, index_url)
        except UniversalDocsError as exc:
            if exc.code == ErrorCode.RENDERER_UNAVAILABLE:
                raise
            log.warning("index_render_failed", url=index_url, code=exc.code, message=exc.message)
            return []
        return await page.extract_links()

    async def _drain(
        self,
        pages: list[PageHandleProtocol],
        work: list[str],
        version: str,
        max_pages: int,
    ) -> list[str]:
        queue: asyncio.Queue[str] = asyncio.Queue()
        for url in work:
            queue.put_nowait(url)

        visited: set[str] = set()
        crawled: list[str] = []

        # One worker per page, so at most len(pages) renders are in flight
        async def worker(page: PageHandleProtocol) -> None:
            while len(crawled) < max_pages:
                try:
                    url = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                key = normalize_url(url)
                # Check and claim with no await in between
                if key in visited:
                    continue
                visited.add(key)
                result = await self._visit(page, key, version, discover_links=False)
                if result is not None and result.succeeded and len(crawled) < max_pages:
                    crawled.append(key)

        tasks = [asyncio.create_task(worker(page)) for page in pages]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        return crawled

    # ------------------------------------------------------------------
    # Single-page mode
    # ------------------------------------------------------------------

    async def extract_single(self, url: str, version: str = "latest") -> str:
        """Visit one page, persist it, and return its Markdown ("" if rejected)."""
        key = normalize_url(url)
        page = await self._renderer.new_page()
        try:
            result = await self._visit(page, key, version, discover_links=False)
        finally:
            await page.close()
        if result is None or result.markdown is None:
            return ""
        return result.markdown

    # ------------------------------------------------------------------
    # Visit primitive
    # ------------------------------------------------------------------

    async def _render(self, page: PageHandleProtocol, url: str) -> RenderedPage:
        await page.goto(url)
        await page.reveal_hidden()
        return await page.snapshot()

    async def _visit(
        self,
        page: PageHandleProtocol,
        url: str,
        version: str,
        *,
        discover_links: bool = True,
    ) -> VisitResult | None:
        """Visit one page. Returns ``None`` when the page was not rendered at all."""
        visit_log = log.bind(url=url, version=version)

        if not await self._governor.is_allowed(url):
            visit_log.info("page_disallowed_by_robots")
            return None

        if not await self._recrawl.should_crawl(url, version):
            stored = await self._store.get_document(url, version)
            if stored is not None:
                visit_log.info("page_unchanged")
                links = links_from_markdown(stored.markdown, url) if discover_links else []
                return VisitResult(url=url, markdown=stored.markdown, links=links, reused=True)

        await self._governor.enforce_delay(url)
        try:
            rendered = await self._render(page, url)
        except UniversalDocsError as exc:
            if exc.code == ErrorCode.RENDERER_UNAVAILABLE:
                raise
            visit_log.warning("page_render_failed", code=exc.code, message=exc.message)
            return None
        except Exception:
            visit_log.warning("page_render_failed", exc_info=True)
            return None

        links = await page.extract_links() if discover_links else []

        try:
            markdown = self._extractor.extract(rendered.html, rendered.final_url)
        except Exception:
            visit_log.warning("page_extract_failed", exc_info=True)
            return VisitResult(url=url, markdown=None, links=links)

        content_length = len(markdown.strip())
        if content_length < self._settings.min_content_length:
            visit_log.info("extraction_empty", content_length=content_length)
            return VisitResult(url=url, markdown=None, links=links)

        try:
            await self._persist(url, version, rendered, markdown)
        except UniversalDocsError as exc:
            visit_log.warning("page_store_failed", code=exc.code, message=exc.message)
            return VisitResult(url=url, markdown=None, links=links)

        return VisitResult(url=url, markdown=markdown, links=links)

    async def _persist(self, url: str, version: str, rendered: RenderedPage, markdown: str) -> None:
        chunks = chunk_markdown(markdown)
        changed = await self._store.save_page(
            url=url,
            version=version,
            domain=urlparse(url).hostname or "",
            title=rendered.title,
            markdown=markdown,
            chunks=chunks,
            etag=rendered.etag,
            last_modified=rendered.last_modified,
        )
        if not changed:
            log.info("page_crawled", url=url, version=version, changed=False)
            return
        log.info("page_crawled", url=url, version=version, changed=True, chunk_count=len(chunks))
