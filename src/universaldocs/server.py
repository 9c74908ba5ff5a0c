"""MCP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the FastMCP lifespan context manager
- Register tools
- Start the stdio transport
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import httpx
import structlog
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

import universaldocs.tools.crawl_components as t_crawl_components
import universaldocs.tools.crawl_site as t_crawl_site
import universaldocs.tools.extract_page as t_extract_page
import universaldocs.tools.get_document as t_get_document
import universaldocs.tools.get_stats as t_get_stats
import universaldocs.tools.search_docs as t_search
from universaldocs import DISTRIBUTION_NAME, __version__
from universaldocs.config import Settings
from universaldocs.crawler import Crawler
from universaldocs.errors import UniversalDocsError
from universaldocs.extractor import MarkdownExtractor
from universaldocs.politeness import PolitenessGovernor
from universaldocs.recrawl import RecrawlCache
from universaldocs.renderer import PlaywrightRenderer
from universaldocs.sitemap import SitemapResolver
from universaldocs.state import AppState
from universaldocs.store import Store

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from universaldocs.config import PolitenessSettings

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr; stdout is reserved for the MCP JSON-RPC stream
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def build_http_client(settings: PolitenessSettings) -> httpx.AsyncClient:
    """Create the shared httpx client used for robots, sitemap and header probes."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(30.0),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()
    _setup_logging(settings)

    log.info("server_starting", version=__version__)

    db_path = Path(settings.store.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(db_path))
    store = Store(db, result_limit=settings.search.result_limit)
    await store.init_db()

    http_client = build_http_client(settings.politeness)
    governor = PolitenessGovernor(
        http_client,
        user_agent=settings.politeness.user_agent,
        default_delay_ms=settings.politeness.default_delay_ms,
        robots_timeout=settings.politeness.robots_timeout_seconds,
    )
    recrawl = RecrawlCache(store, http_client, probe_timeout=settings.recrawl.probe_timeout_seconds)
    sitemap = SitemapResolver(
        http_client,
        timeout=settings.sitemap.timeout_seconds,
        max_depth=settings.sitemap.max_depth,
        max_urls=settings.sitemap.max_urls,
    )
    # The browser itself is launched on the first crawl, not here
    renderer = PlaywrightRenderer(
        user_agent=settings.politeness.user_agent,
        headless=settings.crawler.headless,
        navigation_timeout=settings.crawler.navigation_timeout_seconds,
        settle_timeout=settings.crawler.settle_timeout_seconds,
        reveal_timeout=settings.crawler.reveal_timeout_seconds,
    )
    extractor = MarkdownExtractor()
    crawler = Crawler(
        renderer=renderer,
        extractor=extractor,
        store=store,
        governor=governor,
        recrawl=recrawl,
        sitemap=sitemap,
        settings=settings.crawler,
    )

    state = AppState(
        settings=settings,
        store=store,
        crawler=crawler,
        http_client=http_client,
        governor=governor,
        recrawl=recrawl,
        sitemap=sitemap,
        renderer=renderer,
        extractor=extractor,
    )

    log.info("server_started", version=__version__, db_path=str(db_path))

    try:
        yield state
    finally:
        await renderer.close()
        await http_client.aclose()
        await db.close()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# FastMCP instance and tool registration
# ---------------------------------------------------------------------------

mcp = FastMCP(DISTRIBUTION_NAME, lifespan=lifespan)
# FastMCP doesn't expose a version kwarg, so set it on the underlying Server
# so the MCP initialize handshake reports our version, not the SDK's.
mcp._mcp_server.version = __version__  # pyright: ignore[reportPrivateUsage]


def _serialise_tool_error(error: UniversalDocsError) -> CallToolResult:
    """Convert a UniversalDocsError to the MCP tool error result envelope."""
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(error.to_dict()))],
        isError=True,
    )


def _log_tool_error(tool: str, exc: UniversalDocsError) -> None:
    log.warning(
        "tool_error",
        tool=tool,
        code=exc.code,
        message=exc.message,
        recoverable=exc.recoverable,
    )


@mcp.tool()
async def read_and_extract_page(url: str, ctx: Context, version: str = "latest") -> object:
    """Render a single documentation page, store it, and return its Markdown.

    JavaScript-rendered pages are supported. Returns an empty markdown string
    when the page has too little content to be worth indexing.
    """
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_extract_page.handle(url, version, state)
    except UniversalDocsError as exc:
        _log_tool_error("read_and_extract_page", exc)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="read_and_extract_page", exc_info=True)
        raise


@mcp.tool()
async def crawl_documentation_site(
    start_url: str,
    ctx: Context,
    max_pages: int = 10,
    version: str = "latest",
    path_filter: str | None = None,
    expand_tabs: bool = True,
) -> object:
    """Crawl a documentation site breadth-first from start_url and index every page.

    Seeds from the site's sitemap, follows same-host links, and optionally
    expands component sub-tabs (usage, examples, api, ...). path_filter keeps
    only URLs whose path contains the given substring.
    """
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_crawl_site.handle(start_url, max_pages, version, path_filter, expand_tabs, state)
    except UniversalDocsError as exc:
        _log_tool_error("crawl_documentation_site", exc)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="crawl_documentation_site", exc_info=True)
        raise


@mcp.tool()
async def crawl_component_docs(
    index_url: str,
    ctx: Context,
    max_pages: int = 200,
    version: str = "latest",
) -> object:
    """Crawl every component linked from a component-library index page.

    Each component's sub-tab pages are crawled too, using a small pool of
    concurrent browser pages.
    """
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_crawl_components.handle(index_url, max_pages, version, state)
    except UniversalDocsError as exc:
        _log_tool_error("crawl_component_docs", exc)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="crawl_component_docs", exc_info=True)
        raise


@mcp.tool()
async def search_crawled_docs(query: str, ctx: Context, version: str | None = None) -> object:
    """Full-text search over every crawled page, ranked by relevance.

    All query words must match. Each result carries the section's heading
    path so you can see where in the page it came from.
    """
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_search.handle(query, version, state)
    except UniversalDocsError as exc:
        _log_tool_error("search_crawled_docs", exc)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="search_crawled_docs", exc_info=True)
        raise


@mcp.tool()
async def get_document(url: str, ctx: Context, version: str = "latest") -> object:
    """Return the full stored Markdown and metadata for a crawled page."""
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_get_document.handle(url, version, state)
    except UniversalDocsError as exc:
        _log_tool_error("get_document", exc)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="get_document", exc_info=True)
        raise


@mcp.tool()
async def get_stats(ctx: Context) -> object:
    """Return the number of stored documents and indexed chunks."""
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_get_stats.handle(state)
    except UniversalDocsError as exc:
        _log_tool_error("get_stats", exc)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="get_stats", exc_info=True)
        raise


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
