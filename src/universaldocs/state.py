"""Application state container.

AppState is created once at server startup (inside the FastMCP lifespan context
manager) and injected into every tool handler via the MCP Context object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from universaldocs.config import Settings
    from universaldocs.crawler import Crawler
    from universaldocs.politeness import PolitenessGovernor
    from universaldocs.protocols import ExtractorProtocol, RendererProtocol
    from universaldocs.recrawl import RecrawlCache
    from universaldocs.sitemap import SitemapResolver
    from universaldocs.store import Store


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every tool handler."""

    settings: Settings
    store: Store
    crawler: Crawler

    # Collaborators the crawler was built from; kept for teardown and tests
    http_client: httpx.AsyncClient | None = None
    governor: PolitenessGovernor | None = None
    recrawl: RecrawlCache | None = None
    sitemap: SitemapResolver | None = None
    renderer: RendererProtocol | None = None
    extractor: ExtractorProtocol | None = None
