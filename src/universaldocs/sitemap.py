"""Sitemap discovery.

Tries a few conventional sitemap locations at the site's origin and stops at
the first one that yields URLs. Handles both ``<urlset>`` leaf sitemaps and
``<sitemapindex>`` files (recursing into children up to a depth bound).

Parsing is tolerant regex extraction of ``<loc>`` values rather than strict
XML, so truncated or sloppy markup still yields whatever it can. Unreachable
or malformed sitemaps contribute nothing; this module never raises.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

import httpx
import structlog

log = structlog.get_logger()

SITEMAP_PATHS = ["/sitemap.xml", "/sitemap_index.xml", "/sitemap/sitemap.xml"]
MAX_SITEMAP_URLS = 5000
MAX_SITEMAP_DEPTH = 3

_LOC_RE = re.compile(
    r"<loc[^>]*>\s*<!\[CDATA\[(.*?)\]\]>\s*</loc>|<loc[^>]*>([^<]*)</loc>",
    re.IGNORECASE | re.DOTALL,
)


def extract_locs(xml: str) -> list[str]:
    """Return every non-empty ``<loc>`` value, CDATA-wrapped or plain."""
    values: list[str] = []
    for match in _LOC_RE.finditer(xml):
        value = (match.group(1) or match.group(2) or "").strip()
        if value:
            values.append(value)
    return values


class SitemapResolver:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float = 10.0,
        max_depth: int = MAX_SITEMAP_DEPTH,
        max_urls: int = MAX_SITEMAP_URLS,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._max_depth = max_depth
        self._max_urls = max_urls

    async def discover_urls(self, base_url: str, path_filter: str | None = None) -> list[str]:
        """Return deduplicated page URLs from the site's sitemap, capped at ``max_urls``."""
        parsed = urlparse(base_url)
        origin = f"{parsed.scheme}://{parsed.netloc}"

        # dict keys keep first-seen order
        collected: dict[str, None] = {}
        for path in SITEMAP_PATHS:
            await self._collect(origin + path, collected, path_filter, depth=0)
            if collected:
                break

        urls = list(collected)[: self._max_urls]
        log.info("sitemap_discovered", origin=origin, url_count=len(urls), path_filter=path_filter)
        return urls

    async def _collect(
        self,
        sitemap_url: str,
        collected: dict[str, None],
        path_filter: str | None,
        depth: int,
    ) -> None:
        if depth > self._max_depth or len(collected) >= self._max_urls:
            return

        text = await self._fetch(sitemap_url)
        if text is None:
            return

        if "<sitemapindex" in text:
            for child_url in extract_locs(text):
                await self._collect(child_url, collected, path_filter, depth + 1)
        elif "<urlset" in text:
            for page_url in extract_locs(text):
                page = urlparse(page_url)
                if page.scheme not in ("http", "https") or not page.netloc:
                    continue
                if path_filter and path_filter not in page.path:
                    continue
                collected.setdefault(page_url, None)
        else:
            log.debug("sitemap_unrecognised", url=sitemap_url)

    async def _fetch(self, url: str) -> str | None:
        try:
            response = await self._client.get(url, timeout=self._timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.debug("sitemap_fetch_failed", url=url, error=str(exc))
            return None
        if not response.is_success:
            log.debug("sitemap_fetch_failed", url=url, status_code=response.status_code)
            return None
        return response.text
