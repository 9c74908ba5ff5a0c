"""Conditional recrawl decisions from stored HTTP validators.

Every doubt resolves toward recrawling: no stored record, no stored validator,
a failed or non-2xx probe, or no comparable validator on both sides all mean
"crawl again". Only a positive validator match skips the page.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog

if TYPE_CHECKING:
    from universaldocs.store import Store

log = structlog.get_logger()


class RecrawlCache:
    def __init__(
        self,
        store: Store,
        client: httpx.AsyncClient,
        *,
        probe_timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._client = client
        self._probe_timeout = probe_timeout

    async def should_crawl(self, url: str, version: str) -> bool:
        """Return False only when a HEAD probe proves the stored copy is current."""
        stored = await self._store.get_cache_headers(url, version)
        if stored is None:
            return True
        if not stored.etag and not stored.last_modified:
            return True

        try:
            response = await self._client.head(url, timeout=self._probe_timeout)
        except httpx.HTTPError as exc:
            log.debug("recrawl_probe_failed", url=url, error=str(exc))
            return True
        if not response.is_success:
            log.debug("recrawl_probe_failed", url=url, status_code=response.status_code)
            return True

        remote_etag = response.headers.get("etag")
        if remote_etag and stored.etag:
            return remote_etag != stored.etag

        remote_last_modified = response.headers.get("last-modified")
        if remote_last_modified and stored.last_modified:
            return remote_last_modified != stored.last_modified

        return True
