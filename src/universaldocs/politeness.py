"""Per-hostname robots.txt policy and crawl-delay enforcement.

The governor is an explicit state object owned by the crawler: one robots.txt
fetch per hostname for its lifetime, one crawl delay per hostname, and the
time of the last request to each hostname. ``reset()`` clears all three.

Failure policy is fail-open: an unreachable, non-2xx or unparsable robots.txt
is cached as "no policy" and every URL on that host is allowed.
"""

from __future__ import annotations

import asyncio
import time
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

import httpx
import structlog

log = structlog.get_logger()

DEFAULT_CRAWL_DELAY_MS = 500


def _origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


class PolitenessGovernor:
    """robots.txt cache and per-hostname rate limiter."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        user_agent: str,
        default_delay_ms: int = DEFAULT_CRAWL_DELAY_MS,
        robots_timeout: float = 5.0,
    ) -> None:
        self._client = client
        self._user_agent = user_agent
        self._default_delay = default_delay_ms / 1000
        self._robots_timeout = robots_timeout

        # hostname → parsed policy (None = no policy, allow all)
        self._policies: dict[str, RobotFileParser | None] = {}
        # hostname → minimum seconds between requests
        self._delays: dict[str, float] = {}
        # hostname → time.monotonic() of the last request
        self._last_request: dict[str, float] = {}
        # hostname → lock serialising policy loads and delay bookkeeping
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, hostname: str) -> asyncio.Lock:
        lock = self._locks.get(hostname)
        if lock is None:
            lock = self._locks[hostname] = asyncio.Lock()
        return lock

    async def _load_policy(self, url: str) -> RobotFileParser | None:
        hostname = urlparse(url).hostname or ""
        if hostname in self._policies:
            return self._policies[hostname]

        async with self._lock_for(hostname):
            # Another worker may have loaded it while we waited
            if hostname in self._policies:
                return self._policies[hostname]

            robots_url = f"{_origin(url)}/robots.txt"
            policy = await self._fetch_policy(robots_url)
            self._policies[hostname] = policy
            self._delays[hostname] = self._delay_from(policy)
            log.debug(
                "robots_loaded",
                hostname=hostname,
                has_policy=policy is not None,
                delay_seconds=self._delays[hostname],
            )
            return policy

    async def _fetch_policy(self, robots_url: str) -> RobotFileParser | None:
        try:
            response = await self._client.get(
                robots_url,
                headers={"User-Agent": self._user_agent},
                timeout=self._robots_timeout,
            )
        except httpx.HTTPError as exc:
            log.info("robots_fetch_failed", url=robots_url, error=str(exc))
            return None

        if not response.is_success:
            log.debug("robots_missing", url=robots_url, status_code=response.status_code)
            return None

        try:
            parser = RobotFileParser(robots_url)
            parser.parse(response.text.splitlines())
        except Exception:
            log.warning("robots_malformed", url=robots_url, exc_info=True)
            return None
        return parser

    def _delay_from(self, policy: RobotFileParser | None) -> float:
        """Crawl delay in seconds: our agent's directive, else the wildcard, else the default."""
        if policy is None:
            return self._default_delay
        directive = policy.crawl_delay(self._user_agent)
        if directive is None:
            directive = policy.crawl_delay("*")
        if directive is None:
            return self._default_delay
        return max(float(directive), self._default_delay)

    async def is_allowed(self, url: str) -> bool:
        """Return False only when the host's robots.txt explicitly disallows ``url``."""
        policy = await self._load_policy(url)
        if policy is None:
            return True
        return policy.can_fetch(self._user_agent, url)

    async def enforce_delay(self, url: str) -> None:
        """Sleep until the host's crawl delay has elapsed, then record this request."""
        hostname = urlparse(url).hostname or ""
        await self._load_policy(url)
        delay = self._delays.get(hostname, self._default_delay)

        # Holding the lock across the sleep queues workers hitting the same host
        async with self._lock_for(hostname):
            last = self._last_request.get(hostname)
            if last is not None:
                remaining = delay - (time.monotonic() - last)
                if remaining > 0:
                    await asyncio.sleep(remaining)
            self._last_request[hostname] = time.monotonic()

    def reset(self) -> None:
        """Forget all cached policies, delays and request times."""
        self._policies.clear()
        self._delays.clear()
        self._last_request.clear()
        self._locks.clear()
