from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel


class RenderedPage(BaseModel):
    """What the renderer hands back after a navigation."""

    final_url: str  # After redirects
    html: str
    title: str = ""
    status: int | None = None
    etag: str | None = None
    last_modified: str | None = None


class DiscoveryOrigin(StrEnum):
    SEED = "seed"
    SITEMAP = "sitemap"
    LINK = "link"
    SUBTAB = "subtab"


@dataclass(frozen=True)
class FrontierEntry:
    url: str  # Normalised
    origin: DiscoveryOrigin


@dataclass
class VisitResult:
    """Outcome of one visit attempt.

    ``markdown`` is ``None`` when extraction was rejected; the page still
    contributes its links to link discovery.
    """

    url: str
    markdown: str | None
    links: list[str] = field(default_factory=list)
    reused: bool = False  # Served from the store after a recrawl-cache skip

    @property
    def succeeded(self) -> bool:
        return self.markdown is not None
