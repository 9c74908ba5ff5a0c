from __future__ import annotations

from universaldocs.models.crawl import DiscoveryOrigin, FrontierEntry, RenderedPage, VisitResult
from universaldocs.models.documents import (
    CacheHeaders,
    Chunk,
    DocumentRecord,
    SearchResult,
    StoreStats,
)
from universaldocs.models.tools import (
    CrawlComponentsInput,
    CrawlOutput,
    CrawlSiteInput,
    ExtractPageInput,
    ExtractPageOutput,
    GetDocumentInput,
    GetDocumentOutput,
    SearchInput,
    SearchOutput,
)

__all__ = [
    # documents
    "DocumentRecord",
    "CacheHeaders",
    "Chunk",
    "SearchResult",
    "StoreStats",
    # crawl
    "RenderedPage",
    "DiscoveryOrigin",
    "FrontierEntry",
    "VisitResult",
    # tools
    "ExtractPageInput",
    "ExtractPageOutput",
    "CrawlSiteInput",
    "CrawlComponentsInput",
    "CrawlOutput",
    "SearchInput",
    "SearchOutput",
    "GetDocumentInput",
    "GetDocumentOutput",
]
