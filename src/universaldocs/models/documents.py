from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class DocumentRecord(BaseModel):
    """One crawled page, keyed by (url, version)."""

    url: str
    version: str
    domain: str  # Hostname of the url
    title: str
    markdown: str  # Full extracted page markdown
    etag: str | None = None
    last_modified: str | None = None
    crawled_at: datetime


class CacheHeaders(BaseModel):
    """Response validators stored alongside a document for recrawl decisions."""

    etag: str | None = None
    last_modified: str | None = None


class Chunk(BaseModel):
    """A heading-addressed section of a document."""

    heading_path: list[str]  # e.g. ["Authentication", "OAuth2 Flow"]; [] for preamble
    content: str


class SearchResult(BaseModel):
    url: str
    version: str
    title: str  # Document title, or the url when no title is on record
    heading_path: list[str]
    content: str
    score: float  # Higher is more relevant


class StoreStats(BaseModel):
    document_count: int
    chunk_count: int
