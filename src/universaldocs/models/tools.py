from __future__ import annotations

from typing import Annotated
from urllib.parse import urlparse

from pydantic import AfterValidator, BaseModel, Field, field_validator

from universaldocs.models.documents import DocumentRecord, SearchResult

MAX_URL_LENGTH = 2048
MAX_QUERY_LENGTH = 500


def _validate_http_url(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("url must not be empty")
    if len(v) > MAX_URL_LENGTH:
        raise ValueError(f"url must be at most {MAX_URL_LENGTH} characters")
    parsed = urlparse(v)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"url must be an absolute http(s) URL, got {v!r}")
    return v


def _validate_version(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("version must not be empty")
    return v


HttpUrl = Annotated[str, AfterValidator(_validate_http_url)]
Version = Annotated[str, AfterValidator(_validate_version)]


class ExtractPageInput(BaseModel):
    url: HttpUrl
    version: Version = "latest"


class ExtractPageOutput(BaseModel):
    url: str
    version: str
    markdown: str  # Empty when extraction was rejected


class CrawlSiteInput(BaseModel):
    start_url: HttpUrl
    max_pages: int = Field(default=10, ge=1, le=5000)
    version: Version = "latest"
    path_filter: str | None = None
    expand_tabs: bool = True

    @field_validator("path_filter")
    @classmethod
    def blank_filter_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


class CrawlComponentsInput(BaseModel):
    index_url: HttpUrl
    max_pages: int = Field(default=200, ge=1, le=5000)
    version: Version = "latest"


class CrawlOutput(BaseModel):
    count: int
    urls: list[str]


class SearchInput(BaseModel):
    query: str
    version: str | None = None

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query must not be empty")
        if len(v) > MAX_QUERY_LENGTH:
            raise ValueError(f"query must be at most {MAX_QUERY_LENGTH} characters")
        return v

    @field_validator("version")
    @classmethod
    def blank_version_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


class SearchOutput(BaseModel):
    results: list[SearchResult]


class GetDocumentInput(BaseModel):
    url: HttpUrl
    version: Version = "latest"


class GetDocumentOutput(BaseModel):
    document: DocumentRecord
