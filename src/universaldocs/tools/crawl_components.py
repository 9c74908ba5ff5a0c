"""Tool handler for crawl_component_docs."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from universaldocs.errors import ErrorCode, UniversalDocsError
from universaldocs.models.tools import CrawlComponentsInput, CrawlOutput

if TYPE_CHECKING:
    from universaldocs.state import AppState


async def handle(index_url: str, max_pages: int, version: str, state: AppState) -> dict:
    """Handle a crawl_component_docs tool call."""
    log = structlog.get_logger().bind(tool="crawl_component_docs", index_url=index_url)
    log.info("handler_called")

    try:
        validated = CrawlComponentsInput(index_url=index_url, max_pages=max_pages, version=version)
    except ValueError as exc:
        raise UniversalDocsError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Provide the absolute http(s) URL of a component index page.",
            recoverable=False,
        ) from exc

    urls = await state.crawler.crawl_component_index(
        validated.index_url,
        version=validated.version,
        max_pages=validated.max_pages,
    )

    output = CrawlOutput(count=len(urls), urls=urls)
    return output.model_dump(mode="json")
