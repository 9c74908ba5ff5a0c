"""Tool handler for crawl_documentation_site."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from universaldocs.errors import ErrorCode, UniversalDocsError
from universaldocs.models.tools import CrawlOutput, CrawlSiteInput

if TYPE_CHECKING:
    from universaldocs.state import AppState


async def handle(
    start_url: str,
    max_pages: int,
    version: str,
    path_filter: str | None,
    expand_tabs: bool,
    state: AppState,
) -> dict:
    """Handle a crawl_documentation_site tool call."""
    log = structlog.get_logger().bind(tool="crawl_documentation_site", start_url=start_url)
    log.info("handler_called")

    try:
        validated = CrawlSiteInput(
            start_url=start_url,
            max_pages=max_pages,
            version=version,
            path_filter=path_filter,
            expand_tabs=expand_tabs,
        )
    except ValueError as exc:
        raise UniversalDocsError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Provide an absolute http(s) start URL and max_pages between 1 and 5000.",
            recoverable=False,
        ) from exc

    urls = await state.crawler.crawl_site(
        validated.start_url,
        version=validated.version,
        max_pages=validated.max_pages,
        path_filter=validated.path_filter,
        expand_subtabs=validated.expand_tabs,
    )

    output = CrawlOutput(count=len(urls), urls=urls)
    return output.model_dump(mode="json")
