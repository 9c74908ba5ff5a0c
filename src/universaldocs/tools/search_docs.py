"""Tool handler for search_crawled_docs.

An unmatched query returns an empty result list, never an error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from universaldocs.errors import ErrorCode, UniversalDocsError
from universaldocs.models.tools import SearchInput, SearchOutput

if TYPE_CHECKING:
    from universaldocs.state import AppState


async def handle(query: str, version: str | None, state: AppState) -> dict:
    """Handle a search_crawled_docs tool call."""
    log = structlog.get_logger().bind(tool="search_crawled_docs", query=query)
    log.info("handler_called")

    try:
        validated = SearchInput(query=query, version=version)
    except ValueError as exc:
        raise UniversalDocsError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Provide a non-empty search query (max 500 chars).",
            recoverable=False,
        ) from exc

    results = await state.store.search(validated.query, validated.version)
    log.info("search_complete", result_count=len(results))

    output = SearchOutput(results=results)
    return output.model_dump(mode="json")
