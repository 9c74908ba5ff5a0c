"""Tool handler for get_document."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from universaldocs.crawler import normalize_url
from universaldocs.errors import ErrorCode, UniversalDocsError
from universaldocs.models.tools import GetDocumentInput, GetDocumentOutput

if TYPE_CHECKING:
    from universaldocs.state import AppState


async def handle(url: str, version: str, state: AppState) -> dict:
    """Handle a get_document tool call."""
    log = structlog.get_logger().bind(tool="get_document", url=url)
    log.info("handler_called")

    try:
        validated = GetDocumentInput(url=url, version=version)
    except ValueError as exc:
        raise UniversalDocsError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Provide an absolute http(s) URL and a non-empty version.",
            recoverable=False,
        ) from exc

    # Documents are stored under the normalised URL
    document = await state.store.get_document(normalize_url(validated.url), validated.version)
    if document is None:
        raise UniversalDocsError(
            code=ErrorCode.DOCUMENT_NOT_FOUND,
            message=f"No document stored for {validated.url} (version {validated.version!r})",
            suggestion="Crawl the page first with read_and_extract_page or a crawl tool.",
            recoverable=False,
        )

    output = GetDocumentOutput(document=document)
    return output.model_dump(mode="json")
