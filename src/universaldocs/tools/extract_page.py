"""Tool handler for read_and_extract_page.

Renders one page, persists it (if it passes the minimum-content check) and
returns its Markdown. No MCP or FastMCP imports; server.py handles the MCP
wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from universaldocs.errors import ErrorCode, UniversalDocsError
from universaldocs.models.tools import ExtractPageInput, ExtractPageOutput

if TYPE_CHECKING:
    from universaldocs.state import AppState


async def handle(url: str, version: str, state: AppState) -> dict:
    """Handle a read_and_extract_page tool call."""
    log = structlog.get_logger().bind(tool="read_and_extract_page", url=url)
    log.info("handler_called")

    try:
        validated = ExtractPageInput(url=url, version=version)
    except ValueError as exc:
        raise UniversalDocsError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Provide an absolute http(s) URL (max 2048 chars) and a non-empty version.",
            recoverable=False,
        ) from exc

    markdown = await state.crawler.extract_single(validated.url, validated.version)
    log.info("extract_complete", content_length=len(markdown))

    output = ExtractPageOutput(url=validated.url, version=validated.version, markdown=markdown)
    return output.model_dump(mode="json")
