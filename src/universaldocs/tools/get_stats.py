"""Tool handler for get_stats."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from universaldocs.state import AppState


async def handle(state: AppState) -> dict:
    """Handle a get_stats tool call."""
    structlog.get_logger().bind(tool="get_stats").info("handler_called")
    stats = await state.store.stats()
    return stats.model_dump(mode="json")
