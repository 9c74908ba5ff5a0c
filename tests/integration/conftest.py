"""Integration test fixtures.

Provides a fully wired AppState: in-memory SQLite, respx-mocked HTTP client
and a crawler over the in-memory fake site from tests/conftest.py.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from universaldocs.config import Settings
from universaldocs.state import AppState

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    import httpx

    from universaldocs.crawler import Crawler
    from universaldocs.store import Store


@pytest.fixture()
def subprocess_env(tmp_path: Path) -> dict[str, str]:
    """Baseline env dict for subprocess-based MCP integration tests.

    Points the store at an isolated tmp database so a local
    universal-docs.yaml or an existing user database is never touched.
    """
    env = os.environ.copy()
    env["UNIVERSAL_DOCS__STORE__DB_PATH"] = str(tmp_path / "documents.db")
    env["UNIVERSAL_DOCS__LOGGING__LEVEL"] = "WARNING"
    return env


@pytest.fixture()
def app_state(
    store: Store,
    http_client: httpx.AsyncClient,
    make_crawler: Callable[..., Crawler],
) -> AppState:
    """Full AppState wired for handler integration tests."""
    settings = Settings()
    return AppState(
        settings=settings,
        store=store,
        crawler=make_crawler(expand_subtabs=False),
        http_client=http_client,
    )
