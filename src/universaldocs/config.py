"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (UNIVERSAL_DOCS__CRAWLER__COMPONENT_CONCURRENCY=5)
  2. universal-docs.yaml    (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("universal-docs")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "documents.db")

DEFAULT_SUBTAB_SUFFIXES = ["usage", "examples", "accessibility", "api", "props", "code"]


def _find_config_file() -> str | None:
    """Return the path of the first universal-docs.yaml found, or None."""
    candidates = [
        Path("universal-docs.yaml"),
        Path(platformdirs.user_config_dir("universal-docs")) / "universal-docs.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class StoreSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH


class CrawlerSettings(BaseModel):
    default_max_pages: int = 10
    component_max_pages: int = 200
    component_concurrency: int = Field(default=3, ge=1)
    expand_subtabs: bool = True
    subtab_suffixes: list[str] = Field(default_factory=lambda: list(DEFAULT_SUBTAB_SUFFIXES))
    # Sitemap seeds are capped at max_pages * this multiplier
    sitemap_seed_multiplier: int = Field(default=3, ge=1)
    # Breadth-first crawls stop after max_pages * this many visits, successful or not
    visit_attempt_multiplier: int = Field(default=3, ge=1)
    # Remainder segments (relative to the index path) that identify a component page
    component_min_segments: int = Field(default=1, ge=1)
    component_max_segments: int = Field(default=2, ge=1)
    min_content_length: int = 50
    navigation_timeout_seconds: float = 30.0
    settle_timeout_seconds: float = 10.0
    reveal_timeout_seconds: float = 5.0
    headless: bool = True


class PolitenessSettings(BaseModel):
    user_agent: str = "universal-docs-mcp/2.0"
    default_delay_ms: int = 500
    robots_timeout_seconds: float = 5.0


class SitemapSettings(BaseModel):
    timeout_seconds: float = 10.0
    max_depth: int = 3
    max_urls: int = 5000


class RecrawlSettings(BaseModel):
    probe_timeout_seconds: float = 10.0


class SearchSettings(BaseModel):
    result_limit: int = 20


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: UNIVERSAL_DOCS__STORE__DB_PATH=/tmp/docs.db
        env_prefix="UNIVERSAL_DOCS__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    store: StoreSettings = StoreSettings()
    crawler: CrawlerSettings = CrawlerSettings()
    politeness: PolitenessSettings = PolitenessSettings()
    sitemap: SitemapSettings = SitemapSettings()
    recrawl: RecrawlSettings = RecrawlSettings()
    search: SearchSettings = SearchSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
