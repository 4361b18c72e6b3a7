"""Unified configuration schema for notion_docsync.

Defines Pydantic models for the unified config structure with dedicated
sections for the Notion connection, sync conventions and logging.
Includes an adapter to the ``Config`` dataclass used by the client.

Usage:
    from notion_docsync.config_schema import (
        UnifiedConfig, build_config, to_legacy_config,
    )

    raw = load_hierarchical_config()
    unified = build_config(raw)
    legacy = to_legacy_config(unified, cli_overrides={"token": "secret_..."})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class NotionConfig(BaseModel):
    """Notion connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    token: str | None = Field(
        default=None, description="Notion integration token"
    )
    root_page_id: str | None = Field(
        default=None, description="Anchor page that roots the synced tree"
    )
    excluded_subtree_id: str | None = Field(
        default=None,
        description="Page whose subtree is never pulled (e.g. a reading list)",
    )
    api_version: str | None = Field(
        default=None, description="Notion-Version header override"
    )
    timeout: int = Field(
        default=60,
        ge=1,
        le=600,
        description="Read timeout for API calls in seconds (1-600)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class SyncSettings(BaseModel):
    """Conventions that map the local tree onto the remote hierarchy.

    Attributes:
        docs_marker: Directory name stripped from local paths on push and
            inserted after the topic segment on pull.  ``None`` disables it.
        publish_patterns: Globs (relative, POSIX) a file must match to be
            synced.  The default requires at least one topic directory.
        exclude: Globs that are never synced, checked after
            ``publish_patterns``.
        ignore: Directory or file names skipped while walking the local
            tree, in addition to hidden entries.
        reading_list_name: Title of the toggle block on the root page that
            lists newly created pages.
    """

    docs_marker: str | None = Field(default="docs")
    publish_patterns: list[str] = Field(default_factory=lambda: ["*/*.md"])
    exclude: list[str] = Field(
        default_factory=lambda: ["code/*", "*/code/*"]
    )
    ignore: list[str] = Field(
        default_factory=lambda: ["node_modules", "venv", "__pycache__"]
    )
    reading_list_name: str = Field(default="Study Material GitHub")

    model_config = {"frozen": True}

    @field_validator("docs_marker")
    @classmethod
    def _marker_is_single_segment(cls, value: str | None) -> str | None:
        if value is not None:
            value = value.strip().strip("/")
            if not value or "/" in value:
                raise ValueError(
                    "docs_marker must be a single directory name"
                )
        return value

    @field_validator("reading_list_name")
    @classmethod
    def _reading_list_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reading_list_name cannot be empty")
        return value


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    notion: NotionConfig = Field(default_factory=NotionConfig)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully: anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> Config dataclass
# ---------------------------------------------------------------------------


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value > empty

    CLI overrides dict keys: token, root_page_id, excluded_subtree_id, debug.

    Args:
        unified: The unified config produced by ``build_config()``.
        cli_overrides: Optional dict of CLI argument values.

    Returns:
        ``Config`` dataclass instance (NOT validated, caller should run
        ``validate_config()`` separately if needed).
    """
    from .config import DEFAULT_API_VERSION, Config

    overrides = cli_overrides or {}

    return Config(
        token=overrides.get("token") or unified.notion.token or "",
        root_page_id=overrides.get("root_page_id")
        or unified.notion.root_page_id
        or "",
        excluded_subtree_id=overrides.get("excluded_subtree_id")
        or unified.notion.excluded_subtree_id,
        api_version=unified.notion.api_version or DEFAULT_API_VERSION,
        timeout=unified.notion.timeout,
        debug=overrides.get("debug", False) or unified.notion.debug,
    )
