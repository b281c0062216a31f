"""Unified configuration schema for content_sync.

Defines Pydantic models for the config file structure with dedicated
sections for the source connection, sync behaviour and logging. The
``source`` section only supplies fallbacks: ``config.load_config`` layers
CLI args and env vars on top of it.

Usage:
    from content_sync.config_schema import build_config

    unified = build_config(load_hierarchical_config())
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SourceConfig(BaseModel):
    """Source site connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    url: str | None = Field(default=None, description="Source site URL")
    username: str | None = Field(
        default=None, description="Source site username"
    )
    app_password: str | None = Field(
        default=None, description="Application password on the source site"
    )
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    timeout: int = Field(
        default=60,
        ge=1,
        le=600,
        description="Request timeout in seconds (1-600)",
    )
    query_auth_fallback: bool = Field(
        default=True,
        description="Retry a 401 once with credentials in the query string",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Pull behaviour settings."""

    default_content_type: str = Field(
        default="page",
        pattern=r"^[a-z0-9_\-]+$",
        description="Content type used when none is given",
    )
    max_retry_passes: int = Field(
        default=5,
        ge=0,
        le=20,
        description="Extra passes for fields whose schema appears late",
    )
    rest_namespace: str = Field(
        default="sf-sync/v1",
        description="REST namespace of the source endpoints",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(
        default="text", pattern=r"^(text|json)$", description="Log format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()`` is always
    valid.
    """

    source: SourceConfig = Field(default_factory=SourceConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)

