"""Tests for content_sync.config_schema -- unified config models."""

import pytest
from pydantic import ValidationError

from content_sync.config_schema import (
    LoggingConfig,
    SourceConfig,
    SyncConfig,
    UnifiedConfig,
    build_config,
)


class TestDefaults:
    def test_unified_defaults(self):
        config = UnifiedConfig()
        assert config.source.url is None
        assert config.source.timeout == 60
        assert config.source.query_auth_fallback is True
        assert config.sync.default_content_type == "page"
        assert config.sync.max_retry_passes == 5
        assert config.sync.rest_namespace == "sf-sync/v1"
        assert config.logging.level == "INFO"
        assert config.logging.format == "text"

    def test_frozen(self):
        with pytest.raises(ValidationError):
            UnifiedConfig().sync.max_retry_passes = 1


class TestValidation:
    @pytest.mark.parametrize("passes", [-1, 21])
    def test_retry_passes_range(self, passes):
        with pytest.raises(ValidationError):
            SyncConfig(max_retry_passes=passes)

    def test_retry_passes_zero_allowed(self):
        assert SyncConfig(max_retry_passes=0).max_retry_passes == 0

    def test_content_type_pattern(self):
        with pytest.raises(ValidationError):
            SyncConfig(default_content_type="Not Valid")

    @pytest.mark.parametrize("timeout", [0, 601])
    def test_timeout_range(self, timeout):
        with pytest.raises(ValidationError):
            SourceConfig(timeout=timeout)

    def test_log_format(self):
        assert LoggingConfig(format="json").format == "json"
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")


class TestBuildConfig:
    def test_empty(self):
        assert build_config({}) == UnifiedConfig()

    def test_sections(self):
        config = build_config(
            {
                "source": {"url": "https://source.example.com", "timeout": 30},
                "sync": {"max_retry_passes": 2, "default_content_type": "post"},
                "logging": {"level": "DEBUG", "file": "/tmp/sync.log"},
            }
        )
        assert config.source.url == "https://source.example.com"
        assert config.source.timeout == 30
        assert config.sync.max_retry_passes == 2
        assert config.sync.default_content_type == "post"
        assert config.logging.file == "/tmp/sync.log"

