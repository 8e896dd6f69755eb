"""Tests for AccessConfig."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from accesscore import AccessConfig, LogLevel, load_access_config_from_env
from accesscore.permissions import COMPANY_TOOLS, PROJECT_TOOLS


class TestAccessConfig:
    """Tests for AccessConfig model."""

    def test_create_default_config(self) -> None:
        """Test creating an AccessConfig with defaults."""
        config = AccessConfig()
        assert config.log_level == LogLevel.INFO
        assert config.log_json is False
        assert config.company_tools == list(COMPANY_TOOLS)
        assert config.project_tools == list(PROJECT_TOOLS)
        assert config.admin_role == "ADMIN"
        assert config.redis_url is None
        assert config.store_prefix == "accesscore"
        assert config.service_name is None

    def test_create_custom_config(self) -> None:
        """Test creating an AccessConfig with custom values."""
        config = AccessConfig(
            log_level=LogLevel.DEBUG,
            company_tools=["directory", "financials"],
            project_tools=["daily_logs", "safety"],
            admin_role="OWNER",
            redis_url="redis://localhost:6379/0",
            store_prefix="tenant-a",
            service_name="permissions-api",
        )
        assert config.log_level == LogLevel.DEBUG
        assert config.company_tools == ["directory", "financials"]
        assert config.project_tools == ["daily_logs", "safety"]
        assert config.admin_role == "OWNER"
        assert config.redis_url == "redis://localhost:6379/0"
        assert config.store_prefix == "tenant-a"

    def test_log_level_from_string(self) -> None:
        """Test creating config with log level as lowercase string."""
        config = AccessConfig(log_level="debug")
        assert config.log_level == LogLevel.DEBUG

    def test_log_level_invalid(self) -> None:
        """Test creating config with invalid log level."""
        with pytest.raises(ValueError, match="Invalid log level"):
            AccessConfig(log_level="INVALID")

    def test_redis_url_validation_valid(self) -> None:
        """Test valid Redis URL formats."""
        for url in ("redis://localhost:6379/0", "rediss://localhost:6379/0", "unix:///tmp/redis.sock"):
            assert AccessConfig(redis_url=url).redis_url == url

    def test_redis_url_validation_invalid(self) -> None:
        """Test invalid Redis URL formats."""
        with pytest.raises(ValueError, match="Redis URL must start with"):
            AccessConfig(redis_url="http://localhost:6379")

    def test_empty_tool_list_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AccessConfig(company_tools=[])

    def test_duplicate_tools_rejected(self) -> None:
        with pytest.raises(ValidationError, match="duplicates"):
            AccessConfig(project_tools=["safety", "safety"])

    def test_overlapping_tools_rejected(self) -> None:
        """A tool cannot belong to both levels."""
        with pytest.raises(ValidationError, match="both company- and project-level"):
            AccessConfig(company_tools=["directory", "safety"], project_tools=["safety"])

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            AccessConfig(unknown_setting=True)  # type: ignore[call-arg]

    def test_tool_catalog(self) -> None:
        """Test the catalog built from config follows its tool lists."""
        config = AccessConfig(company_tools=["directory"], project_tools=["daily_logs", "safety"])
        catalog = config.tool_catalog()
        assert catalog.company_tools == ("directory",)
        assert catalog.project_tools == ("daily_logs", "safety")
        assert catalog.is_project_tool("safety")
        assert catalog.scope_of("financials") is None


class TestLoadAccessConfigFromEnv:
    """Tests for load_access_config_from_env function."""

    def test_load_defaults(self) -> None:
        """Test loading config with no environment variables set."""
        with patch.dict(os.environ, {}, clear=True):
            config = load_access_config_from_env()
        assert config.log_level == LogLevel.INFO
        assert config.redis_url is None
        assert config.company_tools == list(COMPANY_TOOLS)

    def test_load_from_env(self) -> None:
        """Test loading config from environment variables."""
        env = {
            "LOG_LEVEL": "WARNING",
            "LOG_JSON": "true",
            "ACCESS_COMPANY_TOOLS": "directory, financials",
            "ACCESS_PROJECT_TOOLS": "daily_logs,safety,",
            "ACCESS_ADMIN_ROLE": "OWNER",
            "REDIS_URL": "redis://redis:6379/1",
            "ACCESS_STORE_PREFIX": "perm",
            "ACCESS_LOCK_TIMEOUT": "10",
            "SERVICE_NAME": "permissions-api",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_access_config_from_env()
        assert config.log_level == LogLevel.WARNING
        assert config.log_json is True
        assert config.company_tools == ["directory", "financials"]
        assert config.project_tools == ["daily_logs", "safety"]
        assert config.admin_role == "OWNER"
        assert config.redis_url == "redis://redis:6379/1"
        assert config.store_prefix == "perm"
        assert config.lock_timeout_seconds == 10.0
        assert config.service_name == "permissions-api"

    def test_load_invalid_redis_url(self) -> None:
        with patch.dict(os.environ, {"REDIS_URL": "mysql://db"}, clear=True):
            with pytest.raises(ValueError, match="Redis URL must start with"):
                load_access_config_from_env()
