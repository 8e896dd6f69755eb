"""Configuration contract for the access engine.

This module provides the Pydantic-validated configuration model shared by
every component of the engine: logging, the closed tool vocabularies,
the administrator role and the persistent store settings.

Tool vocabularies are supplied at startup and never change while the
process runs. Direct os.environ/os.getenv usage is only allowed in
:func:`load_access_config_from_env`.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .permissions.constants import COMPANY_TOOLS, PROJECT_TOOLS

if TYPE_CHECKING:
    from .permissions.catalog import ToolCatalog


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AccessConfig(BaseModel):
    """Configuration for the permission template & resolution engine.

    RULE: all settings come through this model.
    Services embedding the engine may subclass it with their own fields.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the engine",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Tool vocabularies
    company_tools: list[str] = Field(
        default_factory=lambda: list(COMPANY_TOOLS),
        description="Closed, ordered set of company-level tool ids",
    )
    project_tools: list[str] = Field(
        default_factory=lambda: list(PROJECT_TOOLS),
        description="Closed, ordered set of project-level tool ids",
    )

    # Identity
    admin_role: str = Field(
        default="ADMIN",
        description="Global role that bypasses templates entirely",
    )

    # Persistent store
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL (e.g., redis://localhost:6379/0)",
    )
    store_prefix: str = Field(
        default="accesscore",
        description="Key prefix for the redis-backed store",
    )
    lock_timeout_seconds: float = Field(
        default=5.0,
        description="Expiry of the store mutation lock",
    )
    lock_blocking_timeout_seconds: float = Field(
        default=2.0,
        description="How long a mutation waits for the store lock before failing with a conflict",
    )

    # Service identification
    service_name: Optional[str] = Field(
        default=None,
        description="Name of the embedding service, used for logger identification",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("company_tools", "project_tools")
    @classmethod
    def validate_tools(cls, v: list[str]) -> list[str]:
        """Tool lists must be non-empty and free of duplicates."""
        tools = [t.strip() for t in v]
        if not tools or any(not t for t in tools):
            raise ValueError("Tool list must contain at least one non-empty tool id")
        if len(tools) != len(set(tools)):
            raise ValueError(f"Tool list contains duplicates: {tools}")
        return tools

    @model_validator(mode="after")
    def validate_disjoint_tools(self) -> "AccessConfig":
        overlap = set(self.company_tools) & set(self.project_tools)
        if overlap:
            raise ValueError(f"Tools cannot be both company- and project-level: {sorted(overlap)}")
        return self

    def tool_catalog(self) -> "ToolCatalog":
        """Build the closed tool catalog from this configuration."""
        from .permissions.catalog import ToolCatalog

        return ToolCatalog(company_tools=self.company_tools, project_tools=self.project_tools)

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",  # Prevent accidental extra fields
    }


def _split_list(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_access_config_from_env() -> AccessConfig:
    """Load engine configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - ACCESS_COMPANY_TOOLS: Comma-separated company tool ids
    - ACCESS_PROJECT_TOOLS: Comma-separated project tool ids
    - ACCESS_ADMIN_ROLE: Global role that bypasses templates
    - REDIS_URL: Redis connection URL
    - ACCESS_STORE_PREFIX: Key prefix for the redis store
    - ACCESS_LOCK_TIMEOUT: Store mutation lock expiry in seconds
    - SERVICE_NAME: Name of the embedding service

    Returns:
        AccessConfig instance with values from environment or defaults.
    """
    import os

    overrides: dict[str, object] = {}
    company_tools = _split_list(os.getenv("ACCESS_COMPANY_TOOLS"))
    if company_tools is not None:
        overrides["company_tools"] = company_tools
    project_tools = _split_list(os.getenv("ACCESS_PROJECT_TOOLS"))
    if project_tools is not None:
        overrides["project_tools"] = project_tools

    return AccessConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
        admin_role=os.getenv("ACCESS_ADMIN_ROLE", "ADMIN"),
        redis_url=os.getenv("REDIS_URL"),
        store_prefix=os.getenv("ACCESS_STORE_PREFIX", "accesscore"),
        lock_timeout_seconds=float(os.getenv("ACCESS_LOCK_TIMEOUT", "5")),
        service_name=os.getenv("SERVICE_NAME"),
        **overrides,
    )


__all__ = [
    "AccessConfig",
    "LogLevel",
    "load_access_config_from_env",
]
