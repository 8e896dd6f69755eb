"""Centralized logging utilities for the access engine.

This module provides:
- Logging configuration from AccessConfig
- Safe preview utilities for logged values
- Secret redaction
- Structured logging with user/project/template context
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import AccessConfig, LogLevel

# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|key|api[_-]?key|auth[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=]+)',
    r'(?i)(?:sk-|pk-)[a-zA-Z0-9]{32,}',
    r'[a-f0-9]{32,}',  # Long hex strings (could be hashes or keys)
]

# Context fields promoted to top-level keys of a log record
CONTEXT_FIELDS = ("user_id", "project_id", "template_id")

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", *CONTEXT_FIELDS,
}


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded, single-line preview of a value for logging.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A safe, truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns (passwords, tokens, long hex keys) from text."""
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Combine safe_preview() and redact_secrets() for a single logged value."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class AccessLogFormatter(logging.Formatter):
    """Formatter that includes access context and optional JSON output.

    This formatter:
    - Extracts user_id / project_id / template_id from log records
    - Formats logs as JSON for structured logging
    - Includes safe previews of extra fields
    - Redacts secrets automatically
    """

    def __init__(
        self,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field_name in CONTEXT_FIELDS:
            value = getattr(record, field_name, None)
            if value:
                log_data[field_name] = str(value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        for field_name in CONTEXT_FIELDS:
            if field_name in log_data:
                parts.append(f"{field_name}={log_data[field_name]}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class AccessLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds user_id / project_id / template_id to log records.

    Usage:
        logger = get_access_logger(__name__, user_id="u-1")
        logger.info("Resolved permissions", project_id="p-1")
    """

    def __init__(
        self,
        logger: logging.Logger,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
        template_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.context = {
            "user_id": user_id,
            "project_id": project_id,
            "template_id": template_id,
        }

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        for field_name, default in self.context.items():
            value = kwargs.pop(field_name, default)
            if value:
                extra[field_name] = value
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    config: Optional[AccessConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure the root logger for a process embedding the engine.

    Args:
        config: AccessConfig instance (if None, loads from environment)
        json_format: Force JSON output; defaults to ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_access_config_from_env

        config = load_access_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(LogLevel(config.log_level), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        AccessLogFormatter(
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_access_logger(
    name: str,
    user_id: Optional[str] = None,
    project_id: Optional[str] = None,
    template_id: Optional[str] = None,
) -> AccessLoggerAdapter:
    """Get a logger adapter carrying access context.

    Example:
        logger = get_access_logger(__name__, user_id=user_id)
        logger.debug("Company grants resolved")
    """
    return AccessLoggerAdapter(
        logging.getLogger(name),
        user_id=user_id,
        project_id=project_id,
        template_id=template_id,
    )


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "AccessLogFormatter",
    "AccessLoggerAdapter",
    "setup_logging",
    "get_access_logger",
]
