"""Unified exception hierarchy for the access engine.

All engine failures inherit from AccessCoreError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for protocol mapping
- gRPC status mapping for transport adapters

Policy violations (not found, duplicate name, protected template, ...) are
never retried. Store failures (StoreUnavailableError, ConflictError) are
marked ``retryable`` so the caller may repeat the same idempotent operation.

Usage:
    from accesscore.exceptions import (
        AccessCoreError,
        TemplateInUseError,
        get_grpc_status_code,
    )
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "AccessCoreError",
    "ConfigurationError",
    "NotFoundError",
    "DuplicateNameError",
    "InvalidTemplateError",
    "InvalidScopeError",
    "ProtectedTemplateError",
    "SystemDefaultTemplateError",
    "TemplateInUseError",
    "ScopeMismatchError",
    "NotAssignedToProjectError",
    "StoreError",
    "StoreUnavailableError",
    "ConflictError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # gRPC helpers
    "get_grpc_status_code",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class AccessCoreError(Exception):
    """Base exception for the access engine.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "NOT_FOUND").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
        retryable: Whether repeating the same operation may succeed.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"
    retryable: bool = False

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(AccessCoreError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class NotFoundError(AccessCoreError):
    """Referenced template or assignment does not exist."""

    code: str = "NOT_FOUND"
    message: str = "Not found"


class DuplicateNameError(AccessCoreError):
    """Template name collides with an existing template."""

    code: str = "DUPLICATE_NAME"
    message: str = "Template with this name already exists"


class InvalidTemplateError(AccessCoreError):
    """Template content failed write-time validation (name, tool ids, access levels)."""

    code: str = "INVALID_TEMPLATE"
    message: str = "Invalid permission template"


class InvalidScopeError(InvalidTemplateError):
    """Scope is not one of the allowed values."""

    code: str = "INVALID_SCOPE"
    message: str = "Scope must be 'company' or 'project'"


class ProtectedTemplateError(AccessCoreError):
    """Attempted edit or delete of a protected template."""

    code: str = "PROTECTED_TEMPLATE"
    message: str = "Cannot modify protected template"


class SystemDefaultTemplateError(AccessCoreError):
    """Attempted delete of a system-default template."""

    code: str = "SYSTEM_DEFAULT_TEMPLATE"
    message: str = "Cannot delete system default template"


class TemplateInUseError(AccessCoreError):
    """Delete blocked because assignments still reference the template."""

    code: str = "TEMPLATE_IN_USE"

    def __init__(self, count: int, message: str | None = None, **kwargs: Any) -> None:
        self.count = count
        super().__init__(
            message or f"Cannot delete template in use by {count} user(s). Reassign users first.",
            count=count,
            **kwargs,
        )


class ScopeMismatchError(AccessCoreError):
    """A company template used where a project template is required, or vice versa."""

    code: str = "SCOPE_MISMATCH"


class NotAssignedToProjectError(AccessCoreError):
    """User must be a project member before a project template can be attached."""

    code: str = "NOT_ASSIGNED_TO_PROJECT"
    message: str = "User is not assigned to this project"


class StoreError(AccessCoreError):
    """Persistent store failure."""

    code: str = "STORE_ERROR"
    retryable: bool = True


class StoreUnavailableError(StoreError):
    """Store could not be reached (connectivity, timeouts)."""

    code: str = "STORE_UNAVAILABLE"
    message: str = "Permission store unavailable"


class ConflictError(StoreError):
    """A concurrent mutation held the store; the operation was not applied."""

    code: str = "CONFLICT"
    message: str = "Concurrent modification, retry the operation"


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[AccessCoreError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[AccessCoreError]] = {}

    def register(self, code: str, error_cls: type[AccessCoreError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[AccessCoreError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[AccessCoreError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("MY_CUSTOM_ERROR")
        class MyCustomError(AccessCoreError):
            code = "MY_CUSTOM_ERROR"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
for _cls in (
    AccessCoreError,
    ConfigurationError,
    NotFoundError,
    DuplicateNameError,
    InvalidTemplateError,
    InvalidScopeError,
    ProtectedTemplateError,
    SystemDefaultTemplateError,
    TemplateInUseError,
    ScopeMismatchError,
    NotAssignedToProjectError,
    StoreError,
    StoreUnavailableError,
    ConflictError,
):
    error_registry.register(_cls.code, _cls)
del _cls


# ---- gRPC Status Mapping ----------------------------------------------------


def get_grpc_status_code(error: AccessCoreError) -> Any:
    """Map AccessCoreError to gRPC status code.

    Returns grpc.StatusCode value for the given error type.
    Import grpc locally to avoid hard dependency at module level.
    """
    import grpc

    error_to_status = {
        "NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "DUPLICATE_NAME": grpc.StatusCode.ALREADY_EXISTS,
        "INVALID_TEMPLATE": grpc.StatusCode.INVALID_ARGUMENT,
        "INVALID_SCOPE": grpc.StatusCode.INVALID_ARGUMENT,
        "SCOPE_MISMATCH": grpc.StatusCode.INVALID_ARGUMENT,
        "PROTECTED_TEMPLATE": grpc.StatusCode.PERMISSION_DENIED,
        "SYSTEM_DEFAULT_TEMPLATE": grpc.StatusCode.PERMISSION_DENIED,
        "TEMPLATE_IN_USE": grpc.StatusCode.FAILED_PRECONDITION,
        "NOT_ASSIGNED_TO_PROJECT": grpc.StatusCode.FAILED_PRECONDITION,
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
        "STORE_ERROR": grpc.StatusCode.UNAVAILABLE,
        "STORE_UNAVAILABLE": grpc.StatusCode.UNAVAILABLE,
        "CONFLICT": grpc.StatusCode.ABORTED,
    }
    status = error_to_status.get(error.code, grpc.StatusCode.INTERNAL)
    if status is grpc.StatusCode.INTERNAL:
        logger.debug("No gRPC status mapping for error code %s", error.code)
    return status
