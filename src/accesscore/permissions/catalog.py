"""Closed tool vocabularies and write-time validation of template content."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..exceptions import InvalidScopeError, InvalidTemplateError
from .constants import COMPANY_TOOLS, PROJECT_TOOLS, AccessLevel, TemplateScope


def coerce_scope(scope: TemplateScope | str) -> TemplateScope:
    """Parse a scope value, raising InvalidScopeError for anything else."""
    if isinstance(scope, TemplateScope):
        return scope
    try:
        return TemplateScope(str(scope).strip().lower())
    except ValueError:
        raise InvalidScopeError(
            f"Invalid scope {scope!r}. Must be one of {[s.value for s in TemplateScope]}",
            scope=scope,
        ) from None


def coerce_access_level(level: AccessLevel | str, *, tool: str = "") -> AccessLevel:
    if isinstance(level, AccessLevel):
        return level
    try:
        return AccessLevel(str(level).strip().lower())
    except ValueError:
        raise InvalidTemplateError(
            f"Invalid access level {level!r} for tool {tool!r}. "
            f"Must be one of {[lvl.value for lvl in AccessLevel]}",
            tool=tool,
            level=level,
        ) from None


class ToolCatalog:
    """Fixed, ordered tool sets per scope.

    Any tool outside these sets does not exist for the engine: templates
    naming one are rejected at write time and the resolver never emits one.

    Args:
        company_tools: Company-level tool ids, in display order.
        project_tools: Project-level tool ids, in display order.
    """

    __slots__ = ("company_tools", "project_tools", "_index")

    def __init__(
        self,
        company_tools: Iterable[str] = COMPANY_TOOLS,
        project_tools: Iterable[str] = PROJECT_TOOLS,
    ) -> None:
        self.company_tools: tuple[str, ...] = tuple(company_tools)
        self.project_tools: tuple[str, ...] = tuple(project_tools)
        index = {tool: TemplateScope.COMPANY for tool in self.company_tools}
        for tool in self.project_tools:
            if tool in index:
                raise InvalidTemplateError(f"Tool {tool!r} cannot be both company- and project-level", tool=tool)
            index[tool] = TemplateScope.PROJECT
        self._index: dict[str, TemplateScope] = index

    def __repr__(self) -> str:
        return f"ToolCatalog(company_tools={self.company_tools!r}, project_tools={self.project_tools!r})"

    def tools_for(self, scope: TemplateScope | str) -> tuple[str, ...]:
        if coerce_scope(scope) is TemplateScope.COMPANY:
            return self.company_tools
        return self.project_tools

    def scope_of(self, tool: str) -> TemplateScope | None:
        """Return the scope a tool belongs to, or None for unknown tools."""
        return self._index.get(tool)

    def is_company_tool(self, tool: str) -> bool:
        return self._index.get(tool) is TemplateScope.COMPANY

    def is_project_tool(self, tool: str) -> bool:
        return self._index.get(tool) is TemplateScope.PROJECT

    def validate_tool_permissions(
        self,
        scope: TemplateScope | str,
        tool_permissions: Mapping[str, AccessLevel | str] | None,
    ) -> dict[str, AccessLevel]:
        """Check every key is a tool of ``scope`` and every value an access level.

        Omitted tools stay omitted; they are filled with ``none`` only when
        permissions are resolved.
        """
        scope = coerce_scope(scope)
        allowed = self.tools_for(scope)
        validated: dict[str, AccessLevel] = {}
        for tool, level in (tool_permissions or {}).items():
            if tool not in allowed:
                raise InvalidTemplateError(
                    f"Unknown {scope.value} tool {tool!r}",
                    tool=tool,
                    scope=scope.value,
                )
            validated[tool] = coerce_access_level(level, tool=tool)
        return validated


def normalize_granular_permissions(granular: Mapping[str, Any] | None) -> dict[str, list[str]]:
    """Validate granular grants as ``{key: [action, ...]}`` with ordered, unique actions."""
    normalized: dict[str, list[str]] = {}
    for key, actions in (granular or {}).items():
        if not isinstance(key, str) or not key.strip():
            raise InvalidTemplateError("Granular permission keys must be non-empty strings", key=key)
        if isinstance(actions, str) or not isinstance(actions, Iterable):
            raise InvalidTemplateError(f"Granular permissions for {key!r} must be a list of actions", key=key)
        ordered: list[str] = []
        for action in actions:
            if not isinstance(action, str) or not action:
                raise InvalidTemplateError(f"Invalid granular action {action!r} for {key!r}", key=key)
            if action not in ordered:
                ordered.append(action)
        normalized[key] = ordered
    return normalized


DEFAULT_CATALOG = ToolCatalog()


__all__ = [
    "DEFAULT_CATALOG",
    "ToolCatalog",
    "coerce_access_level",
    "coerce_scope",
    "normalize_granular_permissions",
]
