"""Pydantic models for templates, assignments and the effective-permission view.

Field names are snake_case. Every model also accepts and emits the camelCase
spelling (``toolPermissions``, ``isProtected``, ...) so transport adapters can
pass payloads through unchanged; this is the only place the two naming
conventions are reconciled.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .catalog import ToolCatalog
from .constants import AccessLevel, TemplateScope


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _AccessModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Stored records ──────────────────────────────────────


class PermissionTemplate(_AccessModel):
    """Reusable bundle of tool grants for one scope."""

    id: str
    name: str
    description: Optional[str] = None
    scope: TemplateScope
    tool_permissions: dict[str, AccessLevel] = Field(default_factory=dict)
    granular_permissions: dict[str, list[str]] = Field(default_factory=dict)
    is_system_default: bool = False
    is_protected: bool = False
    sort_order: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def level_for(self, tool: str) -> AccessLevel:
        """Access level for a tool; tools absent from the mapping are ``none``."""
        return self.tool_permissions.get(tool, AccessLevel.NONE)


class CompanyPermission(_AccessModel):
    """A user's single company-level template."""

    id: str
    user_id: str
    company_template_id: str
    assigned_by: Optional[str] = None
    assigned_at: datetime = Field(default_factory=utcnow)


class ProjectAssignment(_AccessModel):
    """Membership of a user on a project, with an optional project template."""

    id: str
    user_id: str
    project_id: str
    project_template_id: Optional[str] = None
    role_override: Optional[str] = None  # informational label only
    assigned_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ── Write inputs ────────────────────────────────────────


class TemplateDraft(_AccessModel):
    """Input for creating a template.

    ``scope`` and the permission maps stay loosely typed here; the template
    store validates them against the tool catalog and raises engine errors.
    """

    name: str
    description: Optional[str] = None
    scope: TemplateScope | str
    tool_permissions: dict[str, AccessLevel | str] = Field(default_factory=dict)
    granular_permissions: dict[str, list[str]] = Field(default_factory=dict)
    sort_order: Optional[int] = None
    is_system_default: bool = False
    is_protected: bool = False


class TemplateChanges(_AccessModel):
    """Partial update of a template. Only fields explicitly set are applied."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    description: Optional[str] = None
    tool_permissions: Optional[dict[str, AccessLevel | str]] = None
    granular_permissions: Optional[dict[str, list[str]]] = None
    sort_order: Optional[int] = None

    def provided(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


# ── Effective view ──────────────────────────────────────


class ToolGrants(_AccessModel):
    """Total tool → level map for one level (company or a project), plus granular grants."""

    tools: dict[str, AccessLevel] = Field(default_factory=dict)
    granular: dict[str, list[str]] = Field(default_factory=dict)

    def level(self, tool: str) -> AccessLevel:
        return self.tools.get(tool, AccessLevel.NONE)


class ProjectGrants(ToolGrants):
    project_id: str
    assignment_id: Optional[str] = None
    template_id: Optional[str] = None
    role_override: Optional[str] = None


class EffectivePermissions(_AccessModel):
    """Resolved access for one user.

    When ``is_owner_admin`` is true every tool is ``admin`` and callers should
    treat every granular action as permitted instead of reading ``granular``.
    ``catalog`` is the tool catalog the view was resolved against; it never
    appears in payloads.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user_id: str
    catalog: Optional[ToolCatalog] = Field(default=None, exclude=True, repr=False)
    is_owner_admin: bool = False
    company: ToolGrants = Field(default_factory=ToolGrants)
    projects: list[ProjectGrants] = Field(default_factory=list)

    def project(self, project_id: str) -> Optional[ProjectGrants]:
        for grants in self.projects:
            if grants.project_id == project_id:
                return grants
        return None

    def to_payload(self, by_alias: bool = True) -> dict[str, Any]:
        """JSON-ready dict; camelCase keys unless ``by_alias`` is false."""
        return self.model_dump(mode="json", by_alias=by_alias)


__all__ = [
    "CompanyPermission",
    "EffectivePermissions",
    "PermissionTemplate",
    "ProjectAssignment",
    "ProjectGrants",
    "TemplateChanges",
    "TemplateDraft",
    "ToolGrants",
    "utcnow",
]
