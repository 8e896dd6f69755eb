"""Resolution of effective permissions for a user.

Resolution runs in two stages:

1. **Mode**: decided once per call. ``Bypass`` when the user's global role is
   the administrator role or the user's company template is protected;
   otherwise ``Templated`` carrying the company template (or None).
2. **Grants**: the same function turns (mode, tool list, template, fallback)
   into a total tool map for the company level and for every project
   membership.

Fallbacks differ by level and are part of the product rules:

- no company template → every company tool is ``none``;
- project member without a project template → every project tool is ``read_only``;
- a template that omits a tool → that tool is ``none``.

The resolver only reads. Each template is read at most once per call, so the
tool map and granular map taken from one template always come from the
same read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Union

from .catalog import DEFAULT_CATALOG, ToolCatalog
from .constants import AccessLevel
from .models import EffectivePermissions, PermissionTemplate, ProjectGrants, ToolGrants

if TYPE_CHECKING:
    from ..stores.base import AssignmentRepository, TemplateRepository

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_ROLE = "ADMIN"


@dataclass(frozen=True)
class Bypass:
    """Owner/admin: templates are ignored and every tool is ``admin``."""

    reason: str  # "admin_role" or "protected_template"


@dataclass(frozen=True)
class Templated:
    """Regular user: access comes from the assigned templates."""

    company_template: Optional[PermissionTemplate] = None


AccessMode = Union[Bypass, Templated]


class _TemplateReader:
    """Per-call template cache; one repository read per template id."""

    def __init__(self, repository: "TemplateRepository") -> None:
        self._repository = repository
        self._cache: dict[str, Optional[PermissionTemplate]] = {}

    def get(self, template_id: Optional[str]) -> Optional[PermissionTemplate]:
        if template_id is None:
            return None
        if template_id not in self._cache:
            self._cache[template_id] = self._repository.find_by_id(template_id)
        return self._cache[template_id]


def resolve_grants(
    mode: AccessMode,
    tools: tuple[str, ...],
    template: Optional[PermissionTemplate],
    fallback: AccessLevel,
) -> tuple[dict[str, AccessLevel], dict[str, list[str]]]:
    """Total tool map and granular grants for one level.

    Args:
        mode: Result of the mode decision for this user.
        tools: Closed tool list of the level; the only keys emitted.
        template: Template assigned at this level, if any.
        fallback: Level given to every tool when there is no template.
    """
    if isinstance(mode, Bypass):
        return {tool: AccessLevel.ADMIN for tool in tools}, {}
    if template is not None:
        granular = {key: list(actions) for key, actions in template.granular_permissions.items()}
        return {tool: template.level_for(tool) for tool in tools}, granular
    return {tool: fallback for tool in tools}, {}


class PermissionResolver:
    """Computes :class:`EffectivePermissions` from the template and assignment stores.

    Args:
        templates: Template repository.
        assignments: Assignment repository.
        catalog: Closed tool vocabularies.
        admin_role: Global role that bypasses templates.
    """

    def __init__(
        self,
        templates: "TemplateRepository",
        assignments: "AssignmentRepository",
        catalog: Optional[ToolCatalog] = None,
        admin_role: str = DEFAULT_ADMIN_ROLE,
    ) -> None:
        self._templates = templates
        self._assignments = assignments
        self._catalog = catalog or DEFAULT_CATALOG
        self._admin_role = admin_role

    @classmethod
    def from_config(
        cls,
        config: Any,
        templates: "TemplateRepository",
        assignments: "AssignmentRepository",
    ) -> "PermissionResolver":
        return cls(templates, assignments, catalog=config.tool_catalog(), admin_role=config.admin_role)

    @property
    def catalog(self) -> ToolCatalog:
        return self._catalog

    def determine_mode(self, user_id: str, global_role: Optional[str] = None) -> AccessMode:
        """Decide between owner/admin bypass and template-based access."""
        return self._determine_mode(user_id, global_role, _TemplateReader(self._templates))

    def compute_effective_permissions(
        self,
        user_id: str,
        global_role: Optional[str] = None,
    ) -> EffectivePermissions:
        """Resolve every company tool and every project tool of every membership.

        Never fails because a template or assignment is absent; only store
        read failures propagate.
        """
        reader = _TemplateReader(self._templates)
        mode = self._determine_mode(user_id, global_role, reader)
        company_template = mode.company_template if isinstance(mode, Templated) else None

        tools, granular = resolve_grants(mode, self._catalog.company_tools, company_template, AccessLevel.NONE)
        company = ToolGrants(tools=tools, granular=granular)

        projects: list[ProjectGrants] = []
        for assignment in self._assignments.list_project_assignments(user_id=user_id):
            template = None
            if not isinstance(mode, Bypass):
                template = reader.get(assignment.project_template_id)
                if assignment.project_template_id is not None and template is None:
                    logger.warning(
                        "Assignment references missing template, using member default",
                        extra={"user_id": user_id, "project_id": assignment.project_id},
                    )
            tools, granular = resolve_grants(mode, self._catalog.project_tools, template, AccessLevel.READ_ONLY)
            projects.append(
                ProjectGrants(
                    project_id=assignment.project_id,
                    assignment_id=assignment.id,
                    template_id=assignment.project_template_id,
                    role_override=assignment.role_override,
                    tools=tools,
                    granular=granular,
                )
            )

        logger.debug(
            "Resolved permissions (mode=%s, projects=%d)",
            type(mode).__name__,
            len(projects),
            extra={"user_id": user_id},
        )
        return EffectivePermissions(
            user_id=user_id,
            catalog=self._catalog,
            is_owner_admin=isinstance(mode, Bypass),
            company=company,
            projects=projects,
        )

    def _determine_mode(self, user_id: str, global_role: Optional[str], reader: _TemplateReader) -> AccessMode:
        if global_role is not None and global_role == self._admin_role:
            return Bypass(reason="admin_role")

        company_template = None
        permission = self._assignments.find_company_assignment(user_id)
        if permission is not None:
            company_template = reader.get(permission.company_template_id)
            if company_template is None:
                logger.warning("Company permission references missing template", extra={"user_id": user_id})
        if company_template is not None and company_template.is_protected:
            return Bypass(reason="protected_template")
        return Templated(company_template=company_template)


__all__ = [
    "AccessMode",
    "Bypass",
    "PermissionResolver",
    "Templated",
    "resolve_grants",
]
