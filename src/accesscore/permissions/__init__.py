"""Permission templates, assignments and effective-permission resolution.

Defines:
- AccessLevel / TemplateScope: grant levels and template scopes
- ToolCatalog: closed company and project tool vocabularies
- TemplateStore / AssignmentStore: template lifecycle and user assignments
- PermissionResolver: (user, global role) → total tool maps per level
- can_access / check_tools: runtime checks over a resolved view
- seed_default_templates / migrate_user: stock templates and legacy roles
"""

from .access import (
    ToolCheck,
    can_access,
    check_tools,
    has_granular_permission,
    has_tool_access,
    is_action_allowed_at_level,
)
from .assignments import AssignmentStore
from .catalog import DEFAULT_CATALOG, ToolCatalog
from .constants import (
    ACCESS_LEVEL_HIERARCHY,
    COMPANY_TOOLS,
    GRANULAR_PERMISSIONS,
    PROJECT_TOOLS,
    AccessLevel,
    TemplateScope,
)
from .defaults import (
    DEFAULT_COMPANY_TEMPLATES,
    DEFAULT_PROJECT_TEMPLATES,
    ROLE_TO_COMPANY_TEMPLATE,
    ROLE_TO_PROJECT_TEMPLATE,
    MigrationResult,
    migrate_user,
    seed_default_templates,
)
from .models import (
    CompanyPermission,
    EffectivePermissions,
    PermissionTemplate,
    ProjectAssignment,
    ProjectGrants,
    TemplateChanges,
    TemplateDraft,
    ToolGrants,
)
from .resolver import AccessMode, Bypass, PermissionResolver, Templated, resolve_grants
from .templates import TemplateStore

__all__ = [
    "ACCESS_LEVEL_HIERARCHY",
    "COMPANY_TOOLS",
    "DEFAULT_CATALOG",
    "DEFAULT_COMPANY_TEMPLATES",
    "DEFAULT_PROJECT_TEMPLATES",
    "GRANULAR_PERMISSIONS",
    "PROJECT_TOOLS",
    "ROLE_TO_COMPANY_TEMPLATE",
    "ROLE_TO_PROJECT_TEMPLATE",
    "AccessLevel",
    "AccessMode",
    "AssignmentStore",
    "Bypass",
    "CompanyPermission",
    "EffectivePermissions",
    "MigrationResult",
    "PermissionResolver",
    "PermissionTemplate",
    "ProjectAssignment",
    "ProjectGrants",
    "TemplateChanges",
    "TemplateDraft",
    "TemplateScope",
    "TemplateStore",
    "Templated",
    "ToolCatalog",
    "ToolCheck",
    "ToolGrants",
    "can_access",
    "check_tools",
    "has_granular_permission",
    "has_tool_access",
    "is_action_allowed_at_level",
    "migrate_user",
    "resolve_grants",
    "seed_default_templates",
]
