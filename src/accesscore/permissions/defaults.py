"""Built-in permission templates and migration from legacy global roles.

Provides:
- ``DEFAULT_PROJECT_TEMPLATES`` / ``DEFAULT_COMPANY_TEMPLATES``: the stock templates.
- ``seed_default_templates``: create the stock templates that are missing.
- ``ROLE_TO_PROJECT_TEMPLATE`` / ``ROLE_TO_COMPANY_TEMPLATE``: legacy role mapping.
- ``migrate_user``: move a user holding only a legacy role onto templates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from ..exceptions import NotFoundError
from .constants import TemplateScope
from .models import PermissionTemplate

if TYPE_CHECKING:
    from .assignments import AssignmentStore
    from .templates import TemplateStore

logger = logging.getLogger(__name__)


DEFAULT_PROJECT_TEMPLATES: tuple[dict[str, Any], ...] = (
    {
        "name": "Viewer",
        "description": "Read-only access for external stakeholders",
        "sort_order": 1,
        "tool_permissions": {
            "daily_logs": "read_only",
            "time_tracking": "none",
            "equipment": "read_only",
            "documents": "read_only",
            "drawings": "read_only",
            "schedule": "read_only",
            "punch_lists": "read_only",
            "safety": "none",
            "drone_flights": "read_only",
            "rfis": "read_only",
            "materials": "read_only",
            "approvals": "none",
        },
        "granular_permissions": {},
    },
    {
        "name": "Field Worker",
        "description": "Entry-level workers on job sites",
        "sort_order": 2,
        "tool_permissions": {
            "daily_logs": "standard",
            "time_tracking": "standard",
            "equipment": "read_only",
            "documents": "read_only",
            "drawings": "read_only",
            "schedule": "read_only",
            "punch_lists": "read_only",
            "safety": "standard",
            "drone_flights": "read_only",
            "rfis": "read_only",
            "materials": "read_only",
            "approvals": "none",
        },
        "granular_permissions": {
            "daily_logs": ["submit_entries", "edit_own_entries", "upload_photos"],
            "time_tracking": ["clock_in_out"],
            "safety": ["submit_safety_observations", "view_observations", "upload_safety_photos"],
        },
    },
    {
        "name": "Crew Leader",
        "description": "Lead a specific crew or trade",
        "sort_order": 3,
        "tool_permissions": {
            "daily_logs": "standard",
            "time_tracking": "standard",
            "equipment": "standard",
            "documents": "read_only",
            "drawings": "read_only",
            "schedule": "read_only",
            "punch_lists": "standard",
            "safety": "standard",
            "drone_flights": "read_only",
            "rfis": "standard",
            "materials": "standard",
            "approvals": "none",
        },
        "granular_permissions": {
            "daily_logs": ["submit_entries", "edit_own_entries", "edit_crew_entries", "upload_photos"],
            "time_tracking": ["clock_in_out", "manage_crew_time", "approve_crew_timesheets"],
            "equipment": ["request_equipment", "log_equipment_use"],
            "punch_lists": ["create_items", "complete_items"],
            "safety": ["submit_safety_observations", "view_observations", "create_incidents", "upload_safety_photos"],
            "rfis": ["create_rfis"],
            "materials": ["log_usage"],
        },
    },
    {
        "name": "Foreman",
        "description": "Site supervisors overseeing operations",
        "sort_order": 4,
        "tool_permissions": {
            "daily_logs": "admin",
            "time_tracking": "admin",
            "equipment": "admin",
            "documents": "standard",
            "drawings": "standard",
            "schedule": "standard",
            "punch_lists": "admin",
            "safety": "admin",
            "drone_flights": "standard",
            "rfis": "admin",
            "materials": "admin",
            "approvals": "standard",
        },
        "granular_permissions": {
            "documents": ["upload_documents", "create_folders"],
            "drawings": ["view_drawings", "upload_drawings", "edit_metadata"],
            "schedule": ["update_task_status", "create_tasks"],
            "drone_flights": ["request_flight", "add_annotations"],
            "approvals": ["approve_timesheets", "approve_daily_logs", "view_pending"],
        },
    },
    {
        "name": "Architect/Engineer",
        "description": "Design professionals with document access",
        "sort_order": 5,
        "tool_permissions": {
            "daily_logs": "read_only",
            "time_tracking": "none",
            "equipment": "none",
            "documents": "standard",
            "drawings": "admin",
            "schedule": "read_only",
            "punch_lists": "standard",
            "safety": "none",
            "drone_flights": "read_only",
            "rfis": "standard",
            "materials": "none",
            "approvals": "none",
        },
        "granular_permissions": {
            "documents": ["upload_documents", "create_revisions"],
            "punch_lists": ["create_items", "add_comments"],
            "rfis": ["respond_to_rfis"],
        },
    },
    {
        "name": "Developer",
        "description": "Real estate developers/clients (external)",
        "sort_order": 6,
        "tool_permissions": {
            "daily_logs": "read_only",
            "time_tracking": "none",
            "equipment": "none",
            "documents": "read_only",
            "drawings": "read_only",
            "schedule": "read_only",
            "punch_lists": "read_only",
            "safety": "none",
            "drone_flights": "read_only",
            "rfis": "read_only",
            "materials": "none",
            "approvals": "none",
        },
        "granular_permissions": {
            "documents": ["download_documents"],
            "drawings": ["view_drawings", "download_drawings"],
            "punch_lists": ["add_comments"],
        },
    },
    {
        "name": "Project Manager",
        "description": "Full project access",
        "sort_order": 7,
        "tool_permissions": {
            "daily_logs": "admin",
            "time_tracking": "admin",
            "equipment": "admin",
            "documents": "admin",
            "drawings": "admin",
            "schedule": "admin",
            "punch_lists": "admin",
            "safety": "admin",
            "drone_flights": "admin",
            "rfis": "admin",
            "materials": "admin",
            "approvals": "admin",
        },
        "granular_permissions": {},
    },
)

OWNER_ADMIN_TEMPLATE = "Owner / Admin"

DEFAULT_COMPANY_TEMPLATES: tuple[dict[str, Any], ...] = (
    {
        "name": "No Company Access",
        "description": "No access to company-level tools",
        "sort_order": 0,
        "tool_permissions": {
            "directory": "none",
            "subcontractors": "none",
            "certifications": "none",
            "financials": "none",
            "reports": "none",
            "analytics": "none",
            "label_library": "none",
            "settings": "none",
            "user_management": "none",
            "warnings": "none",
        },
        "granular_permissions": {},
    },
    {
        "name": "Office Staff",
        "description": "Administrative and back-office tasks",
        "sort_order": 1,
        "tool_permissions": {
            "directory": "standard",
            "subcontractors": "standard",
            "certifications": "standard",
            "financials": "standard",
            "reports": "standard",
            "analytics": "read_only",
            "label_library": "read_only",
            "settings": "none",
            "user_management": "none",
            "warnings": "read_only",
        },
        "granular_permissions": {
            "directory": ["create_contacts", "edit_contacts"],
            "subcontractors": ["create_subcontractors", "edit_subcontractors"],
            "certifications": ["view_certifications", "create_certifications", "edit_certifications"],
            "financials": ["sync_quickbooks", "view_costs"],
        },
    },
    {
        "name": "Project Manager (Company)",
        "description": "Company-level access for project managers",
        "sort_order": 2,
        "tool_permissions": {
            "directory": "standard",
            "subcontractors": "read_only",
            "certifications": "read_only",
            "financials": "read_only",
            "reports": "standard",
            "analytics": "standard",
            "label_library": "standard",
            "settings": "none",
            "user_management": "none",
            "warnings": "standard",
        },
        "granular_permissions": {
            "financials": ["view_project_budgets", "view_costs"],
            "analytics": ["view_analytics", "export_data"],
            "label_library": ["create_project_labels"],
            "warnings": ["create_warnings", "edit_warnings"],
        },
    },
    {
        "name": OWNER_ADMIN_TEMPLATE,
        "description": "Full system access - cannot be edited or deleted",
        "sort_order": 99,
        "is_protected": True,
        "tool_permissions": {
            "directory": "admin",
            "subcontractors": "admin",
            "certifications": "admin",
            "financials": "admin",
            "reports": "admin",
            "analytics": "admin",
            "label_library": "admin",
            "settings": "admin",
            "user_management": "admin",
            "warnings": "admin",
        },
        "granular_permissions": {},
    },
)


def seed_default_templates(store: "TemplateStore") -> list[PermissionTemplate]:
    """Create every stock template whose name is not taken yet.

    Existing templates with a stock name are left untouched, so running the
    seed repeatedly is safe. Tools the store's catalog does not know are
    dropped from the stock maps.

    Returns:
        The templates created by this call.
    """
    created: list[PermissionTemplate] = []
    stock = [(TemplateScope.PROJECT, t) for t in DEFAULT_PROJECT_TEMPLATES]
    stock += [(TemplateScope.COMPANY, t) for t in DEFAULT_COMPANY_TEMPLATES]
    for scope, entry in stock:
        if store.get_by_name(entry["name"]) is not None:
            logger.debug("Default template %r already present", entry["name"])
            continue
        allowed = set(store.catalog.tools_for(scope))
        created.append(
            store.create(
                entry["name"],
                description=entry["description"],
                scope=scope,
                tool_permissions={k: v for k, v in entry["tool_permissions"].items() if k in allowed},
                granular_permissions=entry["granular_permissions"],
                sort_order=entry["sort_order"],
                is_system_default=True,
                is_protected=entry.get("is_protected", False),
            )
        )
    logger.info("Seeded %d default template(s)", len(created))
    return created


# ── Legacy role migration ───────────────────────────────

ROLE_TO_PROJECT_TEMPLATE: dict[str, str] = {
    "VIEWER": "Viewer",
    "FIELD_WORKER": "Field Worker",
    "CREW_LEADER": "Crew Leader",
    "FOREMAN": "Foreman",
    "SUPERINTENDENT": "Foreman",
    "ARCHITECT": "Architect/Engineer",
    "DEVELOPER": "Developer",
    "PROJECT_MANAGER": "Project Manager",
    "ADMIN": "Project Manager",
    "OFFICE": "Field Worker",
}

ROLE_TO_COMPANY_TEMPLATE: dict[str, str] = {
    "VIEWER": "No Company Access",
    "FIELD_WORKER": "No Company Access",
    "CREW_LEADER": "No Company Access",
    "FOREMAN": "No Company Access",
    "SUPERINTENDENT": "No Company Access",
    "ARCHITECT": "No Company Access",
    "DEVELOPER": "No Company Access",
    "PROJECT_MANAGER": "Project Manager (Company)",
    "ADMIN": OWNER_ADMIN_TEMPLATE,
    "OFFICE": "Office Staff",
}

FALLBACK_COMPANY_TEMPLATE = "No Company Access"
FALLBACK_PROJECT_TEMPLATE = "Field Worker"


@dataclass
class MigrationResult:
    """Outcome of :func:`migrate_user`."""

    already_migrated: bool
    company_template: Optional[str] = None
    project_template: Optional[str] = None
    updated_assignments: list[str] = field(default_factory=list)


def _find_scoped(store: "TemplateStore", name: str, scope: TemplateScope) -> Optional[PermissionTemplate]:
    template = store.get_by_name(name)
    if template is None or template.scope != scope:
        return None
    return template


def migrate_user(
    user_id: str,
    role: Optional[str],
    templates: "TemplateStore",
    assignments: "AssignmentStore",
    *,
    assigned_by: Optional[str] = None,
) -> MigrationResult:
    """Move a user from a legacy global role onto templates.

    Users who already hold a company permission are skipped. Otherwise the
    role's company template is assigned and the role's project template is
    attached to every membership that has none.

    Raises:
        NotFoundError: the company template for the role does not exist.
    """
    if assignments.get_company_assignment(user_id) is not None:
        logger.info("User already migrated", extra={"user_id": user_id})
        return MigrationResult(already_migrated=True)

    company_name = ROLE_TO_COMPANY_TEMPLATE.get(role or "", FALLBACK_COMPANY_TEMPLATE)
    company_template = _find_scoped(templates, company_name, TemplateScope.COMPANY)
    if company_template is None:
        raise NotFoundError(f"Company template {company_name!r} not found", user_id=user_id, role=role)
    assignments.set_company_template(user_id, company_template.id, assigned_by=assigned_by)

    project_name = ROLE_TO_PROJECT_TEMPLATE.get(role or "", FALLBACK_PROJECT_TEMPLATE)
    project_template = _find_scoped(templates, project_name, TemplateScope.PROJECT)
    updated: list[str] = []
    if project_template is None:
        logger.warning("Project template %r not found; memberships left as-is", project_name, extra={"user_id": user_id})
    else:
        for assignment in assignments.list_project_assignments(user_id=user_id):
            if assignment.project_template_id is not None:
                continue
            assignments.assign_project_template(
                user_id,
                assignment.project_id,
                project_template.id,
                assigned_by=assigned_by,
            )
            updated.append(assignment.id)

    logger.info(
        "Migrated user from role %s to %r / %r",
        role,
        company_name,
        project_name,
        extra={"user_id": user_id},
    )
    return MigrationResult(
        already_migrated=False,
        company_template=company_name,
        project_template=project_name if project_template is not None else None,
        updated_assignments=updated,
    )


__all__ = [
    "DEFAULT_COMPANY_TEMPLATES",
    "DEFAULT_PROJECT_TEMPLATES",
    "FALLBACK_COMPANY_TEMPLATE",
    "FALLBACK_PROJECT_TEMPLATE",
    "OWNER_ADMIN_TEMPLATE",
    "ROLE_TO_COMPANY_TEMPLATE",
    "ROLE_TO_PROJECT_TEMPLATE",
    "MigrationResult",
    "migrate_user",
    "seed_default_templates",
]
