"""Access levels, template scopes and the construction tool vocabularies.

Provides:
- ``AccessLevel``: coarse grant for a tool (none / read_only / standard / admin).
- ``TemplateScope``: level a template applies at (company / project).
- ``COMPANY_TOOLS`` / ``PROJECT_TOOLS``: default closed tool vocabularies.
- ``GRANULAR_PERMISSIONS``: known fine-grained actions per tool.
"""

from __future__ import annotations

from enum import Enum


class AccessLevel(str, Enum):
    """Coarse access granted for a tool.

    Hierarchy: ``admin`` > ``standard`` > ``read_only`` > ``none``.
    """

    NONE = "none"
    READ_ONLY = "read_only"
    STANDARD = "standard"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return ACCESS_LEVEL_HIERARCHY[self]

    def __str__(self) -> str:
        return self.value


ACCESS_LEVEL_HIERARCHY: dict[AccessLevel, int] = {
    AccessLevel.NONE: 0,
    AccessLevel.READ_ONLY: 1,
    AccessLevel.STANDARD: 2,
    AccessLevel.ADMIN: 3,
}


class TemplateScope(str, Enum):
    """Level a permission template is usable at."""

    COMPANY = "company"
    PROJECT = "project"

    def __str__(self) -> str:
        return self.value


# ── Tool vocabularies ───────────────────────────────────
# Order is the display order; configuration may replace either list.

PROJECT_TOOLS: tuple[str, ...] = (
    "daily_logs",
    "time_tracking",
    "equipment",
    "documents",
    "drawings",
    "schedule",
    "punch_lists",
    "safety",
    "drone_flights",
    "rfis",
    "materials",
    "approvals",
)

COMPANY_TOOLS: tuple[str, ...] = (
    "directory",
    "subcontractors",
    "certifications",
    "financials",
    "reports",
    "analytics",
    "label_library",
    "settings",
    "user_management",
    "warnings",
)


# ── Granular actions ────────────────────────────────────
# Informational catalog; templates may carry other action strings,
# the engine passes granular grants through untouched.

GRANULAR_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "daily_logs": (
        "submit_entries",
        "edit_own_entries",
        "edit_crew_entries",
        "edit_any_entry",
        "approve_entries",
        "delete_entries",
        "upload_photos",
    ),
    "time_tracking": (
        "clock_in_out",
        "manage_crew_time",
        "approve_crew_timesheets",
        "approve_all_timesheets",
        "export_payroll",
        "edit_time_entries",
    ),
    "equipment": ("request_equipment", "log_equipment_use", "edit_assignments", "view_utilization"),
    "documents": (
        "upload_documents",
        "download_documents",
        "create_folders",
        "delete_documents",
        "create_revisions",
    ),
    "drawings": (
        "view_drawings",
        "upload_drawings",
        "edit_metadata",
        "create_revisions",
        "download_drawings",
        "delete_drawings",
        "manage_scales",
    ),
    "schedule": (
        "view_schedule",
        "update_task_status",
        "create_tasks",
        "edit_dates",
        "assign_tasks",
        "delete_tasks",
    ),
    "punch_lists": ("create_items", "complete_items", "add_comments", "assign_items", "delete_items"),
    "safety": (
        "submit_safety_observations",
        "view_observations",
        "create_inspections",
        "manage_inspections",
        "complete_inspections",
        "delete_inspections",
        "create_incidents",
        "edit_incidents",
        "close_incidents",
        "delete_incidents",
        "create_safety_meetings",
        "manage_safety_meetings",
        "take_attendance",
        "delete_safety_meetings",
        "upload_safety_photos",
    ),
    "drone_flights": ("request_flight", "view_flights", "add_annotations", "delete_flights"),
    "rfis": ("create_rfis", "respond_to_rfis", "close_rfis", "delete_rfis"),
    "materials": ("create_materials", "edit_materials", "delete_materials", "manage_orders", "log_usage"),
    "approvals": ("approve_timesheets", "approve_daily_logs", "reject_items", "view_pending"),
    "directory": ("create_contacts", "edit_contacts", "delete_contacts", "create_vendors"),
    "subcontractors": (
        "create_subcontractors",
        "edit_subcontractors",
        "delete_subcontractors",
        "manage_contracts",
        "view_performance",
    ),
    "certifications": (
        "view_certifications",
        "create_certifications",
        "edit_certifications",
        "delete_certifications",
        "upload_documents",
        "set_expiry_alerts",
    ),
    "financials": (
        "view_costs",
        "view_project_budgets",
        "edit_budgets",
        "sync_quickbooks",
        "approve_invoices",
        "manage_change_orders",
    ),
    "reports": ("view_reports", "create_reports", "export_reports", "schedule_reports"),
    "analytics": ("view_analytics", "view_forecasts", "export_data", "create_dashboards"),
    "warnings": ("create_warnings", "edit_warnings", "delete_warnings", "view_history"),
    "label_library": ("create_project_labels", "create_global_labels", "delete_labels"),
    "settings": (),
    "user_management": (),
}

# Actions implied by an access level without an explicit granular grant.
READ_ONLY_ACTIONS: dict[str, tuple[str, ...]] = {
    "documents": ("download_documents",),
}

STANDARD_ACTIONS: dict[str, tuple[str, ...]] = {
    "daily_logs": ("submit_entries", "edit_own_entries", "upload_photos"),
    "time_tracking": ("clock_in_out",),
    "documents": ("upload_documents", "download_documents"),
    "drawings": ("view_drawings", "download_drawings"),
    "punch_lists": ("create_items", "complete_items", "add_comments"),
    "safety": ("submit_safety_observations", "view_observations", "upload_safety_photos"),
    "rfis": ("create_rfis",),
    "materials": ("log_usage",),
}


__all__ = [
    "ACCESS_LEVEL_HIERARCHY",
    "COMPANY_TOOLS",
    "GRANULAR_PERMISSIONS",
    "PROJECT_TOOLS",
    "READ_ONLY_ACTIONS",
    "STANDARD_ACTIONS",
    "AccessLevel",
    "TemplateScope",
]
