"""Thread-safe in-process store implementing both repository protocols.

Used by tests and by single-process deployments. A single re-entrant lock
guards templates and assignments together, which makes the cross-entity
checks (reference count on delete, template existence on assign) atomic.
Every read returns a deep copy so callers never share mutable state.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Mapping, Optional

from ..exceptions import DuplicateNameError, NotAssignedToProjectError, NotFoundError, TemplateInUseError
from ..permissions.constants import TemplateScope
from ..permissions.models import CompanyPermission, PermissionTemplate, ProjectAssignment, utcnow

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Dict-backed TemplateRepository + AssignmentRepository."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._templates: dict[str, PermissionTemplate] = {}
        self._company: dict[str, CompanyPermission] = {}
        self._assignments: dict[str, ProjectAssignment] = {}
        self._membership: dict[tuple[str, str], str] = {}

    # ── TemplateRepository ──────────────────────────────

    def find_by_id(self, template_id: str) -> Optional[PermissionTemplate]:
        with self._lock:
            template = self._templates.get(template_id)
            return template.model_copy(deep=True) if template else None

    def find_by_name(self, name: str) -> Optional[PermissionTemplate]:
        with self._lock:
            template = self._find_by_name_locked(name)
            return template.model_copy(deep=True) if template else None

    def list(self, scope: Optional[TemplateScope] = None) -> list[PermissionTemplate]:
        with self._lock:
            templates = [
                t.model_copy(deep=True)
                for t in self._templates.values()
                if scope is None or t.scope == scope
            ]
        return sorted(templates, key=lambda t: (t.sort_order, t.name))

    def insert(self, template: PermissionTemplate) -> PermissionTemplate:
        with self._lock:
            if template.id in self._templates:
                raise DuplicateNameError(f"Template id {template.id!r} already exists", template_id=template.id)
            if self._find_by_name_locked(template.name) is not None:
                raise DuplicateNameError(name=template.name)
            self._templates[template.id] = template.model_copy(deep=True)
        return template.model_copy(deep=True)

    def update(self, template_id: str, changes: Mapping[str, Any]) -> PermissionTemplate:
        with self._lock:
            current = self._templates.get(template_id)
            if current is None:
                raise NotFoundError("Template not found", template_id=template_id)
            template = current.model_copy(update=dict(changes))
            clash = self._find_by_name_locked(template.name)
            if clash is not None and clash.id != template_id:
                raise DuplicateNameError(name=template.name)
            self._templates[template_id] = template.model_copy(deep=True)
        return template.model_copy(deep=True)

    def delete(self, template_id: str) -> None:
        with self._lock:
            if template_id not in self._templates:
                raise NotFoundError("Template not found", template_id=template_id)
            count = self._count_references_locked(template_id)
            if count:
                raise TemplateInUseError(count, template_id=template_id)
            del self._templates[template_id]

    def count_references(self, template_id: str) -> int:
        with self._lock:
            return self._count_references_locked(template_id)

    # ── AssignmentRepository ────────────────────────────

    def find_company_assignment(self, user_id: str) -> Optional[CompanyPermission]:
        with self._lock:
            permission = self._company.get(user_id)
            return permission.model_copy(deep=True) if permission else None

    def find_project_assignment(self, user_id: str, project_id: str) -> Optional[ProjectAssignment]:
        with self._lock:
            assignment_id = self._membership.get((user_id, project_id))
            if assignment_id is None:
                return None
            return self._assignments[assignment_id].model_copy(deep=True)

    def find_project_assignment_by_id(self, assignment_id: str) -> Optional[ProjectAssignment]:
        with self._lock:
            assignment = self._assignments.get(assignment_id)
            return assignment.model_copy(deep=True) if assignment else None

    def list_project_assignments(
        self,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> list[ProjectAssignment]:
        with self._lock:
            assignments = [
                a.model_copy(deep=True)
                for a in self._assignments.values()
                if (user_id is None or a.user_id == user_id) and (project_id is None or a.project_id == project_id)
            ]
        return sorted(assignments, key=lambda a: (a.project_id, a.user_id))

    def upsert_company_assignment(self, permission: CompanyPermission) -> CompanyPermission:
        with self._lock:
            self._require_template_locked(permission.company_template_id)
            existing = self._company.get(permission.user_id)
            if existing is not None:
                permission = permission.model_copy(update={"id": existing.id})
            self._company[permission.user_id] = permission.model_copy(deep=True)
        return permission.model_copy(deep=True)

    def insert_project_assignment(self, assignment: ProjectAssignment) -> ProjectAssignment:
        with self._lock:
            key = (assignment.user_id, assignment.project_id)
            existing_id = self._membership.get(key)
            if existing_id is not None:
                return self._assignments[existing_id].model_copy(deep=True)
            if assignment.project_template_id is not None:
                self._require_template_locked(assignment.project_template_id)
            self._assignments[assignment.id] = assignment.model_copy(deep=True)
            self._membership[key] = assignment.id
        return assignment.model_copy(deep=True)

    def set_project_template(
        self,
        user_id: str,
        project_id: str,
        template_id: str,
        *,
        assigned_by: Optional[str] = None,
    ) -> ProjectAssignment:
        with self._lock:
            assignment_id = self._membership.get((user_id, project_id))
            if assignment_id is None:
                raise NotAssignedToProjectError(user_id=user_id, project_id=project_id)
            self._require_template_locked(template_id)
            update: dict[str, Any] = {"project_template_id": template_id, "updated_at": utcnow()}
            if assigned_by is not None:
                update["assigned_by"] = assigned_by
            assignment = self._assignments[assignment_id].model_copy(update=update)
            self._assignments[assignment_id] = assignment
            return assignment.model_copy(deep=True)

    def clear_project_template(self, assignment_id: str) -> ProjectAssignment:
        with self._lock:
            assignment = self._assignments.get(assignment_id)
            if assignment is None:
                raise NotFoundError("Assignment not found", assignment_id=assignment_id)
            if assignment.project_template_id is not None:
                assignment = assignment.model_copy(update={"project_template_id": None, "updated_at": utcnow()})
                self._assignments[assignment_id] = assignment
            return assignment.model_copy(deep=True)

    # ── Internals (lock held) ───────────────────────────

    def _find_by_name_locked(self, name: str) -> Optional[PermissionTemplate]:
        for template in self._templates.values():
            if template.name == name:
                return template
        return None

    def _count_references_locked(self, template_id: str) -> int:
        company = sum(1 for p in self._company.values() if p.company_template_id == template_id)
        project = sum(1 for a in self._assignments.values() if a.project_template_id == template_id)
        return company + project

    def _require_template_locked(self, template_id: str) -> None:
        if template_id not in self._templates:
            logger.warning("Rejected assignment to missing template %s", template_id)
            raise NotFoundError("Template not found", template_id=template_id)


__all__ = ["InMemoryStore"]
