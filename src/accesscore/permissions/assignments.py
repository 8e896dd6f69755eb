"""Assignment Store: which template each user holds, company-wide and per project.

Assignments only reference templates by id. Editing a template is therefore
visible to every holder immediately, without touching assignment rows.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from ..exceptions import NotAssignedToProjectError, NotFoundError, ScopeMismatchError
from .constants import TemplateScope
from .models import CompanyPermission, PermissionTemplate, ProjectAssignment, utcnow

if TYPE_CHECKING:
    from ..stores.base import AssignmentRepository, TemplateRepository

logger = logging.getLogger(__name__)


class AssignmentStore:
    """Company permissions and project memberships of users.

    Args:
        assignments: Persistence backend implementing AssignmentRepository.
        templates: Template repository used to check scope before assigning.
    """

    def __init__(self, assignments: "AssignmentRepository", templates: "TemplateRepository") -> None:
        self._assignments = assignments
        self._templates = templates

    # ── Company level ───────────────────────────────────

    def set_company_template(
        self,
        user_id: str,
        template_id: str,
        *,
        assigned_by: Optional[str] = None,
    ) -> CompanyPermission:
        """Give the user a company template, replacing any previous one.

        Raises:
            NotFoundError: no such template.
            ScopeMismatchError: the template is not company-scoped.
        """
        self._require_scope(template_id, TemplateScope.COMPANY)
        permission = self._assignments.upsert_company_assignment(
            CompanyPermission(
                id=str(uuid4()),
                user_id=user_id,
                company_template_id=template_id,
                assigned_by=assigned_by,
                assigned_at=utcnow(),
            )
        )
        logger.info("Assigned company template", extra={"user_id": user_id, "template_id": template_id})
        return permission

    def get_company_assignment(self, user_id: str) -> Optional[CompanyPermission]:
        return self._assignments.find_company_assignment(user_id)

    # ── Project level ───────────────────────────────────

    def add_project_member(
        self,
        user_id: str,
        project_id: str,
        *,
        role_override: Optional[str] = None,
        assigned_by: Optional[str] = None,
    ) -> ProjectAssignment:
        """Record that the user joined the project, without a template.

        Idempotent: an existing membership row is returned unchanged.
        """
        now = utcnow()
        candidate = ProjectAssignment(
            id=str(uuid4()),
            user_id=user_id,
            project_id=project_id,
            role_override=role_override,
            assigned_by=assigned_by,
            created_at=now,
            updated_at=now,
        )
        assignment = self._assignments.insert_project_assignment(candidate)
        if assignment.id == candidate.id:
            logger.info("Added project member", extra={"user_id": user_id, "project_id": project_id})
        return assignment

    def assign_project_template(
        self,
        user_id: str,
        project_id: str,
        template_id: str,
        *,
        assigned_by: Optional[str] = None,
    ) -> ProjectAssignment:
        """Attach a project template to an existing membership.

        Raises:
            NotAssignedToProjectError: the user is not a member of the project yet.
            NotFoundError: no such template.
            ScopeMismatchError: the template is not project-scoped.
        """
        if self._assignments.find_project_assignment(user_id, project_id) is None:
            logger.warning(
                "Rejected project template for non-member",
                extra={"user_id": user_id, "project_id": project_id, "template_id": template_id},
            )
            raise NotAssignedToProjectError(user_id=user_id, project_id=project_id)
        self._require_scope(template_id, TemplateScope.PROJECT)

        assignment = self._assignments.set_project_template(
            user_id, project_id, template_id, assigned_by=assigned_by
        )
        logger.info(
            "Assigned project template",
            extra={"user_id": user_id, "project_id": project_id, "template_id": template_id},
        )
        return assignment

    def clear_project_template(self, assignment_id: str) -> ProjectAssignment:
        """Detach the project template; the membership row always stays.

        Clearing an assignment without a template is a no-op.
        """
        assignment = self._assignments.clear_project_template(assignment_id)
        logger.info(
            "Cleared project template",
            extra={"user_id": assignment.user_id, "project_id": assignment.project_id},
        )
        return assignment

    def find_project_assignment(self, user_id: str, project_id: str) -> Optional[ProjectAssignment]:
        return self._assignments.find_project_assignment(user_id, project_id)

    def list_project_assignments(
        self,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> list[ProjectAssignment]:
        """Memberships filtered by user, project, or both."""
        return self._assignments.list_project_assignments(user_id=user_id, project_id=project_id)

    def _require_scope(self, template_id: str, scope: TemplateScope) -> PermissionTemplate:
        template = self._templates.find_by_id(template_id)
        if template is None:
            raise NotFoundError("Template not found", template_id=template_id)
        if template.scope != scope:
            logger.warning(
                "Rejected %s template where %s is required",
                template.scope.value,
                scope.value,
                extra={"template_id": template_id},
            )
            raise ScopeMismatchError(f"Template must be {scope.value}-scoped", template_id=template_id)
        return template


__all__ = ["AssignmentStore"]
