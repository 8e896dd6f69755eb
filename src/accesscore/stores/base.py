"""Repository interfaces implemented by the persistence layer.

Template and assignment stores talk to persistence only through these
protocols. Implementations must make each mutation atomic:

- ``insert`` / ``update`` check name uniqueness and write in one step
  (loser gets DuplicateNameError). ``update`` applies a field delta to the
  stored template, so concurrent partial updates of different fields all land.
- ``delete`` re-checks the reference count and removes in one step
  (TemplateInUseError when references exist).
- ``upsert_company_assignment`` / ``set_project_template`` verify the
  referenced template still exists in the same step (NotFoundError), so an
  assign racing a delete never leaves a dangling reference.
- ``insert_project_assignment`` returns the existing membership untouched,
  and ``set_project_template`` only rewrites the template fields of the
  current row.

Connectivity failures surface as StoreUnavailableError, lost lock races as
ConflictError.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from ..permissions.constants import TemplateScope
from ..permissions.models import CompanyPermission, PermissionTemplate, ProjectAssignment


@runtime_checkable
class TemplateRepository(Protocol):
    """Persistence of permission templates."""

    def find_by_id(self, template_id: str) -> Optional[PermissionTemplate]: ...

    def find_by_name(self, name: str) -> Optional[PermissionTemplate]: ...

    def list(self, scope: Optional[TemplateScope] = None) -> list[PermissionTemplate]:
        """Templates ordered by (sort_order, name), optionally filtered by scope."""
        ...

    def insert(self, template: PermissionTemplate) -> PermissionTemplate: ...

    def update(self, template_id: str, changes: Mapping[str, Any]) -> PermissionTemplate:
        """Apply already-validated field changes to the stored template."""
        ...

    def delete(self, template_id: str) -> None: ...

    def count_references(self, template_id: str) -> int:
        """Number of company permissions + project assignments pointing at the template."""
        ...


@runtime_checkable
class AssignmentRepository(Protocol):
    """Persistence of company permissions and project assignments."""

    def find_company_assignment(self, user_id: str) -> Optional[CompanyPermission]: ...

    def find_project_assignment(self, user_id: str, project_id: str) -> Optional[ProjectAssignment]: ...

    def find_project_assignment_by_id(self, assignment_id: str) -> Optional[ProjectAssignment]: ...

    def list_project_assignments(
        self,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> list[ProjectAssignment]: ...

    def upsert_company_assignment(self, permission: CompanyPermission) -> CompanyPermission:
        """Insert or replace the user's company permission (unique on user_id)."""
        ...

    def insert_project_assignment(self, assignment: ProjectAssignment) -> ProjectAssignment:
        """Insert a membership row, or return the one already held (unique on user_id + project_id)."""
        ...

    def set_project_template(
        self,
        user_id: str,
        project_id: str,
        template_id: str,
        *,
        assigned_by: Optional[str] = None,
    ) -> ProjectAssignment:
        """Point an existing membership at a template (NotAssignedToProjectError without one)."""
        ...

    def clear_project_template(self, assignment_id: str) -> ProjectAssignment: ...


__all__ = [
    "AssignmentRepository",
    "TemplateRepository",
]
