"""Template Store: catalog and lifecycle of permission templates.

Owns template identity and enforces the template-level invariants:

- names are trimmed, non-empty and unique (case-sensitive);
- tool permissions only name tools of the template's scope;
- protected templates can never be edited or deleted;
- system-default templates can never be deleted;
- templates still referenced by an assignment can never be deleted.

Uniqueness and the in-use check are enforced atomically by the repository;
the checks here only produce early, descriptive failures.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional
from uuid import uuid4

from pydantic import ValidationError

from ..exceptions import (
    AccessCoreError,
    InvalidTemplateError,
    NotFoundError,
    ProtectedTemplateError,
    SystemDefaultTemplateError,
    TemplateInUseError,
)
from .catalog import DEFAULT_CATALOG, ToolCatalog, coerce_scope, normalize_granular_permissions
from .constants import AccessLevel, TemplateScope
from .models import PermissionTemplate, TemplateChanges, TemplateDraft, utcnow

if TYPE_CHECKING:
    from ..stores.base import TemplateRepository

logger = logging.getLogger(__name__)


def _validate_payload(model: Any, payload: Mapping[str, Any]) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidTemplateError(f"Invalid template payload: {e.error_count()} error(s)", errors=e.errors()) from e


def _clean_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidTemplateError("Template name must be a non-empty string", name=name)
    return name.strip()


class TemplateStore:
    """Create, update, delete and read permission templates.

    Args:
        repository: Persistence backend implementing TemplateRepository.
        catalog: Closed tool vocabularies used to validate every write.
    """

    def __init__(self, repository: "TemplateRepository", catalog: Optional[ToolCatalog] = None) -> None:
        self._repository = repository
        self._catalog = catalog or DEFAULT_CATALOG

    @property
    def catalog(self) -> ToolCatalog:
        return self._catalog

    # ── Mutations ───────────────────────────────────────

    def create(
        self,
        name: str,
        description: Optional[str] = None,
        scope: TemplateScope | str = TemplateScope.PROJECT,
        tool_permissions: Optional[Mapping[str, AccessLevel | str]] = None,
        granular_permissions: Optional[Mapping[str, Any]] = None,
        sort_order: Optional[int] = None,
        *,
        is_system_default: bool = False,
        is_protected: bool = False,
    ) -> PermissionTemplate:
        """Create a template.

        Raises:
            InvalidScopeError: scope is not company or project.
            InvalidTemplateError: empty name, unknown tool or access level.
            DuplicateNameError: another template already uses the trimmed name.
        """
        scope = coerce_scope(scope)
        clean_name = _clean_name(name)
        tools = self._catalog.validate_tool_permissions(scope, tool_permissions)
        granular = normalize_granular_permissions(granular_permissions)
        if sort_order is None:
            sort_order = self._next_sort_order()

        now = utcnow()
        template = PermissionTemplate(
            id=str(uuid4()),
            name=clean_name,
            description=description,
            scope=scope,
            tool_permissions=tools,
            granular_permissions=granular,
            is_system_default=is_system_default,
            is_protected=is_protected,
            sort_order=sort_order,
            created_at=now,
            updated_at=now,
        )
        try:
            created = self._repository.insert(template)
        except AccessCoreError as e:
            logger.warning("Template create rejected (%s): %s", e.code, e.message, extra={"template_name": clean_name})
            raise
        logger.info(
            "Created %s template %r",
            scope.value,
            clean_name,
            extra={"template_id": created.id},
        )
        return created

    def create_from_draft(self, draft: TemplateDraft | Mapping[str, Any]) -> PermissionTemplate:
        """Create a template from a transport payload (snake_case or camelCase keys)."""
        if not isinstance(draft, TemplateDraft):
            draft = _validate_payload(TemplateDraft, draft)
        return self.create(
            draft.name,
            description=draft.description,
            scope=draft.scope,
            tool_permissions=draft.tool_permissions,
            granular_permissions=draft.granular_permissions,
            sort_order=draft.sort_order,
            is_system_default=draft.is_system_default,
            is_protected=draft.is_protected,
        )

    def update(
        self,
        template_id: str,
        changes: TemplateChanges | Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> PermissionTemplate:
        """Apply a partial update.

        Only name, description, tool_permissions, granular_permissions and
        sort_order can change; scope and the system flags are fixed at creation.
        Only the provided fields are written, so concurrent updates of
        different fields do not overwrite each other.

        Raises:
            NotFoundError: no such template.
            ProtectedTemplateError: the template is protected; nothing changes,
                whatever the payload.
            InvalidTemplateError: invalid name, tool or access level.
            DuplicateNameError: the new name belongs to another template.
        """
        current = self.get(template_id)
        if current.is_protected:
            logger.warning("Rejected update of protected template %r", current.name, extra={"template_id": template_id})
            raise ProtectedTemplateError(template_id=template_id)

        if not isinstance(changes, TemplateChanges):
            changes = _validate_payload(TemplateChanges, {**(changes or {}), **fields})

        provided = changes.provided()
        if not provided:
            return current

        update: dict[str, Any] = {}
        if "name" in provided:
            update["name"] = _clean_name(provided["name"])
        if "description" in provided:
            update["description"] = provided["description"]
        if "tool_permissions" in provided:
            update["tool_permissions"] = self._catalog.validate_tool_permissions(
                current.scope, provided["tool_permissions"]
            )
        if "granular_permissions" in provided:
            update["granular_permissions"] = normalize_granular_permissions(provided["granular_permissions"])
        if "sort_order" in provided and provided["sort_order"] is not None:
            update["sort_order"] = provided["sort_order"]
        update["updated_at"] = utcnow()

        try:
            updated = self._repository.update(template_id, update)
        except AccessCoreError as e:
            logger.warning("Template update rejected (%s): %s", e.code, e.message, extra={"template_id": template_id})
            raise
        logger.info("Updated template %r (%s)", updated.name, ", ".join(sorted(provided)), extra={"template_id": template_id})
        return updated

    def delete(self, template_id: str) -> None:
        """Delete a template nobody uses.

        Raises:
            NotFoundError: no such template.
            ProtectedTemplateError: the template is protected.
            SystemDefaultTemplateError: the template was seeded by the system.
            TemplateInUseError: assignments still reference it (carries the count).
        """
        current = self.get(template_id)
        if current.is_protected:
            logger.warning("Rejected delete of protected template %r", current.name, extra={"template_id": template_id})
            raise ProtectedTemplateError("Cannot delete protected template", template_id=template_id)
        if current.is_system_default:
            logger.warning("Rejected delete of system default template %r", current.name, extra={"template_id": template_id})
            raise SystemDefaultTemplateError(template_id=template_id)

        count = self._repository.count_references(template_id)
        if count:
            logger.warning("Rejected delete of template %r in use by %d", current.name, count, extra={"template_id": template_id})
            raise TemplateInUseError(count, template_id=template_id)

        self._repository.delete(template_id)
        logger.info("Deleted template %r", current.name, extra={"template_id": template_id})

    # ── Reads ───────────────────────────────────────────

    def get(self, template_id: str) -> PermissionTemplate:
        template = self._repository.find_by_id(template_id)
        if template is None:
            raise NotFoundError("Template not found", template_id=template_id)
        return template

    def get_by_name(self, name: str) -> Optional[PermissionTemplate]:
        """Look a template up by its exact (trimmed) name; None when absent."""
        return self._repository.find_by_name(name.strip())

    def list(self, scope: TemplateScope | str | None = None) -> list[PermissionTemplate]:
        """All templates ordered by sort order then name, optionally for one scope."""
        return self._repository.list(coerce_scope(scope) if scope is not None else None)

    def usage_count(self, template_id: str) -> int:
        """Company permissions + project assignments currently pointing at the template."""
        self.get(template_id)
        return self._repository.count_references(template_id)

    def _next_sort_order(self) -> int:
        existing = self._repository.list()
        if not existing:
            return 0
        return max(t.sort_order for t in existing) + 1


__all__ = ["TemplateStore"]
