"""Tests for access-check helpers over a resolved view."""

from __future__ import annotations

import pytest

from accesscore import AccessConfig
from accesscore.permissions import (
    DEFAULT_CATALOG,
    AccessLevel,
    AssignmentStore,
    EffectivePermissions,
    PermissionResolver,
    ProjectGrants,
    TemplateStore,
    ToolCheck,
    ToolGrants,
    can_access,
    check_tools,
    has_granular_permission,
    has_tool_access,
    is_action_allowed_at_level,
)
from accesscore.stores import InMemoryStore


@pytest.fixture
def field_worker() -> EffectivePermissions:
    return EffectivePermissions(
        user_id="u-1",
        company=ToolGrants(
            tools={"directory": AccessLevel.READ_ONLY, "financials": AccessLevel.NONE},
            granular={},
        ),
        projects=[
            ProjectGrants(
                project_id="p-1",
                tools={
                    "safety": AccessLevel.STANDARD,
                    "documents": AccessLevel.READ_ONLY,
                    "schedule": AccessLevel.NONE,
                    "rfis": AccessLevel.ADMIN,
                },
                granular={"safety": ["create_incidents"]},
            )
        ],
    )


@pytest.fixture
def owner() -> EffectivePermissions:
    return EffectivePermissions(user_id="u-0", is_owner_admin=True)


class TestHasToolAccess:
    """Tests for has_tool_access."""

    def test_levels(self) -> None:
        tools = {"safety": AccessLevel.STANDARD}
        assert has_tool_access(tools, "safety") is True
        assert has_tool_access(tools, "safety", AccessLevel.STANDARD) is True
        assert has_tool_access(tools, "safety", AccessLevel.ADMIN) is False

    def test_missing_tool_is_none(self) -> None:
        assert has_tool_access({}, "financials") is False
        assert has_tool_access({}, "financials", AccessLevel.NONE) is True

    def test_string_levels(self) -> None:
        assert has_tool_access({"rfis": "admin"}, "rfis", "standard") is True


class TestActionChecks:
    """Tests for granular and level-implied actions."""

    def test_granular_lookup(self) -> None:
        granular = {"safety": ["create_incidents"]}
        assert has_granular_permission(granular, "safety", "create_incidents") is True
        assert has_granular_permission(granular, "safety", "close_incidents") is False
        assert has_granular_permission(granular, "rfis", "create_rfis") is False

    @pytest.mark.parametrize(
        ("tool", "action", "level", "expected"),
        [
            ("safety", "delete_incidents", AccessLevel.ADMIN, True),
            ("safety", "view_observations", AccessLevel.NONE, False),
            ("documents", "download_documents", AccessLevel.READ_ONLY, True),
            ("documents", "upload_documents", AccessLevel.READ_ONLY, False),
            ("documents", "upload_documents", AccessLevel.STANDARD, True),
            ("safety", "view_observations", AccessLevel.STANDARD, True),
            ("safety", "create_incidents", AccessLevel.STANDARD, False),
        ],
    )
    def test_level_implied_actions(self, tool: str, action: str, level: AccessLevel, expected: bool) -> None:
        assert is_action_allowed_at_level(tool, action, level) is expected


class TestCanAccess:
    """Tests for can_access."""

    def test_company_tool(self, field_worker: EffectivePermissions) -> None:
        assert can_access(field_worker, "directory") is True
        assert can_access(field_worker, "financials") is False
        assert can_access(field_worker, "settings") is False

    def test_project_tool_requires_project(self, field_worker: EffectivePermissions) -> None:
        assert can_access(field_worker, "safety") is False
        assert can_access(field_worker, "safety", project_id="p-1") is True
        assert can_access(field_worker, "safety", project_id="p-404") is False

    def test_none_level(self, field_worker: EffectivePermissions) -> None:
        assert can_access(field_worker, "schedule", "p-1") is False

    def test_actions(self, field_worker: EffectivePermissions) -> None:
        assert can_access(field_worker, "safety", "p-1", action="view_observations") is True
        assert can_access(field_worker, "safety", "p-1", action="create_incidents") is True
        assert can_access(field_worker, "safety", "p-1", action="close_incidents") is False
        assert can_access(field_worker, "documents", "p-1", action="download_documents") is True
        assert can_access(field_worker, "rfis", "p-1", action="close_rfis") is True

    def test_unknown_tool(self, field_worker: EffectivePermissions, owner: EffectivePermissions) -> None:
        assert can_access(field_worker, "spaceships") is False
        assert can_access(owner, "spaceships") is False

    def test_owner_admin(self, owner: EffectivePermissions) -> None:
        assert can_access(owner, "settings", action="anything") is True
        assert can_access(owner, "safety", "p-1", action="delete_incidents") is True
        assert can_access(owner, "safety") is False


class TestCheckTools:
    """Tests for check_tools."""

    def test_project_batch(self, field_worker: EffectivePermissions) -> None:
        results = check_tools(field_worker, ["safety", "rfis", "schedule", "spaceships"], project_id="p-1")

        assert results["safety"] == ToolCheck(AccessLevel.STANDARD, can_read=True, can_write=True, can_admin=False)
        assert results["rfis"] == ToolCheck(AccessLevel.ADMIN, can_read=True, can_write=True, can_admin=True)
        assert results["schedule"].level is AccessLevel.NONE
        assert results["spaceships"].can_read is False

    def test_project_tool_without_membership(self, field_worker: EffectivePermissions) -> None:
        results = check_tools(field_worker, ["safety", "directory"])
        assert results["safety"].level is AccessLevel.NONE
        assert results["directory"] == ToolCheck(AccessLevel.READ_ONLY, can_read=True, can_write=False, can_admin=False)

    def test_owner_admin(self, owner: EffectivePermissions) -> None:
        results = check_tools(owner, ["financials", "safety"], project_id="p-1")
        assert all(check.can_admin for check in results.values())
        assert check_tools(owner, ["safety"])["safety"].can_read is False


class TestResolvedCatalog:
    """Checks classify tools by the catalog the view was resolved against."""

    @pytest.fixture
    def resolver(self, store: InMemoryStore) -> PermissionResolver:
        config = AccessConfig(company_tools=["directory", "payroll"], project_tools=["safety", "inspections"])
        templates = TemplateStore(store, catalog=config.tool_catalog())
        assignments = AssignmentStore(store, store)
        clerk = templates.create("Payroll Clerk", scope="company", tool_permissions={"payroll": "standard"})
        inspector = templates.create("Inspector", scope="project", tool_permissions={"inspections": "admin"})
        assignments.set_company_template("u-1", clerk.id)
        assignments.add_project_member("u-1", "p-1")
        assignments.assign_project_template("u-1", "p-1", inspector.id)
        return PermissionResolver.from_config(config, store, store)

    def test_configured_tools(self, resolver: PermissionResolver) -> None:
        effective = resolver.compute_effective_permissions("u-1")

        assert can_access(effective, "payroll") is True
        assert can_access(effective, "inspections", "p-1", action="close_inspections") is True
        assert can_access(effective, "safety", "p-1") is False
        assert can_access(effective, "financials") is False

        results = check_tools(effective, ["payroll", "inspections", "financials"], project_id="p-1")
        assert results["payroll"] == ToolCheck(AccessLevel.STANDARD, can_read=True, can_write=True, can_admin=False)
        assert results["inspections"].can_admin is True
        assert results["financials"].level is AccessLevel.NONE

    def test_owner_admin_on_configured_tools(self, resolver: PermissionResolver) -> None:
        owner = resolver.compute_effective_permissions("u-0", "ADMIN")

        assert can_access(owner, "payroll") is True
        assert can_access(owner, "inspections", "p-9") is True
        assert can_access(owner, "financials") is False
        assert check_tools(owner, ["inspections"], project_id="p-9")["inspections"].can_admin is True

    def test_explicit_catalog_wins(self, resolver: PermissionResolver) -> None:
        effective = resolver.compute_effective_permissions("u-1")
        assert can_access(effective, "payroll", catalog=DEFAULT_CATALOG) is False

    def test_catalog_not_in_payload(self, resolver: PermissionResolver) -> None:
        payload = resolver.compute_effective_permissions("u-1").to_payload()
        assert "catalog" not in payload
        assert payload["company"]["tools"] == {"directory": "none", "payroll": "standard"}
