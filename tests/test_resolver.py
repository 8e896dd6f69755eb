"""Tests for effective-permission resolution."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from accesscore import AccessConfig
from accesscore.exceptions import StoreUnavailableError
from accesscore.permissions import (
    COMPANY_TOOLS,
    PROJECT_TOOLS,
    AccessLevel,
    AssignmentStore,
    Bypass,
    PermissionResolver,
    Templated,
    TemplateStore,
    resolve_grants,
)
from accesscore.stores import InMemoryStore


def _all(tools: tuple[str, ...], level: AccessLevel) -> dict[str, AccessLevel]:
    return {tool: level for tool in tools}


class TestDetermineMode:
    """Tests for the bypass / templated decision."""

    def test_admin_role_bypasses(self, resolver: PermissionResolver) -> None:
        assert resolver.determine_mode("u-1", "ADMIN") == Bypass(reason="admin_role")

    def test_admin_role_is_exact_match(self, resolver: PermissionResolver) -> None:
        assert isinstance(resolver.determine_mode("u-1", "admin"), Templated)

    def test_protected_company_template_bypasses(
        self, resolver: PermissionResolver, templates: TemplateStore, assignments: AssignmentStore
    ) -> None:
        owner = templates.create("Owner / Admin", scope="company", is_protected=True)
        assignments.set_company_template("u-1", owner.id)
        assert resolver.determine_mode("u-1", "FIELD_WORKER") == Bypass(reason="protected_template")

    def test_templated_carries_company_template(
        self, resolver: PermissionResolver, templates: TemplateStore, assignments: AssignmentStore
    ) -> None:
        office = templates.create("Office Staff", scope="company")
        assignments.set_company_template("u-1", office.id)
        mode = resolver.determine_mode("u-1")
        assert isinstance(mode, Templated)
        assert mode.company_template.id == office.id

    def test_configured_admin_role(self, store: InMemoryStore) -> None:
        resolver = PermissionResolver.from_config(AccessConfig(admin_role="OWNER"), store, store)
        assert isinstance(resolver.determine_mode("u-1", "OWNER"), Bypass)
        assert isinstance(resolver.determine_mode("u-1", "ADMIN"), Templated)


class TestResolveGrants:
    """Tests for the shared per-level grant function."""

    def test_bypass(self) -> None:
        tools, granular = resolve_grants(Bypass("admin_role"), ("a", "b"), None, AccessLevel.NONE)
        assert tools == {"a": AccessLevel.ADMIN, "b": AccessLevel.ADMIN}
        assert granular == {}

    def test_fallback(self) -> None:
        tools, granular = resolve_grants(Templated(), ("a", "b"), None, AccessLevel.READ_ONLY)
        assert tools == {"a": AccessLevel.READ_ONLY, "b": AccessLevel.READ_ONLY}
        assert granular == {}


class TestComputeEffectivePermissions:
    """Tests for PermissionResolver.compute_effective_permissions."""

    def test_admin_role_gets_admin_everywhere(
        self, resolver: PermissionResolver, templates: TemplateStore, assignments: AssignmentStore
    ) -> None:
        viewer = templates.create("Viewer", scope="project", tool_permissions={"safety": "none"})
        assignments.add_project_member("u-1", "p-1")
        assignments.assign_project_template("u-1", "p-1", viewer.id)
        assignments.add_project_member("u-1", "p-2")

        effective = resolver.compute_effective_permissions("u-1", "ADMIN")

        assert effective.is_owner_admin is True
        assert effective.company.tools == _all(COMPANY_TOOLS, AccessLevel.ADMIN)
        assert [p.project_id for p in effective.projects] == ["p-1", "p-2"]
        for project in effective.projects:
            assert project.tools == _all(PROJECT_TOOLS, AccessLevel.ADMIN)

    def test_protected_template_same_as_admin_role(
        self, resolver: PermissionResolver, templates: TemplateStore, assignments: AssignmentStore
    ) -> None:
        owner = templates.create(
            "Owner / Admin",
            scope="company",
            tool_permissions={"settings": "none"},
            is_protected=True,
        )
        assignments.set_company_template("u-1", owner.id)
        assignments.add_project_member("u-1", "p-1")

        by_template = resolver.compute_effective_permissions("u-1", "FIELD_WORKER")
        by_role = resolver.compute_effective_permissions("u-1", "ADMIN")

        assert by_template.is_owner_admin is True
        assert by_template.company == by_role.company
        assert by_template.projects == by_role.projects

    def test_no_company_template_is_none(self, resolver: PermissionResolver) -> None:
        effective = resolver.compute_effective_permissions("u-1", "FIELD_WORKER")

        assert effective.is_owner_admin is False
        assert effective.company.tools == _all(COMPANY_TOOLS, AccessLevel.NONE)
        assert effective.company.granular == {}
        assert effective.projects == []

    def test_member_without_template_is_read_only(
        self, resolver: PermissionResolver, assignments: AssignmentStore
    ) -> None:
        assignments.add_project_member("u-1", "p-1")

        project = resolver.compute_effective_permissions("u-1").project("p-1")

        assert project.tools == _all(PROJECT_TOOLS, AccessLevel.READ_ONLY)
        assert project.granular == {}
        assert project.template_id is None

    def test_safety_standard_scenario(
        self, resolver: PermissionResolver, templates: TemplateStore, assignments: AssignmentStore
    ) -> None:
        """A template granting only safety leaves every other project tool at none."""
        template = templates.create("Safety Only", scope="project", tool_permissions={"safety": "standard"})
        assignments.add_project_member("u-1", "P")
        assignments.assign_project_template("u-1", "P", template.id)

        effective = resolver.compute_effective_permissions("u-1")

        assert len(effective.projects) == 1
        project = effective.projects[0]
        assert project.project_id == "P"
        expected = _all(PROJECT_TOOLS, AccessLevel.NONE)
        expected["safety"] = AccessLevel.STANDARD
        assert project.tools == expected

    def test_company_template_granular_passed_through(
        self, resolver: PermissionResolver, templates: TemplateStore, assignments: AssignmentStore
    ) -> None:
        office = templates.create(
            "Office Staff",
            scope="company",
            tool_permissions={"financials": "standard"},
            granular_permissions={"financials": ["sync_quickbooks", "view_costs"]},
        )
        assignments.set_company_template("u-1", office.id)

        company = resolver.compute_effective_permissions("u-1").company

        assert company.tools["financials"] is AccessLevel.STANDARD
        assert company.tools["settings"] is AccessLevel.NONE
        assert company.granular == {"financials": ["sync_quickbooks", "view_costs"]}

    def test_output_maps_are_total(
        self, resolver: PermissionResolver, templates: TemplateStore, assignments: AssignmentStore
    ) -> None:
        template = templates.create("Partial", scope="project", tool_permissions={"rfis": "admin"})
        for project_id in ("p-1", "p-2"):
            assignments.add_project_member("u-1", project_id)
        assignments.assign_project_template("u-1", "p-2", template.id)

        effective = resolver.compute_effective_permissions("u-1")

        assert list(effective.company.tools) == list(COMPANY_TOOLS)
        for project in effective.projects:
            assert list(project.tools) == list(PROJECT_TOOLS)

    def test_template_edit_visible_to_holders(
        self, resolver: PermissionResolver, templates: TemplateStore, assignments: AssignmentStore
    ) -> None:
        template = templates.create("Crew", scope="project", tool_permissions={"equipment": "read_only"})
        assignments.add_project_member("u-1", "p-1")
        assignments.assign_project_template("u-1", "p-1", template.id)

        templates.update(template.id, tool_permissions={"equipment": "admin"})

        assert resolver.compute_effective_permissions("u-1").project("p-1").level("equipment") is AccessLevel.ADMIN

    def test_catalog_restricts_output(self, store: InMemoryStore) -> None:
        config = AccessConfig(company_tools=["directory", "financials"], project_tools=["daily_logs", "safety"])
        templates = TemplateStore(store, catalog=config.tool_catalog())
        assignments = AssignmentStore(store, store)
        resolver = PermissionResolver.from_config(config, store, store)
        template = templates.create("Safety", scope="project", tool_permissions={"safety": "admin"})
        assignments.add_project_member("u-1", "p-1")
        assignments.assign_project_template("u-1", "p-1", template.id)

        effective = resolver.compute_effective_permissions("u-1")

        assert effective.company.tools == {"directory": AccessLevel.NONE, "financials": AccessLevel.NONE}
        assert effective.project("p-1").tools == {"daily_logs": AccessLevel.NONE, "safety": AccessLevel.ADMIN}

    def test_each_template_read_once(self, store: InMemoryStore) -> None:
        templates = TemplateStore(store)
        assignments = AssignmentStore(store, store)
        template = templates.create("Crew", scope="project")
        for project_id in ("p-1", "p-2", "p-3"):
            assignments.add_project_member("u-1", project_id)
            assignments.assign_project_template("u-1", project_id, template.id)

        spy = MagicMock(wraps=store)
        PermissionResolver(spy, store).compute_effective_permissions("u-1")

        spy.find_by_id.assert_called_once_with(template.id)

    def test_missing_template_falls_back(self) -> None:
        """Reads never fail on dangling references left by a foreign writer."""
        store = InMemoryStore()
        assignments = MagicMock()
        assignments.find_company_assignment.return_value = MagicMock(company_template_id="gone")
        assignments.list_project_assignments.return_value = [
            MagicMock(id="a-1", project_id="p-1", project_template_id="gone-too", role_override=None)
        ]

        effective = PermissionResolver(store, assignments).compute_effective_permissions("u-1")

        assert effective.company.tools == _all(COMPANY_TOOLS, AccessLevel.NONE)
        assert effective.project("p-1").tools == _all(PROJECT_TOOLS, AccessLevel.READ_ONLY)

    def test_store_failure_propagates(self) -> None:
        assignments = MagicMock()
        assignments.find_company_assignment.side_effect = StoreUnavailableError()

        with pytest.raises(StoreUnavailableError):
            PermissionResolver(InMemoryStore(), assignments).compute_effective_permissions("u-1")
