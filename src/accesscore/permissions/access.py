"""Access-check helpers over a resolved :class:`EffectivePermissions`.

Provides runtime functions the enforcement layer calls after resolving a
user once: level checks, granular action checks and batch tool checks.
Owner/admin bypass always answers yes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from .catalog import DEFAULT_CATALOG, ToolCatalog
from .constants import READ_ONLY_ACTIONS, STANDARD_ACTIONS, AccessLevel
from .models import EffectivePermissions, ToolGrants

logger = logging.getLogger(__name__)


def has_tool_access(
    tools: Mapping[str, AccessLevel],
    tool: str,
    required_level: AccessLevel = AccessLevel.READ_ONLY,
) -> bool:
    """Check if a tool map grants at least ``required_level`` for ``tool``.

    Missing tools count as ``none``.

    Example::

        tools = {"safety": AccessLevel.STANDARD}
        has_tool_access(tools, "safety")                        # True
        has_tool_access(tools, "safety", AccessLevel.ADMIN)     # False
        has_tool_access(tools, "financials")                    # False
    """
    level = AccessLevel(tools.get(tool, AccessLevel.NONE))
    return level.rank >= AccessLevel(required_level).rank


def has_granular_permission(granular: Mapping[str, Iterable[str]], tool: str, action: str) -> bool:
    """Check if ``action`` is explicitly granted for ``tool``."""
    return action in granular.get(tool, ())


def is_action_allowed_at_level(tool: str, action: str, level: AccessLevel) -> bool:
    """Check if an access level implies ``action`` without a granular grant.

    - ``admin`` implies every action.
    - ``none`` implies nothing.
    - ``read_only`` implies the read-only base actions of the tool.
    - ``standard`` implies the standard base actions plus the read-only ones.
    """
    level = AccessLevel(level)
    if level is AccessLevel.ADMIN:
        return True
    if level is AccessLevel.NONE:
        return False
    if action in READ_ONLY_ACTIONS.get(tool, ()):
        return True
    if level is AccessLevel.STANDARD:
        return action in STANDARD_ACTIONS.get(tool, ())
    return False


def _grants_for(
    effective: EffectivePermissions,
    tool: str,
    project_id: Optional[str],
    catalog: ToolCatalog,
) -> Optional[ToolGrants]:
    if catalog.is_company_tool(tool):
        return effective.company
    if catalog.is_project_tool(tool) and project_id is not None:
        return effective.project(project_id)
    return None


def can_access(
    effective: EffectivePermissions,
    tool: str,
    project_id: Optional[str] = None,
    action: Optional[str] = None,
    catalog: Optional[ToolCatalog] = None,
) -> bool:
    """Main decision function: may the user use ``tool`` (and perform ``action``)?

    Tools are classified by ``catalog`` when given, else by the catalog the
    view was resolved against, else by the default catalog.

    Decision logic:
    1. Unknown tools, and project tools without ``project_id``, → denied.
    2. Owner/admin → allowed.
    3. Company tools read the company grants; project tools need a
       membership of ``project_id``, otherwise denied.
    4. ``none`` → denied, ``admin`` → allowed.
    5. No action → allowed (the user can at least see the tool).
    6. Action implied by the level, or granted explicitly → allowed.

    Example::

        effective = resolver.compute_effective_permissions("u-1", "FIELD_WORKER")
        can_access(effective, "safety", project_id="p-1")                    # visibility
        can_access(effective, "safety", "p-1", action="create_incidents")    # action
        can_access(effective, "financials")                                  # company tool
    """
    catalog = catalog or effective.catalog or DEFAULT_CATALOG
    if catalog.scope_of(tool) is None:
        return False
    if catalog.is_project_tool(tool) and project_id is None:
        return False
    if effective.is_owner_admin:
        return True

    grants = _grants_for(effective, tool, project_id, catalog)
    if grants is None:
        return False

    level = grants.level(tool)
    if level is AccessLevel.NONE:
        return False
    if level is AccessLevel.ADMIN:
        return True
    if not action:
        return True
    if is_action_allowed_at_level(tool, action, level):
        return True
    return has_granular_permission(grants.granular, tool, action)


@dataclass(frozen=True)
class ToolCheck:
    """Result of a batch check for one tool."""

    level: AccessLevel
    can_read: bool
    can_write: bool
    can_admin: bool


_DENIED = ToolCheck(level=AccessLevel.NONE, can_read=False, can_write=False, can_admin=False)
_FULL = ToolCheck(level=AccessLevel.ADMIN, can_read=True, can_write=True, can_admin=True)


def check_tools(
    effective: EffectivePermissions,
    tools: Iterable[str],
    project_id: Optional[str] = None,
    catalog: Optional[ToolCatalog] = None,
) -> dict[str, ToolCheck]:
    """Batch check of several tools for one (optional) project.

    Unknown tools, and project tools without a matching membership, report
    ``none`` with every flag false.
    """
    catalog = catalog or effective.catalog or DEFAULT_CATALOG
    results: dict[str, ToolCheck] = {}
    for tool in tools:
        tool = tool.strip()
        scope = catalog.scope_of(tool)
        if scope is None:
            logger.debug("Batch check for unknown tool %r", tool)
            results[tool] = _DENIED
            continue
        if effective.is_owner_admin and (catalog.is_company_tool(tool) or project_id is not None):
            results[tool] = _FULL
            continue
        grants = _grants_for(effective, tool, project_id, catalog)
        if grants is None:
            results[tool] = _DENIED
            continue
        level = grants.level(tool)
        results[tool] = ToolCheck(
            level=level,
            can_read=has_tool_access(grants.tools, tool, AccessLevel.READ_ONLY),
            can_write=has_tool_access(grants.tools, tool, AccessLevel.STANDARD),
            can_admin=has_tool_access(grants.tools, tool, AccessLevel.ADMIN),
        )
    return results


__all__ = [
    "ToolCheck",
    "can_access",
    "check_tools",
    "has_granular_permission",
    "has_tool_access",
    "is_action_allowed_at_level",
]
