"""Redis-backed store implementing both repository protocols.

Layout (all keys under ``{prefix}``):

    {prefix}:templates            hash  template id -> template JSON
    {prefix}:template_names       hash  template name -> template id
    {prefix}:company              hash  user id -> company permission JSON
    {prefix}:assignments          hash  assignment id -> assignment JSON
    {prefix}:membership           hash  [user id, project id] -> assignment id
    {prefix}:refs:{template id}   set   "company:{user}" / "project:{assignment}"
    {prefix}:lock                 lock  held by every mutation

A template is one JSON value, so its tool and granular maps are always read
together. Mutations run under a single redis lock and write through a
MULTI/EXEC pipeline; a lock that cannot be acquired in time surfaces as
ConflictError, connectivity problems as StoreUnavailableError.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..exceptions import (
    ConfigurationError,
    ConflictError,
    DuplicateNameError,
    NotAssignedToProjectError,
    NotFoundError,
    StoreUnavailableError,
    TemplateInUseError,
)
from ..permissions.constants import TemplateScope
from ..permissions.models import CompanyPermission, PermissionTemplate, ProjectAssignment, utcnow

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "accesscore"


class RedisStore:
    """TemplateRepository + AssignmentRepository over redis-py.

    Args:
        client: A ``redis.Redis`` created with ``decode_responses=True``.
        prefix: Key prefix shared by every key of this store.
        lock_timeout: Expiry of the mutation lock in seconds.
        lock_blocking_timeout: How long a mutation waits for the lock.
    """

    def __init__(
        self,
        client: Any,
        *,
        prefix: str = DEFAULT_PREFIX,
        lock_timeout: float = 5.0,
        lock_blocking_timeout: float = 2.0,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._lock_timeout = lock_timeout
        self._lock_blocking_timeout = lock_blocking_timeout

    @classmethod
    def from_config(cls, config: Any) -> "RedisStore":
        """Build a store from an AccessConfig; REDIS_URL is required."""
        if not config.redis_url:
            raise ConfigurationError("REDIS_URL is required for the redis permission store")
        client = redis.from_url(config.redis_url, decode_responses=True)
        return cls(
            client,
            prefix=config.store_prefix,
            lock_timeout=config.lock_timeout_seconds,
            lock_blocking_timeout=config.lock_blocking_timeout_seconds,
        )

    # ── Keys ────────────────────────────────────────────

    @property
    def _templates_key(self) -> str:
        return f"{self._prefix}:templates"

    @property
    def _names_key(self) -> str:
        return f"{self._prefix}:template_names"

    @property
    def _company_key(self) -> str:
        return f"{self._prefix}:company"

    @property
    def _assignments_key(self) -> str:
        return f"{self._prefix}:assignments"

    @property
    def _membership_key(self) -> str:
        return f"{self._prefix}:membership"

    def _refs_key(self, template_id: str) -> str:
        return f"{self._prefix}:refs:{template_id}"

    @staticmethod
    def _membership_field(user_id: str, project_id: str) -> str:
        return json.dumps([user_id, project_id])

    # ── Error translation & locking ─────────────────────

    @contextmanager
    def _errors(self) -> Iterator[None]:
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error("Permission store unavailable: %s", e)
            raise StoreUnavailableError(str(e) or None) from e

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        with self._errors():
            lock = self._client.lock(
                f"{self._prefix}:lock",
                timeout=self._lock_timeout,
                blocking_timeout=self._lock_blocking_timeout,
            )
            if not lock.acquire():
                logger.warning("Permission store lock busy after %.1fs", self._lock_blocking_timeout)
                raise ConflictError()
            try:
                yield
            finally:
                try:
                    lock.release()
                except LockError as e:
                    logger.warning("Permission store lock expired before release: %s", e)

    # ── TemplateRepository ──────────────────────────────

    def find_by_id(self, template_id: str) -> Optional[PermissionTemplate]:
        with self._errors():
            raw = self._client.hget(self._templates_key, template_id)
        return PermissionTemplate.model_validate_json(raw) if raw else None

    def find_by_name(self, name: str) -> Optional[PermissionTemplate]:
        with self._errors():
            template_id = self._client.hget(self._names_key, name)
        return self.find_by_id(template_id) if template_id else None

    def list(self, scope: Optional[TemplateScope] = None) -> list[PermissionTemplate]:
        with self._errors():
            raw_values = self._client.hvals(self._templates_key)
        templates = [PermissionTemplate.model_validate_json(raw) for raw in raw_values]
        if scope is not None:
            templates = [t for t in templates if t.scope == scope]
        return sorted(templates, key=lambda t: (t.sort_order, t.name))

    def insert(self, template: PermissionTemplate) -> PermissionTemplate:
        with self._mutation():
            if self._client.hexists(self._templates_key, template.id):
                raise DuplicateNameError(f"Template id {template.id!r} already exists", template_id=template.id)
            if self._client.hexists(self._names_key, template.name):
                raise DuplicateNameError(name=template.name)
            pipe = self._client.pipeline(transaction=True)
            pipe.hset(self._templates_key, template.id, template.model_dump_json())
            pipe.hset(self._names_key, template.name, template.id)
            pipe.execute()
        return template

    def update(self, template_id: str, changes: Mapping[str, Any]) -> PermissionTemplate:
        with self._mutation():
            raw = self._client.hget(self._templates_key, template_id)
            if not raw:
                raise NotFoundError("Template not found", template_id=template_id)
            current = PermissionTemplate.model_validate_json(raw)
            template = current.model_copy(update=dict(changes))
            owner = self._client.hget(self._names_key, template.name)
            if owner and owner != template_id:
                raise DuplicateNameError(name=template.name)
            pipe = self._client.pipeline(transaction=True)
            if current.name != template.name:
                pipe.hdel(self._names_key, current.name)
                pipe.hset(self._names_key, template.name, template_id)
            pipe.hset(self._templates_key, template_id, template.model_dump_json())
            pipe.execute()
        return template

    def delete(self, template_id: str) -> None:
        with self._mutation():
            raw = self._client.hget(self._templates_key, template_id)
            if not raw:
                raise NotFoundError("Template not found", template_id=template_id)
            count = self._client.scard(self._refs_key(template_id))
            if count:
                raise TemplateInUseError(count, template_id=template_id)
            current = PermissionTemplate.model_validate_json(raw)
            pipe = self._client.pipeline(transaction=True)
            pipe.hdel(self._templates_key, template_id)
            pipe.hdel(self._names_key, current.name)
            pipe.delete(self._refs_key(template_id))
            pipe.execute()

    def count_references(self, template_id: str) -> int:
        with self._errors():
            return int(self._client.scard(self._refs_key(template_id)))

    # ── AssignmentRepository ────────────────────────────

    def find_company_assignment(self, user_id: str) -> Optional[CompanyPermission]:
        with self._errors():
            raw = self._client.hget(self._company_key, user_id)
        return CompanyPermission.model_validate_json(raw) if raw else None

    def find_project_assignment(self, user_id: str, project_id: str) -> Optional[ProjectAssignment]:
        with self._errors():
            assignment_id = self._client.hget(self._membership_key, self._membership_field(user_id, project_id))
        return self.find_project_assignment_by_id(assignment_id) if assignment_id else None

    def find_project_assignment_by_id(self, assignment_id: str) -> Optional[ProjectAssignment]:
        with self._errors():
            raw = self._client.hget(self._assignments_key, assignment_id)
        return ProjectAssignment.model_validate_json(raw) if raw else None

    def list_project_assignments(
        self,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> list[ProjectAssignment]:
        with self._errors():
            raw_values = self._client.hvals(self._assignments_key)
        assignments = [
            a
            for a in (ProjectAssignment.model_validate_json(raw) for raw in raw_values)
            if (user_id is None or a.user_id == user_id) and (project_id is None or a.project_id == project_id)
        ]
        return sorted(assignments, key=lambda a: (a.project_id, a.user_id))

    def upsert_company_assignment(self, permission: CompanyPermission) -> CompanyPermission:
        member = f"company:{permission.user_id}"
        with self._mutation():
            self._require_template(permission.company_template_id)
            raw = self._client.hget(self._company_key, permission.user_id)
            previous = CompanyPermission.model_validate_json(raw) if raw else None
            if previous is not None:
                permission = permission.model_copy(update={"id": previous.id})
            pipe = self._client.pipeline(transaction=True)
            if previous is not None and previous.company_template_id != permission.company_template_id:
                pipe.srem(self._refs_key(previous.company_template_id), member)
            pipe.hset(self._company_key, permission.user_id, permission.model_dump_json())
            pipe.sadd(self._refs_key(permission.company_template_id), member)
            pipe.execute()
        return permission

    def insert_project_assignment(self, assignment: ProjectAssignment) -> ProjectAssignment:
        field = self._membership_field(assignment.user_id, assignment.project_id)
        with self._mutation():
            existing_id = self._client.hget(self._membership_key, field)
            if existing_id:
                raw = self._client.hget(self._assignments_key, existing_id)
                return ProjectAssignment.model_validate_json(raw)
            if assignment.project_template_id is not None:
                self._require_template(assignment.project_template_id)
            pipe = self._client.pipeline(transaction=True)
            pipe.hset(self._assignments_key, assignment.id, assignment.model_dump_json())
            pipe.hset(self._membership_key, field, assignment.id)
            if assignment.project_template_id is not None:
                pipe.sadd(self._refs_key(assignment.project_template_id), f"project:{assignment.id}")
            pipe.execute()
        return assignment

    def set_project_template(
        self,
        user_id: str,
        project_id: str,
        template_id: str,
        *,
        assigned_by: Optional[str] = None,
    ) -> ProjectAssignment:
        field = self._membership_field(user_id, project_id)
        with self._mutation():
            assignment_id = self._client.hget(self._membership_key, field)
            if not assignment_id:
                raise NotAssignedToProjectError(user_id=user_id, project_id=project_id)
            self._require_template(template_id)
            previous = ProjectAssignment.model_validate_json(self._client.hget(self._assignments_key, assignment_id))
            update: dict[str, Any] = {"project_template_id": template_id, "updated_at": utcnow()}
            if assigned_by is not None:
                update["assigned_by"] = assigned_by
            assignment = previous.model_copy(update=update)
            member = f"project:{assignment_id}"
            pipe = self._client.pipeline(transaction=True)
            if previous.project_template_id not in (None, template_id):
                pipe.srem(self._refs_key(previous.project_template_id), member)
            pipe.hset(self._assignments_key, assignment_id, assignment.model_dump_json())
            pipe.sadd(self._refs_key(template_id), member)
            pipe.execute()
        return assignment

    def clear_project_template(self, assignment_id: str) -> ProjectAssignment:
        with self._mutation():
            raw = self._client.hget(self._assignments_key, assignment_id)
            if not raw:
                raise NotFoundError("Assignment not found", assignment_id=assignment_id)
            assignment = ProjectAssignment.model_validate_json(raw)
            if assignment.project_template_id is None:
                return assignment
            previous_template_id = assignment.project_template_id
            assignment = assignment.model_copy(update={"project_template_id": None, "updated_at": utcnow()})
            pipe = self._client.pipeline(transaction=True)
            pipe.hset(self._assignments_key, assignment_id, assignment.model_dump_json())
            pipe.srem(self._refs_key(previous_template_id), f"project:{assignment_id}")
            pipe.execute()
        return assignment

    def _require_template(self, template_id: str) -> None:
        if not self._client.hexists(self._templates_key, template_id):
            logger.warning("Rejected assignment to missing template %s", template_id)
            raise NotFoundError("Template not found", template_id=template_id)


__all__ = ["RedisStore"]
