"""Tenant-bound data-access handles.

A handle is created per request by ``ContextBuilder`` and bound to exactly one
``RequestContext``. Every operation reads the tenant from that context; no
operation accepts a tenant argument, and an unbound handle refuses to run
rather than fall back to an unscoped query.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Protocol, TypeVar

from tenantscope.db.storage import TENANT_FIELD, Storage
from tenantscope.errors import NotFound, UnboundContextError
from tenantscope.models.entities import Project, Task, TenantOwned
from tenantscope.utils.logging import StructuredAccessLogger
from tenantscope.utils.metrics import record_handle_operation

if TYPE_CHECKING:
    from tenantscope.db.context import RequestContext

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=TenantOwned)

# Fields the handle owns; caller-supplied values for these are never persisted.
_STAMPED_FIELDS = frozenset({"id", TENANT_FIELD, "created_by", "created_at"})


class DataAccessHandle(Protocol):
    """Capability set every entity handle implements."""

    entity_name: ClassVar[str]

    def bind(self, context: RequestContext) -> None:
        """Bind the owning request context."""
        ...

    def find(self, **filters: Any) -> Iterator[TenantOwned]:
        """Lazily yield the bound tenant's entities."""
        ...

    def find_by_id(self, entity_id: int) -> TenantOwned:
        """Return one of the bound tenant's entities or raise NotFound."""
        ...

    def save(self, entity: TenantOwned | Mapping[str, Any]) -> TenantOwned:
        """Persist an entity stamped with the bound tenant."""
        ...

    def delete(self, entity_id: int) -> None:
        """Delete one of the bound tenant's entities or raise NotFound."""
        ...

    def count(self, **filters: Any) -> int:
        """Count the bound tenant's entities."""
        ...


class ScopedHandle(Generic[EntityT]):
    """Generic tenant-scoped implementation of DataAccessHandle.

    Subclasses set ``entity_name`` and ``model``. The class carries no mutable
    state; the bound context lives on the instance only.
    """

    entity_name: ClassVar[str]
    model: ClassVar[type[TenantOwned]]

    def __init__(
        self, storage: Storage, access_logger: StructuredAccessLogger | None = None
    ) -> None:
        self._storage = storage
        self._access_logger = access_logger or StructuredAccessLogger()
        self._context: RequestContext | None = None

    def __repr__(self) -> str:
        tenant = self._context.tenant_id if self._context is not None else None
        return f"<{type(self).__name__} tenant={tenant!r}>"

    def bind(self, context: RequestContext) -> None:
        """Bind the owning request context.

        A handle belongs to one context for its whole life.

        Raises:
            RuntimeError: If already bound to a different context
        """
        if self._context is not None and self._context is not context:
            raise RuntimeError(f"{type(self).__name__} is already bound to another request")
        self._context = context

    @property
    def context(self) -> RequestContext:
        """The bound request context.

        Raises:
            UnboundContextError: If no context has been bound
        """
        return self._require_context("context")

    def find(self, **filters: Any) -> Iterator[EntityT]:
        """Yield the bound tenant's entities matching ``filters``.

        The binding and the filter keys are checked when called, not on first
        iteration. A ``tenant_id`` key in ``filters`` is discarded. The call is
        logged once the storage query has run.

        Args:
            **filters: Equality criteria on entity fields

        Returns:
            One-shot iterator of entities

        Raises:
            ValueError: If a filter key is not a field of the entity
        """
        ctx = self._require_context("find")
        return self._iter_scoped(ctx, "find", self._check_filters(filters))

    def find_by_id(self, entity_id: int) -> EntityT:
        """Return the bound tenant's entity with ``entity_id``.

        Raises:
            NotFound: If the entity does not exist or belongs to another tenant
        """
        ctx = self._require_context("find_by_id")
        record = self._get_scoped(ctx.tenant_id, entity_id)

        if record is None:
            self._log(ctx, "find_by_id", "not_found", entity_id)
            raise NotFound(self.entity_name)

        self._log(ctx, "find_by_id", "ok", entity_id)
        return self.model.model_validate(record)

    def save(self, entity: EntityT | Mapping[str, Any]) -> EntityT:
        """Persist ``entity`` under the bound tenant.

        New entities (no ``id``) get ``tenant_id`` and ``created_by`` from the
        context, whatever the input carried. Existing entities must already
        belong to the bound tenant; their creator is preserved.

        Raises:
            NotFound: If updating an entity the bound tenant cannot see
        """
        ctx = self._require_context("save")
        candidate = self._coerce(entity)
        values = candidate.model_dump(exclude=set(_STAMPED_FIELDS))
        values[TENANT_FIELD] = ctx.tenant_id

        if candidate.id is None:
            values["created_by"] = str(ctx.user_id)
            self._before_save(ctx, candidate)
            stored = self._storage.insert(self.entity_name, values)
            self._log(ctx, "save", "ok", stored["id"])
            return self.model.model_validate(stored)

        if self._get_scoped(ctx.tenant_id, candidate.id) is None:
            self._log(ctx, "save", "not_found", candidate.id)
            raise NotFound(self.entity_name)

        self._before_save(ctx, candidate)
        stored = self._storage.update(self.entity_name, ctx.tenant_id, candidate.id, values)
        if stored is None:
            # Deleted between the lookup and the write
            self._log(ctx, "save", "not_found", candidate.id)
            raise NotFound(self.entity_name)

        self._log(ctx, "save", "ok", candidate.id)
        return self.model.model_validate(stored)

    def delete(self, entity_id: int) -> None:
        """Delete the bound tenant's entity with ``entity_id``.

        Raises:
            NotFound: If the entity does not exist or belongs to another tenant
        """
        ctx = self._require_context("delete")

        if not self._storage.delete(self.entity_name, ctx.tenant_id, entity_id):
            self._log(ctx, "delete", "not_found", entity_id)
            raise NotFound(self.entity_name)

        self._log(ctx, "delete", "ok", entity_id)

    def count(self, **filters: Any) -> int:
        """Count the bound tenant's entities matching ``filters``."""
        ctx = self._require_context("count")
        filters = self._check_filters(filters)
        return sum(1 for _ in self._iter_scoped(ctx, "count", filters))

    def _before_save(self, ctx: RequestContext, entity: TenantOwned) -> None:
        """Hook for entity-specific checks before a write."""

    def _coerce(self, entity: EntityT | Mapping[str, Any]) -> TenantOwned:
        if isinstance(entity, Mapping):
            return self.model.model_validate(dict(entity))
        if not isinstance(entity, self.model):
            raise TypeError(
                f"{type(self).__name__}.save expects {self.model.__name__}, "
                f"got {type(entity).__name__}"
            )
        return entity

    def _check_filters(self, filters: dict[str, Any]) -> dict[str, Any]:
        filters.pop(TENANT_FIELD, None)
        unknown = sorted(set(filters) - set(self.model.model_fields))
        if unknown:
            raise ValueError(f"Unknown {self.entity_name} filter field(s): {', '.join(unknown)}")
        return filters

    def _iter_scoped(
        self, ctx: RequestContext, operation: str, filters: Mapping[str, Any]
    ) -> Iterator[EntityT]:
        tenant_id = ctx.tenant_id
        try:
            records = iter(self._storage.query_by_tenant(self.entity_name, tenant_id, filters))
            first = next(records, None)
        except Exception:
            self._log(ctx, operation, "error")
            raise
        self._log(ctx, operation, "ok")
        if first is None:
            return

        for record in itertools.chain((first,), records):
            if record.get(TENANT_FIELD) != tenant_id:
                logger.error(
                    f"Storage returned foreign {self.entity_name} id={record.get('id')} "
                    f"for tenant {tenant_id!r}; skipping"
                )
                continue
            yield self.model.model_validate(record)

    def _get_scoped(self, tenant_id: str, entity_id: int) -> dict[str, Any] | None:
        for record in self._storage.query_by_tenant(
            self.entity_name, tenant_id, {"id": entity_id}
        ):
            if record.get(TENANT_FIELD) == tenant_id:
                return record
        return None

    def _require_context(self, operation: str) -> RequestContext:
        if self._context is None:
            self._access_logger.log_operation(
                tenant_id=None,
                user_id=None,
                entity=self.entity_name,
                operation=operation,
                outcome="unbound",
            )
            record_handle_operation(self.entity_name, operation, "unbound")
            raise UnboundContextError(
                f"{type(self).__name__}.{operation} called without a bound request context"
            )
        return self._context

    def _log(
        self, ctx: RequestContext, operation: str, outcome: str, record_id: int | None = None
    ) -> None:
        self._access_logger.log_operation(
            tenant_id=ctx.tenant_id,
            user_id=ctx.user_id,
            entity=self.entity_name,
            operation=operation,
            outcome=outcome,
            record_id=record_id,
        )
        record_handle_operation(self.entity_name, operation, outcome)


class ProjectHandle(ScopedHandle[Project]):
    """Data access for projects."""

    entity_name = "project"
    model = Project

    def delete(self, entity_id: int) -> None:
        """Delete a project together with its tasks.

        The task deletes and the project delete are separate storage calls,
        not one transaction. On SQL backends the ``ondelete="CASCADE"`` foreign
        key also removes any task written in between; the in-memory storage
        has no such constraint, so a task saved concurrently with the delete
        can outlive its project there.
        """
        ctx = self._require_context("delete")
        # Resolve first so a foreign project leaves its tasks untouched
        self.find_by_id(entity_id)

        tasks = ctx.handles.get("task")
        if tasks is not None:
            for task in list(tasks.find(project_id=entity_id)):
                tasks.delete(task.id)

        super().delete(entity_id)


class TaskHandle(ScopedHandle[Task]):
    """Data access for tasks."""

    entity_name = "task"
    model = Task

    def find_for_project(self, project_id: int) -> Iterator[Task]:
        """Yield tasks of one of the bound tenant's projects.

        Raises:
            NotFound: If the project is absent or belongs to another tenant
        """
        self.context.lookup("project").find_by_id(project_id)
        return self.find(project_id=project_id)

    def _before_save(self, ctx: RequestContext, entity: TenantOwned) -> None:
        # A task may only point at a project its own tenant can see
        ctx.lookup("project").find_by_id(entity.project_id)
