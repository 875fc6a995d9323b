"""Per-request context construction."""

import logging
import re
from collections.abc import Iterable, Iterator
from types import MappingProxyType

from tenantscope.db.context import Identity, RequestContext
from tenantscope.db.handles import ProjectHandle, ScopedHandle, TaskHandle
from tenantscope.db.storage import Storage
from tenantscope.errors import ContextBuildError
from tenantscope.utils.logging import StructuredAccessLogger
from tenantscope.utils.metrics import record_context_build

logger = logging.getLogger(__name__)

DEFAULT_TENANT_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$"


class HandleRegistry:
    """Entity name to handle class mapping used by the builder.

    Holds classes, never instances; the builder instantiates them per request.
    A ``ContextBuilder`` copies the registry when it is constructed, so
    registration must be complete before the builder is created.
    """

    def __init__(self, handle_classes: Iterable[type[ScopedHandle]] = ()) -> None:
        self._classes: dict[str, type[ScopedHandle]] = {}
        for handle_cls in handle_classes:
            self.register(handle_cls)

    def register(self, handle_cls: type[ScopedHandle]) -> type[ScopedHandle]:
        """Register a handle class under its ``entity_name``.

        Returns the class so this can be used as a decorator.

        Raises:
            ValueError: If the entity name is already registered
        """
        name = handle_cls.entity_name
        if name in self._classes:
            raise ValueError(f"Entity {name!r} is already registered")
        self._classes[name] = handle_cls
        return handle_cls

    def __contains__(self, entity_name: object) -> bool:
        return entity_name in self._classes

    def __iter__(self) -> Iterator[str]:
        return iter(self._classes)

    def __len__(self) -> int:
        return len(self._classes)

    def items(self) -> Iterable[tuple[str, type[ScopedHandle]]]:
        return self._classes.items()


def default_registry() -> HandleRegistry:
    """Registry with every built-in entity handle."""
    return HandleRegistry([ProjectHandle, TaskHandle])


class ContextBuilder:
    """Builds a fresh RequestContext and handle set for each request.

    The builder keeps only read-only configuration and the storage
    collaborator, so one instance is shared by all concurrent requests.
    """

    def __init__(
        self,
        storage: Storage,
        registry: HandleRegistry | None = None,
        *,
        tenant_id_pattern: str = DEFAULT_TENANT_ID_PATTERN,
        access_logger: StructuredAccessLogger | None = None,
    ) -> None:
        self._storage = storage
        registry = registry if registry is not None else default_registry()
        # Snapshot; later register() calls do not affect this builder
        self._handle_classes = tuple(registry.items())
        self._tenant_id_re = re.compile(tenant_id_pattern)
        self._access_logger = access_logger or StructuredAccessLogger()

    @property
    def storage(self) -> Storage:
        return self._storage

    def build(self, identity: Identity) -> RequestContext:
        """Build the request context for ``identity``.

        Every registered entity gets a newly constructed handle bound to the
        new context and no other.

        Args:
            identity: Resolved identity of the acting user

        Returns:
            Request context holding the identity and its handles

        Raises:
            ContextBuildError: If the identity is malformed
        """
        try:
            self._validate(identity)
        except ContextBuildError:
            record_context_build("rejected")
            raise

        handles = {
            name: handle_cls(self._storage, self._access_logger)
            for name, handle_cls in self._handle_classes
        }
        context = RequestContext(identity=identity, handles=MappingProxyType(handles))
        for handle in handles.values():
            handle.bind(context)

        record_context_build("ok")
        logger.debug(
            f"Built request context tenant={identity.tenant_id} user={identity.user_id} "
            f"entities={sorted(handles)}"
        )
        return context

    def _validate(self, identity: Identity) -> None:
        if not isinstance(identity, Identity):
            raise ContextBuildError(f"Expected Identity, got {type(identity).__name__}")

        tenant_id = identity.tenant_id
        if not isinstance(tenant_id, str) or not tenant_id:
            raise ContextBuildError("Identity has no tenant_id")
        if not self._tenant_id_re.fullmatch(tenant_id):
            raise ContextBuildError(f"Malformed tenant_id {tenant_id!r}")

        user_id = identity.user_id
        if user_id is None or user_id == "" or isinstance(user_id, bool):
            raise ContextBuildError("Identity has no user_id")
