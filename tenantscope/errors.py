"""Error taxonomy for tenant-scoped data access.

Handlers never catch these themselves; the exception handlers registered in
``tenantscope.main`` map each one to a response.
"""


class TenantScopeError(Exception):
    """Base class for all tenantscope errors."""


class AuthError(TenantScopeError):
    """Credential missing or invalid. Surfaced as 401."""


class ContextBuildError(TenantScopeError):
    """Resolved identity is malformed; no request context was built."""


class NotFound(TenantScopeError):
    """Record absent or owned by another tenant.

    Both causes produce the same message so callers cannot tell them apart.
    """

    def __init__(self, entity_name: str) -> None:
        self.entity_name = entity_name
        super().__init__(f"{entity_name} not found")


class UnboundContextError(TenantScopeError, RuntimeError):
    """A handle was used before a request context was bound to it."""


class UnknownEntityError(TenantScopeError, LookupError):
    """No handle is registered under the requested entity name."""

    def __init__(self, entity_name: str) -> None:
        self.entity_name = entity_name
        super().__init__(f"No handle registered for entity {entity_name!r}")
