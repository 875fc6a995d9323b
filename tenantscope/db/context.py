"""Request context for tenancy enforcement."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tenantscope.errors import UnknownEntityError

if TYPE_CHECKING:
    from tenantscope.db.handles import DataAccessHandle


@dataclass(frozen=True)
class Identity:
    """Acting user and tenant, resolved once per request."""

    user_id: str | int
    tenant_id: str


@dataclass(frozen=True, eq=False)
class RequestContext:
    """Request context containing identity and the request's bound handles.

    Built by ``ContextBuilder`` for exactly one request and never shared.
    ``handles`` is a read-only mapping populated at build time.
    """

    identity: Identity
    handles: Mapping[str, DataAccessHandle]

    @property
    def tenant_id(self) -> str:
        return self.identity.tenant_id

    @property
    def user_id(self) -> str | int:
        return self.identity.user_id

    def lookup(self, entity_name: str) -> DataAccessHandle:
        """Return the handle bound to this context for ``entity_name``.

        Raises:
            UnknownEntityError: If no handle is registered under that name
        """
        try:
            return self.handles[entity_name]
        except KeyError:
            raise UnknownEntityError(entity_name) from None
