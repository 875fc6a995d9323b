"""Storage collaborator interface consumed by data-access handles."""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

# Equality criteria a record must satisfy; empty matches every record.
RecordPredicate = Mapping[str, Any]

TENANT_FIELD = "tenant_id"


class Storage(Protocol):
    """Record store partitioned by tenant.

    Records are plain dicts. Every read and mutation except ``insert`` takes
    the tenant explicitly; ``insert`` trusts the ``tenant_id`` already stamped
    on the record.
    """

    def query_by_tenant(
        self, entity_type: str, tenant_id: str, predicate: RecordPredicate
    ) -> Iterable[dict[str, Any]]:
        """Query records of one tenant.

        Args:
            entity_type: Entity name (e.g. "project")
            tenant_id: Tenant whose records are returned
            predicate: Equality criteria on other fields

        Returns:
            Matching records, in insertion order
        """
        ...

    def insert(self, entity_type: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a new record.

        Args:
            entity_type: Entity name
            record: Field values, including tenant_id

        Returns:
            Stored record with ``id`` and ``created_at`` assigned
        """
        ...

    def update(
        self,
        entity_type: str,
        tenant_id: str,
        record_id: int,
        values: Mapping[str, Any],
    ) -> dict[str, Any] | None:
        """Update a record owned by ``tenant_id``.

        Returns:
            Updated record, or None if no such record exists for the tenant
        """
        ...

    def delete(self, entity_type: str, tenant_id: str, record_id: int) -> bool:
        """Delete a record owned by ``tenant_id``.

        Returns:
            True if a record was deleted
        """
        ...

    def ping(self) -> None:
        """Raise if the backing store is unreachable."""
        ...


def matches(record: Mapping[str, Any], predicate: RecordPredicate) -> bool:
    """Check whether a record satisfies every equality criterion."""
    return all(record.get(field) == value for field, value in predicate.items())
