"""In-memory implementation of the Storage interface."""

import threading
from collections.abc import Iterator, Mapping
from datetime import UTC, datetime
from typing import Any

from tenantscope.db.storage import TENANT_FIELD, RecordPredicate, matches

_PROTECTED_FIELDS = frozenset({"id", TENANT_FIELD, "created_at"})


class InMemoryStorage:
    """In-memory implementation of Storage.

    Tables are shared by every request in the process, so all access goes
    through a lock. Reads snapshot the matching rows under the lock and yield
    copies, so callers never hold a reference into the table.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[int, dict[str, Any]]] = {}
        self._next_ids: dict[str, int] = {}
        self._lock = threading.Lock()

    def query_by_tenant(
        self, entity_type: str, tenant_id: str, predicate: RecordPredicate
    ) -> Iterator[dict[str, Any]]:
        """Query records of one tenant."""
        with self._lock:
            rows = [
                dict(row)
                for row in self._tables.get(entity_type, {}).values()
                if row.get(TENANT_FIELD) == tenant_id and matches(row, predicate)
            ]
        yield from rows

    def insert(self, entity_type: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a new record, assigning id and created_at."""
        with self._lock:
            record_id = self._next_ids.get(entity_type, 1)
            self._next_ids[entity_type] = record_id + 1

            row = dict(record)
            row["id"] = record_id
            row["created_at"] = datetime.now(UTC)
            self._tables.setdefault(entity_type, {})[record_id] = row
            return dict(row)

    def update(
        self,
        entity_type: str,
        tenant_id: str,
        record_id: int,
        values: Mapping[str, Any],
    ) -> dict[str, Any] | None:
        """Update a record owned by tenant_id."""
        with self._lock:
            row = self._tables.get(entity_type, {}).get(record_id)

            # Enforce tenancy
            if row is None or row.get(TENANT_FIELD) != tenant_id:
                return None

            row.update({k: v for k, v in values.items() if k not in _PROTECTED_FIELDS})
            return dict(row)

    def delete(self, entity_type: str, tenant_id: str, record_id: int) -> bool:
        """Delete a record owned by tenant_id."""
        with self._lock:
            table = self._tables.get(entity_type, {})
            row = table.get(record_id)

            # Enforce tenancy
            if row is None or row.get(TENANT_FIELD) != tenant_id:
                return False

            del table[record_id]
            return True

    def ping(self) -> None:
        """In-memory storage is always reachable."""

    def load(self, entity_type: str, records: list[Mapping[str, Any]]) -> None:
        """Load raw records verbatim, keeping their ids.

        Used to stage fixtures without going through a request context.
        """
        with self._lock:
            table = self._tables.setdefault(entity_type, {})
            for record in records:
                row = dict(record)
                row.setdefault("created_at", datetime.now(UTC))
                table[row["id"]] = row
                self._next_ids[entity_type] = max(
                    self._next_ids.get(entity_type, 1), row["id"] + 1
                )
