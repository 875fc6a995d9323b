"""SQL implementation of the Storage interface."""

from collections.abc import Iterator, Mapping
from typing import Any

from sqlalchemy import delete, inspect, select, text
from sqlalchemy.orm import Session, sessionmaker

from tenantscope.db.models import ENTITY_MODELS, Base
from tenantscope.db.storage import RecordPredicate

_PROTECTED_COLUMNS = frozenset({"id", "tenant_id", "created_at"})


def _to_record(row: Base) -> dict[str, Any]:
    return {attr.key: attr.value for attr in inspect(row).attrs}


class SqlStorage:
    """SQL implementation of Storage.

    Each call opens its own session; nothing is cached between calls, so one
    instance is shared by all requests.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        models: Mapping[str, type[Base]] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._models = dict(models) if models is not None else dict(ENTITY_MODELS)

    def _model(self, entity_type: str) -> Any:
        try:
            return self._models[entity_type]
        except KeyError:
            raise ValueError(f"No table mapped for entity {entity_type!r}") from None

    def query_by_tenant(
        self, entity_type: str, tenant_id: str, predicate: RecordPredicate
    ) -> Iterator[dict[str, Any]]:
        """Query records of one tenant.

        The query runs on first iteration; the session is closed before the
        first record is yielded.
        """
        model = self._model(entity_type)
        columns = model.__table__.columns
        stmt = select(model).where(model.tenant_id == tenant_id)
        for field, value in predicate.items():
            if field not in columns:
                raise ValueError(f"No column {field!r} on table {model.__tablename__!r}")
            stmt = stmt.where(columns[field] == value)
        stmt = stmt.order_by(model.id)

        with self._session_factory() as session:
            records = [_to_record(row) for row in session.execute(stmt).scalars()]

        yield from records

    def insert(self, entity_type: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a new record."""
        model = self._model(entity_type)
        values = {k: v for k, v in record.items() if k not in ("id", "created_at")}

        with self._session_factory() as session:
            row = model(**values)
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_record(row)

    def update(
        self,
        entity_type: str,
        tenant_id: str,
        record_id: int,
        values: Mapping[str, Any],
    ) -> dict[str, Any] | None:
        """Update a record owned by tenant_id."""
        model = self._model(entity_type)

        with self._session_factory() as session:
            row = session.execute(
                select(model).where(model.id == record_id, model.tenant_id == tenant_id)
            ).scalar_one_or_none()

            if row is None:
                return None

            for field, value in values.items():
                if field not in _PROTECTED_COLUMNS:
                    setattr(row, field, value)

            session.commit()
            session.refresh(row)
            return _to_record(row)

    def delete(self, entity_type: str, tenant_id: str, record_id: int) -> bool:
        """Delete a record owned by tenant_id."""
        model = self._model(entity_type)

        with self._session_factory() as session:
            result = session.execute(
                delete(model).where(model.id == record_id, model.tenant_id == tenant_id)
            )
            session.commit()
            return result.rowcount > 0

    def ping(self) -> None:
        """Run a trivial query against the database."""
        with self._session_factory() as session:
            session.execute(text("SELECT 1"))
