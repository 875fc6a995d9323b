"""Integration tests for SqlStorage and handles over SQL."""

import pytest

from tenantscope.config import Settings
from tenantscope.db.builder import ContextBuilder
from tenantscope.db.context import Identity
from tenantscope.db.engine import create_engine_from_settings
from tenantscope.db.sql_storage import SqlStorage
from tenantscope.db.storage import Storage
from tenantscope.errors import NotFound
from tenantscope.models.entities import Project, Task


def test_insert_and_query_by_tenant(sql_storage: SqlStorage) -> None:
    """Test that SQL queries are partitioned by tenant."""
    first = sql_storage.insert("project", {"tenant_id": "a", "created_by": "u", "name": "p1"})
    sql_storage.insert("project", {"tenant_id": "b", "created_by": "u", "name": "p2"})

    assert first["id"] is not None
    assert first["created_at"] is not None

    rows = list(sql_storage.query_by_tenant("project", "a", {}))
    assert [r["name"] for r in rows] == ["p1"]

    filtered = list(sql_storage.query_by_tenant("project", "a", {"id": first["id"]}))
    assert len(filtered) == 1
    assert list(sql_storage.query_by_tenant("project", "b", {"id": first["id"]})) == []


def test_update_and_delete_enforce_tenancy(sql_storage: SqlStorage) -> None:
    """Test tenant-scoped update/delete."""
    record = sql_storage.insert("project", {"tenant_id": "a", "created_by": "u", "name": "p1"})

    assert sql_storage.update("project", "b", record["id"], {"name": "x"}) is None
    assert sql_storage.delete("project", "b", record["id"]) is False

    updated = sql_storage.update("project", "a", record["id"], {"name": "x", "tenant_id": "b"})
    assert updated is not None
    assert updated["name"] == "x"
    assert updated["tenant_id"] == "a"

    assert sql_storage.delete("project", "a", record["id"]) is True


def test_unknown_entity_rejected(sql_storage: SqlStorage) -> None:
    """Test that entities without a table fail loudly."""
    with pytest.raises(ValueError, match="No table mapped"):
        list(sql_storage.query_by_tenant("invoice", "a", {}))


def test_unknown_column_rejected(sql_storage: SqlStorage) -> None:
    """Test that a predicate on a missing column is a ValueError."""
    with pytest.raises(ValueError, match="No column 'colour'"):
        list(sql_storage.query_by_tenant("project", "a", {"colour": "red"}))


def test_project_delete_cascades_to_tasks(sql_storage: SqlStorage) -> None:
    """Test that SQLite enforces the task foreign key cascade."""
    project = sql_storage.insert("project", {"tenant_id": "a", "created_by": "u", "name": "p"})
    sql_storage.insert(
        "task", {"tenant_id": "a", "created_by": "u", "project_id": project["id"], "title": "t"}
    )

    assert sql_storage.delete("project", "a", project["id"]) is True
    assert list(sql_storage.query_by_tenant("task", "a", {})) == []


def test_settings_engine_enforces_foreign_keys() -> None:
    """Test that SQLite engines from settings turn foreign keys on."""
    engine = create_engine_from_settings(Settings(storage_backend="sql", database_url="sqlite://"))

    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    engine.dispose()


def test_ping(sql_storage: SqlStorage) -> None:
    """Test the connectivity check."""
    sql_storage.ping()


def test_handles_over_sql(sql_storage: SqlStorage) -> None:
    """Test the acme/other scenario end to end against SQL."""
    builder = ContextBuilder(sql_storage)
    acme = builder.build(Identity(user_id=42, tenant_id="acme"))
    other = builder.build(Identity(user_id=7, tenant_id="other"))

    mine = acme.lookup("project").save(Project(name="Acme roadmap", tenant_id="other"))
    theirs = other.lookup("project").save(Project(name="Other secrets"))

    assert mine.tenant_id == "acme"
    assert mine.created_by == "42"
    assert [p.id for p in acme.lookup("project").find()] == [mine.id]
    assert acme.lookup("project").find_by_id(mine.id).name == "Acme roadmap"

    with pytest.raises(NotFound):
        acme.lookup("project").find_by_id(theirs.id)
    with pytest.raises(NotFound):
        acme.lookup("project").find_by_id(theirs.id + 100)

    task = acme.lookup("task").save(Task(project_id=mine.id, title="Ship"))
    assert [t.id for t in acme.lookup("task").find_for_project(mine.id)] == [task.id]

    acme.lookup("project").delete(mine.id)
    assert acme.lookup("task").count() == 0
    assert other.lookup("project").count() == 1


@pytest.fixture(params=["memory", "sql"])
def any_storage(request: pytest.FixtureRequest) -> Storage:
    """Each storage backend in turn."""
    name = "storage" if request.param == "memory" else "sql_storage"
    return request.getfixturevalue(name)


@pytest.mark.parametrize(
    ("filters", "expected"),
    [
        ({}, ["Alpha", "Beta"]),
        ({"name": "Beta"}, ["Beta"]),
        ({"description": "shared"}, ["Alpha", "Beta"]),
        ({"name": "Alpha", "description": "none"}, []),
        ({"tenant_id": "other"}, ["Alpha", "Beta"]),
        ({"name": "Other secrets"}, []),
    ],
)
def test_find_filters_agree_across_backends(
    any_storage: Storage, filters: dict[str, str], expected: list[str]
) -> None:
    """Test that find() filters behave the same on every backend."""
    builder = ContextBuilder(any_storage)
    acme = builder.build(Identity(user_id=42, tenant_id="acme"))
    other = builder.build(Identity(user_id=7, tenant_id="other"))
    for name in ("Alpha", "Beta"):
        acme.lookup("project").save(Project(name=name, description="shared"))
    other.lookup("project").save(Project(name="Other secrets", description="shared"))

    projects = acme.lookup("project")

    assert [p.name for p in projects.find(**filters)] == expected
    assert projects.count(**filters) == len(expected)


def test_unknown_filter_rejected_on_every_backend(any_storage: Storage) -> None:
    """Test that an unknown filter key is a ValueError at call time on every backend."""
    ctx = ContextBuilder(any_storage).build(Identity(user_id=42, tenant_id="acme"))
    ctx.lookup("project").save(Project(name="Alpha"))

    with pytest.raises(ValueError, match="colour"):
        ctx.lookup("project").find(colour="red")


@pytest.mark.postgres
def test_handles_over_postgres(postgres_storage: SqlStorage) -> None:
    """Test tenant scoping against PostgreSQL."""
    builder = ContextBuilder(postgres_storage)
    acme = builder.build(Identity(user_id=42, tenant_id="acme"))
    other = builder.build(Identity(user_id=7, tenant_id="other"))

    mine = acme.lookup("project").save(Project(name="Acme roadmap"))
    other.lookup("project").save(Project(name="Other secrets"))

    assert [p.id for p in acme.lookup("project").find()] == [mine.id]
    with pytest.raises(NotFound):
        other.lookup("project").find_by_id(mine.id)
