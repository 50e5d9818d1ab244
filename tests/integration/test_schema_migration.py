"""
Schema migration tests: the alembic revision matches the ORM models.
"""

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from src.safeguard.database.core import Base
from src.safeguard.models import Asset, CertificationDocument  # noqa: F401

MIGRATION = (
    Path(__file__).resolve().parents[2]
    / "alembic" / "versions" / "001_create_assets_and_certification_documents.py"
)


def load_migration():
    spec = importlib.util.spec_from_file_location("create_assets_migration", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def connection():
    engine = create_engine("sqlite://")
    with engine.connect() as conn:
        yield conn
    engine.dispose()


def run(connection, step):
    context = MigrationContext.configure(connection)
    with Operations.context(context):
        step()


def test_upgrade_creates_model_tables(connection):
    migration = load_migration()
    run(connection, migration.upgrade)

    inspector = inspect(connection)
    assert set(inspector.get_table_names()) == {"assets", "certification_documents"}
    for table in ("assets", "certification_documents"):
        migrated = {column["name"] for column in inspector.get_columns(table)}
        modeled = {column.name for column in Base.metadata.tables[table].columns}
        assert migrated == modeled

    unique = inspector.get_unique_constraints("assets")
    assert any(c["column_names"] == ["org_id", "serial_number"] for c in unique)


def test_serials_unique_per_org_and_status_checked(connection):
    run(connection, load_migration().upgrade)

    insert = text(
        "INSERT INTO assets (id, org_id, serial_number, asset_class, issue_date, "
        "last_certification_date, next_certification_date, status) "
        "VALUES (:id, :org, :serial, 'Class 1', '2024-01-01', '2024-01-01', '2024-07-01', :status)"
    )
    connection.execute(insert, {"id": "1" * 32, "org": "org-a", "serial": "G-1", "status": "active"})
    connection.execute(insert, {"id": "2" * 32, "org": "org-b", "serial": "G-1", "status": "active"})

    with pytest.raises(IntegrityError):
        connection.execute(insert, {"id": "3" * 32, "org": "org-a", "serial": "G-1", "status": "active"})
    with pytest.raises(IntegrityError):
        connection.execute(insert, {"id": "4" * 32, "org": "org-a", "serial": "G-2", "status": "retired"})


def test_downgrade_drops_tables(connection):
    migration = load_migration()
    run(connection, migration.upgrade)
    run(connection, migration.downgrade)

    assert inspect(connection).get_table_names() == []
