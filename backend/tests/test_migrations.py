from __future__ import annotations

import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

from app.models import Base

VERSIONS_DIR = Path(__file__).resolve().parents[1] / "alembic" / "versions"


def _load(path: Path):
    spec = importlib.util.spec_from_file_location(path.stem, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _run(engine: sa.engine.Engine, step: str) -> None:
    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            for path in sorted(VERSIONS_DIR.glob("*.py")):
                getattr(_load(path), step)()


def test_migrations_match_models() -> None:
    engine = sa.create_engine("sqlite+pysqlite:///:memory:", future=True)

    _run(engine, "upgrade")

    inspector = sa.inspect(engine)
    assert set(inspector.get_table_names()) == set(Base.metadata.tables)
    for name, table in Base.metadata.tables.items():
        migrated = {column["name"] for column in inspector.get_columns(name)}
        assert migrated == set(table.columns.keys()), name
    unique = {item["name"] for item in inspector.get_unique_constraints("friendships")}
    assert "uq_friendship_pair" in unique

    _run(engine, "downgrade")
    assert sa.inspect(engine).get_table_names() == []
