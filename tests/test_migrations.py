"""The Alembic revision builds the same schema as the ORM models."""

from pathlib import Path

from sqlalchemy import create_engine, inspect

from taletree.db.session import Base
from taletree.scripts.migrate import run_upgrade_head


def test_upgrade_head_creates_every_table(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'migrated.db'}"

    run_upgrade_head(url)

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert set(Base.metadata.tables) <= tables
        for name, table in Base.metadata.tables.items():
            migrated = {column["name"] for column in inspector.get_columns(name)}
            assert migrated == {column.name for column in table.columns}
        unique = inspector.get_unique_constraints("story_unit")
        assert any(c["column_names"] == ["parent_id", "sequence_key"] for c in unique)
    finally:
        engine.dispose()
