"""Tests for the Alembic migration scripts.

The migrations must produce the same schema as the ORM metadata used by the
SQL repositories, including the unique index on the proposal idempotency key.
"""

import io
from pathlib import Path
from typing import Optional

import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config

from actiongate_ai.agent_core.repos.models import Base

PROJECT_ROOT = Path(__file__).resolve().parents[4]

TABLES = {"ag_action_proposals", "ag_conversations", "ag_chat_messages"}


def _alembic_config(url: str, output: Optional[io.StringIO] = None) -> Config:
    config = Config(str(PROJECT_ROOT / "alembic.ini"), output_buffer=output)
    config.set_main_option("sqlalchemy.url", url)
    return config


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "migrated.db"


def _inspect(db_path: Path):
    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        with engine.connect() as conn:
            inspector = sa.inspect(conn)
            tables = set(inspector.get_table_names())
            columns = {t: {c["name"] for c in inspector.get_columns(t)} for t in tables & TABLES}
            indexes = {t: inspector.get_indexes(t) for t in tables & TABLES}
        return tables, columns, indexes
    finally:
        engine.dispose()


class TestInitialMigration:
    def test_upgrade_creates_orm_schema(self, db_path: Path):
        command.upgrade(_alembic_config(f"sqlite+aiosqlite:///{db_path}"), "head")

        tables, columns, _ = _inspect(db_path)

        assert TABLES <= tables
        for name in TABLES:
            assert columns[name] == set(Base.metadata.tables[name].columns.keys()), name

    def test_idempotency_key_is_unique(self, db_path: Path):
        command.upgrade(_alembic_config(f"sqlite+aiosqlite:///{db_path}"), "head")

        _, _, indexes = _inspect(db_path)

        [index] = [i for i in indexes["ag_action_proposals"] if i["column_names"] == ["idempotency_key"]]
        assert index["unique"]
        assert index["name"] == "ix_ag_action_proposals_idempotency_key"

    def test_orm_metadata_declares_the_same_unique_index(self):
        proposals = Base.metadata.tables["ag_action_proposals"]

        names = {i.name: i.unique for i in proposals.indexes}

        assert names["ix_ag_action_proposals_idempotency_key"] is True

    def test_downgrade_drops_tables(self, db_path: Path):
        config = _alembic_config(f"sqlite+aiosqlite:///{db_path}")
        command.upgrade(config, "head")

        command.downgrade(config, "base")

        tables, _, _ = _inspect(db_path)
        assert not (TABLES & tables)

    def test_offline_sql_for_postgres(self):
        output = io.StringIO()

        command.upgrade(_alembic_config("postgresql+asyncpg://ag:secret@db:5432/actiongate", output), "head", sql=True)

        sql = output.getvalue()
        for name in TABLES:
            assert f"CREATE TABLE {name}" in sql
        assert "CREATE UNIQUE INDEX ix_ag_action_proposals_idempotency_key" in sql
        assert "JSONB" in sql
