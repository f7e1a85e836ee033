"""Schema integrity tests for the migrated dividend ledger."""
from __future__ import annotations

from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config


@pytest.fixture(scope="module")
def alembic_config(tmp_path_factory: pytest.TempPathFactory) -> Config:
    """Provide Alembic config bound to a temporary SQLite database."""

    project_root = Path(__file__).resolve().parents[2]
    db_path = tmp_path_factory.mktemp("db") / "schema.db"

    config = Config(str(project_root / "alembic.ini"))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    config.set_main_option("script_location", str(project_root / "migrations"))
    return config


@pytest.fixture(scope="module")
def migrated_engine(alembic_config: Config):
    """Run migrations against SQLite and yield an engine."""

    command.upgrade(alembic_config, "head")
    engine = sa.create_engine(alembic_config.get_main_option("sqlalchemy.url"))
    try:
        yield engine
    finally:
        engine.dispose()


def test_tables_exist(migrated_engine: sa.Engine) -> None:
    tables = set(sa.inspect(migrated_engine).get_table_names())
    assert {
        "checkpoints",
        "dividends",
        "dividend_claims",
        "withholding_entries",
        "default_exclusions",
        "audit_logs",
    }.issubset(tables)


def test_migration_matches_models(migrated_engine: sa.Engine) -> None:
    from dividend_manager.models import Base

    inspector = sa.inspect(migrated_engine)
    for table in Base.metadata.sorted_tables:
        migrated = {column["name"] for column in inspector.get_columns(table.name)}
        assert migrated == {column.name for column in table.columns}, table.name


def test_unique_constraints(migrated_engine: sa.Engine) -> None:
    inspector = sa.inspect(migrated_engine)
    unique_expectations = {
        "checkpoints": {"uq_checkpoints_token_checkpoint_id": {"token_symbol", "checkpoint_id"}},
        "dividends": {
            "uq_dividends_token_currency_index": {"token_symbol", "currency", "dividend_index"}
        },
        "dividend_claims": {"uq_dividend_claims_dividend_address": {"dividend_id", "address"}},
        "withholding_entries": {
            "uq_withholding_entries_token_currency_address": {"token_symbol", "currency", "address"}
        },
        "default_exclusions": {"uq_default_exclusions_token_currency": {"token_symbol", "currency"}},
    }

    for table, expected in unique_expectations.items():
        found = {
            constraint["name"]: set(constraint["column_names"])
            for constraint in inspector.get_unique_constraints(table)
        }
        for name, columns in expected.items():
            assert found[name] == columns


def test_claims_reference_dividends(migrated_engine: sa.Engine) -> None:
    foreign_keys = sa.inspect(migrated_engine).get_foreign_keys("dividend_claims")
    fk_map = {tuple(fk["constrained_columns"]): fk["referred_table"] for fk in foreign_keys}
    assert fk_map[("dividend_id",)] == "dividends"
