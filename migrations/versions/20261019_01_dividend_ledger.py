"""Dividend ledger schema."""
from __future__ import annotations

from collections.abc import Iterable

import sqlalchemy as sa
from alembic import op

revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on: Iterable[str] | None = None

# Amounts are decimal strings wide enough for any 256-bit integer.
AMOUNT = sa.String(length=78)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _drop_enum(name: str) -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute(sa.text(f"DROP TYPE IF EXISTS {name}"))


def upgrade() -> None:  # noqa: D401
    """Create checkpoint, dividend, withholding, exclusion and audit tables."""

    dividend_currency = sa.Enum("PRIMARY_TOKEN", "NATIVE_COIN", name="dividend_currency")
    dividend_currency.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "checkpoints",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("token_symbol", sa.String(length=32), nullable=False),
        sa.Column("checkpoint_id", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("token_symbol", "checkpoint_id", name="uq_checkpoints_token_checkpoint_id"),
    )
    op.create_index("ix_checkpoints_token_symbol", "checkpoints", ["token_symbol"])

    op.create_table(
        "dividends",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("token_symbol", sa.String(length=32), nullable=False),
        sa.Column("currency", dividend_currency, nullable=False),
        sa.Column("dividend_index", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("checkpoint_id", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created", sa.BigInteger(), nullable=False),
        sa.Column("maturity", sa.BigInteger(), nullable=False),
        sa.Column("expiry", sa.BigInteger(), nullable=False),
        sa.Column("total_amount", AMOUNT, nullable=False),
        sa.Column("claimed_amount", AMOUNT, nullable=False, server_default="0"),
        sa.Column("withheld_amount", AMOUNT, nullable=False, server_default="0"),
        sa.Column("withheld_reclaimed_amount", AMOUNT, nullable=False, server_default="0"),
        sa.Column("reclaimed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reclaimed_amount", AMOUNT, nullable=False, server_default="0"),
        sa.Column("exclusions", sa.JSON(), nullable=False),
        sa.Column("transaction_hash", sa.String(length=128)),
        sa.Column("lock_version", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint(
            "token_symbol", "currency", "dividend_index", name="uq_dividends_token_currency_index"
        ),
    )
    op.create_index("ix_dividends_token_symbol", "dividends", ["token_symbol"])

    op.create_table(
        "dividend_claims",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("dividend_id", sa.String(length=36), nullable=False),
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("net_amount", AMOUNT, nullable=False),
        sa.Column("withheld_amount", AMOUNT, nullable=False),
        sa.Column("transaction_hash", sa.String(length=128)),
        *_timestamps(),
        sa.ForeignKeyConstraint(["dividend_id"], ["dividends.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("dividend_id", "address", name="uq_dividend_claims_dividend_address"),
    )
    op.create_index("ix_dividend_claims_dividend_id", "dividend_claims", ["dividend_id"])

    op.create_table(
        "withholding_entries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("token_symbol", sa.String(length=32), nullable=False),
        sa.Column("currency", dividend_currency, nullable=False),
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("percentage", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint(
            "token_symbol", "currency", "address", name="uq_withholding_entries_token_currency_address"
        ),
    )
    op.create_index("ix_withholding_entries_token_symbol", "withholding_entries", ["token_symbol"])

    op.create_table(
        "default_exclusions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("token_symbol", sa.String(length=32), nullable=False),
        sa.Column("currency", dividend_currency, nullable=False),
        sa.Column("addresses", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("token_symbol", "currency", name="uq_default_exclusions_token_currency"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("token_symbol", sa.String(length=32), nullable=False),
        sa.Column("actor_address", sa.String(length=42), nullable=False),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("resource_type", sa.String(length=128), nullable=False),
        sa.Column("resource_id", sa.String(length=128)),
        sa.Column("payload", sa.JSON()),
        sa.Column("transaction_hash", sa.String(length=128)),
        *_timestamps(),
    )
    op.create_index("ix_audit_logs_token_symbol", "audit_logs", ["token_symbol"])


def downgrade() -> None:  # noqa: D401
    """Drop all dividend ledger tables."""

    op.drop_index("ix_audit_logs_token_symbol", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_table("default_exclusions")

    op.drop_index("ix_withholding_entries_token_symbol", table_name="withholding_entries")
    op.drop_table("withholding_entries")

    op.drop_index("ix_dividend_claims_dividend_id", table_name="dividend_claims")
    op.drop_table("dividend_claims")

    op.drop_index("ix_dividends_token_symbol", table_name="dividends")
    op.drop_table("dividends")

    op.drop_index("ix_checkpoints_token_symbol", table_name="checkpoints")
    op.drop_table("checkpoints")

    _drop_enum("dividend_currency")
