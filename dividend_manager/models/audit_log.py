"""Audit log ORM model."""
from __future__ import annotations

import uuid

from sqlalchemy import Index, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from dividend_manager.models.base import Base, TimestampMixin


class AuditLog(TimestampMixin, Base):
    """Confirmed ledger actions per token."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_token_symbol", "token_symbol"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token_symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_address: Mapped[str] = mapped_column(String(42), nullable=False)
    action: Mapped[str] = mapped_column(String(128), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(128), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(128))
    payload: Mapped[dict | None] = mapped_column(JSON)
    transaction_hash: Mapped[str | None] = mapped_column(String(128))


__all__ = ["AuditLog"]
