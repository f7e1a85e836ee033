"""Checkpoint ORM model."""
from __future__ import annotations

import uuid

from sqlalchemy import BigInteger, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dividend_manager.models.base import Base, TimestampMixin


class Checkpoint(TimestampMixin, Base):
    """Snapshot of every holder balance and the total supply of a token."""

    __tablename__ = "checkpoints"
    __table_args__ = (
        UniqueConstraint("token_symbol", "checkpoint_id", name="uq_checkpoints_token_checkpoint_id"),
        Index("ix_checkpoints_token_symbol", "token_symbol"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token_symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    checkpoint_id: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    @property
    def is_live(self) -> bool:
        return False


__all__ = ["Checkpoint"]
