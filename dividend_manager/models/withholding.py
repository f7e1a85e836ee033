"""Withholding tax ORM model."""
from __future__ import annotations

import uuid

from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dividend_manager.models.base import Base, TimestampMixin
from dividend_manager.models.currency import Currency


class WithholdingEntry(TimestampMixin, Base):
    """Percentage of an address's entitlement retained by the issuer."""

    __tablename__ = "withholding_entries"
    __table_args__ = (
        UniqueConstraint(
            "token_symbol", "currency", "address", name="uq_withholding_entries_token_currency_address"
        ),
        Index("ix_withholding_entries_token_symbol", "token_symbol"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token_symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    currency: Mapped[Currency] = mapped_column(SAEnum(Currency, name="dividend_currency"), nullable=False)
    address: Mapped[str] = mapped_column(String(42), nullable=False)
    percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


__all__ = ["WithholdingEntry"]
