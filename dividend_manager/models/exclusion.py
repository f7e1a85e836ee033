"""Standing exclusion list ORM model."""
from __future__ import annotations

import uuid

from sqlalchemy import Enum as SAEnum
from sqlalchemy import JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dividend_manager.models.base import Base, TimestampMixin
from dividend_manager.models.currency import Currency


class DefaultExclusion(TimestampMixin, Base):
    """Addresses excluded from new dividends unless an override is supplied."""

    __tablename__ = "default_exclusions"
    __table_args__ = (
        UniqueConstraint("token_symbol", "currency", name="uq_default_exclusions_token_currency"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token_symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    currency: Mapped[Currency] = mapped_column(SAEnum(Currency, name="dividend_currency"), nullable=False)
    addresses: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


__all__ = ["DefaultExclusion"]
