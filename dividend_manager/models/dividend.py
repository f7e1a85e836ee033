"""Dividend and claim ORM models."""
from __future__ import annotations

import enum
import uuid

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, JSON, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dividend_manager.models.base import Base, TimestampMixin, TokenAmount
from dividend_manager.models.currency import Currency


class DividendStatus(str, enum.Enum):
    PENDING_MATURITY = "PENDING_MATURITY"
    CLAIMABLE = "CLAIMABLE"
    EXPIRED = "EXPIRED"
    RECLAIMED = "RECLAIMED"


def derive_status(now: int, maturity: int, expiry: int) -> DividendStatus:
    """Return the time-derived status of a claim window. Never persisted."""

    if now >= expiry:
        return DividendStatus.EXPIRED
    if now >= maturity:
        return DividendStatus.CLAIMABLE
    return DividendStatus.PENDING_MATURITY


class Dividend(TimestampMixin, Base):
    """Value pool distributed to the holders eligible at a checkpoint."""

    __tablename__ = "dividends"
    __table_args__ = (
        UniqueConstraint(
            "token_symbol", "currency", "dividend_index", name="uq_dividends_token_currency_index"
        ),
        Index("ix_dividends_token_symbol", "token_symbol"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token_symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    currency: Mapped[Currency] = mapped_column(SAEnum(Currency, name="dividend_currency"), nullable=False)
    dividend_index: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    checkpoint_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created: Mapped[int] = mapped_column(BigInteger, nullable=False)
    maturity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expiry: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    claimed_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    withheld_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    withheld_reclaimed_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    reclaimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reclaimed_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    exclusions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    transaction_hash: Mapped[str | None] = mapped_column(String(128))
    lock_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    claims = relationship("DividendClaim", back_populates="dividend", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": lock_version}

    @property
    def remaining_amount(self) -> int:
        """Principal neither paid out nor withheld."""
        return self.total_amount - self.claimed_amount - self.withheld_amount

    @property
    def remaining_withheld_amount(self) -> int:
        return self.withheld_amount - self.withheld_reclaimed_amount

    def status_at(self, now: int) -> DividendStatus:
        if self.reclaimed:
            return DividendStatus.RECLAIMED
        return derive_status(now, self.maturity, self.expiry)

    def is_excluded(self, address: str) -> bool:
        return address in self.exclusions


class DividendClaim(TimestampMixin, Base):
    """Confirmed payout of one dividend to one address."""

    __tablename__ = "dividend_claims"
    __table_args__ = (
        UniqueConstraint("dividend_id", "address", name="uq_dividend_claims_dividend_address"),
        Index("ix_dividend_claims_dividend_id", "dividend_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    dividend_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("dividends.id", ondelete="CASCADE"), nullable=False
    )
    address: Mapped[str] = mapped_column(String(42), nullable=False)
    net_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    withheld_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    transaction_hash: Mapped[str | None] = mapped_column(String(128))

    dividend = relationship("Dividend", back_populates="claims")


__all__ = ["Dividend", "DividendClaim", "DividendStatus", "derive_status"]
