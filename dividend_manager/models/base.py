"""Declarative base, mixins and column types for ORM models."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TimestampMixin:
    """Mixin adding created/updated timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class TokenAmount(TypeDecorator):
    """Unsigned integer amount in the asset's smallest unit, stored as a decimal string.

    Values routinely exceed 64 bits, so the column is textual on every dialect.
    """

    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value: int | None, dialect) -> str | None:  # type: ignore[no-untyped-def]
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"TokenAmount expects an int, got {type(value).__name__}")
        if value < 0:
            raise ValueError("TokenAmount cannot be negative")
        return str(value)

    def process_result_value(self, value: str | None, dialect) -> int | None:  # type: ignore[no-untyped-def]
        if value is None:
            return None
        return int(value)


__all__ = ["Base", "TimestampMixin", "TokenAmount"]
