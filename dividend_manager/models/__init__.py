"""ORM models package."""
from .audit_log import AuditLog
from .base import Base, TimestampMixin, TokenAmount
from .checkpoint import Checkpoint
from .currency import Currency, CurrencyBinding
from .dividend import Dividend, DividendClaim, DividendStatus, derive_status
from .exclusion import DefaultExclusion
from .withholding import WithholdingEntry

__all__ = [
    "AuditLog",
    "Base",
    "Checkpoint",
    "Currency",
    "CurrencyBinding",
    "DefaultExclusion",
    "Dividend",
    "DividendClaim",
    "DividendStatus",
    "TimestampMixin",
    "TokenAmount",
    "WithholdingEntry",
    "derive_status",
]
