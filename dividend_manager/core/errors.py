"""Error hierarchy shared by the dividend services."""
from __future__ import annotations


class DividendError(RuntimeError):
    """Base class for dividend manager errors."""


class DividendValidationError(DividendError):
    """Raised when caller input is rejected before any collaborator call."""


class InvalidAddressError(DividendValidationError):
    """Raised when an address is not a well-formed account address."""


class InvalidPercentageError(DividendValidationError):
    """Raised when a withholding percentage is not an integer in [0, 100]."""


class InvalidWindowError(DividendValidationError):
    """Raised when the maturity/expiry window of a dividend is invalid."""


class PreconditionError(DividendError):
    """Raised after a read-check fails, before any state-changing call."""


class InsufficientFundsError(PreconditionError):
    """Raised when the issuer cannot fund a dividend in the bound currency."""

    def __init__(self, message: str, *, balance: int, required: int) -> None:
        super().__init__(message)
        self.balance = balance
        self.required = required

    @property
    def shortfall(self) -> int:
        return self.required - self.balance


class DividendNotClaimableError(PreconditionError):
    """Raised when payments are pushed outside the claim window."""


class DividendAlreadyReclaimedError(PreconditionError):
    """Raised when principal was already reclaimed for a dividend."""


class NothingToReclaimError(PreconditionError):
    """Raised when there is no principal or withholding left to recover."""


class ModuleNotAttachedError(PreconditionError):
    """Raised when the dividend module for a currency is not attached to the token."""


class NotFoundError(DividendError):
    """Raised when a referenced record does not exist."""


class CheckpointNotFoundError(NotFoundError):
    """Raised when a checkpoint id is above the highest allocated id."""


class DividendNotFoundError(NotFoundError):
    """Raised when a dividend index is unknown for the bound module."""


class LedgerSubmissionError(DividendError):
    """Raised when the external ledger call fails, reverts or returns an unusable receipt."""


class DividendConcurrencyError(DividendError):
    """Raised when optimistic locking detects a concurrent update."""


__all__ = [
    "CheckpointNotFoundError",
    "DividendAlreadyReclaimedError",
    "DividendConcurrencyError",
    "DividendError",
    "DividendNotClaimableError",
    "DividendNotFoundError",
    "DividendValidationError",
    "InsufficientFundsError",
    "InvalidAddressError",
    "InvalidPercentageError",
    "InvalidWindowError",
    "LedgerSubmissionError",
    "ModuleNotAttachedError",
    "NotFoundError",
    "NothingToReclaimError",
    "PreconditionError",
]
