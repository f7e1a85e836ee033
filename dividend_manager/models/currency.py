"""Dividend currencies and the ledger event table each one carries."""
from __future__ import annotations

import enum
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CurrencyBinding:
    """Module and event names used by the dividend module of one currency.

    ``claim_failed`` is ``None`` when the module cannot report a failed payout
    per address; a failing transfer then reverts the whole batch.
    """

    module_name: str
    deposited: str
    claimed: str
    claim_failed: str | None
    reclaimed: str
    withholding_withdrawn: str

    @property
    def per_address_failures(self) -> bool:
        return self.claim_failed is not None


class Currency(str, enum.Enum):
    PRIMARY_TOKEN = "PRIMARY_TOKEN"
    NATIVE_COIN = "NATIVE_COIN"

    @property
    def binding(self) -> CurrencyBinding:
        return _BINDINGS[self]


_BINDINGS: dict[Currency, CurrencyBinding] = {
    Currency.PRIMARY_TOKEN: CurrencyBinding(
        module_name="ERC20DividendCheckpoint",
        deposited="ERC20DividendDeposited",
        claimed="ERC20DividendClaimed",
        claim_failed=None,
        reclaimed="ERC20DividendReclaimed",
        withholding_withdrawn="ERC20DividendWithholdingWithdrawn",
    ),
    Currency.NATIVE_COIN: CurrencyBinding(
        module_name="EtherDividendCheckpoint",
        deposited="EtherDividendDeposited",
        claimed="EtherDividendClaimed",
        claim_failed="EtherDividendClaimFailed",
        reclaimed="EtherDividendReclaimed",
        withholding_withdrawn="EtherDividendWithholdingWithdrawn",
    ),
}


__all__ = ["Currency", "CurrencyBinding"]
