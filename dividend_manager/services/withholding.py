"""Withholding tax settings and per-holder entitlement splits."""
from __future__ import annotations

import logging
from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from dividend_manager.core.errors import InvalidPercentageError
from dividend_manager.models import Dividend, WithholdingEntry
from dividend_manager.services.addresses import normalize_address
from dividend_manager.services.audit import record_audit
from dividend_manager.services.balance_oracle import BalanceOracle
from dividend_manager.services.context import OperatorContext
from dividend_manager.services.dividends import load_dividend
from dividend_manager.services.ledger_client import WITHHOLDING_SET, LedgerClient, SetWithholdingFixed

LOGGER = logging.getLogger(__name__)


class DividendAmounts(NamedTuple):
    net: int
    withheld: int

    @property
    def entitlement(self) -> int:
        return self.net + self.withheld


ZERO_AMOUNTS = DividendAmounts(0, 0)


def _validate_percentage(percentage: int) -> int:
    if isinstance(percentage, bool) or not isinstance(percentage, int):
        raise InvalidPercentageError(f"Withholding percentage must be an integer, got {percentage!r}")
    if not 0 <= percentage <= 100:
        raise InvalidPercentageError(f"Withholding percentage must be between 0 and 100, got {percentage}")
    return percentage


def split_entitlement(total_amount: int, balance: int, supply: int, percentage: int) -> DividendAmounts:
    """Pro-rata share of ``total_amount`` split into net and withheld, rounding down."""

    if supply <= 0 or balance <= 0:
        return ZERO_AMOUNTS
    entitlement = total_amount * balance // supply
    withheld = entitlement * percentage // 100
    return DividendAmounts(net=entitlement - withheld, withheld=withheld)


class WithholdingCalculator:
    """Keeps withholding percentages and computes what each holder is owed."""

    def __init__(self, session: Session, ledger: LedgerClient, oracle: BalanceOracle) -> None:
        self._session = session
        self._ledger = ledger
        self._oracle = oracle

    def _entry(self, context: OperatorContext, address: str) -> WithholdingEntry | None:
        statement = select(WithholdingEntry).where(
            WithholdingEntry.token_symbol == context.token_symbol,
            WithholdingEntry.currency == context.currency,
            WithholdingEntry.address == address,
        )
        return self._session.scalars(statement).one_or_none()

    def get_withholding(self, context: OperatorContext, address: str) -> int:
        entry = self._entry(context, normalize_address(address))
        return 0 if entry is None else entry.percentage

    def set_withholding_fixed(self, context: OperatorContext, address: str, percentage: int) -> int:
        address = normalize_address(address)
        percentage = _validate_percentage(percentage)

        receipt = self._ledger.submit(
            context.issuer,
            SetWithholdingFixed(
                module_address=context.module_address,
                addresses=(address,),
                percentage=percentage,
            ),
            context.fee_policy,
        )
        receipt.event(WITHHOLDING_SET)

        entry = self._entry(context, address)
        if entry is None:
            entry = WithholdingEntry(token_symbol=context.token_symbol, currency=context.currency, address=address)
            self._session.add(entry)
        entry.percentage = percentage
        record_audit(
            self._session,
            context,
            action="withholding.set_fixed",
            resource_type="WithholdingEntry",
            resource_id=address,
            receipt=receipt,
            payload={"percentage": percentage},
        )
        self._session.commit()
        LOGGER.info("Withholding for %s set to %s%%", address, percentage)
        return percentage

    def entitlement_for(self, context: OperatorContext, dividend: Dividend, address: str) -> DividendAmounts:
        """Split for an already-normalized address of a loaded dividend."""

        if dividend.is_excluded(address):
            return ZERO_AMOUNTS
        if dividend.checkpoint_id == 0:
            balance = self._oracle.balance_of(address)
            supply = self._oracle.total_supply()
        else:
            balance = self._oracle.balance_at(address, dividend.checkpoint_id)
            supply = self._oracle.total_supply_at(dividend.checkpoint_id)
        entry = self._entry(context, address)
        percentage = 0 if entry is None else entry.percentage
        return split_entitlement(dividend.total_amount, balance, supply, percentage)

    def calculate_dividend(self, context: OperatorContext, dividend_index: int, address: str) -> DividendAmounts:
        address = normalize_address(address)
        dividend = load_dividend(self._session, context, dividend_index)
        return self.entitlement_for(context, dividend, address)


__all__ = ["DividendAmounts", "WithholdingCalculator", "ZERO_AMOUNTS", "split_entitlement"]
