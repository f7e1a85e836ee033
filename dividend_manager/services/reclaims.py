"""Issuer recovery of unclaimed principal and collected withholding."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from dividend_manager.core.errors import (
    DividendAlreadyReclaimedError,
    LedgerSubmissionError,
    NothingToReclaimError,
    PreconditionError,
)
from dividend_manager.models import Dividend, DividendStatus
from dividend_manager.services.audit import record_audit
from dividend_manager.services.context import Clock, OperatorContext, system_clock
from dividend_manager.services.dividends import commit_confirmed, load_dividend
from dividend_manager.services.ledger_client import LedgerClient, Receipt, ReclaimDividend, WithdrawWithholding

LOGGER = logging.getLogger(__name__)


class ReclaimProcessor:
    """Principal reclaim and withholding withdrawal, gated independently."""

    def __init__(self, session: Session, ledger: LedgerClient, *, clock: Clock = system_clock) -> None:
        self._session = session
        self._ledger = ledger
        self._clock = clock

    def reclaim_principal(self, context: OperatorContext, dividend_index: int) -> int:
        """Return the unclaimed principal of an expired dividend to the issuer, once."""

        dividend = load_dividend(self._session, context, dividend_index)
        if dividend.reclaimed:
            raise DividendAlreadyReclaimedError(f"Dividend {dividend_index} was already reclaimed")
        status = dividend.status_at(self._clock())
        if status is not DividendStatus.EXPIRED:
            raise PreconditionError(f"Dividend {dividend_index} is {status.value}, reclaim requires EXPIRED")
        remaining = dividend.remaining_amount
        if remaining <= 0:
            raise NothingToReclaimError(f"Dividend {dividend_index} has no unclaimed principal")

        receipt = self._ledger.submit(
            context.issuer,
            ReclaimDividend(module_address=context.module_address, dividend_index=dividend_index),
            context.fee_policy,
        )
        amount = int(receipt.event(context.binding.reclaimed)["claimed_amount"])

        def record(current: Dividend) -> None:
            if current.reclaimed:
                return
            _check_bound(receipt, amount, current.remaining_amount, "unclaimed principal")
            current.reclaimed = True
            current.reclaimed_amount = amount
            self._audit(context, current, "dividend.reclaim", receipt, amount)

        commit_confirmed(self._session, context, dividend, record)
        LOGGER.info("Reclaimed %s %s from dividend %s", amount, context.currency.value, dividend_index)
        return amount

    def withdraw_withholding(self, context: OperatorContext, dividend_index: int) -> int:
        """Move withheld tax not yet withdrawn to the issuer. Allowed at any time."""

        dividend = load_dividend(self._session, context, dividend_index)
        remaining = dividend.remaining_withheld_amount
        if remaining <= 0:
            raise NothingToReclaimError(f"Dividend {dividend_index} has no withholding left to withdraw")

        receipt = self._ledger.submit(
            context.issuer,
            WithdrawWithholding(module_address=context.module_address, dividend_index=dividend_index),
            context.fee_policy,
        )
        amount = int(receipt.event(context.binding.withholding_withdrawn)["withheld_amount"])

        def record(current: Dividend) -> None:
            _check_bound(receipt, amount, current.remaining_withheld_amount, "withholding")
            current.withheld_reclaimed_amount = current.withheld_reclaimed_amount + amount
            self._audit(context, current, "dividend.withdraw_withholding", receipt, amount)

        commit_confirmed(self._session, context, dividend, record)
        LOGGER.info(
            "Withdrew %s %s of withholding from dividend %s", amount, context.currency.value, dividend_index
        )
        return amount

    def _audit(self, context: OperatorContext, dividend: Dividend, action: str, receipt: Receipt, amount: int) -> None:
        record_audit(
            self._session,
            context,
            action=action,
            resource_type="Dividend",
            resource_id=str(dividend.dividend_index),
            receipt=receipt,
            payload={"amount": str(amount)},
        )


def _check_bound(receipt: Receipt, amount: int, available: int, label: str) -> None:
    if amount < 0 or amount > available:
        raise LedgerSubmissionError(
            f"Receipt {receipt.transaction_hash} moves {amount}, but only {available} {label} is left"
        )


__all__ = ["ReclaimProcessor"]
