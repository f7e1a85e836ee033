"""Pushing dividend payments to holders."""
from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from dividend_manager.core.errors import (
    DividendAlreadyReclaimedError,
    DividendNotClaimableError,
    LedgerSubmissionError,
)
from dividend_manager.models import Dividend, DividendClaim, DividendStatus
from dividend_manager.obs.metrics import record_payout
from dividend_manager.services.addresses import normalize_address
from dividend_manager.services.audit import record_audit
from dividend_manager.services.balance_oracle import BalanceOracle
from dividend_manager.services.context import Clock, OperatorContext, system_clock
from dividend_manager.services.dividends import commit_confirmed, load_dividend
from dividend_manager.services.ledger_client import LedgerClient, LedgerEvent, Payout, PushDividendPayments
from dividend_manager.services.withholding import DividendAmounts, WithholdingCalculator

LOGGER = logging.getLogger(__name__)


class ClaimStatus(str, enum.Enum):
    PAID = "PAID"
    ALREADY_CLAIMED = "ALREADY_CLAIMED"
    EXCLUDED = "EXCLUDED"
    ZERO_BALANCE = "ZERO_BALANCE"
    FAILED = "FAILED"


@dataclass(slots=True, frozen=True)
class PushResult:
    address: str
    status: ClaimStatus
    net: int = 0
    withheld: int = 0
    reason: str | None = None

    @property
    def paid(self) -> bool:
        return self.status is ClaimStatus.PAID


def _index_by_payee(events: Iterable[LedgerEvent]) -> dict[str, LedgerEvent]:
    return {normalize_address(event["payee"]): event for event in events}


class ClaimProcessor:
    """Applies batched payouts against a dividend.

    Each address is paid at most once per dividend; repeating a push is a
    zero-amount no-op. Native coin modules report failed transfers per
    address, token modules revert the whole batch, in which case the ledger
    error propagates and nothing is recorded. Payments a receipt confirms are
    recorded even if the dividend row changed in the meantime.
    """

    def __init__(
        self,
        session: Session,
        ledger: LedgerClient,
        oracle: BalanceOracle,
        *,
        clock: Clock = system_clock,
    ) -> None:
        self._session = session
        self._ledger = ledger
        self._clock = clock
        self._calculator = WithholdingCalculator(session, ledger, oracle)

    def _claimed_addresses(self, dividend: Dividend) -> set[str]:
        statement = select(DividendClaim.address).where(DividendClaim.dividend_id == dividend.id)
        return set(self._session.scalars(statement))

    def _ensure_claimable(self, dividend: Dividend) -> None:
        if dividend.reclaimed:
            raise DividendAlreadyReclaimedError(f"Dividend {dividend.dividend_index} was already reclaimed")
        status = dividend.status_at(self._clock())
        if status is not DividendStatus.CLAIMABLE:
            raise DividendNotClaimableError(
                f"Dividend {dividend.dividend_index} is {status.value}, payments require CLAIMABLE"
            )

    def push_dividend_payment(
        self,
        context: OperatorContext,
        dividend_index: int,
        addresses: Iterable[str],
    ) -> list[PushResult]:
        normalized = [normalize_address(address) for address in addresses]
        dividend = load_dividend(self._session, context, dividend_index)
        self._ensure_claimable(dividend)

        claimed = self._claimed_addresses(dividend)
        results: dict[int, PushResult] = {}
        pending: dict[str, tuple[int, DividendAmounts]] = {}
        budget = dividend.remaining_amount

        for position, address in enumerate(normalized):
            if address in claimed:
                results[position] = PushResult(address, ClaimStatus.ALREADY_CLAIMED, reason="already claimed")
                continue
            if address in pending:
                results[position] = PushResult(address, ClaimStatus.ALREADY_CLAIMED, reason="duplicate in batch")
                continue
            if dividend.is_excluded(address):
                results[position] = PushResult(address, ClaimStatus.EXCLUDED, reason="excluded")
                continue
            amounts = self._calculator.entitlement_for(context, dividend, address)
            if amounts.entitlement == 0:
                results[position] = PushResult(address, ClaimStatus.ZERO_BALANCE, reason="zero balance")
                continue
            if amounts.entitlement > budget:
                results[position] = PushResult(
                    address,
                    ClaimStatus.FAILED,
                    net=amounts.net,
                    withheld=amounts.withheld,
                    reason="entitlement exceeds remaining dividend amount",
                )
                continue
            budget -= amounts.entitlement
            pending[address] = (position, amounts)

        if pending:
            self._submit(context, dividend, pending, results)

        ordered = [results[position] for position in range(len(normalized))]
        for result in ordered:
            record_payout(context.currency.value, result.status.value)
        return ordered

    def _submit(
        self,
        context: OperatorContext,
        dividend: Dividend,
        pending: dict[str, tuple[int, DividendAmounts]],
        results: dict[int, PushResult],
    ) -> None:
        binding = context.binding
        receipt = self._ledger.submit(
            context.issuer,
            PushDividendPayments(
                module_address=context.module_address,
                dividend_index=dividend.dividend_index,
                payouts=tuple(
                    Payout(payee=address, net_amount=amounts.net, withheld_amount=amounts.withheld)
                    for address, (_, amounts) in pending.items()
                ),
            ),
            context.fee_policy,
        )
        confirmed = _index_by_payee(receipt.events_named(binding.claimed))
        failed = _index_by_payee(receipt.events_named(binding.claim_failed)) if binding.claim_failed else {}

        payments: list[tuple[str, int, int]] = []
        for address, (position, amounts) in pending.items():
            event = confirmed.get(address)
            if event is None:
                reason = "transfer failed" if address in failed else "not confirmed by receipt"
                LOGGER.warning(
                    "Dividend %s payment to %s failed: %s", dividend.dividend_index, address, reason
                )
                results[position] = PushResult(
                    address, ClaimStatus.FAILED, net=amounts.net, withheld=amounts.withheld, reason=reason
                )
                continue

            net = int(event["amount"])
            withheld = int(event["withheld"])
            payments.append((address, net, withheld))
            results[position] = PushResult(address, ClaimStatus.PAID, net=net, withheld=withheld)

        def record(current: Dividend) -> None:
            recorded = self._claimed_addresses(current)
            unrecorded = [payment for payment in payments if payment[0] not in recorded]
            paid_net = sum(net for _, net, _ in unrecorded)
            paid_withheld = sum(withheld for _, _, withheld in unrecorded)
            if paid_net + paid_withheld > current.remaining_amount:
                raise LedgerSubmissionError(
                    f"Receipt {receipt.transaction_hash} pays {paid_net + paid_withheld}, "
                    f"more than the {current.remaining_amount} left on dividend {current.dividend_index}"
                )
            for address, net, withheld in unrecorded:
                self._session.add(
                    DividendClaim(
                        dividend_id=current.id,
                        address=address,
                        net_amount=net,
                        withheld_amount=withheld,
                        transaction_hash=receipt.transaction_hash,
                    )
                )
            if paid_net or paid_withheld:
                current.claimed_amount = current.claimed_amount + paid_net
                current.withheld_amount = current.withheld_amount + paid_withheld
            record_audit(
                self._session,
                context,
                action="dividend.push_payments",
                resource_type="Dividend",
                resource_id=str(current.dividend_index),
                receipt=receipt,
                payload={
                    "paid": [address for address, _, _ in unrecorded],
                    "claimed_amount": str(paid_net),
                    "withheld_amount": str(paid_withheld),
                },
            )

        commit_confirmed(self._session, context, dividend, record)
        LOGGER.info(
            "Dividend %s: pushed %s net and %s withheld %s",
            dividend.dividend_index,
            sum(net for _, net, _ in payments),
            sum(withheld for _, _, withheld in payments),
            context.currency.value,
        )


__all__ = ["ClaimProcessor", "ClaimStatus", "PushResult"]
