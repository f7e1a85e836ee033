"""Read-only views of balances, supply and dividend entitlements."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from dividend_manager.services.addresses import normalize_address
from dividend_manager.services.balance_oracle import BalanceOracle
from dividend_manager.services.checkpoints import CheckpointRegistry
from dividend_manager.services.context import OperatorContext
from dividend_manager.services.ledger_client import LedgerClient
from dividend_manager.services.withholding import WithholdingCalculator


@dataclass(slots=True, frozen=True)
class AddressBalances:
    address: str
    checkpoint_id: int
    balance: int
    balance_at_checkpoint: int


@dataclass(slots=True, frozen=True)
class SupplySnapshot:
    checkpoint_id: int
    total_supply: int
    total_supply_at_checkpoint: int


@dataclass(slots=True, frozen=True)
class DividendBalance:
    address: str
    dividend_index: int
    currency_balance: int
    dividend_net: int
    dividend_withheld: int


class AccountExplorer:
    def __init__(self, session: Session, ledger: LedgerClient, oracle: BalanceOracle) -> None:
        self._oracle = oracle
        self._checkpoints = CheckpointRegistry(session, ledger)
        self._calculator = WithholdingCalculator(session, ledger, oracle)

    def _frozen(self, context: OperatorContext, checkpoint_id: int) -> int:
        return self._checkpoints.get(context, checkpoint_id).checkpoint_id

    def explore_address(self, context: OperatorContext, address: str, checkpoint_id: int) -> AddressBalances:
        address = normalize_address(address)
        checkpoint_id = self._frozen(context, checkpoint_id)
        balance = self._oracle.balance_of(address)
        if checkpoint_id == 0:
            balance_at = balance
        else:
            balance_at = self._oracle.balance_at(address, checkpoint_id)
        return AddressBalances(
            address=address,
            checkpoint_id=checkpoint_id,
            balance=balance,
            balance_at_checkpoint=balance_at,
        )

    def explore_total_supply(self, context: OperatorContext, checkpoint_id: int) -> SupplySnapshot:
        checkpoint_id = self._frozen(context, checkpoint_id)
        supply = self._oracle.total_supply()
        supply_at = supply if checkpoint_id == 0 else self._oracle.total_supply_at(checkpoint_id)
        return SupplySnapshot(checkpoint_id=checkpoint_id, total_supply=supply, total_supply_at_checkpoint=supply_at)

    def explore_dividend_balance(self, context: OperatorContext, dividend_index: int, address: str) -> DividendBalance:
        address = normalize_address(address)
        amounts = self._calculator.calculate_dividend(context, dividend_index, address)
        return DividendBalance(
            address=address,
            dividend_index=dividend_index,
            currency_balance=self._oracle.currency_balance(address, context.currency),
            dividend_net=amounts.net,
            dividend_withheld=amounts.withheld,
        )


__all__ = ["AccountExplorer", "AddressBalances", "DividendBalance", "SupplySnapshot"]
