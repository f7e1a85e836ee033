"""Checkpoint and account exploration endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from dividend_manager.api.deps import (
    get_balance_oracle,
    get_clock,
    get_db_session,
    get_ledger_client,
    get_operator_context,
    translate_service_errors,
)
from dividend_manager.schemas.checkpoint import AddressBalancesRead, CheckpointRead, SupplyRead
from dividend_manager.services.balance_oracle import BalanceOracle
from dividend_manager.services.checkpoints import CheckpointRegistry
from dividend_manager.services.context import Clock, OperatorContext
from dividend_manager.services.explorer import AccountExplorer
from dividend_manager.services.ledger_client import LedgerClient

router = APIRouter()


@router.post("/checkpoints", response_model=CheckpointRead, status_code=status.HTTP_201_CREATED)
def create_checkpoint(
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    context: OperatorContext = Depends(get_operator_context),
    clock: Clock = Depends(get_clock),
) -> CheckpointRead:
    registry = CheckpointRegistry(session, ledger_client, clock=clock)
    with translate_service_errors():
        checkpoint = registry.create(context)
    return CheckpointRead.model_validate(checkpoint)


@router.get("/checkpoints", response_model=list[CheckpointRead])
def list_checkpoints(
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    context: OperatorContext = Depends(get_operator_context),
) -> list[CheckpointRead]:
    registry = CheckpointRegistry(session, ledger_client)
    return [CheckpointRead.model_validate(checkpoint) for checkpoint in registry.list(context)]


@router.get("/checkpoints/{checkpoint_id}", response_model=CheckpointRead)
def get_checkpoint(
    checkpoint_id: int,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    context: OperatorContext = Depends(get_operator_context),
) -> CheckpointRead:
    registry = CheckpointRegistry(session, ledger_client)
    with translate_service_errors():
        checkpoint = registry.get(context, checkpoint_id)
    return CheckpointRead.model_validate(checkpoint)


@router.get("/accounts/{address}", response_model=AddressBalancesRead)
def explore_address(
    address: str,
    checkpoint_id: int = 0,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
) -> AddressBalancesRead:
    explorer = AccountExplorer(session, ledger_client, oracle)
    with translate_service_errors():
        balances = explorer.explore_address(context, address, checkpoint_id)
    return AddressBalancesRead.model_validate(balances)


@router.get("/supply", response_model=SupplyRead)
def explore_total_supply(
    checkpoint_id: int = 0,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
) -> SupplyRead:
    explorer = AccountExplorer(session, ledger_client, oracle)
    with translate_service_errors():
        supply = explorer.explore_total_supply(context, checkpoint_id)
    return SupplyRead.model_validate(supply)


__all__ = ["router"]
