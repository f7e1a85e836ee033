"""Withholding tax and exclusion list endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dividend_manager.api.deps import (
    get_balance_oracle,
    get_db_session,
    get_ledger_client,
    get_operator_context,
    translate_service_errors,
)
from dividend_manager.schemas.withholding import (
    ExclusionsRead,
    ExclusionsUpdate,
    WithholdingRead,
    WithholdingUpdate,
)
from dividend_manager.services.balance_oracle import BalanceOracle
from dividend_manager.services.context import OperatorContext
from dividend_manager.services.exclusions import ExclusionSetManager
from dividend_manager.services.ledger_client import LedgerClient
from dividend_manager.services.withholding import WithholdingCalculator

router = APIRouter()


@router.put("/withholding/{address}", response_model=WithholdingRead)
def set_withholding(
    address: str,
    payload: WithholdingUpdate,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
) -> WithholdingRead:
    calculator = WithholdingCalculator(session, ledger_client, oracle)
    with translate_service_errors():
        percentage = calculator.set_withholding_fixed(context, address, payload.percentage)
    return WithholdingRead(address=address, percentage=percentage)


@router.get("/withholding/{address}", response_model=WithholdingRead)
def get_withholding(
    address: str,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
) -> WithholdingRead:
    calculator = WithholdingCalculator(session, ledger_client, oracle)
    with translate_service_errors():
        percentage = calculator.get_withholding(context, address)
    return WithholdingRead(address=address, percentage=percentage)


@router.get("/exclusions/default", response_model=ExclusionsRead)
def get_default_exclusions(
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    context: OperatorContext = Depends(get_operator_context),
) -> ExclusionsRead:
    exclusions = ExclusionSetManager(session, ledger_client).get_default(context)
    return ExclusionsRead(addresses=list(exclusions.addresses), rejected=exclusions.rejected)


@router.put("/exclusions/default", response_model=ExclusionsRead)
def set_default_exclusions(
    payload: ExclusionsUpdate,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    context: OperatorContext = Depends(get_operator_context),
) -> ExclusionsRead:
    manager = ExclusionSetManager(session, ledger_client)
    with translate_service_errors():
        exclusions = manager.set_default(context, payload.addresses)
    return ExclusionsRead(addresses=list(exclusions.addresses), rejected=exclusions.rejected)


__all__ = ["router"]
