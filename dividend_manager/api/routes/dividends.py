"""Dividend lifecycle endpoints."""
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
from dividend_manager.models import Dividend
from dividend_manager.schemas.dividend import (
    DividendBalanceRead,
    DividendCreateRequest,
    DividendRead,
    EntitlementRead,
    PushPaymentsRequest,
    PushPaymentsResponse,
    PushResultRead,
    ReclaimResponse,
)
from dividend_manager.services.balance_oracle import BalanceOracle
from dividend_manager.services.claims import ClaimProcessor
from dividend_manager.services.context import Clock, OperatorContext
from dividend_manager.services.dividends import DividendFilter, DividendLedger
from dividend_manager.services.exclusions import ExclusionSetManager
from dividend_manager.services.explorer import AccountExplorer
from dividend_manager.services.ledger_client import LedgerClient
from dividend_manager.services.reclaims import ReclaimProcessor
from dividend_manager.services.withholding import WithholdingCalculator

router = APIRouter(prefix="/dividends")


def _read(ledger: DividendLedger, dividend: Dividend) -> DividendRead:
    return DividendRead.model_validate(dividend).model_copy(update={"status": ledger.status(dividend)})


@router.post("", response_model=DividendRead, status_code=status.HTTP_201_CREATED)
def create_dividend(
    payload: DividendCreateRequest,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
    clock: Clock = Depends(get_clock),
) -> DividendRead:
    ledger = DividendLedger(session, ledger_client, oracle, clock=clock)
    exclusions = None
    if payload.exclusions is not None:
        exclusions = ExclusionSetManager(session, ledger_client).materialize_override(payload.exclusions)

    with translate_service_errors():
        dividend = ledger.create(
            context,
            name=payload.name,
            amount=payload.amount,
            checkpoint_id=payload.checkpoint_id,
            maturity=payload.maturity,
            expiry=payload.expiry,
            exclusions=exclusions,
        )
    return _read(ledger, dividend)


@router.get("", response_model=list[DividendRead])
def list_dividends(
    matured: bool | None = None,
    expired: bool | None = None,
    reclaimed: bool | None = None,
    with_remaining: bool | None = None,
    with_remaining_withheld: bool | None = None,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
    clock: Clock = Depends(get_clock),
) -> list[DividendRead]:
    ledger = DividendLedger(session, ledger_client, oracle, clock=clock)
    dividend_filter = DividendFilter(
        matured=matured,
        expired=expired,
        reclaimed=reclaimed,
        with_remaining=with_remaining,
        with_remaining_withheld=with_remaining_withheld,
    )
    return [_read(ledger, dividend) for dividend in ledger.list(context, dividend_filter)]


@router.get("/{dividend_index}", response_model=DividendRead)
def get_dividend(
    dividend_index: int,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
    clock: Clock = Depends(get_clock),
) -> DividendRead:
    ledger = DividendLedger(session, ledger_client, oracle, clock=clock)
    with translate_service_errors():
        dividend = ledger.get(context, dividend_index)
    return _read(ledger, dividend)


@router.get("/{dividend_index}/entitlements/{address}", response_model=EntitlementRead)
def calculate_entitlement(
    dividend_index: int,
    address: str,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
) -> EntitlementRead:
    calculator = WithholdingCalculator(session, ledger_client, oracle)
    with translate_service_errors():
        amounts = calculator.calculate_dividend(context, dividend_index, address)
    return EntitlementRead(dividend_index=dividend_index, address=address, net=amounts.net, withheld=amounts.withheld)


@router.get("/{dividend_index}/balances/{address}", response_model=DividendBalanceRead)
def explore_dividend_balance(
    dividend_index: int,
    address: str,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
) -> DividendBalanceRead:
    explorer = AccountExplorer(session, ledger_client, oracle)
    with translate_service_errors():
        balance = explorer.explore_dividend_balance(context, dividend_index, address)
    return DividendBalanceRead.model_validate(balance)


@router.post("/{dividend_index}/payments", response_model=PushPaymentsResponse)
def push_payments(
    dividend_index: int,
    payload: PushPaymentsRequest,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    oracle: BalanceOracle = Depends(get_balance_oracle),
    context: OperatorContext = Depends(get_operator_context),
    clock: Clock = Depends(get_clock),
) -> PushPaymentsResponse:
    processor = ClaimProcessor(session, ledger_client, oracle, clock=clock)
    ledger = DividendLedger(session, ledger_client, oracle, clock=clock)
    with translate_service_errors():
        results = processor.push_dividend_payment(context, dividend_index, payload.addresses)
        dividend = ledger.get(context, dividend_index)
    return PushPaymentsResponse(
        dividend_index=dividend_index,
        results=[PushResultRead.model_validate(result) for result in results],
        claimed_amount=dividend.claimed_amount,
        withheld_amount=dividend.withheld_amount,
    )


@router.post("/{dividend_index}/reclaim", response_model=ReclaimResponse)
def reclaim_dividend(
    dividend_index: int,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    context: OperatorContext = Depends(get_operator_context),
    clock: Clock = Depends(get_clock),
) -> ReclaimResponse:
    processor = ReclaimProcessor(session, ledger_client, clock=clock)
    with translate_service_errors():
        amount = processor.reclaim_principal(context, dividend_index)
    return ReclaimResponse(dividend_index=dividend_index, amount=amount)


@router.post("/{dividend_index}/withholding/withdraw", response_model=ReclaimResponse)
def withdraw_withholding(
    dividend_index: int,
    session: Session = Depends(get_db_session),
    ledger_client: LedgerClient = Depends(get_ledger_client),
    context: OperatorContext = Depends(get_operator_context),
    clock: Clock = Depends(get_clock),
) -> ReclaimResponse:
    processor = ReclaimProcessor(session, ledger_client, clock=clock)
    with translate_service_errors():
        amount = processor.withdraw_withholding(context, dividend_index)
    return ReclaimResponse(dividend_index=dividend_index, amount=amount)


__all__ = ["router"]
