"""Common dependencies for API routes."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from dividend_manager.core.config import get_settings
from dividend_manager.core.errors import (
    DividendConcurrencyError,
    DividendValidationError,
    LedgerSubmissionError,
    ModuleNotAttachedError,
    NotFoundError,
    PreconditionError,
)
from dividend_manager.db.session import SessionLocal
from dividend_manager.models import Currency
from dividend_manager.services.balance_oracle import BalanceOracle, HTTPBalanceOracle
from dividend_manager.services.context import Clock, OperatorContext, context_from_settings, system_clock
from dividend_manager.services.ledger_client import HTTPLedgerClient, LedgerClient


def get_db_session() -> Iterator[Session]:
    """Yield a database session for FastAPI dependencies."""

    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_ledger_client() -> Iterator[LedgerClient]:
    settings = get_settings()
    client = HTTPLedgerClient(
        settings.ledger_gateway_url, timeout_seconds=settings.collaborator_timeout_seconds
    )
    try:
        yield client
    finally:
        client.close()


def get_balance_oracle() -> Iterator[BalanceOracle]:
    settings = get_settings()
    oracle = HTTPBalanceOracle(
        settings.balance_oracle_url,
        settings.token_symbol,
        timeout_seconds=settings.collaborator_timeout_seconds,
    )
    try:
        yield oracle
    finally:
        oracle.close()


def get_clock() -> Clock:
    return system_clock


def get_operator_context(
    currency: Currency | None = Query(default=None),
    ledger: LedgerClient = Depends(get_ledger_client),
) -> OperatorContext:
    try:
        return context_from_settings(ledger, get_settings(), currency)
    except ModuleNotAttachedError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except LedgerSubmissionError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@contextmanager
def translate_service_errors() -> Iterator[None]:
    """Map dividend service errors onto HTTP responses."""

    try:
        yield
    except DividendValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PreconditionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except DividendConcurrencyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except LedgerSubmissionError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


__all__ = [
    "get_balance_oracle",
    "get_clock",
    "get_db_session",
    "get_ledger_client",
    "get_operator_context",
    "translate_service_errors",
]
