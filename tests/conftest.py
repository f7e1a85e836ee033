from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
import sys

import pytest
from fastapi import Query
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from dividend_manager.api.deps import (
    get_balance_oracle,
    get_clock,
    get_db_session,
    get_ledger_client,
    get_operator_context,
)
from dividend_manager.core.config import Settings
from dividend_manager.main import app
from dividend_manager.models import Base, Currency
from dividend_manager.services.context import OperatorContext, bind_module
from tests.doubles import (
    HOLDER_A,
    HOLDER_B,
    HOLDER_C,
    ISSUER,
    TOKEN_SYMBOL,
    FakeClock,
    InMemoryBalanceOracle,
    InMemoryLedgerClient,
)

DATABASE_URL = "sqlite+pysqlite:///:memory:"


engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session() -> Iterator[Session]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        token_symbol=TOKEN_SYMBOL,
        issuer_address=ISSUER,
        maturity_grace_seconds=300,
        default_expiry_window_seconds=600,
    )


@pytest.fixture()
def oracle() -> InMemoryBalanceOracle:
    oracle = InMemoryBalanceOracle()
    oracle.fund(ISSUER, Currency.PRIMARY_TOKEN, 1_000_000)
    oracle.fund(ISSUER, Currency.NATIVE_COIN, 1_000_000)
    return oracle


@pytest.fixture()
def ledger(oracle: InMemoryBalanceOracle) -> InMemoryLedgerClient:
    ledger = InMemoryLedgerClient(oracle)
    ledger.attach(TOKEN_SYMBOL, Currency.PRIMARY_TOKEN)
    ledger.attach(TOKEN_SYMBOL, Currency.NATIVE_COIN)
    return ledger


@pytest.fixture()
def context(ledger: InMemoryLedgerClient) -> OperatorContext:
    return bind_module(ledger, issuer=ISSUER, token_symbol=TOKEN_SYMBOL, currency=Currency.PRIMARY_TOKEN)


@pytest.fixture()
def native_context(ledger: InMemoryLedgerClient) -> OperatorContext:
    return bind_module(ledger, issuer=ISSUER, token_symbol=TOKEN_SYMBOL, currency=Currency.NATIVE_COIN)


@pytest.fixture()
def holders(oracle: InMemoryBalanceOracle) -> InMemoryBalanceOracle:
    """A holds 30%, B 20% and C 50% of a supply of 1000."""

    oracle.set_balance(HOLDER_A, 300)
    oracle.set_balance(HOLDER_B, 200)
    oracle.set_balance(HOLDER_C, 500)
    return oracle


@pytest.fixture()
def client(
    db_session: Session,
    ledger: InMemoryLedgerClient,
    oracle: InMemoryBalanceOracle,
    clock: FakeClock,
    context: OperatorContext,
    native_context: OperatorContext,
) -> Iterator[TestClient]:
    def override_get_db() -> Iterator[Session]:
        try:
            yield db_session
        finally:
            db_session.rollback()

    def override_get_operator_context(currency: Currency | None = Query(default=None)) -> OperatorContext:
        return native_context if currency is Currency.NATIVE_COIN else context

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_ledger_client] = lambda: ledger
    app.dependency_overrides[get_balance_oracle] = lambda: oracle
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_operator_context] = override_get_operator_context

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
