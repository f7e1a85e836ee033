from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from dividend_manager.core.errors import (
    CheckpointNotFoundError,
    DividendConcurrencyError,
    DividendNotFoundError,
    DividendValidationError,
    InsufficientFundsError,
    InvalidWindowError,
)
from dividend_manager.models import AuditLog, Currency, Dividend, DividendStatus
from dividend_manager.services.checkpoints import CheckpointRegistry
from dividend_manager.services.dividends import (
    PUSHABLE,
    RECLAIMABLE,
    RECORD_ATTEMPTS,
    DividendFilter,
    DividendLedger,
    commit_confirmed,
)

from tests.doubles import ISSUER, START_TIME


@pytest.fixture()
def dividends(db_session: Session, ledger, holders, clock, settings) -> DividendLedger:
    return DividendLedger(db_session, ledger, holders, settings=settings, clock=clock)


def test_create_uses_default_window(dividends: DividendLedger, context) -> None:
    dividend = dividends.create(context, name="Q1 payout", amount=1_000)

    assert dividend.dividend_index == 0
    assert dividend.created == START_TIME
    assert dividend.maturity == START_TIME
    assert dividend.expiry == START_TIME + 600
    assert dividend.checkpoint_id == 0
    assert dividend.total_amount == 1_000
    assert (dividend.claimed_amount, dividend.withheld_amount) == (0, 0)
    assert dividends.status(dividend) is DividendStatus.CLAIMABLE


def test_indices_are_sequential_per_currency(dividends: DividendLedger, context, native_context) -> None:
    first = dividends.create(context, name="first", amount=10)
    second = dividends.create(context, name="second", amount=10)
    native = dividends.create(native_context, name="native", amount=10)

    assert (first.dividend_index, second.dividend_index) == (0, 1)
    assert native.dividend_index == 0
    assert native.currency is Currency.NATIVE_COIN
    assert [dividend.name for dividend in dividends.list(context)] == ["first", "second"]


def test_amounts_beyond_64_bits_round_trip(dividends: DividendLedger, holders, context, db_session: Session) -> None:
    amount = 10**30
    holders.fund(ISSUER, Currency.PRIMARY_TOKEN, amount)

    dividend = dividends.create(context, name="whale", amount=amount)
    db_session.expire_all()

    assert dividends.get(context, dividend.dividend_index).total_amount == amount


@pytest.mark.parametrize(
    ("maturity_offset", "expiry_offset"),
    [
        (100, 100),
        (100, 50),
        (-301, 600),
    ],
)
def test_invalid_windows_are_rejected_before_submission(
    dividends: DividendLedger, ledger, context, maturity_offset: int, expiry_offset: int
) -> None:
    with pytest.raises(InvalidWindowError):
        dividends.create(
            context,
            name="bad window",
            amount=10,
            maturity=START_TIME + maturity_offset,
            expiry=START_TIME + expiry_offset,
        )
    assert ledger.submissions == []


def test_maturity_within_grace_is_accepted(dividends: DividendLedger, context) -> None:
    dividend = dividends.create(context, name="late", amount=10, maturity=START_TIME - 300)

    assert dividend.maturity == START_TIME - 300


@pytest.mark.parametrize("name", ["", "   ", "x" * 33, "é" * 17])
def test_invalid_names_are_rejected(dividends: DividendLedger, context, name: str) -> None:
    with pytest.raises(DividendValidationError):
        dividends.create(context, name=name, amount=10)


@pytest.mark.parametrize("amount", [0, -5, True])
def test_invalid_amounts_are_rejected(dividends: DividendLedger, context, amount: int) -> None:
    with pytest.raises(DividendValidationError):
        dividends.create(context, name="zero", amount=amount)


def test_insufficient_funds_are_reported_before_submission(
    dividends: DividendLedger, holders, ledger, context
) -> None:
    holders.fund(ISSUER, Currency.PRIMARY_TOKEN, 40)

    with pytest.raises(InsufficientFundsError) as excinfo:
        dividends.create(context, name="too big", amount=100)

    assert excinfo.value.shortfall == 60
    assert "needs 60 more" in str(excinfo.value)
    assert ledger.submissions == []


def test_unknown_checkpoint_is_rejected(dividends: DividendLedger, ledger, context) -> None:
    with pytest.raises(CheckpointNotFoundError):
        dividends.create(context, name="future", amount=10, checkpoint_id=3)
    assert ledger.submissions == []


def test_create_records_audit_entry(
    dividends: DividendLedger, db_session: Session, ledger, context, clock
) -> None:
    CheckpointRegistry(db_session, ledger, clock=clock).create(context)
    dividends.create(context, name="snapshot", amount=500, checkpoint_id=1)

    entry = db_session.scalars(select(AuditLog).where(AuditLog.action == "dividend.create")).one()
    assert entry.resource_id == "0"
    assert entry.actor_address == ISSUER
    assert entry.payload == {
        "currency": "PRIMARY_TOKEN",
        "amount": "500",
        "checkpoint_id": 1,
        "name": "snapshot",
    }


def test_status_follows_the_clock(dividends: DividendLedger, context, clock) -> None:
    dividend = dividends.create(
        context, name="later", amount=10, maturity=START_TIME + 10, expiry=START_TIME + 100
    )

    assert dividends.status(dividend) is DividendStatus.PENDING_MATURITY
    clock.advance(10)
    assert dividends.status(dividend) is DividendStatus.CLAIMABLE
    clock.advance(90)
    assert dividends.status(dividend) is DividendStatus.EXPIRED


def test_filters_select_by_derived_state(dividends: DividendLedger, context, clock) -> None:
    dividends.create(context, name="open", amount=10, expiry=START_TIME + 50)
    dividends.create(context, name="future", amount=10, maturity=START_TIME + 20, expiry=START_TIME + 500)
    dividends.create(context, name="long", amount=10, expiry=START_TIME + 500)

    assert [d.name for d in dividends.list(context, PUSHABLE)] == ["open", "long"]
    assert [d.name for d in dividends.list(context, DividendFilter(matured=False))] == ["future"]

    clock.advance(60)
    assert [d.name for d in dividends.list(context, RECLAIMABLE)] == ["open"]
    assert [d.name for d in dividends.list(context, PUSHABLE)] == ["future", "long"]
    assert len(dividends.list(context, DividendFilter())) == 3


def test_get_unknown_dividend(dividends: DividendLedger, context) -> None:
    with pytest.raises(DividendNotFoundError):
        dividends.get(context, 7)


def test_confirmed_effects_give_up_after_repeated_conflicts(
    dividends: DividendLedger, db_session: Session, context
) -> None:
    dividend = dividends.create(context, name="contested", amount=100)
    dividend_id = dividend.id
    other_sessions = sessionmaker(bind=db_session.get_bind())
    calls: list[int] = []

    def apply(current: Dividend) -> None:
        calls.append(current.lock_version)
        other_session = other_sessions()
        try:
            competing = other_session.get(Dividend, dividend_id)
            competing.name = f"raced {len(calls)}"
            other_session.commit()
        finally:
            other_session.close()
        current.claimed_amount = current.claimed_amount + 1

    with pytest.raises(DividendConcurrencyError):
        commit_confirmed(db_session, context, dividend, apply)

    assert len(calls) == RECORD_ATTEMPTS
    db_session.expire_all()
    stored = db_session.get(Dividend, dividend_id)
    assert stored.claimed_amount == 0
    assert stored.name == f"raced {RECORD_ATTEMPTS}"
