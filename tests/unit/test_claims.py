from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from dividend_manager.core.errors import (
    DividendNotClaimableError,
    InvalidAddressError,
    LedgerSubmissionError,
)
from dividend_manager.models import Dividend, DividendClaim
from dividend_manager.obs import DIVIDEND_PAYOUT_COUNTER
from dividend_manager.services.checkpoints import CheckpointRegistry
from dividend_manager.services.claims import ClaimProcessor, ClaimStatus
from dividend_manager.services.dividends import DividendLedger
from dividend_manager.services.exclusions import materialize
from dividend_manager.services.ledger_client import LedgerEvent, PushDividendPayments, Receipt
from dividend_manager.services.withholding import WithholdingCalculator

from tests.doubles import HOLDER_A, HOLDER_B, HOLDER_C, HOLDER_D, START_TIME


@pytest.fixture()
def processor(db_session: Session, ledger, holders, clock) -> ClaimProcessor:
    return ClaimProcessor(db_session, ledger, holders, clock=clock)


def _dividend(db_session: Session, ledger, holders, clock, ctx, **kwargs) -> Dividend:
    registry = CheckpointRegistry(db_session, ledger, clock=clock)
    registry.create(ctx)
    registry.create(ctx)
    WithholdingCalculator(db_session, ledger, holders).set_withholding_fixed(ctx, HOLDER_B, 10)
    kwargs.setdefault("checkpoint_id", 2)
    return DividendLedger(db_session, ledger, holders, clock=clock).create(ctx, name="scenario", amount=100, **kwargs)


def _reload(db_session: Session, dividend: Dividend) -> Dividend:
    db_session.expire_all()
    return db_session.get(Dividend, dividend.id)


def _payout_count(currency: str, status: str) -> float:
    family = next(iter(DIVIDEND_PAYOUT_COUNTER.collect()))
    return next(
        (
            sample.value
            for sample in family.samples
            if sample.name.endswith("_total")
            and sample.labels == {"currency": currency, "status": status}
        ),
        0.0,
    )


def test_push_splits_net_and_withheld(
    processor: ClaimProcessor, db_session: Session, ledger, holders, clock, context
) -> None:
    dividend = _dividend(db_session, ledger, holders, clock, context)
    paid_before = _payout_count("PRIMARY_TOKEN", "PAID")

    results = processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A, HOLDER_B])

    assert [(r.address, r.status, r.net, r.withheld) for r in results] == [
        (HOLDER_A, ClaimStatus.PAID, 30, 0),
        (HOLDER_B, ClaimStatus.PAID, 18, 2),
    ]
    db_session.expire_all()
    stored = db_session.get(Dividend, dividend.id)
    assert stored.claimed_amount == 48
    assert stored.withheld_amount == 2
    assert stored.remaining_amount == 50
    claims = db_session.scalars(select(DividendClaim).order_by(DividendClaim.address)).all()
    assert {(claim.address, claim.net_amount, claim.withheld_amount) for claim in claims} == {
        (HOLDER_A, 30, 0),
        (HOLDER_B, 18, 2),
    }
    assert _payout_count("PRIMARY_TOKEN", "PAID") == paid_before + 2


def test_repeated_push_is_a_no_op(
    processor: ClaimProcessor, db_session: Session, ledger, holders, clock, context
) -> None:
    dividend = _dividend(db_session, ledger, holders, clock, context)
    processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A])
    submitted = len(ledger.submissions)

    results = processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A, HOLDER_A.lower()])

    assert [r.status for r in results] == [ClaimStatus.ALREADY_CLAIMED, ClaimStatus.ALREADY_CLAIMED]
    assert all(r.net == 0 and r.withheld == 0 for r in results)
    assert len(ledger.submissions) == submitted
    assert _reload(db_session, dividend).claimed_amount == 30


def test_duplicates_excluded_and_empty_holders(
    processor: ClaimProcessor, db_session: Session, ledger, holders, clock, context
) -> None:
    dividend = _dividend(db_session, ledger, holders, clock, context, exclusions=materialize([HOLDER_C]))

    results = processor.push_dividend_payment(
        context, dividend.dividend_index, [HOLDER_A, HOLDER_C, HOLDER_D, HOLDER_A]
    )

    assert [r.status for r in results] == [
        ClaimStatus.PAID,
        ClaimStatus.EXCLUDED,
        ClaimStatus.ZERO_BALANCE,
        ClaimStatus.ALREADY_CLAIMED,
    ]
    assert results[3].reason == "duplicate in batch"
    _, action = ledger.submissions[-1]
    assert [payout.payee for payout in action.payouts] == [HOLDER_A]


def test_native_coin_reports_failures_per_address(
    db_session: Session, ledger, holders, clock, native_context
) -> None:
    processor = ClaimProcessor(db_session, ledger, holders, clock=clock)
    dividend = _dividend(db_session, ledger, holders, clock, native_context)
    ledger.failing_payees.add(HOLDER_B)

    results = processor.push_dividend_payment(native_context, dividend.dividend_index, [HOLDER_A, HOLDER_B])

    assert [r.status for r in results] == [ClaimStatus.PAID, ClaimStatus.FAILED]
    assert results[1].reason == "transfer failed"
    assert _reload(db_session, dividend).claimed_amount == 30

    ledger.failing_payees.clear()
    retry = processor.push_dividend_payment(native_context, dividend.dividend_index, [HOLDER_B])

    assert retry[0].status is ClaimStatus.PAID
    stored = _reload(db_session, dividend)
    assert (stored.claimed_amount, stored.withheld_amount) == (48, 2)


def test_primary_token_batch_reverts_as_a_whole(
    processor: ClaimProcessor, db_session: Session, ledger, holders, clock, context
) -> None:
    dividend = _dividend(db_session, ledger, holders, clock, context)
    ledger.failing_payees.add(HOLDER_B)

    with pytest.raises(LedgerSubmissionError):
        processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A, HOLDER_B])

    stored = _reload(db_session, dividend)
    assert stored.claimed_amount == 0
    assert db_session.scalars(select(DividendClaim)).all() == []


def test_push_outside_claim_window_is_rejected(
    processor: ClaimProcessor, db_session: Session, ledger, holders, clock, context
) -> None:
    dividend = _dividend(
        db_session, ledger, holders, clock, context, maturity=START_TIME + 100, expiry=START_TIME + 200
    )
    submitted = len(ledger.submissions)

    with pytest.raises(DividendNotClaimableError):
        processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A])
    clock.advance(200)
    with pytest.raises(DividendNotClaimableError):
        processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A])

    assert len(ledger.submissions) == submitted


def test_malformed_address_rejects_the_batch(
    processor: ClaimProcessor, db_session: Session, ledger, holders, clock, context
) -> None:
    dividend = _dividend(db_session, ledger, holders, clock, context)
    submitted = len(ledger.submissions)

    with pytest.raises(InvalidAddressError):
        processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A, "0xbad"])

    assert len(ledger.submissions) == submitted


def test_entitlement_above_remaining_amount_is_not_submitted(
    processor: ClaimProcessor, db_session: Session, ledger, holders, clock, context
) -> None:
    dividend = DividendLedger(db_session, ledger, holders, clock=clock).create(context, name="live", amount=100)
    processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A])
    holders.set_balance(HOLDER_B, 10_000)
    submitted = len(ledger.submissions)

    results = processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_B])

    assert results[0].status is ClaimStatus.FAILED
    assert results[0].reason == "entitlement exceeds remaining dividend amount"
    assert len(ledger.submissions) == submitted
    stored = _reload(db_session, dividend)
    assert (stored.claimed_amount, stored.withheld_amount) == (30, 0)
    assert stored.remaining_amount == 70


def test_confirmed_payment_survives_concurrent_update(
    processor: ClaimProcessor, db_session: Session, ledger, holders, clock, context, monkeypatch
) -> None:
    dividend = _dividend(db_session, ledger, holders, clock, context)
    dividend_id = dividend.id
    other_sessions = sessionmaker(bind=db_session.get_bind())
    submit = ledger.submit

    def racing_submit(issuer, action, fee_policy):  # type: ignore[no-untyped-def]
        receipt = submit(issuer, action, fee_policy)
        other_session = other_sessions()
        try:
            competing = other_session.get(Dividend, dividend_id)
            competing.name = "raced"
            other_session.commit()
        finally:
            other_session.close()
        return receipt

    monkeypatch.setattr(ledger, "submit", racing_submit)
    results = processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A])
    monkeypatch.undo()

    assert results[0].status is ClaimStatus.PAID
    stored = _reload(db_session, dividend)
    assert stored.name == "raced"
    assert stored.claimed_amount == 30
    assert [claim.address for claim in db_session.scalars(select(DividendClaim))] == [HOLDER_A]

    again = processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A])

    assert again[0].status is ClaimStatus.ALREADY_CLAIMED
    assert ledger.kinds().count(PushDividendPayments.kind) == 1


def test_receipt_paying_more_than_remaining_is_rejected(
    processor: ClaimProcessor, db_session: Session, ledger, holders, clock, context, monkeypatch
) -> None:
    dividend = _dividend(db_session, ledger, holders, clock, context)

    def inflated_submit(issuer, action, fee_policy):  # type: ignore[no-untyped-def]
        event = LedgerEvent(context.binding.claimed, {"payee": HOLDER_A, "amount": 500, "withheld": 0})
        return Receipt(transaction_hash="0xfeed", events=(event,))

    monkeypatch.setattr(ledger, "submit", inflated_submit)

    with pytest.raises(LedgerSubmissionError):
        processor.push_dividend_payment(context, dividend.dividend_index, [HOLDER_A])

    db_session.rollback()
    assert _reload(db_session, dividend).claimed_amount == 0
    assert db_session.scalars(select(DividendClaim)).all() == []
