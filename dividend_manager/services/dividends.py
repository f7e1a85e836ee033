"""Dividend ledger: creation, lookup, derived status and filtered queries."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from dividend_manager.core.config import Settings, get_settings
from dividend_manager.core.errors import (
    DividendConcurrencyError,
    DividendNotFoundError,
    DividendValidationError,
    InsufficientFundsError,
    InvalidWindowError,
    LedgerSubmissionError,
)
from dividend_manager.models import Dividend, DividendStatus, derive_status
from dividend_manager.services.audit import record_audit
from dividend_manager.services.balance_oracle import BalanceOracle
from dividend_manager.services.checkpoints import CheckpointRegistry
from dividend_manager.services.context import Clock, OperatorContext, system_clock
from dividend_manager.services.exclusions import ExclusionSet, ExclusionSetManager
from dividend_manager.services.ledger_client import CreateDividend, LedgerClient

LOGGER = logging.getLogger(__name__)

MAX_NAME_BYTES = 32

Predicate = Callable[[Dividend, int], bool]


def _match_any(dividend: Dividend, now: int) -> bool:
    return True


def equals(extract: Predicate, expected: bool | None) -> Predicate:
    """Predicate requiring ``extract`` to equal ``expected``; ``None`` matches any dividend."""

    if expected is None:
        return _match_any

    def predicate(dividend: Dividend, now: int) -> bool:
        return extract(dividend, now) == expected

    return predicate


def all_of(*predicates: Predicate) -> Predicate:
    def predicate(dividend: Dividend, now: int) -> bool:
        return all(check(dividend, now) for check in predicates)

    return predicate


def is_matured(dividend: Dividend, now: int) -> bool:
    return now >= dividend.maturity


def is_expired(dividend: Dividend, now: int) -> bool:
    return now >= dividend.expiry


def is_reclaimed(dividend: Dividend, now: int) -> bool:
    return dividend.reclaimed


def has_remaining(dividend: Dividend, now: int) -> bool:
    return dividend.remaining_amount > 0


def has_remaining_withheld(dividend: Dividend, now: int) -> bool:
    return dividend.remaining_withheld_amount > 0


@dataclass(slots=True, frozen=True)
class DividendFilter:
    """Optional constraints on a dividend's derived booleans."""

    matured: bool | None = None
    expired: bool | None = None
    reclaimed: bool | None = None
    with_remaining: bool | None = None
    with_remaining_withheld: bool | None = None

    def predicate(self) -> Predicate:
        return all_of(
            equals(is_matured, self.matured),
            equals(is_expired, self.expired),
            equals(is_reclaimed, self.reclaimed),
            equals(has_remaining, self.with_remaining),
            equals(has_remaining_withheld, self.with_remaining_withheld),
        )


PUSHABLE = DividendFilter(matured=True, expired=False, reclaimed=False, with_remaining=True)
RECLAIMABLE = DividendFilter(expired=True, reclaimed=False)
WITHHOLDING_WITHDRAWABLE = DividendFilter(with_remaining_withheld=True)


RECORD_ATTEMPTS = 3


def commit_confirmed(
    session: Session,
    context: OperatorContext,
    dividend: Dividend,
    apply: Callable[[Dividend], None],
    *,
    attempts: int = RECORD_ATTEMPTS,
) -> Dividend:
    """Record the effects of a receipt the ledger has already confirmed.

    ``apply`` mutates the dividend and adds any related rows. When the commit
    loses an optimistic-lock race the session is rolled back, the dividend is
    reloaded and ``apply`` runs again against the fresh row, so it must skip
    effects that are already recorded. Only after ``attempts`` lost races is
    :class:`DividendConcurrencyError` raised.
    """

    for attempt in range(1, attempts + 1):
        apply(dividend)
        try:
            session.commit()
            return dividend
        except StaleDataError:
            session.rollback()
            LOGGER.warning(
                "Dividend %s changed while recording a confirmed receipt (attempt %s/%s)",
                dividend.dividend_index,
                attempt,
                attempts,
            )
            dividend = load_dividend(session, context, dividend.dividend_index)
    LOGGER.error("Dividend %s: confirmed receipt could not be recorded", dividend.dividend_index)
    raise DividendConcurrencyError(f"Dividend {dividend.dividend_index} was modified concurrently")


def load_dividend(session: Session, context: OperatorContext, dividend_index: int) -> Dividend:
    """Load a dividend of the bound module, overwriting any state cached in the session."""

    statement = (
        select(Dividend)
        .where(
            Dividend.token_symbol == context.token_symbol,
            Dividend.currency == context.currency,
            Dividend.dividend_index == dividend_index,
        )
        .execution_options(populate_existing=True)
    )
    dividend = session.scalars(statement).one_or_none()
    if dividend is None:
        raise DividendNotFoundError(
            f"Dividend {dividend_index} was not found for {context.token_symbol}/{context.currency.value}"
        )
    return dividend


def _validate_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise DividendValidationError("Dividend name must not be empty")
    name = name.strip()
    if len(name.encode("utf-8")) > MAX_NAME_BYTES:
        raise DividendValidationError(f"Dividend name must fit in {MAX_NAME_BYTES} bytes")
    return name


def _validate_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise DividendValidationError(f"Dividend amount must be a positive integer, got {amount!r}")
    return amount


class DividendLedger:
    """Creates dividend records and answers queries about them."""

    def __init__(
        self,
        session: Session,
        ledger: LedgerClient,
        oracle: BalanceOracle,
        *,
        settings: Settings | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self._session = session
        self._ledger = ledger
        self._oracle = oracle
        self._settings = settings or get_settings()
        self._clock = clock
        self._checkpoints = CheckpointRegistry(session, ledger, clock=clock)
        self._exclusions = ExclusionSetManager(session, ledger)

    def now(self) -> int:
        return self._clock()

    def _validate_window(self, maturity: int, expiry: int, now: int) -> None:
        for label, value in (("maturity", maturity), ("expiry", expiry)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidWindowError(f"Dividend {label} must be a unix timestamp, got {value!r}")
        if expiry <= maturity:
            raise InvalidWindowError(f"Expiry {expiry} must be after maturity {maturity}")
        grace = self._settings.maturity_grace_seconds
        if grace is not None and maturity < now - grace:
            raise InvalidWindowError(
                f"Maturity {maturity} is more than {grace}s in the past (now {now})"
            )

    def _next_index(self, context: OperatorContext) -> int:
        statement = select(func.max(Dividend.dividend_index)).where(
            Dividend.token_symbol == context.token_symbol,
            Dividend.currency == context.currency,
        )
        current = self._session.scalar(statement)
        return 0 if current is None else current + 1

    def ensure_funds(self, context: OperatorContext, amount: int) -> int:
        """Read the issuer balance in the bound currency and require it to cover ``amount``."""

        balance = self._oracle.currency_balance(context.issuer, context.currency)
        if balance < amount:
            raise InsufficientFundsError(
                f"Issuer holds {balance} {context.currency.value}, needs {amount - balance} more",
                balance=balance,
                required=amount,
            )
        return balance

    def create(
        self,
        context: OperatorContext,
        *,
        name: str,
        amount: int,
        checkpoint_id: int = 0,
        maturity: int | None = None,
        expiry: int | None = None,
        exclusions: ExclusionSet | None = None,
    ) -> Dividend:
        now = self._clock()
        name = _validate_name(name)
        amount = _validate_amount(amount)
        maturity = now if maturity is None else maturity
        expiry = now + self._settings.default_expiry_window_seconds if expiry is None else expiry
        self._validate_window(maturity, expiry, now)
        checkpoint = self._checkpoints.get(context, checkpoint_id)

        if exclusions is None:
            exclusions = self._exclusions.get_default(context)

        self.ensure_funds(context, amount)

        index = self._next_index(context)
        receipt = self._ledger.submit(
            context.issuer,
            CreateDividend(
                module_address=context.module_address,
                currency=context.currency,
                dividend_index=index,
                name=name,
                checkpoint_id=checkpoint.checkpoint_id,
                amount=amount,
                maturity=maturity,
                expiry=expiry,
                exclusions=exclusions.addresses,
            ),
            context.fee_policy,
        )
        confirmed_index = int(receipt.event(context.binding.deposited)["dividend_index"])
        if confirmed_index != index:
            raise LedgerSubmissionError(f"Ledger deposited dividend {confirmed_index}, expected {index}")

        dividend = Dividend(
            token_symbol=context.token_symbol,
            currency=context.currency,
            dividend_index=index,
            name=name,
            checkpoint_id=checkpoint.checkpoint_id,
            created=now,
            maturity=maturity,
            expiry=expiry,
            total_amount=amount,
            claimed_amount=0,
            withheld_amount=0,
            withheld_reclaimed_amount=0,
            reclaimed=False,
            reclaimed_amount=0,
            exclusions=list(exclusions.addresses),
            transaction_hash=receipt.transaction_hash,
        )
        self._session.add(dividend)
        record_audit(
            self._session,
            context,
            action="dividend.create",
            resource_type="Dividend",
            resource_id=str(index),
            receipt=receipt,
            payload={"amount": str(amount), "checkpoint_id": checkpoint.checkpoint_id, "name": name},
        )
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise DividendConcurrencyError(f"Dividend index {index} was recorded concurrently") from exc
        self._session.refresh(dividend)
        LOGGER.info(
            "Dividend %s '%s' deposited: %s %s at checkpoint %s",
            index,
            name,
            amount,
            context.currency.value,
            checkpoint.checkpoint_id,
        )
        return dividend

    def get(self, context: OperatorContext, dividend_index: int) -> Dividend:
        return load_dividend(self._session, context, dividend_index)

    def list(self, context: OperatorContext, dividend_filter: DividendFilter | None = None) -> list[Dividend]:
        statement = (
            select(Dividend)
            .where(Dividend.token_symbol == context.token_symbol, Dividend.currency == context.currency)
            .order_by(Dividend.dividend_index)
            .execution_options(populate_existing=True)
        )
        dividends = self._session.scalars(statement).all()
        if dividend_filter is None:
            return list(dividends)
        predicate = dividend_filter.predicate()
        now = self._clock()
        return [dividend for dividend in dividends if predicate(dividend, now)]

    def status(self, dividend: Dividend) -> DividendStatus:
        return dividend.status_at(self._clock())


__all__ = [
    "DividendFilter",
    "DividendLedger",
    "MAX_NAME_BYTES",
    "PUSHABLE",
    "Predicate",
    "RECLAIMABLE",
    "WITHHOLDING_WITHDRAWABLE",
    "all_of",
    "commit_confirmed",
    "derive_status",
    "equals",
    "load_dividend",
]
