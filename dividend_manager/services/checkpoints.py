"""Checkpoint registry: sequential snapshot ids for a token."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dividend_manager.core.errors import (
    CheckpointNotFoundError,
    DividendValidationError,
    LedgerSubmissionError,
)
from dividend_manager.models import Checkpoint
from dividend_manager.services.audit import record_audit
from dividend_manager.services.context import Clock, OperatorContext, system_clock
from dividend_manager.services.ledger_client import CHECKPOINT_CREATED, CreateCheckpoint, LedgerClient

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LiveCheckpoint:
    """Sentinel for checkpoint id 0: entitlements read live balances."""

    checkpoint_id: int = 0
    timestamp: int | None = None

    @property
    def is_live(self) -> bool:
        return True


LIVE_CHECKPOINT = LiveCheckpoint()


class CheckpointSequence:
    """Lazy view over a token's checkpoints ordered by id.

    Every iteration runs a fresh query, so the sequence can be restarted and
    reflects checkpoints created since the previous pass.
    """

    def __init__(self, session: Session, token_symbol: str) -> None:
        self._session = session
        self._token_symbol = token_symbol

    def __iter__(self) -> Iterator[Checkpoint]:
        statement = (
            select(Checkpoint)
            .where(Checkpoint.token_symbol == self._token_symbol)
            .order_by(Checkpoint.checkpoint_id)
        )
        yield from self._session.scalars(statement)


class CheckpointRegistry:
    """Allocates and resolves checkpoints."""

    def __init__(self, session: Session, ledger: LedgerClient, *, clock: Clock = system_clock) -> None:
        self._session = session
        self._ledger = ledger
        self._clock = clock

    def current_id(self, context: OperatorContext) -> int:
        statement = select(func.max(Checkpoint.checkpoint_id)).where(
            Checkpoint.token_symbol == context.token_symbol
        )
        return self._session.scalar(statement) or 0

    def create(self, context: OperatorContext) -> Checkpoint:
        next_id = self.current_id(context) + 1
        receipt = self._ledger.submit(
            context.issuer,
            CreateCheckpoint(token_symbol=context.token_symbol, checkpoint_id=next_id),
            context.fee_policy,
        )
        confirmed_id = int(receipt.event(CHECKPOINT_CREATED)["checkpoint_id"])
        if confirmed_id != next_id:
            raise LedgerSubmissionError(
                f"Ledger created checkpoint {confirmed_id}, expected {next_id}"
            )

        checkpoint = Checkpoint(
            token_symbol=context.token_symbol,
            checkpoint_id=next_id,
            timestamp=self._clock(),
        )
        self._session.add(checkpoint)
        record_audit(
            self._session,
            context,
            action="checkpoint.create",
            resource_type="Checkpoint",
            resource_id=str(next_id),
            receipt=receipt,
        )
        self._session.commit()
        self._session.refresh(checkpoint)
        LOGGER.info("Created checkpoint %s for %s", next_id, context.token_symbol)
        return checkpoint

    def list(self, context: OperatorContext) -> CheckpointSequence:
        return CheckpointSequence(self._session, context.token_symbol)

    def get(self, context: OperatorContext, checkpoint_id: int) -> Checkpoint | LiveCheckpoint:
        if isinstance(checkpoint_id, bool) or not isinstance(checkpoint_id, int) or checkpoint_id < 0:
            raise DividendValidationError(f"Checkpoint id must be a non-negative integer, got {checkpoint_id!r}")
        if checkpoint_id == 0:
            return LIVE_CHECKPOINT

        statement = select(Checkpoint).where(
            Checkpoint.token_symbol == context.token_symbol,
            Checkpoint.checkpoint_id == checkpoint_id,
        )
        checkpoint = self._session.scalars(statement).one_or_none()
        if checkpoint is None:
            raise CheckpointNotFoundError(
                f"Checkpoint {checkpoint_id} does not exist for '{context.token_symbol}'"
                f" (highest is {self.current_id(context)})"
            )
        return checkpoint


__all__ = ["CheckpointRegistry", "CheckpointSequence", "LIVE_CHECKPOINT", "LiveCheckpoint"]
