"""Exclusion lists: the standing default and one-time overrides."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from dividend_manager.models import DefaultExclusion
from dividend_manager.services.addresses import is_valid_address, normalize_address
from dividend_manager.services.audit import record_audit
from dividend_manager.services.context import OperatorContext
from dividend_manager.services.ledger_client import DEFAULT_EXCLUDED_SET, LedgerClient, SetDefaultExcluded

LOGGER = logging.getLogger(__name__)


class ExclusionSource(Protocol):
    """External list of candidate addresses, one per record."""

    def read_addresses(self) -> Iterable[str]:
        """Yield raw, untrusted address strings."""


@dataclass(slots=True, frozen=True)
class ExclusionSet:
    """Validated, deduplicated, ordered addresses; ``rejected`` counts dropped entries."""

    addresses: tuple[str, ...] = ()
    rejected: int = 0

    def __contains__(self, address: object) -> bool:
        return address in self.addresses

    def __iter__(self) -> Iterator[str]:
        return iter(self.addresses)

    def __len__(self) -> int:
        return len(self.addresses)


EMPTY_EXCLUSIONS = ExclusionSet()


def materialize(raw: Iterable[object]) -> ExclusionSet:
    """Validate ``raw`` entries, silently dropping malformed ones."""

    seen: dict[str, None] = {}
    rejected = 0
    for entry in raw:
        if not is_valid_address(entry):
            rejected += 1
            continue
        seen.setdefault(normalize_address(entry), None)
    return ExclusionSet(addresses=tuple(seen), rejected=rejected)


class ExclusionSetManager:
    """Maintains the standing exclusion list of the bound dividend module."""

    def __init__(self, session: Session, ledger: LedgerClient) -> None:
        self._session = session
        self._ledger = ledger

    def _default_row(self, context: OperatorContext) -> DefaultExclusion | None:
        statement = select(DefaultExclusion).where(
            DefaultExclusion.token_symbol == context.token_symbol,
            DefaultExclusion.currency == context.currency,
        )
        return self._session.scalars(statement).one_or_none()

    def get_default(self, context: OperatorContext) -> ExclusionSet:
        row = self._default_row(context)
        if row is None:
            return EMPTY_EXCLUSIONS
        return ExclusionSet(addresses=tuple(row.addresses))

    def set_default(self, context: OperatorContext, addresses: Iterable[object]) -> ExclusionSet:
        exclusions = materialize(addresses)
        if exclusions.rejected:
            LOGGER.warning("Dropped %s malformed exclusion entries", exclusions.rejected)

        receipt = self._ledger.submit(
            context.issuer,
            SetDefaultExcluded(module_address=context.module_address, addresses=exclusions.addresses),
            context.fee_policy,
        )
        receipt.event(DEFAULT_EXCLUDED_SET)

        row = self._default_row(context)
        if row is None:
            row = DefaultExclusion(token_symbol=context.token_symbol, currency=context.currency)
            self._session.add(row)
        row.addresses = list(exclusions.addresses)
        record_audit(
            self._session,
            context,
            action="exclusions.set_default",
            resource_type="DefaultExclusion",
            resource_id=context.module_address,
            receipt=receipt,
            payload={"addresses": list(exclusions.addresses), "rejected": exclusions.rejected},
        )
        self._session.commit()
        LOGGER.info("Default exclusions set to %s addresses", len(exclusions))
        return exclusions

    def materialize_override(self, raw: Iterable[object]) -> ExclusionSet:
        exclusions = materialize(raw)
        if exclusions.rejected:
            LOGGER.warning("Dropped %s malformed exclusion entries from override", exclusions.rejected)
        return exclusions

    def materialize_from_source(self, source: ExclusionSource) -> ExclusionSet:
        return self.materialize_override(source.read_addresses())


__all__ = [
    "EMPTY_EXCLUSIONS",
    "ExclusionSet",
    "ExclusionSetManager",
    "ExclusionSource",
    "materialize",
]
