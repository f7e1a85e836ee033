"""Ledger collaborator: actions submitted on behalf of the issuer and their receipts."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Protocol

import httpx

from dividend_manager.core.errors import LedgerSubmissionError
from dividend_manager.models.currency import Currency

CHECKPOINT_CREATED = "CheckpointCreated"
DEFAULT_EXCLUDED_SET = "SetDefaultExcludedAddresses"
WITHHOLDING_SET = "SetWithholdingFixed"
MODULE_ADDED = "ModuleAdded"


@dataclass(slots=True, frozen=True)
class FeePolicy:
    """Fee settings passed through to the ledger client untouched."""

    gas_price: int | None = None
    gas_multiplier: float = 1.2

    def to_json(self) -> dict[str, int | float | None]:
        return {"gas_price": self.gas_price, "gas_multiplier": self.gas_multiplier}


@dataclass(slots=True, frozen=True)
class LedgerEvent:
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.args[key]


@dataclass(slots=True, frozen=True)
class Receipt:
    """Outcome of a committed ledger submission."""

    transaction_hash: str
    events: tuple[LedgerEvent, ...] = ()

    def events_named(self, name: str) -> list[LedgerEvent]:
        return [event for event in self.events if event.name == name]

    def event(self, name: str) -> LedgerEvent:
        """Return the first event called ``name``; a receipt without it confirms nothing."""
        for event in self.events:
            if event.name == name:
                return event
        raise LedgerSubmissionError(
            f"Receipt {self.transaction_hash} does not contain a '{name}' event"
        )


class LedgerAction(ABC):
    """Base class for state-changing actions submitted to the ledger."""

    kind: ClassVar[str] = ""

    @abstractmethod
    def to_json(self) -> dict[str, Any]:
        """Payload the ledger gateway expects for this action."""


@dataclass(slots=True, frozen=True)
class AttachModule(LedgerAction):
    kind: ClassVar[str] = "attach_module"

    token_symbol: str
    module_name: str

    def to_json(self) -> dict[str, Any]:
        return {"token_symbol": self.token_symbol, "module_name": self.module_name}


@dataclass(slots=True, frozen=True)
class CreateCheckpoint(LedgerAction):
    kind: ClassVar[str] = "create_checkpoint"

    token_symbol: str
    checkpoint_id: int

    def to_json(self) -> dict[str, Any]:
        return {"token_symbol": self.token_symbol, "checkpoint_id": self.checkpoint_id}


@dataclass(slots=True, frozen=True)
class SetDefaultExcluded(LedgerAction):
    kind: ClassVar[str] = "set_default_excluded"

    module_address: str
    addresses: tuple[str, ...]

    def to_json(self) -> dict[str, Any]:
        return {"module_address": self.module_address, "addresses": list(self.addresses)}


@dataclass(slots=True, frozen=True)
class SetWithholdingFixed(LedgerAction):
    kind: ClassVar[str] = "set_withholding_fixed"

    module_address: str
    addresses: tuple[str, ...]
    percentage: int

    def to_json(self) -> dict[str, Any]:
        # The module stores the fraction with 18 decimals: 100% == 10**18.
        return {
            "module_address": self.module_address,
            "addresses": list(self.addresses),
            "withholding": str(self.percentage * 10**16),
        }


@dataclass(slots=True, frozen=True)
class CreateDividend(LedgerAction):
    kind: ClassVar[str] = "create_dividend"

    module_address: str
    currency: Currency
    dividend_index: int
    name: str
    checkpoint_id: int
    amount: int
    maturity: int
    expiry: int
    exclusions: tuple[str, ...]

    def to_json(self) -> dict[str, Any]:
        return {
            "module_address": self.module_address,
            "currency": self.currency.value,
            "dividend_index": self.dividend_index,
            "name": self.name,
            "checkpoint_id": self.checkpoint_id,
            "amount": str(self.amount),
            "maturity": self.maturity,
            "expiry": self.expiry,
            "exclusions": list(self.exclusions),
        }


@dataclass(slots=True, frozen=True)
class Payout:
    payee: str
    net_amount: int
    withheld_amount: int


@dataclass(slots=True, frozen=True)
class PushDividendPayments(LedgerAction):
    kind: ClassVar[str] = "push_dividend_payments"

    module_address: str
    dividend_index: int
    payouts: tuple[Payout, ...]

    def to_json(self) -> dict[str, Any]:
        return {
            "module_address": self.module_address,
            "dividend_index": self.dividend_index,
            "payees": [payout.payee for payout in self.payouts],
            "expected": [
                {
                    "payee": payout.payee,
                    "amount": str(payout.net_amount),
                    "withheld": str(payout.withheld_amount),
                }
                for payout in self.payouts
            ],
        }


@dataclass(slots=True, frozen=True)
class ReclaimDividend(LedgerAction):
    kind: ClassVar[str] = "reclaim_dividend"

    module_address: str
    dividend_index: int

    def to_json(self) -> dict[str, Any]:
        return {"module_address": self.module_address, "dividend_index": self.dividend_index}


@dataclass(slots=True, frozen=True)
class WithdrawWithholding(LedgerAction):
    kind: ClassVar[str] = "withdraw_withholding"

    module_address: str
    dividend_index: int

    def to_json(self) -> dict[str, Any]:
        return {"module_address": self.module_address, "dividend_index": self.dividend_index}


class LedgerClient(Protocol):
    """Protocol describing the signing and broadcasting ledger collaborator."""

    def submit(self, issuer: str, action: LedgerAction, fee_policy: FeePolicy) -> Receipt:
        """Commit ``action`` atomically or raise :class:`LedgerSubmissionError`."""

    def find_module(self, token_symbol: str, module_name: str) -> str | None:
        """Return the address of the named module attached to the token, if any."""


def _parse_receipt(payload: Mapping[str, Any]) -> Receipt:
    transaction_hash = payload.get("transaction_hash")
    if not transaction_hash:
        raise LedgerSubmissionError("Incomplete ledger gateway response")
    events = tuple(
        LedgerEvent(name=str(item["name"]), args=dict(item.get("args") or {}))
        for item in payload.get("events") or []
    )
    return Receipt(transaction_hash=str(transaction_hash), events=events)


class HTTPLedgerClient:
    """HTTP client for a ledger gateway that signs and broadcasts issuer actions."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._client = client or httpx.Client()
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HTTPLedgerClient":  # pragma: no cover - convenience
        return self

    def __exit__(self, *_args: object) -> None:  # pragma: no cover - convenience
        self.close()

    def submit(self, issuer: str, action: LedgerAction, fee_policy: FeePolicy) -> Receipt:
        body = {
            "issuer": issuer,
            "action": action.kind,
            "params": action.to_json(),
            "fee_policy": fee_policy.to_json(),
        }
        try:
            response = self._client.post(f"{self._base_url}/submit", json=body, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise LedgerSubmissionError(f"Ledger submission of '{action.kind}' failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise LedgerSubmissionError("Invalid ledger gateway response") from exc

        status = str(payload.get("status", "")).lower()
        if status != "success":
            message = payload.get("error") or f"status '{status or 'unknown'}'"
            raise LedgerSubmissionError(f"Ledger rejected '{action.kind}': {message}")
        return _parse_receipt(payload)

    def find_module(self, token_symbol: str, module_name: str) -> str | None:
        try:
            response = self._client.get(
                f"{self._base_url}/tokens/{token_symbol}/modules",
                params={"name": module_name},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise LedgerSubmissionError(f"Module lookup for '{module_name}' failed: {exc}") from exc
        modules = response.json().get("modules") or []
        return str(modules[0]) if modules else None


__all__ = [
    "AttachModule",
    "CHECKPOINT_CREATED",
    "CreateCheckpoint",
    "CreateDividend",
    "DEFAULT_EXCLUDED_SET",
    "FeePolicy",
    "HTTPLedgerClient",
    "LedgerAction",
    "LedgerClient",
    "LedgerEvent",
    "MODULE_ADDED",
    "Payout",
    "PushDividendPayments",
    "Receipt",
    "ReclaimDividend",
    "SetDefaultExcluded",
    "SetWithholdingFixed",
    "WITHHOLDING_SET",
    "WithdrawWithholding",
]
