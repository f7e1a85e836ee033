"""Read-only balance collaborator for live and checkpointed token state."""
from __future__ import annotations

from typing import Any, Protocol

import httpx

from dividend_manager.core.errors import LedgerSubmissionError
from dividend_manager.models.currency import Currency


class BalanceOracle(Protocol):
    """Protocol describing balance lookups against the distributed ledger."""

    def balance_of(self, address: str) -> int:
        """Live security token balance."""

    def total_supply(self) -> int:
        """Live security token supply."""

    def balance_at(self, address: str, checkpoint_id: int) -> int:
        """Security token balance frozen at ``checkpoint_id``."""

    def total_supply_at(self, checkpoint_id: int) -> int:
        """Security token supply frozen at ``checkpoint_id``."""

    def currency_balance(self, address: str, currency: Currency) -> int:
        """Balance of ``address`` in the dividend currency."""


class HTTPBalanceOracle:
    """Synchronous wrapper around a balance oracle HTTP API for one token."""

    def __init__(
        self,
        base_url: str,
        token_symbol: str,
        *,
        timeout_seconds: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = f"{base_url.rstrip('/')}/tokens/{token_symbol}"
        self._timeout = timeout_seconds
        self._client = client or httpx.Client()
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _get_amount(self, path: str, params: dict[str, Any] | None = None) -> int:
        try:
            response = self._client.get(f"{self._base_url}{path}", params=params, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise LedgerSubmissionError(f"Balance lookup '{path}' failed: {exc}") from exc
        data = response.json()
        return int(data["amount"])

    def balance_of(self, address: str) -> int:
        return self._get_amount(f"/balances/{address}")

    def total_supply(self) -> int:
        return self._get_amount("/supply")

    def balance_at(self, address: str, checkpoint_id: int) -> int:
        return self._get_amount(f"/balances/{address}", params={"checkpoint": checkpoint_id})

    def total_supply_at(self, checkpoint_id: int) -> int:
        return self._get_amount("/supply", params={"checkpoint": checkpoint_id})

    def currency_balance(self, address: str, currency: Currency) -> int:
        return self._get_amount(f"/currencies/{currency.value}/balances/{address}")


__all__ = ["BalanceOracle", "HTTPBalanceOracle"]
