"""Operator context threaded through every dividend operation."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from dividend_manager.core.config import Settings
from dividend_manager.core.errors import ModuleNotAttachedError
from dividend_manager.models.currency import Currency, CurrencyBinding
from dividend_manager.services.addresses import normalize_address
from dividend_manager.services.ledger_client import MODULE_ADDED, AttachModule, FeePolicy, LedgerClient

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], int]


def system_clock() -> int:
    """Current wall-clock time in unix seconds."""
    return int(time.time())


@dataclass(slots=True, frozen=True)
class OperatorContext:
    """Issuer identity, token and the dividend module bound for one currency."""

    issuer: str
    token_symbol: str
    currency: Currency
    module_address: str
    fee_policy: FeePolicy

    @property
    def binding(self) -> CurrencyBinding:
        return self.currency.binding


def bind_module(
    client: LedgerClient,
    *,
    issuer: str,
    token_symbol: str,
    currency: Currency,
    fee_policy: FeePolicy | None = None,
    attach: bool = False,
) -> OperatorContext:
    """Resolve the dividend module for ``currency`` once and return the operator context.

    Raises :class:`ModuleNotAttachedError` when the module is missing and
    ``attach`` is false.
    """

    issuer = normalize_address(issuer)
    fee_policy = fee_policy or FeePolicy()
    module_name = currency.binding.module_name

    module_address = client.find_module(token_symbol, module_name)
    if module_address is None:
        if not attach:
            raise ModuleNotAttachedError(
                f"{module_name} is not attached to token '{token_symbol}'"
            )
        receipt = client.submit(issuer, AttachModule(token_symbol=token_symbol, module_name=module_name), fee_policy)
        module_address = str(receipt.event(MODULE_ADDED)["module"])
        LOGGER.info("Attached %s to %s at %s", module_name, token_symbol, module_address)

    return OperatorContext(
        issuer=issuer,
        token_symbol=token_symbol,
        currency=currency,
        module_address=module_address,
        fee_policy=fee_policy,
    )


def context_from_settings(client: LedgerClient, settings: Settings, currency: Currency | None = None) -> OperatorContext:
    return bind_module(
        client,
        issuer=settings.issuer_address,
        token_symbol=settings.token_symbol,
        currency=currency or Currency(settings.default_currency),
        fee_policy=FeePolicy(gas_price=settings.gas_price, gas_multiplier=settings.gas_multiplier),
        attach=settings.attach_module_if_missing,
    )


__all__ = ["Clock", "OperatorContext", "bind_module", "context_from_settings", "system_clock"]
