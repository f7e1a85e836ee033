"""Pydantic schemas package."""

from .checkpoint import AddressBalancesRead, CheckpointRead, SupplyRead
from .dividend import (
    DividendBalanceRead,
    DividendCreateRequest,
    DividendRead,
    EntitlementRead,
    PushPaymentsRequest,
    PushPaymentsResponse,
    PushResultRead,
    ReclaimResponse,
)
from .withholding import ExclusionsRead, ExclusionsUpdate, WithholdingRead, WithholdingUpdate

__all__ = [
    "AddressBalancesRead",
    "CheckpointRead",
    "DividendBalanceRead",
    "DividendCreateRequest",
    "DividendRead",
    "EntitlementRead",
    "ExclusionsRead",
    "ExclusionsUpdate",
    "PushPaymentsRequest",
    "PushPaymentsResponse",
    "PushResultRead",
    "ReclaimResponse",
    "SupplyRead",
    "WithholdingRead",
    "WithholdingUpdate",
]
