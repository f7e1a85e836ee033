"""Schemas for dividend endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from dividend_manager.models import Currency, DividendStatus
from dividend_manager.services.claims import ClaimStatus


class DividendCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=32)
    amount: int = Field(..., gt=0)
    checkpoint_id: int = Field(default=0, ge=0)
    maturity: int | None = Field(default=None, ge=0)
    expiry: int | None = Field(default=None, ge=0)
    exclusions: list[str] | None = Field(
        default=None,
        description="One-time exclusion list; the standing default is used when omitted.",
    )


class DividendRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    dividend_index: int
    name: str
    currency: Currency
    checkpoint_id: int
    created: int
    maturity: int
    expiry: int
    total_amount: int
    claimed_amount: int
    withheld_amount: int
    withheld_reclaimed_amount: int
    reclaimed: bool
    reclaimed_amount: int
    exclusions: list[str]
    status: DividendStatus | None = None


class EntitlementRead(BaseModel):
    dividend_index: int
    address: str
    net: int
    withheld: int


class DividendBalanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    address: str
    dividend_index: int
    currency_balance: int
    dividend_net: int
    dividend_withheld: int


class PushPaymentsRequest(BaseModel):
    addresses: list[str] = Field(..., min_length=1)


class PushResultRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    address: str
    status: ClaimStatus
    net: int
    withheld: int
    reason: str | None = None


class PushPaymentsResponse(BaseModel):
    dividend_index: int
    results: list[PushResultRead]
    claimed_amount: int
    withheld_amount: int


class ReclaimResponse(BaseModel):
    dividend_index: int
    amount: int


__all__ = [
    "DividendBalanceRead",
    "DividendCreateRequest",
    "DividendRead",
    "EntitlementRead",
    "PushPaymentsRequest",
    "PushPaymentsResponse",
    "PushResultRead",
    "ReclaimResponse",
]
