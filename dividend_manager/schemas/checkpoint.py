"""Schemas for checkpoint and account exploration endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CheckpointRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    checkpoint_id: int
    timestamp: int | None = None


class AddressBalancesRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    address: str
    checkpoint_id: int
    balance: int
    balance_at_checkpoint: int


class SupplyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    checkpoint_id: int
    total_supply: int
    total_supply_at_checkpoint: int


__all__ = ["AddressBalancesRead", "CheckpointRead", "SupplyRead"]
