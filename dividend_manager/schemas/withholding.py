"""Schemas for withholding and exclusion endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class WithholdingUpdate(BaseModel):
    percentage: int = Field(..., description="Whole percentage between 0 and 100.")


class WithholdingRead(BaseModel):
    address: str
    percentage: int


class ExclusionsUpdate(BaseModel):
    addresses: list[str]


class ExclusionsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    addresses: list[str]
    rejected: int = 0


__all__ = ["ExclusionsRead", "ExclusionsUpdate", "WithholdingRead", "WithholdingUpdate"]
