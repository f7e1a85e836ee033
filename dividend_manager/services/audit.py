"""Audit trail of confirmed ledger actions."""
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from dividend_manager.models import AuditLog
from dividend_manager.services.context import OperatorContext
from dividend_manager.services.ledger_client import Receipt


def record_audit(
    session: Session,
    context: OperatorContext,
    *,
    action: str,
    resource_type: str,
    resource_id: str | None,
    receipt: Receipt,
    payload: dict[str, Any] | None = None,
) -> AuditLog:
    """Add an audit row to the session; the caller owns the commit."""

    log = AuditLog(
        token_symbol=context.token_symbol,
        actor_address=context.issuer,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        payload={"currency": context.currency.value, **(payload or {})},
        transaction_hash=receipt.transaction_hash,
    )
    session.add(log)
    return log


__all__ = ["record_audit"]
