"""Immutability enforcement for audit and ledger records using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify append-only records."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "Audit and ledger records are immutable after creation."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    """Log immutability violation for audit purposes."""
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def _forbid(model, operation: str) -> None:
    model_name = model.__name__

    def listener(mapper, connection, target):
        _log_immutability_violation(model_name, operation, str(target.id))
        raise ImmutabilityViolationError(model_name, operation, str(target.id))

    event.listen(model, f"before_{operation.lower()}", listener)


def register_immutability_enforcement() -> None:
    """Register SQLAlchemy event listeners for append-only tables.

    Must be called after models are imported but before session use.
    Safe to call more than once.
    """
    global _registered
    if _registered:
        return

    from app.models.admin import AuditLog, ChargebackAction
    from app.models.financial import CreditLedgerEntry

    # AuditLog, ChargebackAction, CreditLedgerEntry: Append-Only
    for model in (AuditLog, ChargebackAction, CreditLedgerEntry):
        _forbid(model, "UPDATE")
        _forbid(model, "DELETE")

    _registered = True
    logger.info("Immutability enforcement registered for audit and ledger records")
