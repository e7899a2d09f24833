"""Immutability enforcement for ledger and audit rows using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify an append-only record."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "Payments and booking audit rows are append-only."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def _guard(model) -> None:
    name = model.__name__

    @event.listens_for(model, "before_update")
    def prevent_update(mapper, connection, target):
        _log_immutability_violation(name, "UPDATE", str(target.id))
        raise ImmutabilityViolationError(name, "UPDATE", str(target.id))

    @event.listens_for(model, "before_delete")
    def prevent_delete(mapper, connection, target):
        _log_immutability_violation(name, "DELETE", str(target.id))
        raise ImmutabilityViolationError(name, "DELETE", str(target.id))


def register_immutability_enforcement() -> None:
    """Register append-only listeners on Payment, BookingExtension, BookingTransaction.

    Safe to call more than once. Bulk statements issued through
    ``session.execute`` bypass these mapper events; only the administrative
    booking purge uses them.
    """
    global _registered
    if _registered:
        return

    from app.models.booking import BookingExtension, BookingTransaction
    from app.models.payment import Payment

    for model in (Payment, BookingExtension, BookingTransaction):
        _guard(model)

    _registered = True
    logger.info("Immutability enforcement registered for payments and booking audit rows")
