"""
Ciclo de vida das contas a receber.

    pending -> paid_pending_writeoff -> written_off

O status só avança. Cada transição é um UPDATE condicional no status atual
(ver ClosingStorage.update_receivable_status); se nenhuma linha for afetada a
transição é rejeitada com InvalidStateTransition.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from caixa.core.errors import (
    AmountExceedsOutstanding,
    DuplicateSettlement,
    InvalidStateTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from caixa.core.normalizer import parse_amount
from caixa.models.receivable import Receivable

logger = logging.getLogger(__name__)


class ReceivableStatus(str, Enum):
    pending = "pending"
    paid_pending_writeoff = "paid_pending_writeoff"
    written_off = "written_off"


NEXT_STATUS = {
    ReceivableStatus.pending: ReceivableStatus.paid_pending_writeoff,
    ReceivableStatus.paid_pending_writeoff: ReceivableStatus.written_off,
}


def validate_new(client_name: Optional[str], reference: Optional[str], amount: Any) -> Decimal:
    """Check a receivable before it is written; returns the parsed amount."""
    if not (client_name or "").strip():
        raise ValidationError("Client name is required")
    if not (reference or "").strip():
        raise ValidationError("Reference is required")
    value = parse_amount(amount)
    if value <= 0:
        raise ValidationError("Receivable amount must be greater than zero")
    return value


def create(
    store_id: str,
    client_name: str,
    reference: str,
    amount: Any,
    debit_date: date,
    origin_closing_id: int,
) -> Receivable:
    value = validate_new(client_name, reference, amount)
    return Receivable(
        store_id=store_id,
        client_name=client_name.strip(),
        reference=reference.strip(),
        amount=value,
        debit_date=debit_date,
        status=ReceivableStatus.pending.value,
        origin_closing_id=origin_closing_id,
    )


def validate_settlements(
    payments: Iterable[Any],
    receivables_by_id: Mapping[int, Receivable],
    store_id: str,
) -> None:
    """
    Check every payment of a submission before anything is written.

    `payments` items expose `receivable_id` and `amount_received`.
    """
    seen = set()
    for payment in payments:
        receivable_id = payment.receivable_id
        receivable = receivables_by_id.get(receivable_id)
        if receivable is None:
            raise NotFound(f"Receivable {receivable_id} not found")
        if receivable.store_id != store_id:
            raise PermissionDenied(f"Receivable {receivable_id} belongs to another store")
        if receivable_id in seen:
            raise DuplicateSettlement(receivable_id)
        seen.add(receivable_id)
        if receivable.status != ReceivableStatus.pending.value:
            raise InvalidStateTransition(receivable_id, receivable.status, ReceivableStatus.pending.value)

        amount = parse_amount(payment.amount_received)
        if amount <= 0:
            raise ValidationError(f"Amount received for receivable {receivable_id} must be greater than zero")
        outstanding = parse_amount(receivable.amount)
        if amount > outstanding:
            raise AmountExceedsOutstanding(receivable_id, amount, outstanding)


def _transition(storage, receivable_id: int, current: ReceivableStatus, fields: Mapping[str, Any]) -> None:
    target = NEXT_STATUS.get(current)
    if target is None:
        raise InvalidStateTransition(receivable_id, current.value, "a non-final status")

    if not storage.update_receivable_status(receivable_id, current.value, target.value, fields):
        latest = storage.get_receivable(receivable_id)
        raise InvalidStateTransition(
            receivable_id, latest.status if latest else None, current.value
        )
    logger.info("Receivable %s: %s -> %s", receivable_id, current.value, target.value)


def settle(storage, receivable: Receivable, paying_closing, amount_received: Any) -> None:
    """Mark a pending receivable as paid by `paying_closing`."""
    amount = parse_amount(amount_received)
    if amount <= 0:
        raise ValidationError(f"Amount received for receivable {receivable.id} must be greater than zero")
    outstanding = parse_amount(receivable.amount)
    if amount > outstanding:
        raise AmountExceedsOutstanding(receivable.id, amount, outstanding)

    _transition(
        storage,
        receivable.id,
        ReceivableStatus.pending,
        {
            "effective_payment_date": paying_closing.closing_date,
            "payment_closing_id": paying_closing.id,
        },
    )


def write_off(storage, receivable_id: int, actor, now: Optional[datetime] = None) -> Receivable:
    """Administrative write-off of a paid receivable."""
    if not getattr(actor, "is_admin", False):
        raise PermissionDenied("Only administrative users can write off receivables")

    receivable = storage.get_receivable(receivable_id)
    if receivable is None:
        raise NotFound(f"Receivable {receivable_id} not found")
    if receivable.status != ReceivableStatus.paid_pending_writeoff.value:
        raise InvalidStateTransition(
            receivable_id, receivable.status, ReceivableStatus.paid_pending_writeoff.value
        )

    _transition(
        storage,
        receivable_id,
        ReceivableStatus.paid_pending_writeoff,
        {"writeoff_date": now or datetime.utcnow(), "written_off_by": actor.id},
    )
    return storage.get_receivable(receivable_id)
