"""
Gravação de um fechamento (criação e edição) na camada de persistência.

Toda a validação acontece antes da primeira escrita. Depois disso as escritas
são sequenciais e independentes: se a linha do fechamento não for gravada nada
mais é tentado; qualquer outra etapa que falhe é registrada no SyncResult e as
demais continuam. Não há compensação das etapas já gravadas.

Ordem na criação:
    1. fechamento
    2. saídas da loja
    3. saídas administrativas (só caixa admin)
    4. novas contas a receber
    5. recebimentos, seguidos da baixa (settle) de cada conta recebida
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, field_validator

from caixa.core.config import settings
from caixa.core.entries import (
    entries_to_document,
    normalize_common_entries,
    normalize_electronic_entries,
)
from caixa.core.errors import (
    ClosingError,
    EditWindowExpired,
    NotFound,
    PermissionDenied,
    StorageError,
    ValidationError,
)
from caixa.core.normalizer import parse_amount, parse_date
from caixa.core.serialization_helpers import serialize_decimal
from caixa.core.stores import is_admin_store, requires_operator_name
from caixa.models.closing import Closing
from caixa.services import receivables
from caixa.services.storage import ChildCollection
from caixa.services.totals_calculator import compute_totals, totals_from_document, totals_to_document

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Drafts (request bodies)
# ---------------------------------------------------------------------------


class ExitIn(BaseModel):
    name: str
    amount: Decimal
    payment_date: date

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Exit name is required")
        return value.strip()

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value):
        amount = parse_amount(value)
        if amount <= 0:
            raise ValueError("Exit amount must be greater than zero")
        return amount

    @field_validator("payment_date", mode="before")
    @classmethod
    def _payment_date(cls, value):
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError("Payment date must be dd/mm/yyyy")
        return parsed


class NewReceivableIn(BaseModel):
    client_name: str = ""
    reference: str = ""
    amount: Any = None


class PaymentIn(BaseModel):
    receivable_id: int
    amount_received: Decimal

    @field_validator("amount_received", mode="before")
    @classmethod
    def _amount(cls, value):
        return parse_amount(value)


class ClosingEdit(BaseModel):
    operator_name: Optional[str] = None
    common_entries: Dict[str, Any] = {}
    electronic_entries: Dict[str, Any] = {}
    store_exits: List[ExitIn] = []
    admin_exits: List[ExitIn] = []


class ClosingDraft(ClosingEdit):
    closing_date: date
    new_receivables: List[NewReceivableIn] = []
    received_payments: List[PaymentIn] = []

    @field_validator("closing_date", mode="before")
    @classmethod
    def _closing_date(cls, value):
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError("Closing date must be dd/mm/yyyy")
        return parsed


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class SyncOutcome(str, Enum):
    success = "success"
    partial = "partial"
    failure = "failure"


@dataclass(frozen=True)
class StepFailure:
    step: str
    detail: str


@dataclass
class SyncResult:
    operation: str  # "create" or "edit"
    outcome: SyncOutcome
    closing_id: Optional[int] = None
    failures: List[StepFailure] = field(default_factory=list)

    @property
    def failed_steps(self) -> List[str]:
        return [f.step for f in self.failures]

    @property
    def message(self) -> str:
        if self.outcome is SyncOutcome.success:
            if self.operation == "edit":
                return "Fechamento atualizado com sucesso."
            return "Fechamento salvo com sucesso."
        if self.outcome is SyncOutcome.partial:
            return "Operação parcialmente concluída, verifique: " + ", ".join(self.failed_steps) + "."
        return "Não foi possível salvar o fechamento: " + ", ".join(self.failed_steps) + "."


def _finish(operation: str, closing_id: int, failures: List[StepFailure]) -> SyncResult:
    outcome = SyncOutcome.partial if failures else SyncOutcome.success
    result = SyncResult(operation=operation, outcome=outcome, closing_id=closing_id, failures=failures)
    if failures:
        logger.warning("Closing %s %s partially completed: %s", closing_id, operation, result.failed_steps)
    else:
        logger.info("Closing %s %s completed", closing_id, operation)
    return result


def _attempt(failures: List[StepFailure], step: str, action: Callable[[], Any]) -> bool:
    try:
        action()
        return True
    except StorageError as exc:
        logger.warning("Step '%s' failed: %s", exc.step, exc.reason)
        failures.append(StepFailure(step=step, detail=exc.detail))
        return False


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _check_operator_name(store_id: str, actor, operator_name: Optional[str]) -> Optional[str]:
    name = (operator_name or "").strip() or None
    if name is None and requires_operator_name(store_id, getattr(actor, "is_admin", False)):
        raise ValidationError("Operator name is required for this store")
    return name


def _exit_rows(exits: List[ExitIn]) -> List[Dict[str, Any]]:
    return [{"name": e.name, "amount": e.amount, "payment_date": e.payment_date} for e in exits]


def _electronic_document(electronic) -> Dict[str, float]:
    return {channel.value: serialize_decimal(amount) for channel, amount in electronic.items()}


def ensure_can_edit(actor, closing: Closing, now: Optional[datetime] = None) -> None:
    if getattr(actor, "is_admin", False):
        return
    if closing.store_id != actor.store_id:
        raise PermissionDenied("Closing belongs to another store")
    now = now or datetime.utcnow()
    if closing.created_at and now - closing.created_at > timedelta(days=settings.edit_window_days):
        raise EditWindowExpired(
            f"Closings can only be edited within {settings.edit_window_days} days of creation"
        )


# ---------------------------------------------------------------------------
# Create / edit
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _PayingClosing:
    id: int
    closing_date: date


def create_closing(storage, actor, draft: ClosingDraft, now: Optional[datetime] = None) -> SyncResult:
    store_id = actor.store_id
    if not store_id:
        raise PermissionDenied("User is not assigned to a store")
    admin_box = is_admin_store(store_id)
    if draft.admin_exits and not admin_box:
        raise ValidationError("Administrative exits are only allowed in the administrative cash box")

    operator_name = _check_operator_name(store_id, actor, draft.operator_name)
    common = normalize_common_entries(draft.common_entries)
    electronic = normalize_electronic_entries(draft.electronic_entries)
    new_amounts = [
        receivables.validate_new(r.client_name, r.reference, r.amount) for r in draft.new_receivables
    ]

    pending_by_id = storage.get_receivables(p.receivable_id for p in draft.received_payments)
    receivables.validate_settlements(draft.received_payments, pending_by_id, store_id)

    totals = compute_totals(
        common_entries=common,
        electronic_entries=electronic,
        store_exits=[e.amount for e in draft.store_exits],
        admin_exits=[e.amount for e in draft.admin_exits],
        new_receivables=new_amounts,
        received_payments=[p.amount_received for p in draft.received_payments],
        is_admin_store=admin_box,
    )

    now = now or datetime.utcnow()
    closing = Closing(
        closing_date=draft.closing_date,
        store_id=store_id,
        user_id=actor.id,
        operator_name=operator_name,
        common_entries=entries_to_document(common),
        electronic_entries=_electronic_document(electronic),
        calculated_totals=totals_to_document(totals),
        created_at=now,
        updated_at=now,
    )
    try:
        closing_id = storage.insert_closing(closing)
    except StorageError as exc:
        logger.warning("Closing insert failed for store %s on %s: %s", store_id, draft.closing_date, exc.reason)
        return SyncResult(
            operation="create",
            outcome=SyncOutcome.failure,
            failures=[StepFailure(step="closing", detail=exc.reason)],
        )

    failures: List[StepFailure] = []

    if draft.store_exits:
        _attempt(failures, "store exits", lambda: storage.insert_child_rows(
            closing_id, ChildCollection.store_exits, _exit_rows(draft.store_exits)))
    if admin_box and draft.admin_exits:
        _attempt(failures, "admin exits", lambda: storage.insert_child_rows(
            closing_id, ChildCollection.admin_exits, _exit_rows(draft.admin_exits)))

    if draft.new_receivables:
        new_rows = [
            receivables.create(store_id, r.client_name, r.reference, r.amount, draft.closing_date, closing_id)
            for r in draft.new_receivables
        ]
        _attempt(failures, "new receivables", lambda: storage.insert_receivables(new_rows))

    if draft.received_payments:
        payment_rows = [
            {"receivable_id": p.receivable_id, "amount_received": p.amount_received}
            for p in draft.received_payments
        ]
        saved = _attempt(failures, "received payments", lambda: storage.insert_child_rows(
            closing_id, ChildCollection.received_payments, payment_rows))
        if saved:
            paying_closing = _PayingClosing(id=closing_id, closing_date=draft.closing_date)
            for payment in draft.received_payments:
                receivable = pending_by_id[payment.receivable_id]
                step = f"receivable {payment.receivable_id} status"
                try:
                    receivables.settle(storage, receivable, paying_closing, payment.amount_received)
                except ClosingError as exc:
                    logger.warning("Step '%s' failed: %s", step, exc.detail)
                    failures.append(StepFailure(step=step, detail=exc.detail))

    return _finish("create", closing_id, failures)


def edit_closing(
    storage, actor, closing_id: int, draft: ClosingEdit, now: Optional[datetime] = None
) -> SyncResult:
    closing = storage.get_closing(closing_id)
    if closing is None:
        raise NotFound(f"Closing {closing_id} not found")
    now = now or datetime.utcnow()
    ensure_can_edit(actor, closing, now)

    admin_box = is_admin_store(closing.store_id)
    if draft.admin_exits and not admin_box:
        raise ValidationError("Administrative exits are only allowed in the administrative cash box")

    operator_name = _check_operator_name(closing.store_id, actor, draft.operator_name)
    common = normalize_common_entries(draft.common_entries)
    electronic = normalize_electronic_entries(draft.electronic_entries)

    # Receivables are not edited; their totals come from what was saved
    previous = totals_from_document(closing.calculated_totals)
    totals = compute_totals(
        common_entries=common,
        electronic_entries=electronic,
        store_exits=[e.amount for e in draft.store_exits],
        admin_exits=[e.amount for e in draft.admin_exits],
        new_receivables=[previous.total_new_receivables],
        received_payments=[previous.total_received_payments],
        is_admin_store=admin_box,
    )

    fields = {
        "operator_name": operator_name,
        "common_entries": entries_to_document(common),
        "electronic_entries": _electronic_document(electronic),
        "calculated_totals": totals_to_document(totals),
        "updated_at": now,
    }
    try:
        storage.update_closing(closing_id, fields)
    except StorageError as exc:
        logger.warning("Closing %s update failed: %s", closing_id, exc.reason)
        return SyncResult(
            operation="edit",
            outcome=SyncOutcome.failure,
            closing_id=closing_id,
            failures=[StepFailure(step="closing", detail=exc.reason)],
        )

    failures: List[StepFailure] = []
    _attempt(failures, "store exits", lambda: storage.replace_child_rows(
        closing_id, ChildCollection.store_exits, _exit_rows(draft.store_exits)))
    if admin_box:
        _attempt(failures, "admin exits", lambda: storage.replace_child_rows(
            closing_id, ChildCollection.admin_exits, _exit_rows(draft.admin_exits)))

    return _finish("edit", closing_id, failures)
