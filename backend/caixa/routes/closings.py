from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from caixa.core.config import settings
from caixa.core.deps import get_current_user, get_storage
from caixa.core.errors import NotFound, PermissionDenied, ValidationError
from caixa.core.normalizer import parse_date
from caixa.core.serialization_helpers import serialize_date, serialize_decimal
from caixa.core.stores import get_store_name
from caixa.models.closing import Closing
from caixa.models.user import User
from caixa.services.closing_sync import (
    ClosingDraft,
    ClosingEdit,
    SyncOutcome,
    SyncResult,
    create_closing,
    edit_closing,
)
from caixa.services.storage import ChildCollection, ClosingStorage

router = APIRouter()


class SyncOut(BaseModel):
    outcome: str
    closing_id: Optional[int]
    message: str
    failed_steps: List[str]


class ExitOut(BaseModel):
    id: int
    name: str
    amount: float
    payment_date: str


class ReceivedPaymentOut(BaseModel):
    id: int
    receivable_id: int
    amount_received: float


class NewReceivableOut(BaseModel):
    id: int
    client_name: str
    reference: str
    amount: float
    status: str


class ClosingOut(BaseModel):
    id: int
    closing_date: str
    store_id: str
    store_name: str
    operator_name: Optional[str]
    common_entries: Dict[str, int]
    electronic_entries: Dict[str, float]
    calculated_totals: Dict[str, Any]
    created_at: Optional[str]
    updated_at: Optional[str]
    editable: bool


class ClosingDetail(ClosingOut):
    store_exits: List[ExitOut]
    admin_exits: List[ExitOut]
    new_receivables: List[NewReceivableOut]
    received_payments: List[ReceivedPaymentOut]


def _sync_out(result: SyncResult, response: Response, success_code: int) -> SyncOut:
    response.status_code = (
        status.HTTP_500_INTERNAL_SERVER_ERROR if result.outcome is SyncOutcome.failure else success_code
    )
    return SyncOut(
        outcome=result.outcome.value,
        closing_id=result.closing_id,
        message=result.message,
        failed_steps=result.failed_steps,
    )


def _is_editable(closing: Closing, user: User) -> bool:
    if user.is_admin:
        return True
    if closing.store_id != user.store_id:
        return False
    if not closing.created_at:
        return True
    return datetime.utcnow() - closing.created_at <= timedelta(days=settings.edit_window_days)


def _closing_out(closing: Closing, names: Dict[str, str], user: User) -> dict:
    return dict(
        id=closing.id,
        closing_date=closing.closing_date.strftime("%d/%m/%Y"),
        store_id=closing.store_id,
        store_name=get_store_name(closing.store_id, names),
        operator_name=closing.operator_name,
        common_entries=closing.common_entries or {},
        electronic_entries=closing.electronic_entries or {},
        calculated_totals=closing.calculated_totals or {},
        created_at=serialize_date(closing.created_at),
        updated_at=serialize_date(closing.updated_at),
        editable=_is_editable(closing, user),
    )


def _exit_out(row) -> ExitOut:
    return ExitOut(
        id=row.id,
        name=row.name,
        amount=serialize_decimal(row.amount),
        payment_date=row.payment_date.strftime("%d/%m/%Y"),
    )


def _store_names(storage: ClosingStorage) -> Dict[str, str]:
    return {store.id: store.name for store in storage.list_stores()}


@router.post("/", response_model=SyncOut, status_code=status.HTTP_201_CREATED)
def create(
    draft: ClosingDraft,
    response: Response,
    storage: ClosingStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Register the closing of the user's store for the given day"""
    result = create_closing(storage, current_user, draft)
    return _sync_out(result, response, status.HTTP_201_CREATED)


@router.put("/{closing_id}", response_model=SyncOut)
def update(
    closing_id: int,
    draft: ClosingEdit,
    response: Response,
    storage: ClosingStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    result = edit_closing(storage, current_user, closing_id, draft)
    return _sync_out(result, response, status.HTTP_200_OK)


@router.get("/", response_model=List[ClosingOut])
def list_closings(
    date: Optional[str] = None,
    store: Optional[str] = None,
    storage: ClosingStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Closings of one day (or all days). Operators only see their own store."""
    day = None
    if date:
        day = parse_date(date)
        if day is None:
            raise ValidationError("date must be dd/mm/yyyy")

    if current_user.is_admin:
        store_id = store
    else:
        if store and store != current_user.store_id:
            raise PermissionDenied("Operators can only list their own store")
        store_id = current_user.store_id
        if not store_id:
            return []

    closings = storage.query_closings(start=day, end=day, store_id=store_id)
    names = _store_names(storage)
    return [ClosingOut(**_closing_out(c, names, current_user)) for c in closings]


@router.get("/{closing_id}", response_model=ClosingDetail)
def get_closing(
    closing_id: int,
    storage: ClosingStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    closing = storage.get_closing(closing_id)
    if closing is None:
        raise NotFound(f"Closing {closing_id} not found")
    if not current_user.is_admin and closing.store_id != current_user.store_id:
        raise PermissionDenied("Closing belongs to another store")

    payments = storage.list_child_rows(closing_id, ChildCollection.received_payments)
    return ClosingDetail(
        **_closing_out(closing, _store_names(storage), current_user),
        store_exits=[_exit_out(e) for e in storage.list_child_rows(closing_id, ChildCollection.store_exits)],
        admin_exits=[_exit_out(e) for e in storage.list_child_rows(closing_id, ChildCollection.admin_exits)],
        new_receivables=[
            NewReceivableOut(
                id=r.id,
                client_name=r.client_name,
                reference=r.reference,
                amount=serialize_decimal(r.amount),
                status=r.status,
            )
            for r in storage.receivables_originated_by(closing_id)
        ],
        received_payments=[
            ReceivedPaymentOut(
                id=p.id,
                receivable_id=p.receivable_id,
                amount_received=serialize_decimal(p.amount_received),
            )
            for p in payments
        ],
    )
