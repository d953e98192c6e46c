from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from caixa.core.deps import get_current_user, get_storage, require_admin
from caixa.core.errors import PermissionDenied, ValidationError
from caixa.core.serialization_helpers import serialize_date, serialize_decimal
from caixa.core.stores import get_store_name
from caixa.models.receivable import Receivable
from caixa.models.user import User
from caixa.services import receivables as lifecycle
from caixa.services.storage import ClosingStorage

router = APIRouter()


class ReceivableOut(BaseModel):
    id: int
    store_id: str
    store_name: str
    client_name: str
    reference: str
    amount: float
    debit_date: str
    status: str
    origin_closing_id: int
    payment_closing_id: Optional[int] = None
    effective_payment_date: Optional[str] = None
    writeoff_date: Optional[str] = None
    written_off_by: Optional[int] = None


def _receivable_out(receivable: Receivable, names: dict) -> ReceivableOut:
    return ReceivableOut(
        id=receivable.id,
        store_id=receivable.store_id,
        store_name=get_store_name(receivable.store_id, names),
        client_name=receivable.client_name,
        reference=receivable.reference,
        amount=serialize_decimal(receivable.amount),
        debit_date=receivable.debit_date.strftime("%d/%m/%Y"),
        status=receivable.status,
        origin_closing_id=receivable.origin_closing_id,
        payment_closing_id=receivable.payment_closing_id,
        effective_payment_date=serialize_date(receivable.effective_payment_date),
        writeoff_date=serialize_date(receivable.writeoff_date),
        written_off_by=receivable.written_off_by,
    )


def _names(storage: ClosingStorage) -> dict:
    return {store.id: store.name for store in storage.list_stores()}


@router.get("/pending", response_model=List[ReceivableOut])
def list_pending(
    storage: ClosingStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Pending receivables of the user's store, available for settlement"""
    if not current_user.store_id:
        raise PermissionDenied("User is not assigned to a store")
    names = _names(storage)
    return [_receivable_out(r, names) for r in storage.query_pending_receivables(current_user.store_id)]


@router.get("/", response_model=List[ReceivableOut])
def list_receivables(
    store: Optional[str] = None,
    status: Optional[str] = None,
    storage: ClosingStorage = Depends(get_storage),
    current_user: User = Depends(require_admin),
):
    """Administrative listing, newest debit first. `status=all` lists every state."""
    status_filter = None
    if status and status != "all":
        try:
            status_filter = lifecycle.ReceivableStatus(status).value
        except ValueError:
            raise ValidationError(f"Unknown receivable status: {status}")

    store_filter = store if store and store != "all" else None
    names = _names(storage)
    return [_receivable_out(r, names) for r in storage.list_receivables(store_filter, status_filter)]


@router.post("/{receivable_id}/write-off", response_model=ReceivableOut)
def write_off(
    receivable_id: int,
    storage: ClosingStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    receivable = lifecycle.write_off(storage, receivable_id, current_user)
    return _receivable_out(receivable, _names(storage))
