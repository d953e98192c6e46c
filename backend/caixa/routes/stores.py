from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from caixa.core.deps import get_current_user, get_storage
from caixa.core.stores import is_admin_store, requires_operator_name
from caixa.models.user import User
from caixa.services.storage import ClosingStorage

router = APIRouter()


class StoreOut(BaseModel):
    id: str
    name: str
    is_admin_store: bool
    requires_operator_name: bool


@router.get("/", response_model=List[StoreOut])
def list_stores(
    storage: ClosingStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    return [
        StoreOut(
            id=store.id,
            name=store.name,
            is_admin_store=is_admin_store(store.id),
            requires_operator_name=requires_operator_name(store.id),
        )
        for store in storage.list_stores()
    ]
