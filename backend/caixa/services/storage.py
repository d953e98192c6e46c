"""
Storage boundary used by the closing services.

Each write is its own unit of work: it commits on success, rolls back on
failure and raises StorageError naming the step. Receivable status changes are
single conditional UPDATE statements (compare-and-set on the current status).
"""
import logging
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from caixa.core.entries import ExitScope
from caixa.core.errors import StorageError
from caixa.core.normalizer import parse_amount
from caixa.models.closing import Closing, OperationalExit
from caixa.models.receivable import Receivable
from caixa.models.received_payment import ReceivedPayment
from caixa.models.store import Store

logger = logging.getLogger(__name__)


class ChildCollection(str, Enum):
    store_exits = "store_exits"
    admin_exits = "admin_exits"
    received_payments = "received_payments"


_EXIT_SCOPES = {
    ChildCollection.store_exits: ExitScope.store,
    ChildCollection.admin_exits: ExitScope.admin,
}


def _reason(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


class ClosingStorage:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _unit_of_work(self, step: str):
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(step, _reason(exc)) from exc

    @contextmanager
    def _read(self, step: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(step, _reason(exc)) from exc

    # ------------------------------------------------------------------
    # Closings
    # ------------------------------------------------------------------

    def insert_closing(self, closing: Closing) -> int:
        with self._unit_of_work("insert closing"):
            self.db.add(closing)
        self.db.refresh(closing)
        return closing.id

    def update_closing(self, closing_id: int, fields: Mapping[str, Any]) -> None:
        with self._unit_of_work("update closing"):
            self.db.query(Closing).filter(Closing.id == closing_id).update(
                dict(fields), synchronize_session=False
            )

    def get_closing(self, closing_id: int) -> Optional[Closing]:
        with self._read("load closing"):
            return self.db.query(Closing).filter(Closing.id == closing_id).first()

    def query_closings(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        store_id: Optional[str] = None,
    ) -> List[Closing]:
        with self._read("query closings"):
            query = self.db.query(Closing)
            if start:
                query = query.filter(Closing.closing_date >= start)
            if end:
                query = query.filter(Closing.closing_date <= end)
            if store_id:
                query = query.filter(Closing.store_id == store_id)
            return query.order_by(Closing.closing_date.desc(), Closing.store_id).all()

    # ------------------------------------------------------------------
    # Child rows
    # ------------------------------------------------------------------

    def _child_query(self, closing_id: int, collection: ChildCollection):
        if collection is ChildCollection.received_payments:
            return self.db.query(ReceivedPayment).filter(ReceivedPayment.closing_id == closing_id)
        return self.db.query(OperationalExit).filter(
            OperationalExit.closing_id == closing_id,
            OperationalExit.scope == _EXIT_SCOPES[collection].value,
        )

    def _build_child(self, closing_id: int, collection: ChildCollection, row: Mapping[str, Any]):
        if collection is ChildCollection.received_payments:
            return ReceivedPayment(
                closing_id=closing_id,
                receivable_id=row["receivable_id"],
                amount_received=row["amount_received"],
            )
        return OperationalExit(
            closing_id=closing_id,
            scope=_EXIT_SCOPES[collection].value,
            name=row["name"],
            amount=row["amount"],
            payment_date=row["payment_date"],
        )

    def list_child_rows(self, closing_id: int, collection: ChildCollection) -> list:
        with self._read(f"load {collection.value}"):
            model = ReceivedPayment if collection is ChildCollection.received_payments else OperationalExit
            return self._child_query(closing_id, collection).order_by(model.id).all()

    def delete_child_rows(self, closing_id: int, collection: ChildCollection) -> None:
        with self._unit_of_work(f"delete {collection.value}"):
            self._child_query(closing_id, collection).delete(synchronize_session=False)

    def insert_child_rows(
        self, closing_id: int, collection: ChildCollection, rows: Sequence[Mapping[str, Any]]
    ) -> None:
        if not rows:
            return
        with self._unit_of_work(f"insert {collection.value}"):
            self.db.add_all([self._build_child(closing_id, collection, row) for row in rows])

    def replace_child_rows(
        self, closing_id: int, collection: ChildCollection, rows: Sequence[Mapping[str, Any]]
    ) -> None:
        """
        Delete every row of `collection` for the closing and insert `rows`, in
        one transaction. If the delete fails the insert is not attempted; if the
        insert fails the old rows are restored by the rollback.
        """
        try:
            self._child_query(closing_id, collection).delete(synchronize_session=False)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"delete {collection.value}", _reason(exc)) from exc

        with self._unit_of_work(f"insert {collection.value}"):
            self.db.add_all([self._build_child(closing_id, collection, row) for row in rows])
            self.db.flush()

    # ------------------------------------------------------------------
    # Receivables
    # ------------------------------------------------------------------

    def insert_receivables(self, receivables: Iterable[Receivable]) -> None:
        receivables = list(receivables)
        if not receivables:
            return
        with self._unit_of_work("insert new receivables"):
            self.db.add_all(receivables)

    def get_receivable(self, receivable_id: int) -> Optional[Receivable]:
        with self._read("load receivable"):
            return self.db.query(Receivable).filter(Receivable.id == receivable_id).first()

    def get_receivables(self, ids: Iterable[int]) -> Dict[int, Receivable]:
        ids = set(ids)
        if not ids:
            return {}
        with self._read("load receivables"):
            rows = self.db.query(Receivable).filter(Receivable.id.in_(ids)).all()
        return {r.id: r for r in rows}

    def query_pending_receivables(self, store_id: str) -> List[Receivable]:
        with self._read("query pending receivables"):
            return (
                self.db.query(Receivable)
                .filter(Receivable.store_id == store_id, Receivable.status == "pending")
                .order_by(Receivable.debit_date.desc(), Receivable.id.desc())
                .all()
            )

    def pending_total(self, store_id: str) -> Decimal:
        with self._read("sum pending receivables"):
            total = (
                self.db.query(func.coalesce(func.sum(Receivable.amount), 0))
                .filter(Receivable.store_id == store_id, Receivable.status == "pending")
                .scalar()
            )
        return parse_amount(total)

    def list_receivables(
        self, store_id: Optional[str] = None, status: Optional[str] = None
    ) -> List[Receivable]:
        with self._read("query receivables"):
            query = self.db.query(Receivable)
            if store_id:
                query = query.filter(Receivable.store_id == store_id)
            if status:
                query = query.filter(Receivable.status == status)
            return query.order_by(Receivable.debit_date.desc(), Receivable.id.desc()).all()

    def receivables_originated_by(self, closing_id: int) -> List[Receivable]:
        with self._read("load originated receivables"):
            return (
                self.db.query(Receivable)
                .filter(Receivable.origin_closing_id == closing_id)
                .order_by(Receivable.id)
                .all()
            )

    def update_receivable_status(
        self,
        receivable_id: int,
        from_status: str,
        to_status: str,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Move the receivable to `to_status` only if it is still in `from_status`."""
        statement = (
            update(Receivable)
            .where(Receivable.id == receivable_id, Receivable.status == from_status)
            .values(status=to_status, **dict(fields or {}))
            .execution_options(synchronize_session=False)
        )
        with self._unit_of_work(f"update receivable {receivable_id} status"):
            result = self.db.execute(statement)
        return result.rowcount == 1

    # ------------------------------------------------------------------
    # Stores
    # ------------------------------------------------------------------

    def list_stores(self) -> List[Store]:
        with self._read("query stores"):
            return self.db.query(Store).filter(Store.is_active == True).order_by(Store.id).all()  # noqa: E712
