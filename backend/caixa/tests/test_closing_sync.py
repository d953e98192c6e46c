from datetime import datetime, timedelta
from decimal import Decimal

import pydantic
import pytest
from sqlalchemy.exc import OperationalError

from caixa.core.errors import (
    AmountExceedsOutstanding,
    EditWindowExpired,
    PermissionDenied,
    StorageError,
    ValidationError,
)
from caixa.services.closing_sync import (
    ClosingDraft,
    ClosingEdit,
    SyncOutcome,
    create_closing,
    edit_closing,
)
from caixa.services.storage import ChildCollection, ClosingStorage
from caixa.services.totals_calculator import totals_from_document


class FailingStorage(ClosingStorage):
    """Storage whose selected writes fail as if the database were unreachable."""

    def __init__(self, db, fail_on):
        super().__init__(db)
        self.fail_on = set(fail_on)

    def insert_child_rows(self, closing_id, collection, rows):
        if collection in self.fail_on:
            raise StorageError(f"insert {collection.value}", "connection reset")
        return super().insert_child_rows(closing_id, collection, rows)

    def insert_receivables(self, receivables):
        if "receivables" in self.fail_on:
            raise StorageError("insert new receivables", "connection reset")
        return super().insert_receivables(receivables)


class _LockedDelete:
    """Query wrapper whose bulk delete fails like a locked table."""

    def __init__(self, query):
        self._query = query

    def delete(self, **kwargs):
        raise OperationalError("DELETE FROM operational_exits", {}, Exception("database is locked"))

    def __getattr__(self, name):
        return getattr(self._query, name)


class LockedDeleteStorage(ClosingStorage):
    def __init__(self, db, locked):
        super().__init__(db)
        self.locked = set(locked)
        self.inserted = []

    def _child_query(self, closing_id, collection):
        query = super()._child_query(closing_id, collection)
        return _LockedDelete(query) if collection in self.locked else query

    def _build_child(self, closing_id, collection, row):
        self.inserted.append(row)
        return super()._build_child(closing_id, collection, row)


class RacingStorage(ClosingStorage):
    """Another closing settles the receivable right after our payment rows are saved."""

    def __init__(self, db, taken_id):
        super().__init__(db)
        self.taken_id = taken_id

    def insert_child_rows(self, closing_id, collection, rows):
        super().insert_child_rows(closing_id, collection, rows)
        if collection is ChildCollection.received_payments:
            super().update_receivable_status(self.taken_id, "pending", "paid_pending_writeoff")


def _draft(**overrides):
    data = dict(
        closing_date="10/05/2024",
        operator_name="Ana",
        common_entries={"carro": 2},
        electronic_entries={"pix": "50,00"},
        store_exits=[{"name": "Café", "amount": "12,50", "payment_date": "10/05/2024"}],
        new_receivables=[{"client_name": "José", "reference": "QWE1R23", "amount": "140"}],
    )
    data.update(overrides)
    return ClosingDraft(**data)


def test_create_closing_writes_every_part(storage, users, make_receivable):
    owed = make_receivable(amount="220.00")
    draft = _draft(received_payments=[{"receivable_id": owed.id, "amount_received": "220,00"}])

    result = create_closing(storage, users["operator"], draft)

    assert result.outcome is SyncOutcome.success
    assert result.failures == []
    assert result.message == "Fechamento salvo com sucesso."

    closing = storage.get_closing(result.closing_id)
    totals = totals_from_document(closing.calculated_totals)
    assert closing.common_entries == {"carro": 2}
    assert totals.total_gross_entries == Decimal("460.00")
    assert totals.total_general_exits == Decimal("152.50")
    assert totals.cash_reconciliation_value == Decimal("257.50")

    exits = storage.list_child_rows(closing.id, ChildCollection.store_exits)
    assert [(e.name, e.amount) for e in exits] == [("Café", Decimal("12.50"))]

    [created] = storage.receivables_originated_by(closing.id)
    assert created.status == "pending"
    assert created.debit_date == closing.closing_date

    settled = storage.get_receivable(owed.id)
    assert settled.status == "paid_pending_writeoff"
    assert settled.payment_closing_id == closing.id


def test_operator_name_required_for_configured_store(storage, users):
    with pytest.raises(ValidationError):
        create_closing(storage, users["operator"], _draft(operator_name="  "))
    assert storage.query_closings() == []


def test_operator_name_optional_elsewhere(storage, users):
    result = create_closing(storage, users["other"], _draft(operator_name=None))
    assert result.outcome is SyncOutcome.success


def test_admin_exits_rejected_outside_admin_box(storage, users):
    draft = _draft(admin_exits=[{"name": "Aluguel", "amount": "900", "payment_date": "10/05/2024"}])
    with pytest.raises(ValidationError):
        create_closing(storage, users["operator"], draft)


def test_admin_box_counts_admin_exits(storage, users):
    draft = _draft(
        common_entries={},
        new_receivables=[],
        store_exits=[],
        admin_exits=[{"name": "Aluguel", "amount": "900", "payment_date": "10/05/2024"}],
    )
    result = create_closing(storage, users["admin"], draft)

    totals = totals_from_document(storage.get_closing(result.closing_id).calculated_totals)
    assert totals.total_admin_operational_exits == Decimal("900.00")
    assert [e.name for e in storage.list_child_rows(result.closing_id, ChildCollection.admin_exits)] == ["Aluguel"]


def test_invalid_settlement_aborts_before_any_write(storage, users, make_receivable):
    owed = make_receivable(amount="220.00")
    draft = _draft(received_payments=[{"receivable_id": owed.id, "amount_received": "250"}])

    with pytest.raises(AmountExceedsOutstanding):
        create_closing(storage, users["operator"], draft)

    assert [c.closing_date.day for c in storage.query_closings(store_id="capao")] == [1]
    assert storage.get_receivable(owed.id).status == "pending"


def test_settling_another_store_receivable_is_rejected(storage, users, make_receivable):
    theirs = make_receivable(store_id="guapiara")
    draft = _draft(received_payments=[{"receivable_id": theirs.id, "amount_received": "10"}])
    with pytest.raises(PermissionDenied):
        create_closing(storage, users["operator"], draft)


def test_duplicate_closing_for_same_day_fails(storage, users):
    assert create_closing(storage, users["operator"], _draft()).outcome is SyncOutcome.success

    result = create_closing(storage, users["operator"], _draft())

    assert result.outcome is SyncOutcome.failure
    assert result.closing_id is None
    assert result.failed_steps == ["closing"]


def test_failed_sub_step_reports_partial_and_continues(db, users):
    storage = FailingStorage(db, fail_on={ChildCollection.store_exits})

    result = create_closing(storage, users["operator"], _draft())

    assert result.outcome is SyncOutcome.partial
    assert result.failed_steps == ["store exits"]
    assert "parcialmente" in result.message and "store exits" in result.message
    assert storage.list_child_rows(result.closing_id, ChildCollection.store_exits) == []
    assert len(storage.receivables_originated_by(result.closing_id)) == 1


def test_settlement_skipped_when_payments_not_saved(db, users, make_receivable):
    owed = make_receivable()
    storage = FailingStorage(db, fail_on={ChildCollection.received_payments})
    draft = _draft(received_payments=[{"receivable_id": owed.id, "amount_received": "100"}])

    result = create_closing(storage, users["operator"], draft)

    assert result.failed_steps == ["received payments"]
    assert storage.get_receivable(owed.id).status == "pending"


def test_edit_replaces_exits_and_keeps_receivable_totals(storage, users, make_receivable):
    owed = make_receivable()
    created = create_closing(
        storage,
        users["operator"],
        _draft(received_payments=[{"receivable_id": owed.id, "amount_received": "220"}]),
    )
    edit = ClosingEdit(
        operator_name="Ana",
        common_entries={"carro": 1},
        store_exits=[
            {"name": "Gasolina", "amount": "30", "payment_date": "10/05/2024"},
            {"name": "Lanche", "amount": "5,00", "payment_date": "10/05/2024"},
        ],
    )

    result = edit_closing(storage, users["operator"], created.closing_id, edit)

    assert result.outcome is SyncOutcome.success
    assert result.message == "Fechamento atualizado com sucesso."
    exits = storage.list_child_rows(created.closing_id, ChildCollection.store_exits)
    assert [e.name for e in exits] == ["Gasolina", "Lanche"]

    totals = totals_from_document(storage.get_closing(created.closing_id).calculated_totals)
    assert totals.total_received_payments == Decimal("220.00")
    assert totals.total_new_receivables == Decimal("140.00")
    assert totals.total_gross_entries == Decimal("340.00")
    assert totals.cash_reconciliation_value == Decimal("165.00")


def test_edit_window_applies_to_operators_only(storage, users):
    long_ago = datetime.utcnow() - timedelta(days=10)
    created = create_closing(storage, users["operator"], _draft(), now=long_ago)
    edit = ClosingEdit(operator_name="Ana", common_entries={"moto": 1})

    with pytest.raises(EditWindowExpired):
        edit_closing(storage, users["operator"], created.closing_id, edit)

    assert edit_closing(storage, users["admin"], created.closing_id, edit).outcome is SyncOutcome.success


def test_edit_of_another_store_is_denied(storage, users):
    created = create_closing(storage, users["operator"], _draft())
    with pytest.raises(PermissionDenied):
        edit_closing(storage, users["other"], created.closing_id, ClosingEdit())


def test_failed_delete_keeps_previous_rows_and_skips_insert(db, users):
    created = create_closing(ClosingStorage(db), users["operator"], _draft())
    storage = LockedDeleteStorage(db, locked={ChildCollection.store_exits})
    edit = ClosingEdit(
        operator_name="Ana",
        store_exits=[{"name": "Gasolina", "amount": "30", "payment_date": "10/05/2024"}],
    )

    result = edit_closing(storage, users["operator"], created.closing_id, edit)

    assert result.outcome is SyncOutcome.partial
    assert result.failed_steps == ["store exits"]
    assert result.failures[0].detail == "delete store_exits: database is locked"
    assert storage.inserted == []
    exits = ClosingStorage(db).list_child_rows(created.closing_id, ChildCollection.store_exits)
    assert [e.name for e in exits] == ["Café"]


def test_replace_names_the_failed_delete(db, users):
    created = create_closing(ClosingStorage(db), users["operator"], _draft())
    storage = LockedDeleteStorage(db, locked={ChildCollection.store_exits})

    with pytest.raises(StorageError) as excinfo:
        storage.replace_child_rows(
            created.closing_id,
            ChildCollection.store_exits,
            [{"name": "Lanche", "amount": Decimal("4.00"), "payment_date": datetime(2024, 5, 10).date()}],
        )

    assert excinfo.value.step == "delete store_exits"
    assert storage.inserted == []


def test_settle_lost_to_concurrent_closing_is_reported(db, users, make_receivable):
    owed = make_receivable()
    storage = RacingStorage(db, taken_id=owed.id)
    draft = _draft(received_payments=[{"receivable_id": owed.id, "amount_received": "220"}])

    result = create_closing(storage, users["operator"], draft)

    assert result.outcome is SyncOutcome.partial
    assert result.failed_steps == [f"receivable {owed.id} status"]
    assert "paid_pending_writeoff" in result.failures[0].detail
    [payment] = storage.list_child_rows(result.closing_id, ChildCollection.received_payments)
    assert payment.receivable_id == owed.id
    assert storage.get_receivable(owed.id).payment_closing_id is None


def test_negative_text_amounts_never_count_as_positive(storage, users):
    with pytest.raises(pydantic.ValidationError):
        _draft(store_exits=[{"name": "Café", "amount": "-10,00", "payment_date": "10/05/2024"}])

    with pytest.raises(ValidationError):
        create_closing(
            storage,
            users["operator"],
            _draft(new_receivables=[{"client_name": "José", "reference": "QWE1R23", "amount": "-5"}]),
        )

    result = create_closing(
        storage, users["operator"], _draft(electronic_entries={"pix": "-50,00"}, new_receivables=[])
    )
    totals = totals_from_document(storage.get_closing(result.closing_id).calculated_totals)
    assert totals.total_electronic_entries == Decimal("0.00")


def test_replace_rolls_back_when_insert_fails(storage, users):
    created = create_closing(storage, users["operator"], _draft())

    with pytest.raises(StorageError) as excinfo:
        storage.replace_child_rows(
            created.closing_id,
            ChildCollection.store_exits,
            [{"name": None, "amount": Decimal("1.00"), "payment_date": None}],
        )

    assert excinfo.value.step == "insert store_exits"
    assert [e.name for e in storage.list_child_rows(created.closing_id, ChildCollection.store_exits)] == ["Café"]


def test_delete_then_insert_leaves_only_new_rows(storage, users):
    created = create_closing(storage, users["operator"], _draft())
    rows = [{"name": "Lanche", "amount": Decimal("4.00"), "payment_date": datetime(2024, 5, 10).date()}]

    storage.delete_child_rows(created.closing_id, ChildCollection.store_exits)
    storage.insert_child_rows(created.closing_id, ChildCollection.store_exits, rows)
    storage.insert_child_rows(created.closing_id, ChildCollection.store_exits, [])

    exits = storage.list_child_rows(created.closing_id, ChildCollection.store_exits)
    assert [(e.name, e.amount) for e in exits] == [("Lanche", Decimal("4.00"))]
