from decimal import Decimal

from caixa.core.entries import ElectronicChannel, EntryKind
from caixa.services.totals_calculator import (
    CalculatedTotals,
    compute_totals,
    totals_from_document,
    totals_to_document,
)


def D(value):
    return Decimal(value)


def test_store_closing_totals():
    totals = compute_totals(
        common_entries={EntryKind.carro: 3, EntryKind.moto: 1},
        electronic_entries={ElectronicChannel.pix: D("150.00"), ElectronicChannel.card: D("80.50")},
        store_exits=[D("30.00"), D("12.25")],
        new_receivables=[D("120.00")],
        received_payments=[D("220.00")],
    )
    assert totals.total_common_entries == D("460.00")
    assert totals.total_received_payments == D("220.00")
    assert totals.total_gross_entries == D("680.00")
    assert totals.total_electronic_entries == D("230.50")
    assert totals.total_store_operational_exits == D("42.25")
    assert totals.total_admin_operational_exits is None
    assert totals.total_new_receivables == D("120.00")
    assert totals.total_general_exits == D("162.25")
    assert totals.partial_result == D("517.75")
    assert totals.cash_reconciliation_value == D("287.25")


def test_totals_identities_hold():
    totals = compute_totals(
        common_entries={"cautelar": 2, "pesquisaProcedencia": 5},
        electronic_entries={"deposit": D("0.10")},
        store_exits=[D("0.20")],
        received_payments=[D("0.30")],
    )
    assert totals.total_gross_entries == totals.total_common_entries + totals.total_received_payments
    assert totals.cash_reconciliation_value == (
        totals.total_gross_entries - totals.total_general_exits - totals.total_electronic_entries
    )
    assert totals.cash_reconciliation_value == D("740.00")


def test_absent_or_zero_kinds_contribute_nothing():
    assert compute_totals(common_entries={EntryKind.caminhao: 0}).total_common_entries == D("0")
    assert compute_totals().total_common_entries == D("0")
    assert compute_totals(common_entries={EntryKind.caminhao: 1}).total_common_entries == D("180.00")


def test_non_positive_amounts_are_excluded():
    totals = compute_totals(
        store_exits=[D("-10.00"), D("0"), D("5.00")],
        new_receivables=[D("-1.00")],
        electronic_entries={ElectronicChannel.pix: D("-3.00")},
    )
    assert totals.total_store_operational_exits == D("5.00")
    assert totals.total_new_receivables == D("0")
    assert totals.total_electronic_entries == D("0")


def test_admin_exits_only_count_for_admin_store():
    store = compute_totals(store_exits=[D("10")], admin_exits=[D("40")], is_admin_store=False)
    admin = compute_totals(store_exits=[D("10")], admin_exits=[D("40")], is_admin_store=True)

    assert store.total_general_exits == D("10")
    assert store.total_admin_operational_exits is None
    assert admin.total_admin_operational_exits == D("40")
    assert admin.total_general_exits == D("50")


def test_document_round_trip_omits_admin_field_for_stores():
    totals = compute_totals(common_entries={EntryKind.moto: 1}, received_payments=[D("12.34")])
    document = totals_to_document(totals)

    assert "total_admin_operational_exits" not in document
    assert document["total_gross_entries"] == 112.34
    assert totals_from_document(document) == totals


def test_totals_from_empty_document():
    assert totals_from_document(None) == CalculatedTotals()
