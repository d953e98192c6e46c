"""
Cálculo dos totais de um fechamento de caixa.

Função pura: recebe as entradas brutas do fechamento e devolve os totais.
Não consulta banco nem configuração; quem chama informa se o fechamento é do
caixa administrativo.

    totalGrossEntries        = comuns + recebimentos
    totalGeneralExits        = saídas loja + saídas admin (só caixa admin) + novas contas a receber
    partialResult            = brutas - saídas gerais
    cashReconciliationValue  = parcial - eletrônicas
"""
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from caixa.core.entries import PRICE_TABLE, EntryKind
from caixa.core.normalizer import ZERO
from caixa.core.serialization_helpers import deserialize_money, serialize_decimal


class CalculatedTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_common_entries: Decimal = ZERO
    total_received_payments: Decimal = ZERO
    total_gross_entries: Decimal = ZERO
    total_electronic_entries: Decimal = ZERO
    total_store_operational_exits: Decimal = ZERO
    # Só existe para o caixa administrativo
    total_admin_operational_exits: Optional[Decimal] = None
    total_new_receivables: Decimal = ZERO
    total_general_exits: Decimal = ZERO
    partial_result: Decimal = ZERO
    cash_reconciliation_value: Decimal = ZERO


def _positive_sum(amounts: Optional[Iterable[Decimal]]) -> Decimal:
    total = ZERO
    for amount in amounts or ():
        if amount is not None and amount > 0:
            total += amount
    return total


def total_common_entries(common_entries: Optional[Mapping[Any, int]]) -> Decimal:
    total = ZERO
    for key, quantity in (common_entries or {}).items():
        if not quantity or quantity <= 0:
            continue
        total += PRICE_TABLE[EntryKind(key)] * quantity
    return total


def compute_totals(
    common_entries: Optional[Mapping[Any, int]] = None,
    electronic_entries: Optional[Mapping[Any, Decimal]] = None,
    store_exits: Optional[Iterable[Decimal]] = None,
    admin_exits: Optional[Iterable[Decimal]] = None,
    new_receivables: Optional[Iterable[Decimal]] = None,
    received_payments: Optional[Iterable[Decimal]] = None,
    is_admin_store: bool = False,
) -> CalculatedTotals:
    """
    Compute the totals of a closing.

    Args:
        common_entries: EntryKind (or its key) -> quantity; absent kinds count as zero
        electronic_entries: channel -> amount
        store_exits: amounts of the store operational exits
        admin_exits: amounts of the administrative exits, ignored unless is_admin_store
        new_receivables: amounts of the receivables created by this closing
        received_payments: amounts collected on earlier receivables
        is_admin_store: whether the closing belongs to the administrative cash box

    Non-positive amounts and quantities are left out of every sum.
    """
    common = total_common_entries(common_entries)
    received = _positive_sum(received_payments)
    gross = common + received
    electronic = _positive_sum((electronic_entries or {}).values())
    store_exit_total = _positive_sum(store_exits)
    admin_exit_total = _positive_sum(admin_exits) if is_admin_store else None
    new_receivable_total = _positive_sum(new_receivables)

    general_exits = store_exit_total + (admin_exit_total or ZERO) + new_receivable_total
    partial = gross - general_exits

    return CalculatedTotals(
        total_common_entries=common,
        total_received_payments=received,
        total_gross_entries=gross,
        total_electronic_entries=electronic,
        total_store_operational_exits=store_exit_total,
        total_admin_operational_exits=admin_exit_total,
        total_new_receivables=new_receivable_total,
        total_general_exits=general_exits,
        partial_result=partial,
        cash_reconciliation_value=partial - electronic,
    )


def totals_to_document(totals: CalculatedTotals) -> Dict[str, float]:
    """JSON document stored in closings.calculated_totals; the admin field is omitted when absent."""
    return {
        name: serialize_decimal(value)
        for name, value in totals.model_dump().items()
        if value is not None
    }


def totals_from_document(document: Optional[Mapping[str, Any]]) -> CalculatedTotals:
    document = document or {}
    values: Dict[str, Any] = {}
    for name in CalculatedTotals.model_fields:
        if name in document and document[name] is not None:
            values[name] = deserialize_money(document[name])
    return CalculatedTotals(**values)
