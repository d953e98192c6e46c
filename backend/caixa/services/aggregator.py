"""
Consolidação de fechamentos por loja e geral (painel administrativo).

A dobra é pura: recebe os fechamentos já carregados e o total pendente de
contas a receber de cada loja, e devolve estatísticas imutáveis. Só
`build_summary` acessa a persistência.

Valor líquido por loja:
    loja comum   = Σ entradas brutas - Σ saídas operacionais da loja - pendentes atuais
    caixa admin  = Σ valor em espécie (sem ajuste de contas a receber)
"""
import logging
from datetime import date
from decimal import Decimal
from functools import reduce
from typing import Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from caixa.core.config import settings
from caixa.core.entries import PRICE_TABLE, EntryKind, entries_from_document, normalize_electronic_entries
from caixa.core.normalizer import ZERO
from caixa.services.totals_calculator import CalculatedTotals, totals_from_document

logger = logging.getLogger(__name__)


# Campos de CalculatedTotals somados por loja e no geral
SUMMED_FIELDS = (
    "total_common_entries",
    "total_received_payments",
    "total_gross_entries",
    "total_electronic_entries",
    "total_store_operational_exits",
    "total_admin_operational_exits",
    "total_new_receivables",
    "total_general_exits",
    "partial_result",
    "cash_reconciliation_value",
)


class ClosingSnapshot(BaseModel):
    """What the aggregation needs from a persisted closing."""
    model_config = ConfigDict(frozen=True)

    store_id: str
    closing_date: date
    totals: CalculatedTotals
    common_entries: Dict[str, int] = {}
    electronic_entries: Dict[str, Decimal] = {}

    @classmethod
    def from_closing(cls, closing) -> Optional["ClosingSnapshot"]:
        # Fechamentos sem totais gravados ficam fora da consolidação
        if not closing.calculated_totals:
            return None
        return cls(
            store_id=closing.store_id,
            closing_date=closing.closing_date,
            totals=totals_from_document(closing.calculated_totals),
            common_entries={k.value: q for k, q in entries_from_document(closing.common_entries).items()},
            electronic_entries={
                c.value: v for c, v in normalize_electronic_entries(closing.electronic_entries).items()
            },
        )


class Totals(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = 0
    total_common_entries: Decimal = ZERO
    total_received_payments: Decimal = ZERO
    total_gross_entries: Decimal = ZERO
    total_electronic_entries: Decimal = ZERO
    total_store_operational_exits: Decimal = ZERO
    total_admin_operational_exits: Decimal = ZERO
    total_new_receivables: Decimal = ZERO
    total_general_exits: Decimal = ZERO
    partial_result: Decimal = ZERO
    cash_reconciliation_value: Decimal = ZERO


class StoreStats(Totals):
    store_id: str
    # None para o caixa administrativo
    pending_receivables_total: Optional[Decimal] = None
    # None enquanto a loja não tem fechamentos no período
    net_reconciliation_value: Optional[Decimal] = None


class Breakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    common_entries: Dict[str, Decimal] = {}
    electronic_entries: Dict[str, Decimal] = {}
    operational_exits: Decimal = ZERO
    new_receivables: Decimal = ZERO


class AggregateReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    per_store: Dict[str, StoreStats]
    overall: Totals


def _add(stats: Totals, values: Mapping[str, Decimal], count: int) -> dict:
    update = {"count": stats.count + count}
    for name in SUMMED_FIELDS:
        update[name] = getattr(stats, name) + (values.get(name) or ZERO)
    return update


def accumulate(stats: StoreStats, totals: CalculatedTotals) -> StoreStats:
    return stats.model_copy(update=_add(stats, totals.model_dump(), 1))


def _fold_closing(buckets: Dict[str, StoreStats], snapshot: ClosingSnapshot) -> Dict[str, StoreStats]:
    current = buckets.get(snapshot.store_id) or StoreStats(store_id=snapshot.store_id)
    return {**buckets, snapshot.store_id: accumulate(current, snapshot.totals)}


def _finalize(stats: StoreStats, pending_totals: Mapping[str, Decimal], admin_store_id: str) -> StoreStats:
    if stats.store_id == admin_store_id:
        net = stats.cash_reconciliation_value if stats.count > 0 else None
        return stats.model_copy(update={"net_reconciliation_value": net})

    pending = pending_totals.get(stats.store_id, ZERO)
    net = None
    if stats.count > 0:
        net = stats.total_gross_entries - stats.total_store_operational_exits - pending
    return stats.model_copy(update={"pending_receivables_total": pending, "net_reconciliation_value": net})


def _fold_overall(overall: Totals, stats: StoreStats) -> Totals:
    return overall.model_copy(update=_add(overall, stats.model_dump(), stats.count))


def stores_in_report(snapshots: Iterable[ClosingSnapshot], known_store_ids: Iterable[str]) -> List[str]:
    ids = list(known_store_ids)
    for snapshot in snapshots:
        if snapshot.store_id not in ids:
            ids.append(snapshot.store_id)
    return ids


def aggregate_closings(
    snapshots: Iterable[ClosingSnapshot],
    pending_totals: Mapping[str, Decimal],
    known_store_ids: Iterable[str] = (),
    admin_store_id: Optional[str] = None,
) -> AggregateReport:
    """
    Fold closings into per-store and overall statistics.

    Args:
        snapshots: closings in the selected range
        pending_totals: current pending receivable total per ordinary store
        known_store_ids: stores that always get a row, even without closings
        admin_store_id: id of the administrative cash box

    The overall row sums the per-store rows and carries no pending or net value.
    """
    admin_store_id = admin_store_id or settings.admin_store_id
    initial = {store_id: StoreStats(store_id=store_id) for store_id in known_store_ids}
    buckets = reduce(_fold_closing, snapshots, initial)

    per_store = {
        store_id: _finalize(stats, pending_totals, admin_store_id)
        for store_id, stats in buckets.items()
    }
    overall = reduce(_fold_overall, per_store.values(), Totals())
    return AggregateReport(per_store=per_store, overall=overall)


def breakdown_by_kind(snapshots: Iterable[ClosingSnapshot]) -> Breakdown:
    """Value per entry kind (plus received payments), per channel, and exits vs new receivables."""
    common: Dict[str, Decimal] = {}
    electronic: Dict[str, Decimal] = {}
    exits = ZERO
    new_receivables = ZERO

    for snapshot in snapshots:
        for key, quantity in snapshot.common_entries.items():
            common[key] = common.get(key, ZERO) + PRICE_TABLE[EntryKind(key)] * quantity
        if snapshot.totals.total_received_payments > 0:
            common["received_payments"] = (
                common.get("received_payments", ZERO) + snapshot.totals.total_received_payments
            )
        for channel, amount in snapshot.electronic_entries.items():
            if amount > 0:
                electronic[channel] = electronic.get(channel, ZERO) + amount
        exits += snapshot.totals.total_store_operational_exits
        exits += snapshot.totals.total_admin_operational_exits or ZERO
        new_receivables += snapshot.totals.total_new_receivables

    return Breakdown(
        common_entries=common,
        electronic_entries=electronic,
        operational_exits=exits,
        new_receivables=new_receivables,
    )


def build_summary(
    storage,
    start: date,
    end: date,
    store_id: Optional[str] = None,
) -> tuple[AggregateReport, Breakdown]:
    """Load closings in [start, end] and the live pending totals, then aggregate."""
    closings = storage.query_closings(start=start, end=end, store_id=store_id)
    snapshots = [s for s in (ClosingSnapshot.from_closing(c) for c in closings) if s is not None]

    if store_id:
        known = [store_id]
    else:
        known = [store.id for store in storage.list_stores()]

    pending_totals: Dict[str, Decimal] = {}
    for sid in stores_in_report(snapshots, known):
        if sid != settings.admin_store_id:
            pending_totals[sid] = storage.pending_total(sid)

    logger.info(
        "Summary %s..%s store=%s: %d closings", start, end, store_id or "all", len(snapshots)
    )
    report = aggregate_closings(snapshots, pending_totals, known, settings.admin_store_id)
    return report, breakdown_by_kind(snapshots)
