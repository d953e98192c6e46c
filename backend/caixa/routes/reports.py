from datetime import date, timedelta
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from caixa.core.config import settings
from caixa.core.deps import get_storage, require_admin
from caixa.core.entries import CHANNEL_LABELS, ENTRY_LABELS
from caixa.core.errors import ValidationError
from caixa.core.normalizer import parse_date
from caixa.core.serialization_helpers import serialize_decimal
from caixa.core.stores import get_store_name
from caixa.models.user import User
from caixa.services.aggregator import Totals, build_summary
from caixa.services.storage import ClosingStorage

router = APIRouter()

# Rótulos exibidos no painel para cada chave do detalhamento
BREAKDOWN_LABELS: Dict[str, str] = {
    **{kind.value: label for kind, label in ENTRY_LABELS.items()},
    **{channel.value: label for channel, label in CHANNEL_LABELS.items()},
    "received_payments": "Recebimentos (Pendentes Pagos)",
}


class TotalsOut(BaseModel):
    count: int
    total_common_entries: float
    total_received_payments: float
    total_gross_entries: float
    total_electronic_entries: float
    total_store_operational_exits: float
    total_admin_operational_exits: float
    total_new_receivables: float
    total_general_exits: float
    partial_result: float
    cash_reconciliation_value: float


class StoreStatsOut(TotalsOut):
    store_id: str
    store_name: str
    pending_receivables_total: Optional[float] = None
    net_reconciliation_value: Optional[float] = None


class BreakdownOut(BaseModel):
    labels: Dict[str, str]
    common_entries: Dict[str, float]
    electronic_entries: Dict[str, float]
    operational_exits: float
    new_receivables: float


class SummaryReport(BaseModel):
    start_date: str
    end_date: str
    stores: List[StoreStatsOut]
    overall: TotalsOut
    breakdown: BreakdownOut


def _totals_fields(stats: Totals) -> dict:
    return {
        name: (value if name == "count" else serialize_decimal(value))
        for name, value in stats.model_dump().items()
        if name in TotalsOut.model_fields
    }


def _parse_range(start: Optional[str], end: Optional[str]) -> tuple[date, date]:
    if not start:
        today = date.today()
        return today - timedelta(days=settings.report_default_days), today

    start_date = parse_date(start)
    if start_date is None:
        raise ValidationError("start must be dd/mm/yyyy")
    end_date = parse_date(end) if end else start_date
    if end_date is None:
        raise ValidationError("end must be dd/mm/yyyy")
    if end_date < start_date:
        raise ValidationError("end must not be before start")
    return start_date, end_date


@router.get("/summary", response_model=SummaryReport)
def summary(
    start: Optional[str] = Query(None, description="dd/mm/yyyy"),
    end: Optional[str] = Query(None, description="dd/mm/yyyy, defaults to start"),
    store: Optional[str] = None,
    storage: ClosingStorage = Depends(get_storage),
    current_user: User = Depends(require_admin),
):
    """
    Consolidated closing statistics per store and overall.

    Without `start` the last `report_default_days` days are used.
    """
    start_date, end_date = _parse_range(start, end)
    store_id = store if store and store != "all" else None

    report, breakdown = build_summary(storage, start_date, end_date, store_id)
    names = {s.id: s.name for s in storage.list_stores()}

    stores = [
        StoreStatsOut(
            **_totals_fields(stats),
            store_id=stats.store_id,
            store_name=get_store_name(stats.store_id, names),
            pending_receivables_total=serialize_decimal(stats.pending_receivables_total),
            net_reconciliation_value=serialize_decimal(stats.net_reconciliation_value),
        )
        for stats in report.per_store.values()
    ]
    return SummaryReport(
        start_date=start_date.strftime("%d/%m/%Y"),
        end_date=end_date.strftime("%d/%m/%Y"),
        stores=stores,
        overall=TotalsOut(**_totals_fields(report.overall)),
        breakdown=BreakdownOut(
            labels=BREAKDOWN_LABELS,
            common_entries={k: serialize_decimal(v) for k, v in breakdown.common_entries.items()},
            electronic_entries={k: serialize_decimal(v) for k, v in breakdown.electronic_entries.items()},
            operational_exits=serialize_decimal(breakdown.operational_exits),
            new_receivables=serialize_decimal(breakdown.new_receivables),
        ),
    )
