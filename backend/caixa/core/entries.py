"""
Catálogo fechado de entradas do caixa: tipos de serviço com preço unitário,
canais eletrônicos e escopo das saídas. Chaves desconhecidas são rejeitadas.
"""
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from caixa.core.errors import ValidationError
from caixa.core.normalizer import parse_amount, parse_quantity


class EntryKind(str, Enum):
    carro = "carro"
    caminhonete = "caminhonete"
    caminhao = "caminhao"
    moto = "moto"
    cautelar = "cautelar"
    revistoria_detran = "revistoriaDetran"
    pesquisa_procedencia = "pesquisaProcedencia"


class ElectronicChannel(str, Enum):
    pix = "pix"
    card = "card"
    deposit = "deposit"


class ExitScope(str, Enum):
    store = "store"
    admin = "admin"


# Unit price of each inspection service
PRICE_TABLE: Dict[EntryKind, Decimal] = {
    EntryKind.carro: Decimal("120.00"),
    EntryKind.caminhonete: Decimal("140.00"),
    EntryKind.caminhao: Decimal("180.00"),
    EntryKind.moto: Decimal("100.00"),
    EntryKind.cautelar: Decimal("220.00"),
    EntryKind.revistoria_detran: Decimal("200.00"),
    EntryKind.pesquisa_procedencia: Decimal("60.00"),
}

ENTRY_LABELS: Dict[EntryKind, str] = {
    EntryKind.carro: "Carro",
    EntryKind.caminhonete: "Caminhonete",
    EntryKind.caminhao: "Caminhão",
    EntryKind.moto: "Moto",
    EntryKind.cautelar: "Cautelar",
    EntryKind.revistoria_detran: "Revistoria DETRAN",
    EntryKind.pesquisa_procedencia: "Pesquisa de Procedência",
}

CHANNEL_LABELS: Dict[ElectronicChannel, str] = {
    ElectronicChannel.pix: "Pix",
    ElectronicChannel.card: "Cartão",
    ElectronicChannel.deposit: "Depósito",
}


def _entry_kind(key: Any) -> EntryKind:
    try:
        return EntryKind(key)
    except ValueError:
        raise ValidationError(f"Unknown entry kind: {key!r}")


def _channel(key: Any) -> ElectronicChannel:
    try:
        return ElectronicChannel(key)
    except ValueError:
        raise ValidationError(f"Unknown electronic channel: {key!r}")


def normalize_common_entries(raw: Optional[Mapping[Any, Any]]) -> Dict[EntryKind, int]:
    """Map raw keys to EntryKind, keeping only positive quantities."""
    entries: Dict[EntryKind, int] = {}
    for key, quantity in (raw or {}).items():
        kind = _entry_kind(key)
        parsed = parse_quantity(quantity)
        if parsed > 0:
            entries[kind] = entries.get(kind, 0) + parsed
    return entries


def normalize_electronic_entries(raw: Optional[Mapping[Any, Any]]) -> Dict[ElectronicChannel, Decimal]:
    """Every channel is always present; missing ones are zero."""
    amounts = {channel: Decimal("0.00") for channel in ElectronicChannel}
    for key, value in (raw or {}).items():
        amounts[_channel(key)] = parse_amount(value)
    return amounts


def entries_to_document(entries: Mapping[EntryKind, int]) -> Dict[str, int]:
    return {kind.value: int(qty) for kind, qty in entries.items() if qty > 0}


def entries_from_document(document: Optional[Mapping[str, Any]]) -> Dict[EntryKind, int]:
    return normalize_common_entries(document)
