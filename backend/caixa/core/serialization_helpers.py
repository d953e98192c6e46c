"""
Helpers genéricos de serialização.
NÃO contém regra de negócio, só utilidades de formato.
"""
from decimal import Decimal

from caixa.core.normalizer import parse_amount


def serialize_decimal(value):
    """Converte Decimal em float para documentos JSON"""
    if value is None:
        return None
    return float(value)


def serialize_date(value):
    """Converte date/datetime em string ISO"""
    if value is None:
        return None
    return value.isoformat()


def deserialize_money(value) -> Decimal:
    """Lê um valor monetário gravado em JSON de volta como Decimal com centavos"""
    return parse_amount(value)
