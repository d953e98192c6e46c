"""
Normalização de entradas digitadas pelo operador.

Valores monetários chegam como "1.234,56", "1234.56", "R$ 50" ou números já
convertidos; datas chegam como "dd/mm/aaaa". Nada aqui lança exceção: valores
inválidos viram 0 (ou None, para datas), de modo que o cálculo dos totais
nunca recebe NaN/Infinity.
"""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
DEFAULT_DATE_PATTERN = "%d/%m/%Y"

_NON_NUMERIC = re.compile(r"[^\d,.]")
_LEADING_MINUS = re.compile(r"^\s*(?:R\$\s*)?-")
_WHOLE_NUMBER = re.compile(r"\s*\d+\s*")


def _to_decimal(value: Any) -> Decimal:
    try:
        parsed = Decimal(str(value))
        if not parsed.is_finite():
            return ZERO
        return parsed.quantize(CENT)
    except (InvalidOperation, ValueError):
        return ZERO


def parse_amount(raw: Any) -> Decimal:
    """
    Convert a human-entered money value to a Decimal with two places.

    The last comma, when present, is the decimal separator and every dot before
    it is a thousands separator ("1.234,56"). Without commas, only the last dot
    is kept as decimal separator ("1.234.56" -> 1234.56). A leading minus is
    kept ("-10,00" -> -10.00), so text and numbers agree on the sign.
    """
    if raw is None or isinstance(raw, bool):
        return ZERO
    if isinstance(raw, (int, float, Decimal)):
        return _to_decimal(raw)

    text = str(raw)
    amount = _parse_unsigned(_NON_NUMERIC.sub("", text))
    return -amount if amount and _LEADING_MINUS.match(text) else amount


def _parse_unsigned(cleaned: str) -> Decimal:
    if not cleaned:
        return ZERO

    last_comma = cleaned.rfind(",")
    if last_comma != -1:
        before = cleaned[:last_comma].replace(".", "").replace(",", "")
        after = cleaned[last_comma + 1:].replace(".", "")
        cleaned = f"{before}.{after}"

    parts = cleaned.split(".")
    if len(parts) > 2:
        cleaned = "".join(parts[:-1]) + "." + parts[-1]
    elif len(parts) == 2 and parts[0] == "":
        cleaned = f"0.{parts[1]}"

    if cleaned in ("", "."):
        return ZERO
    if cleaned.endswith("."):
        cleaned = cleaned[:-1]
    return _to_decimal(cleaned)


def parse_quantity(raw: Any) -> int:
    """Quantities are whole units; anything that is not a non-negative integer counts as 0."""
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    if isinstance(raw, (float, Decimal)):
        value = _to_decimal(raw)
        if value != value.to_integral_value():
            return 0
        return max(int(value), 0)
    # "1,5" ou "2.5" não são quantidades: valem 0, como 1.5
    text = str(raw)
    return int(text) if _WHOLE_NUMBER.fullmatch(text) else 0


def parse_date(raw: Any, pattern: str = DEFAULT_DATE_PATTERN) -> Optional[date]:
    """Return the date in `raw`, or None when it does not match `pattern` exactly."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not raw or not isinstance(raw, str):
        return None
    text = raw.strip()
    try:
        parsed = datetime.strptime(text, pattern).date()
    except ValueError:
        return None
    # strptime accepts "1/2/2024" for "%d/%m/%Y"; require the canonical form
    if parsed.strftime(pattern) != text:
        return None
    return parsed


def format_amount(value: Any) -> str:
    """Inverse of parse_amount for input fields: 1234.56 -> "1234,56"."""
    return f"{_to_decimal(value):.2f}".replace(".", ",")


def format_currency(value: Any) -> str:
    """1234.56 -> "R$ 1.234,56"."""
    if value is None:
        return "R$ 0,00"
    amount = _to_decimal(value)
    sign = "-" if amount < 0 else ""
    integer, _, cents = f"{abs(amount):.2f}".partition(".")
    grouped = f"{int(integer):,}".replace(",", ".")
    return f"R$ {sign}{grouped},{cents}"
