"""
Date, hour and amount-in-words formatting for signing-service payloads.
"""

from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Optional

from loguru import logger

_UNITS = ["", "uno", "dos", "tres", "cuatro", "cinco", "seis", "siete", "ocho", "nueve"]
_TEENS = [
    "diez",
    "once",
    "doce",
    "trece",
    "catorce",
    "quince",
    "dieciséis",
    "diecisiete",
    "dieciocho",
    "diecinueve",
]
_TENS = [
    "",
    "",
    "veinte",
    "treinta",
    "cuarenta",
    "cincuenta",
    "sesenta",
    "setenta",
    "ochenta",
    "noventa",
]
_HUNDREDS = [
    "",
    "ciento",
    "doscientos",
    "trescientos",
    "cuatrocientos",
    "quinientos",
    "seiscientos",
    "setecientos",
    "ochocientos",
    "novecientos",
]


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ERP ISO timestamp, keeping its wall-clock time."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"Invalid timestamp received: {value}")
        return None


def format_date(value: str) -> Optional[str]:
    """Format an ERP timestamp as YYYYMMDD."""
    moment = parse_timestamp(value)
    return moment.strftime("%Y%m%d") if moment else None


def format_hour(value: str) -> Optional[str]:
    """Format an ERP timestamp as HHMMSS."""
    moment = parse_timestamp(value)
    return moment.strftime("%H%M%S") if moment else None


def _words(number: int) -> str:
    if number == 0:
        return "cero"
    if number < 10:
        return _UNITS[number]
    if number < 20:
        return _TEENS[number - 10]
    if number < 100:
        tens, units = divmod(number, 10)
        return _TENS[tens] + (f" y {_UNITS[units]}" if units else "")
    if number < 1000:
        if number == 100:
            return "cien"
        hundreds, rest = divmod(number, 100)
        return _HUNDREDS[hundreds] + (f" {_words(rest)}" if rest else "")
    if number < 1_000_000:
        thousands, rest = divmod(number, 1000)
        head = "mil" if thousands == 1 else f"{_words(thousands)} mil"
        return head + (f" {_words(rest)}" if rest else "")
    if number < 1_000_000_000:
        millions, rest = divmod(number, 1_000_000)
        head = "un millón" if millions == 1 else f"{_words(millions)} millones"
        return head + (f" {_words(rest)}" if rest else "")
    raise ValueError(f"Amount too large to spell: {number}")


def amount_in_words(amount, currency: str) -> str:
    """
    Spell an amount in Spanish, e.g. "mil doscientos con 50/100 USD".

    Args:
        amount: Amount as str, int, float or Decimal (thousands separators allowed)
        currency: Currency code appended at the end

    Returns:
        The amount in words followed by the currency
    """
    try:
        value = Decimal(str(amount).replace(",", ""))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")

    value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
    integer_part = int(value)
    cents = int((value - integer_part) * 100)

    parts = [_words(integer_part)]
    if cents > 0:
        parts.append(f"con {cents:02d}/100")
    parts.append(currency)
    return " ".join(part for part in parts if part).strip()
