"""Locale-tolerant parsing of amounts as written in bank exports.

Exports use a comma as the decimal separator and spaces (often
non-breaking) as thousands separators, e.g. ``"-1 234,56 PLN"``. Amounts
already in ``"1,234.56"`` form are handled too.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_NOISE = re.compile(r"[^\d,.\-+]")
TWO_PLACES = Decimal("0.01")


def parse_amount(text: str | int | float | Decimal) -> Decimal:
    """Parse an amount into a Decimal.

    Currency codes, symbols and whitespace are dropped. When both ``,`` and
    ``.`` appear, whichever comes last is the decimal separator and the
    other is a thousands separator. A lone ``,`` is a decimal separator.

    Args:
        text: Amount text such as ``"-12,50"`` or ``"1 234,56 PLN"``.
            Numbers are accepted as-is.

    Returns:
        The parsed amount.

    Raises:
        ValueError: If nothing numeric remains after cleaning.
    """
    if isinstance(text, Decimal):
        return text
    if isinstance(text, (int, float)):
        return Decimal(str(text))

    cleaned = _NOISE.sub("", text)
    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    else:
        cleaned = cleaned.replace(",", ".")

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"not an amount: {text!r}") from None


def format_amount(value: Decimal) -> str:
    """Format *value* with exactly two decimals, rounding half up."""
    return str(value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))
