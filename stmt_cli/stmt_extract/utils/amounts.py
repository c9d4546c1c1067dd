"""Amount parsing and formatting helpers."""

from __future__ import annotations

import re
from collections.abc import Iterable

_CURRENCY_RE = re.compile(r"\d[\d,]*(?:\.\d+)?|\.\d+")

# Grammar of a printed statement amount: optional sign, thousands groups, two decimals.
MONEY_RE = re.compile(r"^-?\d{1,3}(?:,\d{3})*\.\d{2}$")


def parse_amount(value: str) -> float:
    """Parse currency strings into floats.

    Handles values such as ``-$1,234.56`` or ``(123.45)`` and normalises
    en/em dashes that appear in PDF extractions.
    """

    cleaned = (value or "").strip().replace(",", "").replace(" ", "")
    cleaned = cleaned.replace("–", "-").replace("−", "-")
    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1]
    if cleaned.startswith("-"):
        negative = True
        cleaned = cleaned[1:]
    cleaned = cleaned.replace("$", "")
    match = _CURRENCY_RE.fullmatch(cleaned)
    if not match:
        raise ValueError(f"Unable to parse amount: '{value}'")
    amount = float(match.group())
    return -amount if negative else amount


def round_cents(value: float) -> float:
    return round(value + 0.0, 2)


def sum_amounts(values: Iterable[float]) -> float:
    return round_cents(sum(values, 0.0))


def format_key_number(value: float) -> str:
    """Render a number the way identity keys store it: ``-50`` not ``-50.0``."""

    if value == 0:
        return "0"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
