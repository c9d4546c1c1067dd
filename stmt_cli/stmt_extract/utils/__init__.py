"""Shared utilities for statement parsing."""

from __future__ import annotations

from .amounts import MONEY_RE, format_key_number, parse_amount, round_cents, sum_amounts
from .dates import parse_month_day_year, parse_us_date

__all__ = [
    "MONEY_RE",
    "format_key_number",
    "parse_amount",
    "parse_month_day_year",
    "parse_us_date",
    "round_cents",
    "sum_amounts",
]
