"""Date parsing helpers for US-formatted statement dates."""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta

from stmt_cli.shared.exceptions import DateParseError

_MONTHS: dict[str, int] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_FULL_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
_MONTH_DAY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})$")
_NAMED_MONTH_DAY_RE = re.compile(r"^([A-Za-z]{3})\s+(\d{1,2})$")
_LONG_DATE_RE = re.compile(r"([A-Za-z]+)\s+(\d{1,2}),?\s+(\d{4})")


def _iso(year: int, month: int, day: int, source: str) -> str:
    try:
        return date(year, month, day).isoformat()
    except ValueError as exc:
        raise DateParseError(f"Invalid date: {source}") from exc


def parse_us_date(value: str, statement_year: int | None = None) -> str:
    """Return an ISO date for ``MM/DD/YY``, ``MM/DD/YYYY``, ``MM/DD`` or ``Mon DD``."""

    cleaned = value.strip()
    year_fallback = statement_year if statement_year is not None else date.today().year

    match = _FULL_DATE_RE.match(cleaned)
    if match:
        month, day, year = match.groups()
        full_year = int(f"20{year}") if len(year) == 2 else int(year)
        return _iso(full_year, int(month), int(day), value)

    match = _MONTH_DAY_RE.match(cleaned)
    if match:
        month, day = match.groups()
        return _iso(year_fallback, int(month), int(day), value)

    match = _NAMED_MONTH_DAY_RE.match(cleaned)
    if match:
        month_name, day = match.groups()
        month_num = _MONTHS.get(month_name.lower())
        if month_num is None:
            raise DateParseError(f"Unknown month name: {month_name}")
        return _iso(year_fallback, month_num, int(day), value)

    raise DateParseError(f"Unable to parse date: {value}")


def parse_month_day_year(value: str) -> str:
    """Return an ISO date for strings like ``January 5, 2025`` or ``Jan 5 2025``."""

    match = _LONG_DATE_RE.search(value)
    if match:
        month_name, day, year = match.groups()
        month_num = _MONTHS.get(month_name.lower())
        if month_num is not None:
            return _iso(int(year), month_num, int(day), value)
    raise DateParseError(f"Unable to parse date: {value}")


def period_start_before(closing: str) -> str:
    """Start of the billing cycle closing on ``closing`` (ISO in, ISO out).

    The cycle opens the day after the same date one month earlier, clamped to
    the length of that month: ``2025-01-25`` gives ``2024-12-26``.
    """

    end = date.fromisoformat(closing)
    year, month = (end.year, end.month - 1) if end.month > 1 else (end.year - 1, 12)
    day = min(end.day, calendar.monthrange(year, month)[1])
    return (date(year, month, day) + timedelta(days=1)).isoformat()
