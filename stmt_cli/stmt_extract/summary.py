"""Account and balance summary extraction from statement segment text.

Every field is looked up through an ordered tuple of patterns; the first match
wins. A field that never matches records a warning and keeps its default, so a
partially readable summary still produces a statement.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence

from stmt_cli.shared.exceptions import DateParseError

from .types import DEFAULT_ACCOUNT_MASK, AccountInfo, AccountType, BalanceInfo
from .utils.amounts import parse_amount, round_cents
from .utils.dates import parse_month_day_year, parse_us_date, period_start_before

_log = logging.getLogger(__name__)

_AMOUNT = r"([0-9,]+\.\d{2})"
_LONG_DATE = r"[A-Za-z]+\s+\d{1,2},?\s+\d{4}"

ACCOUNT_NUMBER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Account\s*#?\s*[\d\s]*(\d{4})", re.IGNORECASE | re.MULTILINE),
    re.compile(r"(?:Account|Acct).*?(\d{4})$", re.IGNORECASE | re.MULTILINE),
)

# (pattern, date parser) pairs; named-month periods first, then slash dates.
PERIOD_PATTERNS: tuple[tuple[re.Pattern[str], Callable[[str], str]], ...] = (
    (
        re.compile(rf"({_LONG_DATE})\s+to\s+({_LONG_DATE})", re.IGNORECASE),
        parse_month_day_year,
    ),
    (
        re.compile(
            r"(\d{1,2}/\d{1,2}/\d{2,4})\s*(?:to|-|through)\s*(\d{1,2}/\d{1,2}/\d{2,4})",
            re.IGNORECASE,
        ),
        parse_us_date,
    ),
)

BEGINNING_BALANCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"(?:Beginning|Starting|Previous)\s+balance\s*(?:on\s+{_LONG_DATE})?\s*[:\s$]*\$?{_AMOUNT}",
        re.IGNORECASE,
    ),
)
ENDING_BALANCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"(?:Ending|Closing|New)\s+balance\s*(?:on\s+{_LONG_DATE})?\s*[:\s$]*\$?{_AMOUNT}",
        re.IGNORECASE,
    ),
)
TOTAL_CREDITS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"Total\s+deposits\s+and\s+other\s+additions\s*-?\$?{_AMOUNT}", re.IGNORECASE),
)
# Each matching debit total contributes; the statement prints them separately.
DEBIT_TOTAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"Total\s+ATM\s+and\s+debit\s+card\s+subtractions\s*-?\$?{_AMOUNT}", re.IGNORECASE),
    re.compile(rf"Total\s+other\s+subtractions\s*-?\$?{_AMOUNT}", re.IGNORECASE),
    re.compile(rf"Total\s+service\s+fees\s*-?\$?{_AMOUNT}", re.IGNORECASE),
)


def first_match(text: str, patterns: Sequence[re.Pattern[str]]) -> re.Match[str] | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match is not None:
            return match
    return None


def _extract_period(text: str) -> tuple[str, str] | None:
    for pattern, parse in PERIOD_PATTERNS:
        match = pattern.search(text)
        if match is None:
            continue
        try:
            return parse(match.group(1)), parse(match.group(2))
        except DateParseError:
            _log.debug("Ignoring unparseable statement period %r", match.group(0))
    return None


def extract_account_info(
    text: str,
    warnings: list[str],
    account_type: AccountType = "checking",
) -> AccountInfo:
    """Pull the masked account number and statement period from ``text``."""

    info = AccountInfo(account_type=account_type)

    account_match = first_match(text, ACCOUNT_NUMBER_PATTERNS)
    if account_match is not None:
        info.account_number_masked = f"****{account_match.group(1)}"
    else:
        info.account_number_masked = DEFAULT_ACCOUNT_MASK
        warnings.append("Could not extract account number from statement")

    period = _extract_period(text)
    if period is not None:
        info.statement_period_start, info.statement_period_end = period
    else:
        warnings.append("Could not extract statement period")

    return info


def _amount_from(match: re.Match[str] | None) -> float | None:
    if match is None:
        return None
    return parse_amount(match.group(1))


def extract_balance_info(text: str, warnings: list[str]) -> BalanceInfo:
    """Pull opening/closing balances and the credit/debit totals from ``text``."""

    balance = BalanceInfo()

    starting = _amount_from(first_match(text, BEGINNING_BALANCE_PATTERNS))
    if starting is not None:
        balance.starting_balance = starting
    else:
        warnings.append("Could not extract beginning balance")

    ending = _amount_from(first_match(text, ENDING_BALANCE_PATTERNS))
    if ending is not None:
        balance.ending_balance = ending
    else:
        warnings.append("Could not extract ending balance")

    credits = _amount_from(first_match(text, TOTAL_CREDITS_PATTERNS))
    if credits is not None:
        balance.total_credits = credits

    debits = 0.0
    for pattern in DEBIT_TOTAL_PATTERNS:
        amount = _amount_from(pattern.search(text))
        if amount is not None:
            debits += amount
    balance.total_debits = round_cents(debits)

    return balance


# Card statements: last four digits of the card, billing cycle, previous/new balance.
_SIGNED_AMOUNT = r"(-?\$?[0-9,]+\.\d{2})"

CREDIT_ACCOUNT_NUMBER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"Account\s*(?:number|#)?\s*:?\s*(?:ending\s+in\s+)?(?:[\d \t-]*[ \t-])?(\d{4})\b",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(r"Card\s*(?:number|#|:)?.*?(\d{4})\b", re.IGNORECASE | re.MULTILINE),
)
CREDIT_PERIOD_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"(?:Statement|Billing)\s+(?:period|cycle)\s*[:\s]*({_LONG_DATE})\s*(?:to|-|through)\s*({_LONG_DATE})",
        re.IGNORECASE,
    ),
    re.compile(rf"({_LONG_DATE})\s*(?:to|-|through)\s*({_LONG_DATE})", re.IGNORECASE),
)
CLOSING_DATE_RE = re.compile(
    rf"(?:Statement\s+(?:closing\s+)?date|Closing\s+date)\s*[:\s]*({_LONG_DATE})", re.IGNORECASE
)
PREVIOUS_BALANCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"(?:Previous|Prior|Last)\s+(?:statement\s+)?balance\s*[:\s]*{_SIGNED_AMOUNT}", re.IGNORECASE
    ),
)
NEW_BALANCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"(?:New|Current|Statement)\s+balance(?:\s+total)?\s*[:\s]*{_SIGNED_AMOUNT}", re.IGNORECASE
    ),
)
PAYMENTS_TOTAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"Payments\s+and\s+(?:other\s+)?credits\s*[:\s]*{_SIGNED_AMOUNT}", re.IGNORECASE),
)
# Purchases, fees and interest all add to the card balance.
CHARGE_TOTAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"Purchases\s+and\s+adjustments\s*[:\s]*{_SIGNED_AMOUNT}", re.IGNORECASE),
    re.compile(rf"Fees\s+charged\s*[:\s]*{_SIGNED_AMOUNT}", re.IGNORECASE),
    re.compile(rf"Interest\s+charged\s*[:\s]*{_SIGNED_AMOUNT}", re.IGNORECASE),
)


def _extract_credit_period(text: str) -> tuple[str, str] | None:
    for pattern in CREDIT_PERIOD_PATTERNS:
        match = pattern.search(text)
        if match is None:
            continue
        try:
            return parse_month_day_year(match.group(1)), parse_month_day_year(match.group(2))
        except DateParseError:
            _log.debug("Ignoring unparseable billing period %r", match.group(0))

    match = CLOSING_DATE_RE.search(text)
    if match is None:
        return None
    try:
        closing = parse_month_day_year(match.group(1))
    except DateParseError:
        return None
    return period_start_before(closing), closing


def extract_credit_account_info(text: str, warnings: list[str]) -> AccountInfo:
    """Card number and billing cycle of a credit card statement."""

    info = AccountInfo(account_type="credit")

    account_match = first_match(text, CREDIT_ACCOUNT_NUMBER_PATTERNS)
    if account_match is not None:
        info.account_number_masked = f"****{account_match.group(1)}"
    else:
        warnings.append("Could not extract account number from credit card statement")

    period = _extract_credit_period(text)
    if period is not None:
        info.statement_period_start, info.statement_period_end = period
    else:
        warnings.append("Could not extract statement period from credit card statement")

    return info


def extract_credit_balance_info(text: str, warnings: list[str]) -> BalanceInfo:
    """Previous/new balance plus payment and charge totals of a card statement.

    ``total_credits`` holds payments and credits, ``total_debits`` purchases,
    fees and interest, both as positive amounts.
    """

    balance = BalanceInfo()

    previous = _amount_from(first_match(text, PREVIOUS_BALANCE_PATTERNS))
    if previous is not None:
        balance.starting_balance = previous
    else:
        warnings.append("Could not extract previous balance from credit card statement")

    new = _amount_from(first_match(text, NEW_BALANCE_PATTERNS))
    if new is not None:
        balance.ending_balance = new
    else:
        warnings.append("Could not extract new balance from credit card statement")

    payments = _amount_from(first_match(text, PAYMENTS_TOTAL_PATTERNS))
    if payments is not None:
        balance.total_credits = round_cents(abs(payments))

    charges = 0.0
    for pattern in CHARGE_TOTAL_PATTERNS:
        amount = _amount_from(pattern.search(text))
        if amount is not None:
            charges += abs(amount)
    balance.total_debits = round_cents(charges)

    return balance
