"""Parser for "Print Transaction Details" exports from Online Banking.

These are web-page prints of account activity rather than monthly statements:
one account, a date range instead of a statement period, a single "Balance
Summary" figure, and transaction rows whose location or confirmation details
wrap onto the following lines.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from stmt_cli.shared.exceptions import DateParseError

from .types import AccountInfo, BalanceInfo, ExtractedDocument, ExtractedPage, RawTransaction, Section
from .utils.amounts import parse_amount
from .utils.dates import parse_us_date

_log = logging.getLogger(__name__)

DOCUMENT_TYPE_RE = re.compile(
    r"Bank of America \| Online Banking \| Deposit \| Print Transaction Details", re.IGNORECASE
)
ACCOUNT_LINE_RE = re.compile(
    r"(Adv(?:antage)?\s+(?:Plus\s+Banking|Savings))\s*-\s*(\d{4})\s*:\s*Account Activity",
    re.IGNORECASE,
)
BALANCE_SUMMARY_RE = re.compile(
    r"Balance Summary:\s*\$?([\d,]+\.\d{2})\s*\(available balance as of today\s+(\d{2}/\d{2}/\d{4})\)",
    re.IGNORECASE,
)
DATE_RANGE_RE = re.compile(
    r'Showing results for "All Transactions,\s*(\d{2}/\d{2}/\d{4})\s*To\s*(\d{2}/\d{2}/\d{4})"',
    re.IGNORECASE,
)

_TYPES = r"Debit Card|Transfer|Other|Check|Deposit|Virtual Card|Bank Charge|Credit"

TYPED_LINE_RE = re.compile(
    rf"^(\d{{2}}/\d{{2}}/\d{{4}})\s+(.+?)\s+({_TYPES})\s+(-?\$?[\d,]+\.\d{{2}})$", re.IGNORECASE
)
UNTYPED_LINE_RE = re.compile(r"^(\d{2}/\d{2}/\d{4})\s+(.+?)\s+(-?\$?[\d,]+\.\d{2})$")
_TRAILING_TYPE_RE = re.compile(rf"\s+({_TYPES})\s*$", re.IGNORECASE)

SKIP_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^Cleared$", re.IGNORECASE),
    re.compile(r"^Pending$", re.IGNORECASE),
    re.compile(r"^Posting date", re.IGNORECASE),
    re.compile(r"^Transactions$", re.IGNORECASE),
    re.compile(r"^View:", re.IGNORECASE),
    re.compile(r"^https://", re.IGNORECASE),
    re.compile(r"^\d+/\d+$"),  # page counters such as "1/5"
    re.compile(r"^\d{1,2}/\d{1,2}/\d{2},\s+\d{1,2}:\d{2}\s+[AP]M", re.IGNORECASE),
)

CONTINUATION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^[A-Z]{2,}(?:\s+[A-Z]{2})?$"),
    re.compile(r"^Conf#\s+\S+", re.IGNORECASE),
    re.compile(r"^Confirmation#\s+\S+", re.IGNORECASE),
    re.compile(r"^ID:\S+", re.IGNORECASE),
    re.compile(r"^INDN:", re.IGNORECASE),
    re.compile(r"^DEPOSIT\s+", re.IGNORECASE),
    re.compile(r"^PURCHASE\s+", re.IGNORECASE),
    re.compile(r"^Payment$", re.IGNORECASE),
    re.compile(r"^Charge$", re.IGNORECASE),
    re.compile(r"^Card$", re.IGNORECASE),
    re.compile(r"^[A-Z][A-Za-z\s]+\s+[A-Z]{2}$"),  # "GLENDALE CA"
)
_STARTS_WITH_DATE_RE = re.compile(r"^\d{2}/\d{2}/\d{4}")
_DOLLAR_AMOUNT_RE = re.compile(r"\$[\d,]+\.\d{2}")
_HEADER_WORD_RE = re.compile(r"^(Posting|Transactions|View|Balance|Showing)", re.IGNORECASE)
_MAX_CONTINUATION_LENGTH = 50


@dataclass(slots=True)
class TransactionDetails:
    """Everything read from one export."""

    account_info: AccountInfo
    balance_info: BalanceInfo
    transactions: list[RawTransaction]
    warnings: list[str] = field(default_factory=list)


def is_transaction_details_document(document: ExtractedDocument) -> bool:
    return bool(DOCUMENT_TYPE_RE.search(document.full_text))


def should_skip_line(line: str) -> bool:
    return any(pattern.search(line) for pattern in SKIP_PATTERNS)


def is_continuation_line(line: str) -> bool:
    """Return True when ``line`` extends the previous transaction (location, ids, wrap)."""

    if any(pattern.search(line) for pattern in CONTINUATION_PATTERNS):
        return True
    if _STARTS_WITH_DATE_RE.match(line) or _DOLLAR_AMOUNT_RE.search(line):
        return False
    return len(line) < _MAX_CONTINUATION_LENGTH and not _HEADER_WORD_RE.match(line)


def infer_type_from_description(description: str) -> str:
    lowered = description.lower()
    if "debit card" in lowered or "purchase" in lowered:
        return "Debit Card"
    if "transfer" in lowered or "zelle" in lowered:
        return "Transfer"
    if "check " in lowered or re.search(r"check\s+\d+", description, re.IGNORECASE):
        return "Check"
    if "deposit" in lowered or "atm" in lowered:
        return "Deposit"
    if "fee" in lowered or "charge" in lowered:
        return "Bank Charge"
    if "virtual card" in lowered:
        return "Virtual Card"
    return "Other"


def infer_section(txn_type: str, amount: str) -> Section:
    negative = "-" in amount
    lowered = txn_type.lower()
    if "fee" in lowered or "charge" in lowered:
        return "fees"
    if lowered == "check":
        return "checks"
    if lowered == "deposit" or (not negative and lowered == "transfer"):
        return "deposits"
    if negative:
        return "withdrawals"
    return "unknown"


def clean_description(description: str) -> str:
    cleaned = _TRAILING_TYPE_RE.sub("", description.strip())
    return " ".join(cleaned.split())


def parse_details_line(line: str, page: int, line_index: int) -> RawTransaction | None:
    """Parse one ``MM/DD/YYYY description [type] amount`` row."""

    match = TYPED_LINE_RE.match(line)
    if match is not None:
        date_text, description, txn_type, amount = match.groups()
    else:
        match = UNTYPED_LINE_RE.match(line)
        if match is None:
            return None
        date_text, description, amount = match.groups()
        txn_type = infer_type_from_description(description)

    try:
        txn_date = parse_us_date(date_text)
    except DateParseError:
        return None
    return RawTransaction(
        date=txn_date,
        description=clean_description(description),
        amount=amount.replace("$", ""),
        page=page,
        line_index=line_index,
        original_line=line,
        section=infer_section(txn_type, amount),
    )


def _extend(txn: RawTransaction, line: str) -> RawTransaction:
    return RawTransaction(
        date=txn.date,
        description=f"{txn.description} {line}",
        amount=txn.amount,
        page=txn.page,
        line_index=txn.line_index,
        original_line=f"{txn.original_line} | {line}",
        section=txn.section,
    )


def extract_details_transactions(
    pages: Sequence[ExtractedPage], warnings: list[str]
) -> list[RawTransaction]:
    transactions: list[RawTransaction] = []
    pending: RawTransaction | None = None
    for page in pages:
        for index, raw_line in enumerate(page.lines):
            line = raw_line.strip()
            if not line or should_skip_line(line):
                continue
            txn = parse_details_line(line, page.page_number, index)
            if txn is not None:
                if pending is not None:
                    transactions.append(pending)
                pending = txn
            elif pending is not None and is_continuation_line(line):
                pending = _extend(pending, line)
    if pending is not None:
        transactions.append(pending)

    if not transactions:
        warnings.append("No transactions found in transaction details PDF")
    return transactions


def extract_details_account(text: str, warnings: list[str]) -> AccountInfo:
    info = AccountInfo()
    account_match = ACCOUNT_LINE_RE.search(text)
    if account_match is not None:
        product, last_four = account_match.groups()
        info.account_type = "savings" if "savings" in product.lower() else "checking"
        info.account_number_masked = f"****{last_four}"
    else:
        warnings.append("Could not extract account info from transaction details PDF")

    range_match = DATE_RANGE_RE.search(text)
    if range_match is not None:
        info.statement_period_start = parse_us_date(range_match.group(1))
        info.statement_period_end = parse_us_date(range_match.group(2))
    else:
        warnings.append("Could not extract date range from transaction details PDF")
    return info


def extract_details_balance(text: str, warnings: list[str]) -> BalanceInfo:
    # Exports only carry the current available balance.
    balance = BalanceInfo()
    match = BALANCE_SUMMARY_RE.search(text)
    if match is not None:
        balance.ending_balance = parse_amount(match.group(1))
    else:
        warnings.append("Could not extract balance from transaction details PDF")
    return balance


def parse_transaction_details(document: ExtractedDocument) -> TransactionDetails:
    warnings: list[str] = []
    account_info = extract_details_account(document.full_text, warnings)
    balance_info = extract_details_balance(document.full_text, warnings)
    transactions = extract_details_transactions(document.pages, warnings)
    _log.debug("Parsed %d rows from transaction details export", len(transactions))
    return TransactionDetails(
        account_info=account_info,
        balance_info=balance_info,
        transactions=transactions,
        warnings=warnings,
    )
