"""Assemble parsed statements from an extracted document.

Three document kinds are supported: monthly deposit-account statements
(possibly several concatenated into one combined download), credit card
statements and "Print Transaction Details" exports. Each kind has a :class:`StatementParser`; :func:`parse_statements`
picks the first parser whose ``supports`` accepts the document.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from stmt_cli.shared.config import BoundarySettings, ResolverSettings
from stmt_cli.shared.exceptions import EmptyDocumentError, NoStatementsError, NoTransactionsError
from stmt_cli.shared.merchants import extract_merchant

from .boundaries import detect_statement_boundaries
from .details import is_transaction_details_document, parse_transaction_details
from .line_parser import extract_transactions
from .summary import (
    extract_account_info,
    extract_balance_info,
    extract_credit_account_info,
    extract_credit_balance_info,
)
from .types import (
    DEFAULT_ACCOUNT_MASK,
    PARSER_VERSION,
    AccountInfo,
    BalanceInfo,
    Categorization,
    ExtractedDocument,
    ParsedStatement,
    RawReference,
    RawTransaction,
    StatementAccount,
    StatementMetadata,
    Transaction,
)
from .utils.amounts import parse_amount, round_cents, sum_amounts

_log = logging.getLogger(__name__)

Categorizer = Callable[[str], Categorization]

FEES_CATEGORIZATION = Categorization(category="Fees", subcategory="Bank", confidence=0.95)
UNCATEGORIZED = Categorization(category="Uncategorized", subcategory="Uncategorized", confidence=0.0)

CREDIT_INDICATORS = (
    "credit card",
    "card member",
    "minimum payment",
    "credit limit",
    "available credit",
    "cash advance",
    "purchase apr",
    "billing period",
)
SAVINGS_INDICATORS = (
    "annual percentage yield",
    "interest paid year to date",
    "apy earned",
)
CHECKING_INDICATORS = (
    "checks paid",
    "daily ending balance",
    "check number",
    "checkcard",
    "atm and debit card",
    "online and mobile banking",
    "service fees",
)
DEPOSIT_ACCOUNT_INDICATORS = (
    "deposits and other additions",
    "withdrawals and other subtractions",
    "atm and debit card subtractions",
    "other subtractions",
    "beginning balance",
    "ending balance",
)


def default_categorizer(description: str) -> Categorization:
    return UNCATEGORIZED


def _score(text: str, indicators: Iterable[str]) -> int:
    return sum(1 for indicator in indicators if indicator in text)


def detect_account_type(full_text: str) -> str:
    """Guess ``checking``, ``savings``, ``credit`` or ``unknown`` from statement wording."""

    text = full_text.lower()
    # Product names are definitive.
    if "advantage savings" in text:
        return "savings"
    if "advantage plus banking" in text:
        return "checking"

    credit = _score(text, CREDIT_INDICATORS)
    savings = _score(text, SAVINGS_INDICATORS)
    checking = _score(text, CHECKING_INDICATORS)
    deposit = _score(text, DEPOSIT_ACCOUNT_INDICATORS)

    if credit > checking + savings and credit >= 2:
        return "credit"
    if deposit >= 2:
        return "savings" if savings > checking else "checking"
    return "unknown"


def filter_transactions_by_period(
    transactions: Sequence[RawTransaction], start: str, end: str
) -> list[RawTransaction]:
    """Keep transactions posted within ``[start, end]``; no-op when either bound is unknown.

    The posting date is used when the statement prints one.
    """

    if not start or not end:
        return list(transactions)
    return [txn for txn in transactions if start <= (txn.posted_date or txn.date) <= end]


def normalize_transactions(
    raw_transactions: Iterable[RawTransaction],
    *,
    is_credit_card: bool = False,
    categorizer: Categorizer = default_categorizer,
) -> list[Transaction]:
    """Convert raw lines into signed transactions with direction and category."""

    normalized: list[Transaction] = []
    for raw in raw_transactions:
        amount = parse_amount(raw.amount)
        magnitude = round_cents(abs(amount))
        if is_credit_card:
            direction = "debit" if amount >= 0 else "credit"
        else:
            direction = "credit" if amount >= 0 else "debit"

        if raw.section == "fees":
            categorization = FEES_CATEGORIZATION
        else:
            categorization = categorizer(raw.description)

        normalized.append(
            Transaction(
                date=raw.date,
                description=raw.description,
                merchant=extract_merchant(raw.description),
                amount=-magnitude if direction == "debit" else magnitude,
                direction=direction,
                category=categorization.category,
                subcategory=categorization.subcategory,
                confidence=categorization.confidence,
                raw=RawReference(original_text=raw.original_line, page=raw.page),
                posted_date=raw.posted_date,
            )
        )
    return normalized


def transaction_totals(transactions: Iterable[Transaction]) -> tuple[float, float]:
    """Return ``(total_credits, total_debits)`` as positive sums."""

    credits: list[float] = []
    debits: list[float] = []
    for txn in transactions:
        if txn.direction == "credit":
            credits.append(txn.amount)
        else:
            debits.append(abs(txn.amount))
    return sum_amounts(credits), sum_amounts(debits)


def validate_statement(
    account_info: AccountInfo,
    balance_info: BalanceInfo,
    transactions: Sequence[Transaction],
    warnings: list[str],
) -> None:
    """Append ``STRICT:`` warnings for anything that could not be verified."""

    if account_info.account_number_masked == DEFAULT_ACCOUNT_MASK:
        warnings.append("STRICT: Account number could not be verified")
    if not account_info.statement_period_start or not account_info.statement_period_end:
        warnings.append("STRICT: Statement period could not be verified")
    if balance_info.starting_balance == 0 and balance_info.ending_balance == 0:
        warnings.append("STRICT: Both starting and ending balances are zero")
    if not transactions:
        warnings.append("STRICT: No transactions were parsed")

    if account_info.account_type == "credit":
        # Card balances are amounts owed: payments lower them, charges raise them.
        net_change = balance_info.total_debits - balance_info.total_credits
    else:
        net_change = balance_info.total_credits - balance_info.total_debits
    calculated = round_cents(balance_info.starting_balance + net_change)
    if abs(calculated - balance_info.ending_balance) > 0.01:
        warnings.append(
            f"STRICT: Balance mismatch - calculated {calculated:.2f}, "
            f"reported {balance_info.ending_balance:.2f}"
        )


def fill_missing_totals(balance_info: BalanceInfo, transactions: Iterable[Transaction]) -> None:
    """Use transaction sums for totals the statement did not print."""

    credits, debits = transaction_totals(transactions)
    if balance_info.total_credits == 0 and credits > 0:
        balance_info.total_credits = credits
    if balance_info.total_debits == 0 and debits > 0:
        balance_info.total_debits = debits


def _parsed_at() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_statement(
    account_info: AccountInfo,
    balance_info: BalanceInfo,
    transactions: list[Transaction],
    warnings: list[str],
    *,
    page_range: tuple[int, int] | None = None,
) -> ParsedStatement:
    return ParsedStatement(
        account=StatementAccount(
            account_type=account_info.account_type,
            account_number_masked=account_info.account_number_masked,
            period_start=account_info.statement_period_start,
            period_end=account_info.statement_period_end,
        ),
        summary=balance_info,
        transactions=transactions,
        metadata=StatementMetadata(
            parser_version=PARSER_VERSION,
            parsed_at=_parsed_at(),
            warnings=warnings,
            page_range=page_range,
        ),
    )


@dataclass(slots=True)
class ParseOptions:
    """Knobs shared by every statement parser."""

    strict: bool = False
    categorizer: Categorizer = default_categorizer
    resolvers: ResolverSettings = ResolverSettings()
    boundaries: BoundarySettings = BoundarySettings()


class StatementParser(ABC):
    """A document layout this package knows how to turn into statements."""

    name: str = "generic"

    @abstractmethod
    def supports(self, document: ExtractedDocument) -> bool:
        """Return True if this parser understands ``document``."""

    @abstractmethod
    def parse(self, document: ExtractedDocument, options: ParseOptions) -> list[ParsedStatement]:
        """Return every statement found in ``document``."""


class TransactionDetailsParser(StatementParser):
    name = "transaction_details"

    def supports(self, document: ExtractedDocument) -> bool:
        return is_transaction_details_document(document)

    def parse(self, document: ExtractedDocument, options: ParseOptions) -> list[ParsedStatement]:
        details = parse_transaction_details(document)
        if not details.transactions:
            raise NoTransactionsError("No transactions found in transaction details PDF")
        transactions = normalize_transactions(details.transactions, categorizer=options.categorizer)
        balance = details.balance_info
        balance.total_credits, balance.total_debits = transaction_totals(transactions)
        warnings = list(details.warnings)
        if options.strict:
            validate_statement(details.account_info, balance, transactions, warnings)
        return [build_statement(details.account_info, balance, transactions, warnings)]


class CreditCardStatementParser(StatementParser):
    """Credit card statements; one billing cycle per document."""

    name = "credit_card_statement"

    def supports(self, document: ExtractedDocument) -> bool:
        return detect_account_type(document.full_text) == "credit"

    def parse(self, document: ExtractedDocument, options: ParseOptions) -> list[ParsedStatement]:
        warnings: list[str] = []
        account_info = extract_credit_account_info(document.full_text, warnings)
        balance_info = extract_credit_balance_info(document.full_text, warnings)
        raw = extract_transactions(
            document.pages, account_info, warnings, settings=options.resolvers
        )
        in_period = filter_transactions_by_period(
            raw, account_info.statement_period_start, account_info.statement_period_end
        )
        transactions = normalize_transactions(
            in_period, is_credit_card=True, categorizer=options.categorizer
        )
        fill_missing_totals(balance_info, transactions)

        if options.strict:
            validate_statement(account_info, balance_info, transactions, warnings)
        page_range = (1, document.total_pages) if document.total_pages else None
        return [
            build_statement(
                account_info, balance_info, transactions, warnings, page_range=page_range
            )
        ]


class DepositStatementParser(StatementParser):
    """Monthly checking/savings statements, one or many per document."""

    name = "deposit_statement"

    def supports(self, document: ExtractedDocument) -> bool:
        return True

    def parse(self, document: ExtractedDocument, options: ParseOptions) -> list[ParsedStatement]:
        detected = detect_account_type(document.full_text)
        document_warnings: list[str] = []
        if detected == "unknown":
            document_warnings.append("Could not determine account type, defaulting to checking")
            account_type = "checking"
        else:
            account_type = detected
        is_credit_card = account_type == "credit"

        segments = detect_statement_boundaries(document, options.boundaries.lookback_chars)
        statements: list[ParsedStatement] = []
        for segment in segments:
            warnings = list(document_warnings)
            account_info = extract_account_info(segment.text, warnings, account_type)
            balance_info = extract_balance_info(segment.text, warnings)
            raw = extract_transactions(
                segment.pages,
                account_info,
                warnings,
                settings=options.resolvers,
            )
            in_period = filter_transactions_by_period(
                raw, account_info.statement_period_start, account_info.statement_period_end
            )
            transactions = normalize_transactions(
                in_period, is_credit_card=is_credit_card, categorizer=options.categorizer
            )

            if len(segments) > 1:
                # Printed totals may belong to a neighbouring statement in combined files.
                balance_info.total_credits, balance_info.total_debits = transaction_totals(transactions)
            else:
                fill_missing_totals(balance_info, transactions)

            if options.strict:
                validate_statement(account_info, balance_info, transactions, warnings)
            statements.append(
                build_statement(
                    account_info,
                    balance_info,
                    transactions,
                    warnings,
                    page_range=(segment.start_page, segment.end_page),
                )
            )

        _log.debug(
            "Assembled %d %s statement(s) from %d segment(s)",
            len(statements),
            account_type,
            len(segments),
        )
        return statements


PARSERS: tuple[StatementParser, ...] = (
    TransactionDetailsParser(),
    CreditCardStatementParser(),
    DepositStatementParser(),
)


def detect_parser(
    document: ExtractedDocument, parsers: Sequence[StatementParser] = PARSERS
) -> StatementParser | None:
    for parser in parsers:
        if parser.supports(document):
            return parser
    return None


def parse_statements(
    document: ExtractedDocument,
    *,
    strict: bool = False,
    categorizer: Categorizer = default_categorizer,
    resolvers: ResolverSettings | None = None,
    boundaries: BoundarySettings | None = None,
    parsers: Sequence[StatementParser] = PARSERS,
) -> list[ParsedStatement]:
    """Parse every statement in ``document``. Returns an empty list if nothing applies.

    Raises:
        NoTransactionsError: A transaction-details export listed no transactions.
    """

    options = ParseOptions(
        strict=strict,
        categorizer=categorizer,
        resolvers=resolvers or ResolverSettings(),
        boundaries=boundaries or BoundarySettings(),
    )
    parser = detect_parser(document, parsers)
    if parser is None:
        return []
    _log.debug("Parsing document with %s parser", parser.name)
    return parser.parse(document, options)


def parse_document(
    document: ExtractedDocument,
    *,
    strict: bool = False,
    categorizer: Categorizer = default_categorizer,
    resolvers: ResolverSettings | None = None,
    boundaries: BoundarySettings | None = None,
    parsers: Sequence[StatementParser] = PARSERS,
) -> list[ParsedStatement]:
    """Like :func:`parse_statements` but treats unusable documents as errors.

    Raises:
        EmptyDocumentError: The document has pages but no text.
        NoStatementsError: No statement could be assembled.
        NoTransactionsError: A transaction-details export listed no transactions.
    """

    if not document.full_text and document.total_pages > 0:
        raise EmptyDocumentError(
            "PDF appears to be password-protected or contains no extractable text"
        )
    statements = parse_statements(
        document,
        strict=strict,
        categorizer=categorizer,
        resolvers=resolvers,
        boundaries=boundaries,
        parsers=parsers,
    )
    if not statements:
        raise NoStatementsError("Failed to parse any statements from PDF")
    return statements
