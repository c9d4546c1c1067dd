"""Dataclasses describing extracted statement data."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Literal

Section = Literal[
    "unknown", "deposits", "withdrawals", "checks", "fees", "payments", "purchases", "interest"
]
Direction = Literal["debit", "credit"]
AccountType = Literal["checking", "savings", "credit"]

DEFAULT_ACCOUNT_MASK = "****0000"
INSTITUTION_NAME = "Bank of America"
PARSER_VERSION = "1.1.1"


@dataclass(slots=True)
class ExtractedPage:
    """Text of a single PDF page plus its line split."""

    page_number: int
    text: str
    lines: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ExtractedDocument:
    """Output of the PDF text collaborator: full text plus per-page text."""

    full_text: str
    pages: list[ExtractedPage]

    @property
    def total_pages(self) -> int:
        return len(self.pages)


@dataclass(frozen=True, slots=True)
class RawTransaction:
    """One transaction line as located in the statement text.

    ``amount`` stays a decimal string (optionally signed) and ``original_line``
    is the untouched source line, even when a cleaned copy was used to find the amount.
    """

    date: str
    description: str
    amount: str
    page: int
    line_index: int
    original_line: str
    section: Section | None = None
    posted_date: str | None = None


@dataclass(slots=True)
class AccountInfo:
    account_type: AccountType = "checking"
    account_number_masked: str = DEFAULT_ACCOUNT_MASK
    statement_period_start: str = ""
    statement_period_end: str = ""


@dataclass(slots=True)
class BalanceInfo:
    starting_balance: float = 0.0
    ending_balance: float = 0.0
    total_credits: float = 0.0
    total_debits: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {
            "startingBalance": self.starting_balance,
            "endingBalance": self.ending_balance,
            "totalCredits": self.total_credits,
            "totalDebits": self.total_debits,
        }


@dataclass(slots=True)
class StatementSegment:
    """Contiguous slice of one document believed to hold exactly one statement."""

    text: str
    pages: list[ExtractedPage]
    start_page: int
    end_page: int


@dataclass(frozen=True, slots=True)
class Categorization:
    category: str
    subcategory: str
    confidence: float


@dataclass(frozen=True, slots=True)
class RawReference:
    original_text: str
    page: int


@dataclass(slots=True)
class Transaction:
    """Normalized transaction with signed amount and derived direction."""

    date: str
    description: str
    merchant: str
    amount: float
    direction: Direction
    category: str
    subcategory: str
    confidence: float
    raw: RawReference
    posted_date: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "postedDate": self.posted_date,
            "description": self.description,
            "merchant": self.merchant,
            "amount": self.amount,
            "direction": self.direction,
            "category": self.category,
            "subcategory": self.subcategory,
            "confidence": self.confidence,
            "raw": {"originalText": self.raw.original_text, "page": self.raw.page},
        }


@dataclass(slots=True)
class StatementAccount:
    account_type: AccountType
    account_number_masked: str
    period_start: str
    period_end: str
    institution: str = INSTITUTION_NAME
    currency: str = "USD"

    def as_dict(self) -> dict[str, Any]:
        return {
            "institution": self.institution,
            "accountType": self.account_type,
            "accountNumberMasked": self.account_number_masked,
            "statementPeriod": {"start": self.period_start, "end": self.period_end},
            "currency": self.currency,
        }


@dataclass(slots=True)
class StatementMetadata:
    parser_version: str
    parsed_at: str
    warnings: list[str] = field(default_factory=list)
    page_range: tuple[int, int] | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "parserVersion": self.parser_version,
            "parsedAt": self.parsed_at,
            "warnings": list(self.warnings),
        }
        if self.page_range is not None:
            payload["pageRange"] = {"start": self.page_range[0], "end": self.page_range[1]}
        return payload


@dataclass(slots=True)
class ParsedStatement:
    """One assembled statement: account, summary totals, transactions, metadata."""

    account: StatementAccount
    summary: BalanceInfo
    transactions: list[Transaction]
    metadata: StatementMetadata

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.transactions)

    def as_dict(self) -> dict[str, Any]:
        return {
            "account": self.account.as_dict(),
            "summary": self.summary.as_dict(),
            "transactions": [txn.as_dict() for txn in self.transactions],
            "metadata": self.metadata.as_dict(),
        }
