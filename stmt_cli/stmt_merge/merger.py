"""Cross-document statement deduplication.

The same monthly statement often arrives twice: once as a standalone download
and once inside a combined "all statements" file. Statements are keyed by
account and period; colliding statements are resolved by completeness score
with a deterministic tie-break, then the surviving statements have their
transactions deduplicated.

The identity keys produced here are stored by downstream consumers, so their
composition (field order and separators) must not change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from stmt_cli.shared.config import DEFAULT_COMBINED_MARKERS
from stmt_cli.stmt_extract.types import DEFAULT_ACCOUNT_MASK, ParsedStatement, Transaction
from stmt_cli.stmt_extract.utils.amounts import format_key_number, sum_amounts

_log = logging.getLogger(__name__)

UNKNOWN_SOURCE = "unknown"


@dataclass(slots=True)
class StatementWithSource:
    """A parsed statement plus the file it came from."""

    statement: ParsedStatement
    source_file: str
    is_combined_pdf: bool = False


@dataclass(slots=True)
class MergeResult:
    statements: list[ParsedStatement] = field(default_factory=list)
    total_transactions: int = 0
    duplicate_statements_removed: int = 0
    duplicate_transactions_removed: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "statements": [statement.as_dict() for statement in self.statements],
            "totalTransactions": self.total_transactions,
            "duplicateStatementsRemoved": self.duplicate_statements_removed,
            "duplicateTransactionsRemoved": self.duplicate_transactions_removed,
        }


def get_statement_key(statement: ParsedStatement) -> str:
    """Return ``accountType|account|start|end``, or a balance-based key when the period is unknown."""

    account = statement.account
    if account.period_start and account.period_end:
        return (
            f"{account.account_type}|{account.account_number_masked}|"
            f"{account.period_start}|{account.period_end}"
        )
    summary = statement.summary
    return (
        f"{account.account_number_masked}|bal:{summary.starting_balance:.2f}|"
        f"{summary.ending_balance:.2f}"
    )


def normalize_description(description: str) -> str:
    return " ".join(description.strip().lower().split())


def get_transaction_key(transaction: Transaction) -> str:
    """Return ``date|amount|direction|normalized description``."""

    return (
        f"{transaction.date}|{format_key_number(transaction.amount)}|"
        f"{transaction.direction}|{normalize_description(transaction.description)}"
    )


def calculate_completeness_score(statement: ParsedStatement) -> int:
    """Estimate how much reliable data ``statement`` carries; higher is better."""

    summary = statement.summary
    score = len(statement.transactions) * 10
    if summary.total_credits > 0:
        score += 5
    if summary.total_debits > 0:
        score += 5
    if summary.starting_balance != 0 or summary.ending_balance != 0:
        score += 3
    score -= len(statement.metadata.warnings) * 2
    if statement.account.period_start and statement.account.period_end:
        score += 5
    if statement.account.account_number_masked != DEFAULT_ACCOUNT_MASK:
        score += 3
    return score


# A preference returns >0 when the candidate should replace the existing entry,
# <0 when the existing entry should stay, and 0 when it cannot decide.
Preference = Callable[[StatementWithSource, StatementWithSource], int]


def prefer_higher_score(existing: StatementWithSource, candidate: StatementWithSource) -> int:
    return calculate_completeness_score(candidate.statement) - calculate_completeness_score(
        existing.statement
    )


def prefer_standalone(existing: StatementWithSource, candidate: StatementWithSource) -> int:
    return int(existing.is_combined_pdf) - int(candidate.is_combined_pdf)


def prefer_smaller_filename(existing: StatementWithSource, candidate: StatementWithSource) -> int:
    if candidate.source_file < existing.source_file:
        return 1
    if existing.source_file < candidate.source_file:
        return -1
    return 0


TIE_BREAK: tuple[Preference, ...] = (prefer_higher_score, prefer_standalone, prefer_smaller_filename)


def compose_preferences(preferences: Sequence[Preference]) -> Preference:
    """Combine preferences lexicographically: the first non-zero verdict decides."""

    def combined(existing: StatementWithSource, candidate: StatementWithSource) -> int:
        for preference in preferences:
            verdict = preference(existing, candidate)
            if verdict:
                return verdict
        return 0

    return combined


_resolve = compose_preferences(TIE_BREAK)


def resolve_statement_duplicate(
    existing: StatementWithSource, candidate: StatementWithSource
) -> StatementWithSource:
    """Return whichever of two same-key statements should be kept."""

    return candidate if _resolve(existing, candidate) > 0 else existing


def is_combined_pdf_filename(
    filename: str, markers: Iterable[str] = DEFAULT_COMBINED_MARKERS
) -> bool:
    lowered = filename.lower()
    return any(marker in lowered for marker in markers)


def dedupe_transactions(transactions: Iterable[Transaction]) -> tuple[list[Transaction], int]:
    """Collapse same-key transactions (keeping the most confident) and sort by date."""

    seen: dict[str, Transaction] = {}
    removed = 0
    for txn in transactions:
        key = get_transaction_key(txn)
        existing = seen.get(key)
        if existing is None:
            seen[key] = txn
            continue
        if txn.confidence > existing.confidence:
            seen[key] = txn
        removed += 1
    return sorted(seen.values(), key=lambda txn: txn.date), removed


def merge_statements_with_sources(
    statement_arrays: Iterable[Iterable[StatementWithSource]],
) -> MergeResult:
    """Merge statements from several documents into one deduplicated set.

    Inputs are never mutated; surviving statements are shallow copies carrying
    their deduplicated transaction lists.
    """

    by_key: dict[str, StatementWithSource] = {}
    duplicate_statements = 0
    for statements in statement_arrays:
        for entry in statements:
            key = get_statement_key(entry.statement)
            existing = by_key.get(key)
            if existing is None:
                by_key[key] = entry
                continue
            winner = resolve_statement_duplicate(existing, entry)
            _log.debug(
                "Duplicate statement %s: keeping %s over %s",
                key,
                winner.source_file,
                entry.source_file if winner is existing else existing.source_file,
            )
            by_key[key] = winner
            duplicate_statements += 1

    survivors = sorted(
        (entry.statement for entry in by_key.values()),
        key=lambda statement: statement.account.period_start,
    )

    result = MergeResult(duplicate_statements_removed=duplicate_statements)
    for statement in survivors:
        transactions, removed = dedupe_transactions(statement.transactions)
        result.statements.append(
            replace(statement, transactions=transactions, summary=replace(statement.summary))
        )
        result.total_transactions += len(transactions)
        result.duplicate_transactions_removed += removed

    _log.info(
        "Merged %d statement(s); removed %d duplicate statement(s) and %d duplicate transaction(s)",
        len(result.statements),
        result.duplicate_statements_removed,
        result.duplicate_transactions_removed,
    )
    return result


def merge_statements(statement_arrays: Iterable[Iterable[ParsedStatement]]) -> MergeResult:
    """Merge statements that carry no source information."""

    return merge_statements_with_sources(
        [
            [StatementWithSource(statement=statement, source_file=UNKNOWN_SOURCE) for statement in statements]
            for statements in statement_arrays
        ]
    )


def recalculate_summary(statement: ParsedStatement) -> None:
    """Recompute credit/debit totals from the statement's transactions."""

    credits = [txn.amount for txn in statement.transactions if txn.direction == "credit"]
    debits = [abs(txn.amount) for txn in statement.transactions if txn.direction != "credit"]
    statement.summary.total_credits = sum_amounts(credits)
    statement.summary.total_debits = sum_amounts(debits)
