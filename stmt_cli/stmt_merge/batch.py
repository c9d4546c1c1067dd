"""Sequential batch processing of many statement PDFs.

Files are parsed one at a time in the order given so the merge tie-break on
file names stays reproducible and only one extracted document is held in
memory at a time. A file that fails is recorded as a :class:`ParseError` and the
batch continues; all successful results are merged once at the end.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from stmt_cli.shared.config import BoundarySettings, MergeSettings, ResolverSettings
from stmt_cli.shared.exceptions import StatementCliError
from stmt_cli.stmt_extract.assembler import Categorizer, default_categorizer, parse_document
from stmt_cli.stmt_extract.parsers.pdf_loader import load_pdf_document_with_engine
from stmt_cli.stmt_extract.types import ExtractedDocument, ParsedStatement

from .merger import (
    StatementWithSource,
    is_combined_pdf_filename,
    merge_statements_with_sources,
    recalculate_summary,
)
from .scanner import PdfFileInfo

_log = logging.getLogger(__name__)

DocumentLoader = Callable[[Path], ExtractedDocument]
ProgressCallback = Callable[[int, int, str], None]

NON_BOA_INDICATORS = (
    "failed to parse any statements",
    "unable to detect account type",
    "no transactions found",
)


@dataclass(frozen=True, slots=True)
class ParseError:
    """A file that could not be turned into statements."""

    filename: str
    file_path: str
    error: str
    timestamp: str

    def as_dict(self) -> dict[str, str]:
        return {
            "filename": self.filename,
            "filePath": self.file_path,
            "error": self.error,
            "timestamp": self.timestamp,
        }


@dataclass(slots=True)
class BatchSummary:
    total_pdfs_found: int = 0
    pdfs_succeeded: int = 0
    pdfs_failed: int = 0
    statements_before_dedup: int = 0
    duplicate_statements_removed: int = 0
    duplicate_transactions_removed: int = 0

    def as_dict(self) -> dict[str, int]:
        keys = {
            "total_pdfs_found": "totalPdfsFound",
            "pdfs_succeeded": "pdfsSucceeded",
            "pdfs_failed": "pdfsFailed",
            "statements_before_dedup": "statementsBeforeDedup",
            "duplicate_statements_removed": "duplicateStatementsRemoved",
            "duplicate_transactions_removed": "duplicateTransactionsRemoved",
        }
        return {keys[name]: value for name, value in asdict(self).items()}


@dataclass(slots=True)
class BatchProcessResult:
    statements: list[ParsedStatement] = field(default_factory=list)
    total_transactions: int = 0
    parse_errors: list[ParseError] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)

    @property
    def total_statements(self) -> int:
        return len(self.statements)

    def as_dict(self) -> dict[str, Any]:
        return {
            "statements": [statement.as_dict() for statement in self.statements],
            "totalStatements": self.total_statements,
            "totalTransactions": self.total_transactions,
            "parseErrors": [error.as_dict() for error in self.parse_errors],
            "summary": self.summary.as_dict(),
        }


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_parse_error(file: PdfFileInfo, error: Exception) -> ParseError:
    return ParseError(
        filename=file.file_name,
        file_path=str(file.file_path),
        error=str(error),
        timestamp=_timestamp(),
    )


def is_non_boa_pdf_error(error: ParseError) -> bool:
    """Return True when ``error`` suggests the PDF is not a supported bank statement."""

    message = error.error.lower()
    return any(indicator in message for indicator in NON_BOA_INDICATORS)


def process_batch(
    files: Sequence[PdfFileInfo],
    *,
    loader: DocumentLoader = load_pdf_document_with_engine,
    strict: bool = False,
    categorizer: Categorizer = default_categorizer,
    resolvers: ResolverSettings | None = None,
    boundaries: BoundarySettings | None = None,
    merge: MergeSettings | None = None,
    on_progress: ProgressCallback | None = None,
    on_error: Callable[[ParseError], None] | None = None,
) -> BatchProcessResult:
    """Parse ``files`` in order and merge every statement found."""

    merge = merge or MergeSettings()
    result = BatchProcessResult(summary=BatchSummary(total_pdfs_found=len(files)))
    statement_arrays: list[list[StatementWithSource]] = []

    for position, file in enumerate(files, start=1):
        if on_progress is not None:
            on_progress(position, len(files), file.file_name)
        try:
            document = loader(file.file_path)
            statements = parse_document(
                document,
                strict=strict,
                categorizer=categorizer,
                resolvers=resolvers,
                boundaries=boundaries,
            )
        except (StatementCliError, ValueError) as exc:
            parse_error = create_parse_error(file, exc)
            _log.warning("Failed to process %s: %s", file.file_name, exc)
            result.parse_errors.append(parse_error)
            if on_error is not None:
                on_error(parse_error)
            continue

        combined = is_combined_pdf_filename(file.file_name, merge.combined_markers)
        statement_arrays.append(
            [
                StatementWithSource(statement=statement, source_file=file.file_name, is_combined_pdf=combined)
                for statement in statements
            ]
        )
        result.summary.statements_before_dedup += len(statements)
        result.summary.pdfs_succeeded += 1

    merged = merge_statements_with_sources(statement_arrays)
    if merge.recalculate_summary:
        for statement in merged.statements:
            recalculate_summary(statement)

    result.statements = merged.statements
    result.total_transactions = merged.total_transactions
    result.summary.pdfs_failed = len(result.parse_errors)
    result.summary.duplicate_statements_removed = merged.duplicate_statements_removed
    result.summary.duplicate_transactions_removed = merged.duplicate_transactions_removed
    return result
