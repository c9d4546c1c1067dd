from __future__ import annotations

from pathlib import Path

from stmt_cli.shared.config import MergeSettings
from stmt_cli.shared.exceptions import ExtractionError
from stmt_cli.stmt_extract.types import ExtractedDocument, ExtractedPage
from stmt_cli.stmt_merge.batch import ParseError, is_non_boa_pdf_error, process_batch
from stmt_cli.stmt_merge.scanner import PdfFileInfo

STATEMENT_LINES = [
    "Advantage Plus Banking",
    "for January 1, 2025 to January 31, 2025",
    "Account # 0000 1234 5678",
    "Beginning balance on January 1, 2025 $1,000.00",
    "Deposits and other additions",
    "01/03/25 PAYROLL ACME CORP 2,500.00",
    "01/03/25 PAYROLL ACME CORP 2,500.00",
    "Total deposits and other additions $9,999.00",
    "Ending balance on January 31, 2025 $6,000.00",
]


def _document(lines: list[str]) -> ExtractedDocument:
    text = "\n".join(lines)
    return ExtractedDocument(
        full_text=text, pages=[ExtractedPage(page_number=1, text=text, lines=list(lines))]
    )


def _file(name: str) -> PdfFileInfo:
    return PdfFileInfo(file_path=Path("/statements") / name, file_name=name, size_bytes=10)


def _loader(documents: dict[str, ExtractedDocument | Exception]):
    calls: list[str] = []

    def load(path: Path) -> ExtractedDocument:
        calls.append(path.name)
        outcome = documents[path.name]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return load, calls


def test_process_batch_merges_and_records_failures() -> None:
    files = [_file("a.pdf"), _file("all_statements.pdf"), _file("broken.pdf"), _file("blank.pdf")]
    loader, calls = _loader(
        {
            "a.pdf": _document(STATEMENT_LINES),
            "all_statements.pdf": _document(STATEMENT_LINES),
            "broken.pdf": ExtractionError("PDF file not found: broken.pdf"),
            "blank.pdf": ExtractedDocument(full_text="", pages=[ExtractedPage(page_number=1, text="")]),
        }
    )
    progress: list[tuple[int, int, str]] = []
    errors: list[ParseError] = []

    result = process_batch(
        files,
        loader=loader,
        on_progress=lambda current, total, name: progress.append((current, total, name)),
        on_error=errors.append,
    )

    assert calls == ["a.pdf", "all_statements.pdf", "broken.pdf", "blank.pdf"]
    assert progress[0] == (1, 4, "a.pdf")
    assert [error.filename for error in errors] == ["broken.pdf", "blank.pdf"]
    assert "password-protected" in errors[1].error

    summary = result.summary
    assert (summary.total_pdfs_found, summary.pdfs_succeeded, summary.pdfs_failed) == (4, 2, 2)
    assert summary.statements_before_dedup == 2
    assert summary.duplicate_statements_removed == 1
    assert summary.duplicate_transactions_removed == 1
    assert result.total_statements == 1
    assert result.total_transactions == 1

    payload = result.as_dict()
    assert payload["parseErrors"][0]["filePath"] == str(Path("/statements") / "broken.pdf")
    assert payload["summary"]["pdfsFailed"] == 2


def test_process_batch_can_recalculate_totals() -> None:
    loader, _ = _loader({"a.pdf": _document(STATEMENT_LINES)})

    printed = process_batch([_file("a.pdf")], loader=loader)
    recalculated = process_batch(
        [_file("a.pdf")], loader=loader, merge=MergeSettings(recalculate_summary=True)
    )

    assert printed.statements[0].summary.total_credits == 9999.0
    assert recalculated.statements[0].summary.total_credits == 2500.0


def test_process_batch_with_no_files() -> None:
    result = process_batch([], loader=lambda path: _document([]))
    assert result.statements == []
    assert result.summary.total_pdfs_found == 0


def test_non_boa_error_detection() -> None:
    def error(message: str) -> ParseError:
        return ParseError(filename="x.pdf", file_path="/x.pdf", error=message, timestamp="now")

    assert is_non_boa_pdf_error(error("Failed to parse any statements from PDF"))
    assert is_non_boa_pdf_error(error("No transactions found in transaction details PDF"))
    assert not is_non_boa_pdf_error(error("PDF file not found: x.pdf"))
