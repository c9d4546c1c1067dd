from __future__ import annotations

import pytest

from stmt_cli.stmt_extract.details import (
    infer_section,
    infer_type_from_description,
    is_continuation_line,
    is_transaction_details_document,
    parse_details_line,
    parse_transaction_details,
    should_skip_line,
)
from stmt_cli.stmt_extract.types import ExtractedDocument


def test_detects_transaction_details_export(details_document: ExtractedDocument, make_document) -> None:
    assert is_transaction_details_document(details_document)
    assert not is_transaction_details_document(make_document(["Monthly statement"]))


def test_parse_transaction_details_reads_header_fields(details_document: ExtractedDocument) -> None:
    details = parse_transaction_details(details_document)

    assert details.warnings == []
    assert details.account_info.account_type == "checking"
    assert details.account_info.account_number_masked == "****1234"
    assert details.account_info.statement_period_start == "2025-03-01"
    assert details.account_info.statement_period_end == "2025-03-31"
    assert details.balance_info.ending_balance == 5432.10


def test_parse_transaction_details_folds_continuation_lines(details_document: ExtractedDocument) -> None:
    details = parse_transaction_details(details_document)
    rows = [(txn.date, txn.description, txn.amount, txn.section) for txn in details.transactions]

    assert rows == [
        ("2025-03-28", "PURCHASE COFFEE SHOP GLENDALE CA", "-4.50", "withdrawals"),
        ("2025-03-25", "Zelle payment from JANE ROE Conf# T0ZGTJ9B9", "200.00", "deposits"),
        ("2025-03-20", "Monthly Maintenance Fee", "-12.00", "fees"),
        ("2025-03-15", "Check 1234", "-300.00", "checks"),
    ]
    first = details.transactions[0]
    assert first.original_line == "03/28/2025 PURCHASE COFFEE SHOP Debit Card -4.50 | GLENDALE CA"
    assert first.line_index == 6


def test_savings_export_and_missing_fields_warn(make_document) -> None:
    lines = [
        "Bank of America | Online Banking | Deposit | Print Transaction Details",
        "Advantage Savings - 9876 : Account Activity",
    ]
    details = parse_transaction_details(make_document(lines))

    assert details.account_info.account_type == "savings"
    assert details.account_info.account_number_masked == "****9876"
    assert details.transactions == []
    assert details.warnings == [
        "Could not extract date range from transaction details PDF",
        "Could not extract balance from transaction details PDF",
        "No transactions found in transaction details PDF",
    ]


def test_parse_details_line_strips_dollar_sign() -> None:
    txn = parse_details_line("03/02/2025 ACME DEPOT $45.00", page=2, line_index=4)
    assert txn is not None
    assert txn.amount == "45.00"
    assert txn.page == 2
    assert txn.section == "unknown"


@pytest.mark.parametrize(
    "line",
    ["Cleared", "Pending", "Posting date", "View: All", "https://secure.example.com", "2/5", "3/31/25, 4:05 PM"],
)
def test_header_and_footer_lines_are_skipped(line: str) -> None:
    assert should_skip_line(line)


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("GLENDALE CA", True),
        ("Conf# ABC123", True),
        ("ID:12345", True),
        ("ACME DEPOT #1234", True),
        ("03/01/2025 Something 5.00", False),
        ("Total $5.00", False),
        ("Balance Summary", False),
    ],
)
def test_continuation_detection(line: str, expected: bool) -> None:
    assert is_continuation_line(line) is expected


@pytest.mark.parametrize(
    ("description", "expected"),
    [
        ("PURCHASE COFFEE", "Debit Card"),
        ("Zelle payment to JOHN", "Transfer"),
        ("Check 1001", "Check"),
        ("ATM deposit", "Deposit"),
        ("Overdraft fee", "Bank Charge"),
        ("Virtual card payment", "Virtual Card"),
        ("Something else", "Other"),
    ],
)
def test_infer_type_from_description(description: str, expected: str) -> None:
    assert infer_type_from_description(description) == expected


def test_infer_section_without_known_type() -> None:
    assert infer_section("Other", "5.00") == "unknown"
    assert infer_section("Other", "-5.00") == "withdrawals"
    assert infer_section("Transfer", "-5.00") == "withdrawals"
    assert infer_section("Transfer", "5.00") == "deposits"
