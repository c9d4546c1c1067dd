from __future__ import annotations

from dataclasses import replace

import pytest

from stmt_cli.shared.exceptions import EmptyDocumentError, NoStatementsError, NoTransactionsError
from stmt_cli.stmt_extract.assembler import (
    PARSERS,
    CreditCardStatementParser,
    TransactionDetailsParser,
    detect_parser,
    detect_account_type,
    filter_transactions_by_period,
    normalize_transactions,
    parse_document,
    parse_statements,
    validate_statement,
)
from stmt_cli.stmt_extract.types import (
    AccountInfo,
    BalanceInfo,
    Categorization,
    ExtractedDocument,
    ExtractedPage,
    RawTransaction,
)


def statement_lines(ending_balance: str = "$2,523.50") -> list[str]:
    return [
        "Bank of America",
        "Advantage Plus Banking",
        "for January 1, 2025 to January 31, 2025",
        "Account # 0000 1234 5678",
        "Beginning balance on January 1, 2025 $1,000.00",
        "Deposits and other additions",
        "01/03/25 PAYROLL ACME CORP 2,500.00",
        "Total deposits and other additions $2,500.00",
        "Withdrawals and other subtractions",
        "01/05/25 CHECKCARD 0104 COFFEE SHOP 14.50",
        "01/07/25 Zelle payment to JOHN DOE Conf# T0ZDL3WND950.00",
        "Total other subtractions -$964.50",
        "Service fees",
        "01/31/25 Monthly Maintenance Fee 12.00",
        "Total service fees -$12.00",
        f"Ending balance on January 31, 2025 {ending_balance}",
    ]


def raw(amount: str, *, section: str = "unknown", date: str = "2025-01-05") -> RawTransaction:
    return RawTransaction(
        date=date,
        description="CHECKCARD 0104 COFFEE SHOP",
        amount=amount,
        page=1,
        line_index=0,
        original_line=f"01/05/25 CHECKCARD 0104 COFFEE SHOP {amount}",
        section=section,
    )


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Advantage Savings statement", "savings"),
        ("Your Advantage Plus Banking", "checking"),
        ("Credit card statement. Minimum payment due. Credit limit $5,000", "credit"),
        ("Deposits and other additions. Ending balance. Annual percentage yield", "savings"),
        ("Deposits and other additions. Ending balance. Daily ending balance", "checking"),
        ("Nothing recognisable here", "unknown"),
    ],
)
def test_detect_account_type(text: str, expected: str) -> None:
    assert detect_account_type(text) == expected


def test_normalize_sets_direction_from_sign() -> None:
    credit, debit = normalize_transactions([raw("2,500.00"), raw("-14.50")])

    assert (credit.amount, credit.direction) == (2500.0, "credit")
    assert (debit.amount, debit.direction) == (-14.5, "debit")
    assert debit.merchant == "Coffee Shop"
    assert debit.raw.original_text == "01/05/25 CHECKCARD 0104 COFFEE SHOP -14.50"


def test_normalize_inverts_credit_card_signs() -> None:
    purchase, payment = normalize_transactions([raw("45.10"), raw("-20.00")], is_credit_card=True)

    assert (purchase.amount, purchase.direction) == (-45.1, "debit")
    assert (payment.amount, payment.direction) == (20.0, "credit")


def test_fee_section_overrides_categorizer() -> None:
    def categorizer(description: str) -> Categorization:
        return Categorization(category="Food", subcategory="Coffee", confidence=0.7)

    fee, other = normalize_transactions(
        [raw("-12.00", section="fees"), raw("-4.00")], categorizer=categorizer
    )
    assert (fee.category, fee.subcategory, fee.confidence) == ("Fees", "Bank", 0.95)
    assert (other.category, other.subcategory, other.confidence) == ("Food", "Coffee", 0.7)


def test_filter_transactions_by_period() -> None:
    rows = [raw("1.00", date="2024-12-31"), raw("2.00", date="2025-01-15"), raw("3.00", date="2025-02-01")]

    kept = filter_transactions_by_period(rows, "2025-01-01", "2025-01-31")
    assert [txn.amount for txn in kept] == ["2.00"]
    assert filter_transactions_by_period(rows, "", "2025-01-31") == rows


def test_validate_statement_reports_every_gap() -> None:
    warnings: list[str] = []
    validate_statement(AccountInfo(), BalanceInfo(ending_balance=10.0), [], warnings)

    assert warnings == [
        "STRICT: Account number could not be verified",
        "STRICT: Statement period could not be verified",
        "STRICT: No transactions were parsed",
        "STRICT: Balance mismatch - calculated 0.00, reported 10.00",
    ]


def test_parse_document_assembles_deposit_statement(make_document) -> None:
    [statement] = parse_document(make_document(statement_lines()), strict=True)

    assert statement.account.account_type == "checking"
    assert statement.account.account_number_masked == "****5678"
    assert (statement.account.period_start, statement.account.period_end) == ("2025-01-01", "2025-01-31")
    assert [txn.amount for txn in statement.transactions] == [2500.0, -14.5, -950.0, -12.0]
    assert statement.transactions[2].merchant == "John Doe"
    assert statement.transactions[3].category == "Fees"
    assert statement.summary.total_credits == 2500.0
    assert statement.summary.total_debits == 976.5
    assert statement.metadata.warnings == []
    assert statement.metadata.page_range == (1, 1)

    payload = statement.as_dict()
    assert payload["account"]["institution"] == "Bank of America"
    assert payload["metadata"]["pageRange"] == {"start": 1, "end": 1}


def test_strict_mode_flags_balance_mismatch(make_document) -> None:
    [statement] = parse_document(make_document(statement_lines("$2,000.00")), strict=True)
    assert statement.metadata.warnings == [
        "STRICT: Balance mismatch - calculated 2523.50, reported 2000.00"
    ]

    [lenient] = parse_document(make_document(statement_lines("$2,000.00")))
    assert lenient.metadata.warnings == []


def test_unknown_account_type_defaults_to_checking(make_document) -> None:
    [statement] = parse_statements(make_document(["Some text", "01/05/25 COFFEE 4.50"]))

    assert statement.account.account_type == "checking"
    assert statement.metadata.warnings[0] == "Could not determine account type, defaulting to checking"
    assert [txn.date for txn in statement.transactions] == ["2025-01-05"]


def test_combined_document_yields_one_statement_per_segment(make_document) -> None:
    january = statement_lines()
    february = [
        "for February 1, 2025 to February 28, 2025",
        "Account # 0000 1234 5678",
        "Beginning balance on February 1, 2025 $2,523.50",
        "Deposits and other additions",
        "02/03/25 PAYROLL ACME CORP 2,500.00",
        "Ending balance on February 28, 2025 $5,023.50",
    ]

    first, second = parse_statements(make_document(january, february))
    assert first.account.period_end == "2025-01-31"
    assert second.account.period_end == "2025-02-28"
    assert first.metadata.page_range == (1, 1)
    assert second.metadata.page_range == (2, 2)
    assert [txn.amount for txn in second.transactions] == [2500.0]
    assert (second.summary.total_credits, second.summary.total_debits) == (2500.0, 0.0)


def test_transaction_details_export_is_parsed(details_document: ExtractedDocument) -> None:
    [statement] = parse_statements(details_document)

    assert statement.account.account_number_masked == "****1234"
    assert statement.summary.ending_balance == 5432.10
    assert statement.summary.total_credits == 200.0
    assert statement.summary.total_debits == 316.5
    assert statement.metadata.page_range is None
    assert len(statement.transactions) == 4


def test_transaction_details_without_rows_raises(make_document) -> None:
    document = make_document(
        ["Bank of America | Online Banking | Deposit | Print Transaction Details"]
    )
    with pytest.raises(NoTransactionsError):
        parse_statements(document)


def test_empty_text_document_raises() -> None:
    document = ExtractedDocument(full_text="", pages=[ExtractedPage(page_number=1, text="")])
    with pytest.raises(EmptyDocumentError, match="password-protected"):
        parse_document(document)


def test_no_applicable_parser_raises(make_document) -> None:
    with pytest.raises(NoStatementsError):
        parse_document(make_document(statement_lines()), parsers=(TransactionDetailsParser(),))


CARD_LINES = [
    "Bank of America",
    "Visa Signature credit card",
    "Account # 4400 1234 5678 9012",
    "Statement Closing Date January 25, 2025",
    "Account Summary",
    "Previous Balance $1,200.00",
    "Payments and Other Credits -$500.00",
    "Purchases and Adjustments $76.84",
    "Fees Charged $0.00",
    "Interest Charged $3.21",
    "New Balance Total $780.05",
    "Minimum Payment Due $35.00",
    "Credit Limit $5,000",
    "Payments and Other Credits",
    "01/05 01/06 PAYMENT - THANK YOU -500.00",
    "Purchases and Adjustments",
    "12/28 12/30 AMAZON MKTPLACE 12.34",
    "01/05 01/07 COFFEE SHOP 4.50",
    "01/09 01/10 GROCERY OUTLET 60.00",
    "Interest Charged",
    "01/25 01/25 INTEREST CHARGED ON PURCHASES 3.21",
]


def test_credit_card_documents_use_card_parser(make_document) -> None:
    document = make_document(CARD_LINES)
    assert isinstance(detect_parser(document, PARSERS), CreditCardStatementParser)

    [statement] = parse_document(document, strict=True)

    assert statement.account.account_type == "credit"
    assert statement.account.account_number_masked == "****9012"
    assert (statement.account.period_start, statement.account.period_end) == ("2024-12-26", "2025-01-25")
    assert [(txn.amount, txn.direction) for txn in statement.transactions] == [
        (500.0, "credit"),
        (-12.34, "debit"),
        (-4.5, "debit"),
        (-60.0, "debit"),
        (-3.21, "debit"),
    ]
    assert [txn.posted_date for txn in statement.transactions][:2] == ["2025-01-06", "2024-12-30"]
    assert statement.transactions[1].date == "2024-12-28"
    assert statement.summary.starting_balance == 1200.0
    assert statement.summary.ending_balance == 780.05
    assert (statement.summary.total_credits, statement.summary.total_debits) == (500.0, 80.05)
    assert statement.metadata.warnings == []
    assert statement.as_dict()["transactions"][1]["postedDate"] == "2024-12-30"


def test_card_balance_check_treats_payments_as_reductions() -> None:
    card = AccountInfo(
        account_type="credit",
        account_number_masked="****9012",
        statement_period_start="2024-12-26",
        statement_period_end="2025-01-25",
    )
    balance = BalanceInfo(
        starting_balance=1200.0, ending_balance=780.05, total_credits=500.0, total_debits=80.05
    )
    warnings: list[str] = []

    validate_statement(card, balance, normalize_transactions([raw("12.34")], is_credit_card=True), warnings)

    assert warnings == []


def test_period_filter_prefers_posting_date() -> None:
    late_swipe = replace(raw("9.99", date="2024-12-24"), posted_date="2024-12-27")
    early_swipe = replace(raw("1.00", date="2024-12-20"), posted_date="2024-12-22")

    kept = filter_transactions_by_period([late_swipe, early_swipe], "2024-12-26", "2025-01-25")

    assert kept == [late_swipe]
