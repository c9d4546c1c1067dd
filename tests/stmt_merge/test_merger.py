from __future__ import annotations

from itertools import permutations

from stmt_cli.stmt_extract.types import (
    BalanceInfo,
    ParsedStatement,
    RawReference,
    StatementAccount,
    StatementMetadata,
    Transaction,
)
from stmt_cli.stmt_merge.merger import (
    StatementWithSource,
    calculate_completeness_score,
    get_statement_key,
    get_transaction_key,
    is_combined_pdf_filename,
    merge_statements,
    merge_statements_with_sources,
    recalculate_summary,
    resolve_statement_duplicate,
)


def txn(
    description: str = "COFFEE SHOP",
    amount: float = -4.5,
    *,
    date: str = "2025-01-05",
    confidence: float = 0.0,
) -> Transaction:
    return Transaction(
        date=date,
        description=description,
        merchant=description.title(),
        amount=amount,
        direction="credit" if amount >= 0 else "debit",
        category="Uncategorized",
        subcategory="Uncategorized",
        confidence=confidence,
        raw=RawReference(original_text=description, page=1),
    )


def statement(
    transactions: list[Transaction] | None = None,
    *,
    warnings: list[str] | None = None,
    period: tuple[str, str] = ("2025-01-01", "2025-01-31"),
    account: str = "****1234",
    summary: BalanceInfo | None = None,
) -> ParsedStatement:
    return ParsedStatement(
        account=StatementAccount(
            account_type="checking",
            account_number_masked=account,
            period_start=period[0],
            period_end=period[1],
        ),
        summary=summary or BalanceInfo(),
        transactions=list(transactions or []),
        metadata=StatementMetadata(
            parser_version="1.1.1",
            parsed_at="2025-02-01T00:00:00+00:00",
            warnings=list(warnings or []),
        ),
    )


def distinct_transactions(count: int) -> list[Transaction]:
    return [txn(f"MERCHANT {index}", -float(index + 1)) for index in range(count)]


def test_more_complete_statement_wins_despite_warning() -> None:
    short = statement(distinct_transactions(2))
    full = statement(distinct_transactions(5), warnings=["Could not extract beginning balance"])

    result = merge_statements_with_sources(
        [
            [StatementWithSource(short, "eStmt_2025-01.pdf")],
            [StatementWithSource(full, "eStmt_2025-01 (1).pdf")],
        ]
    )

    assert result.duplicate_statements_removed == 1
    assert len(result.statements) == 1
    assert len(result.statements[0].transactions) == 5
    assert get_statement_key(result.statements[0]) == "checking|****1234|2025-01-01|2025-01-31"


def test_standalone_statement_beats_combined_on_equal_score() -> None:
    combined = StatementWithSource(statement(distinct_transactions(3)), "BOA_All_Statements_Combined.pdf", True)
    standalone = StatementWithSource(statement(distinct_transactions(3)), "eStmt_2025-01.pdf", False)

    assert is_combined_pdf_filename(combined.source_file)
    assert not is_combined_pdf_filename(standalone.source_file)
    assert resolve_statement_duplicate(combined, standalone) is standalone
    assert resolve_statement_duplicate(standalone, combined) is standalone


def test_identical_transactions_collapse_to_one() -> None:
    duplicated = statement([txn(), txn(), txn()])

    result = merge_statements([[duplicated]])

    assert result.total_transactions == 1
    assert result.duplicate_transactions_removed == 2
    assert result.duplicate_statements_removed == 0


def test_dedupe_keeps_most_confident_transaction() -> None:
    low = txn(confidence=0.2)
    high = txn(" coffee   shop ", confidence=0.9)

    result = merge_statements([[statement([low, high])]])

    [kept] = result.statements[0].transactions
    assert kept is high


def test_merge_is_idempotent_and_leaves_inputs_untouched() -> None:
    first = statement([txn(), txn(), txn("BAKERY", -3.0, date="2025-01-02")])
    second = statement(distinct_transactions(1))
    arrays = [
        [StatementWithSource(first, "a.pdf")],
        [StatementWithSource(second, "b.pdf", True)],
    ]

    once = merge_statements_with_sources(arrays)
    twice = merge_statements_with_sources(arrays)

    assert once.as_dict() == twice.as_dict()
    assert len(first.transactions) == 3
    assert once.statements[0] is not first


def test_transactions_and_statements_are_sorted() -> None:
    february = statement(
        [txn("LATE", date="2025-02-20"), txn("EARLY", date="2025-02-02")],
        period=("2025-02-01", "2025-02-28"),
    )
    january = statement(distinct_transactions(1))

    result = merge_statements([[february], [january]])

    assert [s.account.period_start for s in result.statements] == ["2025-01-01", "2025-02-01"]
    assert [t.description for t in result.statements[1].transactions] == ["EARLY", "LATE"]


def test_keys_ignore_source_and_description_formatting() -> None:
    assert get_transaction_key(txn("Coffee  Shop ", -50.0)) == "2025-01-05|-50|debit|coffee shop"
    assert get_transaction_key(txn("COFFEE SHOP", -50.0)) == get_transaction_key(txn(" coffee shop", -50.0))
    assert get_transaction_key(txn("REFUND", 12.5)) == "2025-01-05|12.5|credit|refund"

    left = StatementWithSource(statement(), "one.pdf")
    right = StatementWithSource(statement(), "two.pdf", True)
    assert get_statement_key(left.statement) == get_statement_key(right.statement)


def test_statement_key_falls_back_to_balances_without_period() -> None:
    undated = statement(period=("", ""), summary=BalanceInfo(starting_balance=1000.0, ending_balance=2523.5))
    assert get_statement_key(undated) == "****1234|bal:1000.00|2523.50"


def test_filename_tie_break_is_a_total_order() -> None:
    candidates = [
        StatementWithSource(statement(distinct_transactions(1)), name)
        for name in ("c.pdf", "a.pdf", "b.pdf")
    ]

    for ordering in permutations(candidates):
        winner = ordering[0]
        for candidate in ordering[1:]:
            winner = resolve_statement_duplicate(winner, candidate)
        assert winner.source_file == "a.pdf"

    a, b = candidates[1], candidates[2]
    assert resolve_statement_duplicate(a, b) is a
    assert resolve_statement_duplicate(b, a) is a


def test_completeness_score_weights() -> None:
    rich_summary = BalanceInfo(
        starting_balance=1000.0, ending_balance=2523.5, total_credits=2500.0, total_debits=976.5
    )
    scored = statement(distinct_transactions(2), warnings=["w"], summary=rich_summary)

    # 2 transactions, both totals, balances, period, account, one warning.
    assert calculate_completeness_score(scored) == 20 + 5 + 5 + 3 + 5 + 3 - 2
    assert calculate_completeness_score(statement(period=("", ""), account="****0000")) == 0


def test_empty_input_produces_empty_result() -> None:
    result = merge_statements_with_sources([])
    assert result.as_dict() == {
        "statements": [],
        "totalTransactions": 0,
        "duplicateStatementsRemoved": 0,
        "duplicateTransactionsRemoved": 0,
    }
    assert merge_statements([[], []]).statements == []


def test_recalculate_summary_uses_transactions() -> None:
    merged = merge_statements([[statement([txn("PAY", 100.0), txn("FEE", -12.0), txn("ATM", -20.0)])]])
    [result] = merged.statements

    recalculate_summary(result)

    assert (result.summary.total_credits, result.summary.total_debits) == (100.0, 32.0)
