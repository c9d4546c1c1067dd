"""Shared fixtures for statement extraction tests.

Documents are built from plain line lists so each test shows the exact text
the parsers see, one page per list.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from stmt_cli.stmt_extract.types import ExtractedDocument, ExtractedPage

DocumentFactory = Callable[..., ExtractedDocument]

DETAILS_LINES = [
    "Bank of America | Online Banking | Deposit | Print Transaction Details",
    "Adv Plus Banking - 1234 : Account Activity",
    "Balance Summary: $5,432.10 (available balance as of today 03/31/2025)",
    'Showing results for "All Transactions, 03/01/2025 To 03/31/2025"',
    "Posting date Description Type Amount",
    "Cleared",
    "03/28/2025 PURCHASE COFFEE SHOP Debit Card -4.50",
    "GLENDALE CA",
    "03/25/2025 Zelle payment from JANE ROE Transfer 200.00",
    "Conf# T0ZGTJ9B9",
    "03/20/2025 Monthly Maintenance Fee Bank Charge -12.00",
    "03/15/2025 Check 1234 -300.00",
    "1/2",
]


def build_document(*page_lines: list[str]) -> ExtractedDocument:
    pages = [
        ExtractedPage(page_number=number, text="\n".join(lines), lines=list(lines))
        for number, lines in enumerate(page_lines, start=1)
    ]
    return ExtractedDocument(full_text="\n".join(page.text for page in pages), pages=pages)


@pytest.fixture()
def make_document() -> DocumentFactory:
    """Return a factory turning one line list per page into an ``ExtractedDocument``."""

    return build_document


@pytest.fixture()
def details_document() -> ExtractedDocument:
    """A checking-account "Print Transaction Details" export with four rows."""

    return build_document(DETAILS_LINES)
