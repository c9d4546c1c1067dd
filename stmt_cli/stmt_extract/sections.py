"""Section tracking for transaction listings.

Statements group activity under headers such as "Deposits and other additions"
or "Checks". The current section decides the sign of amounts printed without
one, so the classifier state threads through every line of a segment.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from .types import Section

FORCED_DEBIT_SECTIONS: frozenset[str] = frozenset({"withdrawals", "checks", "fees"})
# Card statements list charges unsigned; only payments are forced negative.
CREDIT_FORCED_NEGATIVE_SECTIONS: frozenset[str] = frozenset({"payments"})


@dataclass(frozen=True, slots=True)
class SectionRule:
    """Header pattern plus the section it switches to (``None`` keeps the current one)."""

    name: str
    pattern: re.Pattern[str]
    section: Section | None


TOTAL_RULE = SectionRule("total", re.compile(r"^Total\s+", re.IGNORECASE), None)
DEPOSITS_RULE = SectionRule(
    "deposits",
    re.compile(r"deposits\s+and\s+(?:other\s+)?additions", re.IGNORECASE),
    "deposits",
)
CHECKS_RULE = SectionRule("checks", re.compile(r"checks\s*$", re.IGNORECASE), "checks")
FEES_RULE = SectionRule("fees", re.compile(r"service\s+fees", re.IGNORECASE), "fees")
DAILY_BALANCE_RULE = SectionRule(
    "daily_balance",
    re.compile(r"daily\s+(?:ending\s+)?balance", re.IGNORECASE),
    "unknown",
)

CHECKING_SECTION_RULES: tuple[SectionRule, ...] = (
    TOTAL_RULE,
    DEPOSITS_RULE,
    SectionRule(
        "withdrawals",
        re.compile(
            r"withdrawals\s+and\s+(?:other\s+)?subtractions|ATM\s+and\s+debit\s+card\s+subtractions",
            re.IGNORECASE,
        ),
        "withdrawals",
    ),
    CHECKS_RULE,
    FEES_RULE,
    DAILY_BALANCE_RULE,
)

# Savings statements print "Other subtractions" as its own header.
SAVINGS_SECTION_RULES: tuple[SectionRule, ...] = (
    TOTAL_RULE,
    DEPOSITS_RULE,
    SectionRule(
        "withdrawals",
        re.compile(
            r"withdrawals\s+and\s+(?:other\s+)?subtractions|ATM\s+and\s+debit\s+card\s+subtractions"
            r"|other\s+subtractions",
            re.IGNORECASE,
        ),
        "withdrawals",
    ),
    FEES_RULE,
    DAILY_BALANCE_RULE,
)


# Card headers are anchored so dated lines such as "INTEREST CHARGED ON PURCHASES"
# stay transactions.
CREDIT_SECTION_RULES: tuple[SectionRule, ...] = (
    TOTAL_RULE,
    SectionRule(
        "payments",
        re.compile(r"^payments\s+and\s+(?:other\s+)?credits", re.IGNORECASE),
        "payments",
    ),
    SectionRule(
        "purchases",
        re.compile(r"^(?:purchases\s+and\s+adjustments|transactions\s*$)", re.IGNORECASE),
        "purchases",
    ),
    SectionRule("fees", re.compile(r"^fees\s+charged", re.IGNORECASE), "fees"),
    SectionRule("interest", re.compile(r"^interest\s+charged", re.IGNORECASE), "interest"),
    SectionRule("account_summary", re.compile(r"^account\s+summary", re.IGNORECASE), "unknown"),
)


def rules_for_account(account_type: str) -> tuple[SectionRule, ...]:
    if account_type == "savings":
        return SAVINGS_SECTION_RULES
    if account_type == "credit":
        return CREDIT_SECTION_RULES
    return CHECKING_SECTION_RULES


def negative_sections_for_account(account_type: str) -> frozenset[str]:
    if account_type == "credit":
        return CREDIT_FORCED_NEGATIVE_SECTIONS
    return FORCED_DEBIT_SECTIONS


def classify_line(
    line: str, rules: Sequence[SectionRule] = CHECKING_SECTION_RULES
) -> SectionRule | None:
    """Return the first header rule matching ``line``, if any."""

    for rule in rules:
        if rule.pattern.search(line):
            return rule
    return None


def next_section(current: Section, rule: SectionRule) -> Section:
    return current if rule.section is None else rule.section


def apply_section_sign(
    amount: str,
    section: Section | None,
    negative_sections: frozenset[str] = FORCED_DEBIT_SECTIONS,
) -> str:
    """Force a leading minus on amounts listed under ``negative_sections``."""

    if section in negative_sections and not amount.startswith("-"):
        return f"-{amount}"
    return amount
