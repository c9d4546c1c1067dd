"""Transaction line parsing for deposit and credit card statements.

The parser is a per-line step function: :func:`process_line` takes the current
:class:`ParserState` (section plus an optional pending line) and returns the
next state and, when a line completes a transaction, the ``RawTransaction``.
:func:`extract_transactions` folds that step over every page of a segment.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date

from stmt_cli.shared.config import ResolverSettings
from stmt_cli.shared.exceptions import DateParseError

from .preprocess import preprocess_line
from .resolvers import DEFAULT_SETTINGS, resolve_ambiguous_amount
from .sections import (
    CHECKING_SECTION_RULES,
    FORCED_DEBIT_SECTIONS,
    SectionRule,
    apply_section_sign,
    classify_line,
    negative_sections_for_account,
    next_section,
    rules_for_account,
)
from .types import AccountInfo, ExtractedPage, RawTransaction, Section
from .utils.dates import parse_us_date

_log = logging.getLogger(__name__)

AMOUNT_ONLY_RE = re.compile(r"^-?[0-9,]+\.\d{2}$")
DATE_PREFIX_RE = re.compile(r"^(\d{2}/\d{2}/\d{2})(.+)$")
TRAILING_AMOUNT_RE = re.compile(r"-?[0-9,]+\.\d{2}$")


@dataclass(frozen=True, slots=True)
class LineGrammar:
    """A transaction line layout: regex with ``date``, ``description`` and ``amount`` groups.

    An optional ``posted`` group carries the posting date printed by card statements.
    """

    name: str
    pattern: re.Pattern[str]
    describe: Callable[[re.Match[str]], str] = lambda match: match.group("description").strip()
    force_debit: bool = False


CHECK_GRAMMAR = LineGrammar(
    "check",
    re.compile(r"^(?P<date>\d{2}/\d{2}/\d{2})\s?(?P<number>\d{1,6})\s+(?P<amount>-?[0-9,]+\.\d{2})$"),
    describe=lambda match: f"Check #{match.group('number')}",
    force_debit=True,
)

FULL_DATE_GRAMMAR = LineGrammar(
    "full_date",
    re.compile(
        r"^(?P<date>\d{1,2}/\d{1,2}/\d{2,4})\s+(?P<description>.+?)\s+(?P<amount>-?[0-9,]+\.\d{2})$"
    ),
)

TRANSACTION_GRAMMARS: tuple[LineGrammar, ...] = (
    LineGrammar(
        "month_day",
        re.compile(r"^(?P<date>\d{1,2}/\d{1,2})\s+(?P<description>.+?)\s+(?P<amount>-?[0-9,]+\.\d{2})$"),
    ),
    FULL_DATE_GRAMMAR,
    # Date fused to the description, e.g. "03/17/257-ELEVEN ... 4.32".
    LineGrammar(
        "fused_date",
        re.compile(r"^(?P<date>\d{2}/\d{2}/\d{2})(?P<description>.+?)(?P<amount>-?[0-9,]+\.\d{2})$"),
    ),
)

# Card statements print a transaction date and, usually, a posting date.
CREDIT_TRANSACTION_GRAMMARS: tuple[LineGrammar, ...] = (
    LineGrammar(
        "posting_date",
        re.compile(
            r"^(?P<date>\d{1,2}/\d{1,2})\s+(?:(?P<posted>\d{1,2}/\d{1,2})\s+)?"
            r"(?P<description>.+?)\s+(?P<amount>-?[0-9,]+\.\d{2})$"
        ),
    ),
    FULL_DATE_GRAMMAR,
)


def grammars_for_account(
    account_type: str,
) -> tuple[tuple[LineGrammar, ...], tuple[LineGrammar, ...]]:
    """Return ``(priority_grammars, grammars)`` for ``account_type``.

    Priority grammars are tried before the amount resolvers run.
    """

    if account_type == "credit":
        return (), CREDIT_TRANSACTION_GRAMMARS
    return (CHECK_GRAMMAR,), TRANSACTION_GRAMMARS


@dataclass(frozen=True, slots=True)
class PendingLine:
    """A dated line still waiting for the amount printed on the next line."""

    line: str
    original_line: str
    page: int
    line_index: int


@dataclass(frozen=True, slots=True)
class ParserState:
    section: Section = "unknown"
    pending: PendingLine | None = None


@dataclass(frozen=True, slots=True)
class LineContext:
    """Per-segment constants the step function needs."""

    statement_year: int
    rules: Sequence[SectionRule] = CHECKING_SECTION_RULES
    settings: ResolverSettings = DEFAULT_SETTINGS
    grammars: Sequence[LineGrammar] = TRANSACTION_GRAMMARS
    priority_grammars: Sequence[LineGrammar] = (CHECK_GRAMMAR,)
    negative_sections: frozenset[str] = FORCED_DEBIT_SECTIONS
    period_end: str = ""

    @classmethod
    def for_account(
        cls,
        account_info: AccountInfo,
        *,
        rules: Sequence[SectionRule] | None = None,
        settings: ResolverSettings = DEFAULT_SETTINGS,
    ) -> LineContext:
        account_type = account_info.account_type
        priority_grammars, grammars = grammars_for_account(account_type)
        return cls(
            statement_year=statement_year_for(account_info),
            rules=rules if rules is not None else rules_for_account(account_type),
            settings=settings,
            grammars=grammars,
            priority_grammars=priority_grammars,
            negative_sections=negative_sections_for_account(account_type),
            period_end=account_info.statement_period_end,
        )


def _match_grammar(line: str, grammars: Iterable[LineGrammar]) -> tuple[LineGrammar, re.Match[str]] | None:
    for grammar in grammars:
        match = grammar.pattern.match(line)
        if match is not None:
            return grammar, match
    return None


def _parse_line_date(value: str, statement_year: int, period_end: str) -> str:
    parsed = parse_us_date(value, statement_year)
    # Year-less dates after the closing date belong to the previous year
    # (December activity on a January statement).
    if period_end and value.count("/") == 1 and parsed > period_end:
        parsed = parse_us_date(value, statement_year - 1)
    return parsed


def parse_transaction_line(
    line: str,
    *,
    page: int,
    line_index: int,
    statement_year: int,
    section: Section = "unknown",
    original_line: str | None = None,
    settings: ResolverSettings = DEFAULT_SETTINGS,
    grammars: Sequence[LineGrammar] = TRANSACTION_GRAMMARS,
    priority_grammars: Sequence[LineGrammar] = (CHECK_GRAMMAR,),
    negative_sections: frozenset[str] = FORCED_DEBIT_SECTIONS,
    period_end: str = "",
) -> RawTransaction | None:
    """Parse a preprocessed line into a ``RawTransaction`` or return ``None``."""

    source_line = line if original_line is None else original_line

    working_line = line
    resolved_amount: str | None = None
    hit = _match_grammar(line, priority_grammars)
    if hit is None:
        resolved = resolve_ambiguous_amount(line, settings)
        if resolved is not None:
            working_line = resolved.cleaned_line
            resolved_amount = resolved.amount
        hit = _match_grammar(working_line, grammars)
    if hit is None:
        return None

    grammar, match = hit
    posted = match.groupdict().get("posted")
    try:
        txn_date = _parse_line_date(match.group("date"), statement_year, period_end)
        posted_date = (
            _parse_line_date(posted, statement_year, period_end) if posted else None
        )
    except DateParseError:
        _log.debug("Skipping line with unparseable date: %r", source_line)
        return None

    amount = resolved_amount if resolved_amount is not None else match.group("amount")
    if grammar.force_debit:
        amount = apply_section_sign(amount, "checks")
    else:
        amount = apply_section_sign(amount, section, negative_sections)

    return RawTransaction(
        date=txn_date,
        description=grammar.describe(match),
        amount=amount,
        page=page,
        line_index=line_index,
        original_line=source_line,
        section=section,
        posted_date=posted_date,
    )


def _parse_in_context(
    line: str,
    context: LineContext,
    *,
    page: int,
    line_index: int,
    section: Section,
    original_line: str,
) -> RawTransaction | None:
    return parse_transaction_line(
        line,
        page=page,
        line_index=line_index,
        statement_year=context.statement_year,
        section=section,
        original_line=original_line,
        settings=context.settings,
        grammars=context.grammars,
        priority_grammars=context.priority_grammars,
        negative_sections=context.negative_sections,
        period_end=context.period_end,
    )


def process_line(
    state: ParserState,
    line: str,
    *,
    page: int,
    line_index: int,
    context: LineContext,
) -> tuple[ParserState, RawTransaction | None]:
    """Advance the parser by one line."""

    stripped = line.strip()
    if not stripped:
        return state, None

    rule = classify_line(stripped, context.rules)
    if rule is not None:
        return ParserState(section=next_section(state.section, rule), pending=None), None

    pending = state.pending
    if pending is not None and AMOUNT_ONLY_RE.match(stripped):
        # Joined with a space: a pending line ending in digits must not absorb the amount.
        merged = preprocess_line(f"{pending.line} {stripped}")
        txn = _parse_in_context(
            merged,
            context,
            page=pending.page,
            line_index=pending.line_index,
            section=state.section,
            original_line=f"{pending.original_line}\n{line}",
        )
        return replace(state, pending=None), txn

    processed = preprocess_line(stripped)
    if DATE_PREFIX_RE.match(processed) and not TRAILING_AMOUNT_RE.search(processed):
        opened = PendingLine(line=processed, original_line=line, page=page, line_index=line_index)
        return replace(state, pending=opened), None

    txn = _parse_in_context(
        processed,
        context,
        page=page,
        line_index=line_index,
        section=state.section,
        original_line=line,
    )
    if txn is not None:
        return replace(state, pending=None), txn
    return state, None


def statement_year_for(account_info: AccountInfo) -> int:
    end = account_info.statement_period_end
    if end[:4].isdigit():
        return int(end[:4])
    return date.today().year


def extract_transactions(
    pages: Sequence[ExtractedPage],
    account_info: AccountInfo,
    warnings: list[str],
    *,
    rules: Sequence[SectionRule] | None = None,
    settings: ResolverSettings = DEFAULT_SETTINGS,
) -> list[RawTransaction]:
    """Parse every line of ``pages`` and return the transactions found.

    Section headers, line grammars and sign rules follow ``account_info.account_type``.
    """

    context = LineContext.for_account(account_info, rules=rules, settings=settings)
    state = ParserState()
    transactions: list[RawTransaction] = []
    for page in pages:
        for index, line in enumerate(page.lines):
            state, txn = process_line(
                state, line, page=page.page_number, line_index=index, context=context
            )
            if txn is not None:
                transactions.append(txn)

    if not transactions:
        warnings.append("No transactions found in statement")
    _log.debug("Parsed %d transactions from %d pages", len(transactions), len(pages))
    return transactions
