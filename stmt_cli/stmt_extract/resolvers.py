"""Resolvers for reference numbers glued to a trailing transaction amount.

PDF text extraction regularly drops the space between a reference number and
the amount that follows it, e.g. ``Confirmation# 757982788977.98``. Each
resolver here looks at one such layout and either returns the cleaned line
plus the amount it settled on, or ``None`` so the next resolver can try.

Resolvers are ordered in :data:`RESOLVERS`; :func:`resolve_ambiguous_amount`
walks that table and the first hit wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from stmt_cli.shared.config import ResolverSettings

from .utils.amounts import MONEY_RE, parse_amount

_log = logging.getLogger(__name__)

DEFAULT_SETTINGS = ResolverSettings()

CONFIRMATION_MARKER_RE = re.compile(r"Conf(?:irmation)?#", re.IGNORECASE)
ZELLE_CONF_RE = re.compile(r"Zelle.*Conf#", re.IGNORECASE)
ZELLE_MARKER_RE = re.compile(r"Conf#\s*", re.IGNORECASE)
TRACE_NUMBER_RE = re.compile(r"([A-Z]{2})\s+(\d{17,25})(\d{1,6}\.\d{2})$")
_LETTER_RE = re.compile(r"[A-Za-z]")


def _confirmation_re(digits: int) -> re.Pattern[str]:
    return re.compile(rf"Confirmation#\s*(\d{{{digits}}})\s*(\d*,?\d*\.\d{{2}})$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ResolvedAmount:
    """Outcome of a successful resolver: the re-spaced line and its amount."""

    cleaned_line: str
    amount: str


@dataclass(frozen=True, slots=True)
class Candidate:
    """One possible split of a Zelle ``Conf#`` tail into code and amount."""

    code: str
    amount: str
    value: float

    @property
    def has_separator(self) -> bool:
        return "," in self.amount


Resolver = Callable[[str, ResolverSettings], ResolvedAmount | None]


def resolve_confirmation_number(
    line: str, settings: ResolverSettings = DEFAULT_SETTINGS
) -> ResolvedAmount | None:
    """Split ``Confirmation#`` followed by a fixed-width numeric code and an amount.

    The code width is fixed (10 digits by default), so the split point is
    unambiguous whether or not a space survived extraction.
    """

    pattern = _confirmation_re(settings.confirmation_digits)
    match = pattern.search(line)
    if match is None:
        return None
    number, amount = match.groups()
    cleaned = line[: match.start()] + f"Confirmation# {number} {amount}"
    return ResolvedAmount(cleaned_line=cleaned, amount=amount)


def zelle_candidates(
    tail: str, settings: ResolverSettings = DEFAULT_SETTINGS
) -> list[Candidate]:
    """Enumerate every plausible (code, amount) split of the text after ``Conf#``.

    Codes always contain a letter and amounts never do, so only split points
    after the last letter are considered.
    """

    last_letter = -1
    for index, char in enumerate(tail):
        if _LETTER_RE.match(char):
            last_letter = index
    if last_letter < 0:
        return []

    candidates: list[Candidate] = []
    for split in range(len(tail) - 1, last_letter, -1):
        code = tail[:split].strip()
        amount = tail[split:].strip()
        if not settings.zelle_code_min_length <= len(code) <= settings.zelle_code_max_length:
            continue
        if not _LETTER_RE.search(code) or code.endswith(","):
            continue
        if not MONEY_RE.match(amount):
            continue
        value = abs(parse_amount(amount))
        if value == 0:
            continue
        candidates.append(Candidate(code=code, amount=amount, value=value))
    return candidates


def select_zelle_candidate(candidates: Sequence[Candidate]) -> Candidate | None:
    """Pick the winning split.

    With a thousands separator present the smallest amount wins (the comma
    proves the remaining digits are a real >=1,000 amount, extra leading
    digits belong to the code). Without one the largest amount wins, so as few
    digits as possible are stolen from the code.
    """

    if not candidates:
        return None
    with_separator = [candidate for candidate in candidates if candidate.has_separator]
    if with_separator:
        return min(with_separator, key=lambda c: (c.value, -len(c.code)))
    return min(candidates, key=lambda c: (-c.value, len(c.code)))


def resolve_zelle_confirmation(
    line: str, settings: ResolverSettings = DEFAULT_SETTINGS
) -> ResolvedAmount | None:
    """Split an alphanumeric Zelle ``Conf#`` code from the amount glued to it."""

    if not ZELLE_CONF_RE.search(line):
        return None
    marker = ZELLE_MARKER_RE.search(line)
    if marker is None:
        return None
    tail = line[marker.end() :].lstrip()
    best = select_zelle_candidate(zelle_candidates(tail, settings))
    if best is None:
        return None
    cleaned = line[: marker.start()] + f"Conf# {best.code} {best.amount}"
    return ResolvedAmount(cleaned_line=cleaned, amount=best.amount)


def resolve_trace_number(
    line: str, settings: ResolverSettings = DEFAULT_SETTINGS
) -> ResolvedAmount | None:
    """Split a 17-25 digit card trace number from the short amount glued to it."""

    match = TRACE_NUMBER_RE.search(line)
    if match is None:
        return None
    state, trace, amount = match.groups()
    if float(amount) >= settings.trace_amount_limit:
        return None
    cleaned = line[: match.start()] + f"{state} {trace} {amount}"
    return ResolvedAmount(cleaned_line=cleaned, amount=amount)


RESOLVERS: tuple[tuple[str, Resolver], ...] = (
    ("confirmation", resolve_confirmation_number),
    ("zelle", resolve_zelle_confirmation),
    ("trace", resolve_trace_number),
)


def resolve_ambiguous_amount(
    line: str,
    settings: ResolverSettings = DEFAULT_SETTINGS,
    resolvers: Sequence[tuple[str, Resolver]] = RESOLVERS,
) -> ResolvedAmount | None:
    """Run resolvers in priority order and return the first success."""

    for name, resolver in resolvers:
        resolved = resolver(line, settings)
        if resolved is not None:
            _log.debug("Resolver %s split amount %s from %r", name, resolved.amount, line)
            return resolved
    return None
