"""Line-level fixes for text extraction artifacts.

Runs before any transaction grammar is matched:

* ``03/17/257-ELEVEN`` becomes ``03/17/25 7-ELEVEN`` (date fused to merchant).
* ``...REF88812.50`` style tails get a space before the trailing amount.

The trailing-amount split is skipped on confirmation-marker lines and on lines
ending in a glued trace number; those splits are ambiguous and are left to
:mod:`stmt_cli.stmt_extract.resolvers`.
"""

from __future__ import annotations

import re

from .resolvers import CONFIRMATION_MARKER_RE, TRACE_NUMBER_RE

DATE_FUSION_RE = re.compile(r"^(\d{2}/\d{2}/\d{2})(?!\d{2}\b)([A-Za-z0-9])")
GLUED_TRAILING_AMOUNT_RE = re.compile(r"(\S)(-?\d{1,3}(?:,\d{3})*\.\d{2})$")
STANDALONE_AMOUNT_RE = re.compile(r"(?:^|\s)-?\$?[\d,]+\.\d{2}$")


def split_fused_date(line: str) -> str:
    return DATE_FUSION_RE.sub(r"\1 \2", line, count=1)


def split_glued_amount(line: str) -> str:
    # A trailing token that is already a whole amount must not be cut in two.
    if STANDALONE_AMOUNT_RE.search(line):
        return line
    return GLUED_TRAILING_AMOUNT_RE.sub(r"\1 \2", line, count=1)


def preprocess_line(line: str) -> str:
    """Return ``line`` with known extraction artifacts corrected."""

    fixed = split_fused_date(line)
    if CONFIRMATION_MARKER_RE.search(fixed) or TRACE_NUMBER_RE.search(fixed):
        return fixed
    return split_glued_amount(fixed)
