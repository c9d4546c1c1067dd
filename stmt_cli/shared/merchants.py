"""Merchant label helpers used when normalizing statement descriptions."""

from __future__ import annotations

import re
from functools import lru_cache

TRANSACTION_ID_RE = re.compile(r"\b(?=[A-Z0-9]*\d)[A-Z0-9]{4,}\b")
PHONE_RE = re.compile(r"\b\d{3}[-\s]?\d{3}[-\s]?\d{4}\b")
DATE_RE = re.compile(r"\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b")
CONFIRMATION_RE = re.compile(r"\b(?:CONF(?:IRMATION)?#|ID:|INDN:|CO ID:)\s*\S*")
CHANNEL_PREFIX_RE = re.compile(
    r"^(?:CHECKCARD|PURCHASE|DEBIT CARD|ATM WITHDRAWAL|BKOFAMERICA ATM|ZELLE PAYMENT (?:TO|FROM)|"
    r"ONLINE BANKING TRANSFER (?:TO|FROM))\s+"
)
STATE_SUFFIX_RE = re.compile(r"\s+[A-Z]{2}$")
HASH_NUMBER_RE = re.compile(r"#\d{2,}")
STRIP_PATTERNS = (CONFIRMATION_RE, PHONE_RE, DATE_RE, TRANSACTION_ID_RE)


def normalize_merchant(merchant: str) -> str:
    """Return an uppercase, whitespace-collapsed merchant label."""

    cleaned = merchant.strip().upper()
    return " ".join(cleaned.split())


@lru_cache(maxsize=2048)
def extract_merchant(description: str) -> str:
    """Return a display merchant for a statement description.

    Channel prefixes (``CHECKCARD``, ``Zelle payment to``), dates, confirmation
    codes and trace numbers are dropped; the remainder is title-cased.
    """

    normalized = normalize_merchant(description)
    if not normalized:
        return ""

    cleaned = CHANNEL_PREFIX_RE.sub("", normalized)
    cleaned = HASH_NUMBER_RE.sub(" ", cleaned)
    for pattern in STRIP_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    cleaned = STATE_SUFFIX_RE.sub("", cleaned)
    if not cleaned:
        tokens = normalized.split()
        cleaned = tokens[0] if tokens else ""
    return cleaned[:80].title()
