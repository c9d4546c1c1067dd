"""Split one extracted document into per-statement segments.

Combined downloads concatenate many monthly statements. Each statement prints
"Beginning balance on <date>" exactly once, so those anchors mark statement
starts; the period header ("January 1, 2025 to January 31, 2025") printed just
above the anchor pulls the segment start back to the title block.
"""

from __future__ import annotations

import logging
import re

from .types import ExtractedDocument, ExtractedPage, StatementSegment

_log = logging.getLogger(__name__)

DEFAULT_LOOKBACK_CHARS = 500

_LONG_DATE = r"[A-Za-z]+\s+\d{1,2},?\s+\d{4}"

BOUNDARY_ANCHOR_RE = re.compile(rf"Beginning\s+balance\s+on\s+({_LONG_DATE})", re.IGNORECASE)
PERIOD_HEADER_RE = re.compile(rf"(?:for\s+)?({_LONG_DATE})\s+to\s+({_LONG_DATE})", re.IGNORECASE)


def find_anchors(full_text: str) -> list[int]:
    """Return the offsets of every "beginning balance on" anchor."""

    return [match.start() for match in BOUNDARY_ANCHOR_RE.finditer(full_text)]


def _period_of(match: re.Match[str]) -> tuple[str, ...]:
    return tuple(" ".join(group.replace(",", " ").lower().split()) for group in match.groups())


def header_start_before(
    full_text: str, position: int, lookback: int, floor: int = 0
) -> int | None:
    """Offset of the title block for the statement anchored at ``position``.

    Statements print their period header more than once above the anchor
    (title block, then again over the account summary). The earliest header in
    the window that repeats the period of the header closest to ``position``
    wins, so the title block and its account number stay in the segment.
    Headers for another period are ignored.

    Only the ``lookback`` chars before ``position`` are searched, and never
    before ``floor`` (the previous anchor), so a short statement cannot lend
    its header to its neighbour.
    """

    window_start = max(floor, position - lookback)
    headers = list(PERIOD_HEADER_RE.finditer(full_text, window_start, position))
    if not headers:
        return None
    period = _period_of(headers[-1])
    return next(match.start() for match in headers if _period_of(match) == period)


def pages_overlapping(
    document: ExtractedDocument, start: int, end: int
) -> list[ExtractedPage]:
    overlapping: list[ExtractedPage] = []
    for page in document.pages:
        page_start = document.full_text.find(page.text)
        page_end = page_start + len(page.text)
        if page_end > start and page_start < end:
            overlapping.append(page)
    return overlapping


def whole_document_segment(document: ExtractedDocument) -> StatementSegment:
    return StatementSegment(
        text=document.full_text,
        pages=list(document.pages),
        start_page=1,
        end_page=document.total_pages,
    )


def detect_statement_boundaries(
    document: ExtractedDocument,
    lookback: int = DEFAULT_LOOKBACK_CHARS,
) -> list[StatementSegment]:
    """Return one ``StatementSegment`` per statement found in ``document``.

    A document without any anchor is treated as a single statement spanning
    all pages.
    """

    full_text = document.full_text
    anchors = find_anchors(full_text)
    if not anchors:
        _log.debug("No statement anchors found; treating document as one statement")
        return [whole_document_segment(document)]

    segments: list[StatementSegment] = []
    for index, anchor in enumerate(anchors):
        previous_anchor = anchors[index - 1] + 1 if index else 0
        header = header_start_before(full_text, anchor, lookback, floor=previous_anchor)
        start = anchor if header is None else header

        if index + 1 < len(anchors):
            next_anchor = anchors[index + 1]
            next_header = header_start_before(full_text, next_anchor, lookback, floor=anchor + 1)
            end = next_anchor if next_header is None else next_header
        else:
            end = len(full_text)

        pages = pages_overlapping(document, start, end)
        if pages:
            start_page, end_page = pages[0].page_number, pages[-1].page_number
        else:
            pages = list(document.pages)
            start_page, end_page = 1, document.total_pages

        segments.append(
            StatementSegment(
                text=full_text[start:end],
                pages=pages,
                start_page=start_page,
                end_page=end_page,
            )
        )

    _log.debug("Detected %d statement segments", len(segments))
    return segments
