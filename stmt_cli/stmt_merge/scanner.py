"""Directory scanning for batch statement processing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from stmt_cli.shared.exceptions import ExtractionError

_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PdfFileInfo:
    file_path: Path
    file_name: str
    size_bytes: int


@dataclass(frozen=True, slots=True)
class SkippedFile:
    file_name: str
    reason: str


@dataclass(slots=True)
class ScanResult:
    directory_path: Path
    files: list[PdfFileInfo] = field(default_factory=list)
    skipped: list[SkippedFile] = field(default_factory=list)


def validate_directory(path: str | Path) -> Path:
    """Return ``path`` as a resolved directory, raising ``ExtractionError`` otherwise."""

    directory = Path(path).expanduser()
    if not directory.exists():
        raise ExtractionError(f"Directory does not exist: {directory}")
    if not directory.is_dir():
        raise ExtractionError(f"Path is not a directory: {directory}")
    return directory.resolve()


def scan_directory_for_pdfs(path: str | Path) -> ScanResult:
    """List the PDFs directly inside ``path``, sorted by file name.

    Lock files (``~$...``), hidden files and empty files are skipped and
    reported in ``ScanResult.skipped``.
    """

    directory = validate_directory(path)
    result = ScanResult(directory_path=directory)
    for entry in sorted(directory.iterdir(), key=lambda item: item.name):
        if not entry.is_file() or entry.suffix.lower() != ".pdf":
            continue
        name = entry.name
        if name.startswith("~$") or name.startswith("."):
            result.skipped.append(SkippedFile(name, "temporary or hidden file"))
            continue
        size = entry.stat().st_size
        if size == 0:
            result.skipped.append(SkippedFile(name, "empty file"))
            continue
        result.files.append(PdfFileInfo(file_path=entry, file_name=name, size_bytes=size))

    _log.debug(
        "Found %d PDF(s) in %s (%d skipped)", len(result.files), directory, len(result.skipped)
    )
    return result
