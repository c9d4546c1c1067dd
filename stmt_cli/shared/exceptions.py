"""Project-wide custom exceptions."""

from __future__ import annotations


class StatementCliError(Exception):
    """Base exception for the statement CLI suite."""


class ConfigurationError(StatementCliError):
    """Raised when configuration loading or validation fails."""


class ExtractionError(StatementCliError):
    """Raised when a document cannot be turned into statements."""


class EmptyDocumentError(ExtractionError):
    """Raised when a PDF has pages but no extractable text."""


class NoStatementsError(ExtractionError):
    """Raised when the parser yields zero statements for a document."""


class NoTransactionsError(ExtractionError):
    """Raised when a transaction-details export yields zero transactions."""


class DateParseError(ValueError):
    """Raised when a statement date string cannot be interpreted."""
