"""Core exception classes for the Three-Line Convergence application.

These cover the market data collaborator only. The evaluation engine does not
raise for bad data; it records recoverable problems as EngineIssue kinds on
the verdict.
"""


class DataServiceError(Exception):
    """Base exception for data service operations."""

    pass


class APIError(DataServiceError):
    """Raised when external API operations fail."""

    pass


class DataValidationError(DataServiceError):
    """Raised when data validation fails."""

    pass


class SymbolNotFoundError(DataServiceError):
    """Raised when a stock code has no data."""

    pass
