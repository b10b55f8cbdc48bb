"""
Error taxonomy for the extraction pipeline.

- ConfigurationError: raised before any network activity (missing filters, bad dates, missing token)
- RequestFailedError: transport failure, non-200 status or malformed response body
- PaginationError: a next page was announced but could not be requested
- ExportError: one or both output files could not be written
- LoadError: the warehouse handoff failed after its retries
"""

from typing import Optional


class ExtractorError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(ExtractorError):
    """Client or job used before it was fully configured."""


class DateFormatError(ConfigurationError, ValueError):
    """Start date does not match the YYYY-MM-DD format."""


class RequestFailedError(ExtractorError):
    """Request to the billing API failed; the underlying cause is chained."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PaginationError(ExtractorError):
    """API reported more pages but no continuation cursor was available."""


class ExportError(ExtractorError):
    """Writing at least one export format failed."""

    def __init__(self, failures: dict[str, Exception]) -> None:
        self.failures = failures
        detail = ", ".join(f"{fmt}: {err}" for fmt, err in failures.items())
        super().__init__(f"Export failed ({detail})")


class LoadError(ExtractorError):
    """Warehouse upload or load job failed."""
