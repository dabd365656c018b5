"""
BELEX adapter error hierarchy.

Distinguishes recoverable from permanent errors.
Recoverable failures are contained to one record or one document.
Only a missing browser stops the whole crawl.
"""
from typing import Any, Optional


class BelexAdapterError(Exception):
    """Base class for BELEX adapter errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.recoverable = recoverable


class ExtractionMiss(BelexAdapterError):
    """A selector matched nothing. The field degrades to None."""

    def __init__(self, selector: str):
        super().__init__(f"No element found for selector: {selector}", recoverable=True)
        self.selector = selector


class StoreFailure(BelexAdapterError):
    """Lookup, insert, update or archive against the store failed."""

    def __init__(
        self,
        message: str,
        table: str = "",
        operation: str = "",
    ):
        super().__init__(message, recoverable=True)
        self.table = table
        self.operation = operation


class DriverFailure(BelexAdapterError):
    """Page navigation or interaction failed. Aborts the current document only."""
    pass


class JavaScriptRenderError(DriverFailure):
    """Page did not render the expected content."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message, recoverable=True)
        self.url = url


class BrowserTimeoutError(DriverFailure):
    """Browser operation timed out."""

    def __init__(self, message: str, timeout_seconds: int = 30):
        super().__init__(message, recoverable=True)
        self.timeout_seconds = timeout_seconds


class BrowserNotAvailableError(DriverFailure):
    """Playwright/browser not available."""

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class ReconciliationError(BelexAdapterError):
    """Reconciling one record failed; wraps the underlying store failure."""

    def __init__(self, key: str, cause: Optional[BaseException] = None, kind: Any = None):
        super().__init__(f"Reconciliation failed for {key}: {cause}", recoverable=True)
        self.key = key
        self.cause = cause
        self.kind = kind
