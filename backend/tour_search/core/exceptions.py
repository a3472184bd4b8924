"""
Error taxonomy for package search.

InvalidSearchInput  -> client error (400), raised before any query runs.
StoreUnavailableError -> transient store failure (503), never retried here.
"""

from typing import List, Optional


class SearchError(Exception):
    """Base class for search errors."""


class InvalidSearchInput(SearchError):
    """Criteria failed validation (out-of-range value, inverted range, ...)."""

    def __init__(self, message: str, reasons: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.reasons = reasons or [message]


class StoreUnavailableError(SearchError):
    """The entity store could not be reached or the query failed."""
