# listing_engine/errors.py
"""Error taxonomy shared by the engine and its callers.

Best-effort degradation of filter input is not an error and has no class
here; only rejected writes, missing rows and storage failures do.
"""
from typing import Iterable, List


class ListingError(Exception):
    """Base class for engine errors."""


class ValidationError(ListingError, ValueError):
    def __init__(self, message: str, fields: Iterable[str] = ()):
        super().__init__(message)
        self.message = message
        self.fields: List[str] = list(fields)


class NotFoundError(ListingError, LookupError):
    def __init__(self, message: str = "Listing not found"):
        super().__init__(message)
        self.message = message


class StorageError(ListingError, RuntimeError):
    # the driver error is chained via __cause__, never put in the message
    def __init__(self, message: str = "Database query failed"):
        super().__init__(message)
        self.message = message
