"""Exception hierarchy for the persistence layer.

Higher layers (message store, retrieval) only need to distinguish policy
violations from backend failures; everything else is a PersistenceError.
"""

from __future__ import annotations


class PersistenceError(Exception):
    """Base class for all persistence related errors."""


class TableNotAllowedError(PersistenceError):
    """Raised when a table is outside the read or write allowlist."""


class ValidationError(PersistenceError):
    """Raised when inputs (keys, items) are invalid."""


class AdapterError(PersistenceError):
    """Raised when the underlying adapter/backend fails."""


__all__ = [
    "PersistenceError",
    "TableNotAllowedError",
    "ValidationError",
    "AdapterError",
]
