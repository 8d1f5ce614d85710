"""
Persistence tools for storing and retrieving per-recipient message history.
"""

from smsgate.tools.persistence.exceptions import (
    AdapterError,
    PersistenceError,
    TableNotAllowedError,
    ValidationError,
)
from smsgate.tools.persistence.service import (
    PersistenceAdapter,
    PersistenceService,
    build_service,
)

__all__ = [
    "AdapterError",
    "PersistenceAdapter",
    "PersistenceError",
    "PersistenceService",
    "TableNotAllowedError",
    "ValidationError",
    "build_service",
]
