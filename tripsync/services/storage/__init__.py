"""
Storage Services Package

Provides the abstract interfaces the core uses to reach persisted trip
data, plus an in-memory implementation. Real backends live outside this
package and implement the same interfaces.
"""

from tripsync.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    StorageError,
    TripStorageInterface,
)
from tripsync.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryTripStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TripStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryTripStorage",
]
