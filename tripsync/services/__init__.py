"""Services package."""

from tripsync.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryTripStorage,
    NotFoundError,
    StorageError,
    TripStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryTripStorage",
    "NotFoundError",
    "StorageError",
    "TripStorageInterface",
]
