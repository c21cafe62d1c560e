"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the durable backend; the in-memory backend is used by
tests and when Sheets isn't configured.
"""

from walletwise.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    ConcurrencyConflictError,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)
from walletwise.services.storage.google_sheets import (
    GoogleSheetsAccountStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
)
from walletwise.services.storage.memory import (
    InMemoryAccountStorage,
    InMemoryAuditStorage,
)

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    "AuditStorageInterface",
    # Exceptions
    "ConcurrencyConflictError",
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAccountStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    # In-memory implementation
    "InMemoryAccountStorage",
    "InMemoryAuditStorage",
]
