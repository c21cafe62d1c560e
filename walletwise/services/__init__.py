"""Services package."""

from walletwise.services.storage import (
    AccountStorageInterface,
    AuditStorageInterface,
    ConcurrencyConflictError,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAccountStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AccountStorageInterface",
    "AuditStorageInterface",
    "ConcurrencyConflictError",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAccountStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "InMemoryAccountStorage",
    "InMemoryAuditStorage",
    "NotFoundError",
    "StorageError",
]
