"""
Abstract Storage Interface

We define an abstract interface for the durable store so that:
1. Google Sheets can be swapped for a real database later
2. Tests and unconfigured installs can use in-memory storage
3. The ledger's locking and retry logic stays storage-agnostic

The one hard requirement on any backend is `commit`: it must compare
the stored account version with `expected_version` and, only if they
match, write the new balance, bump the version and append the
transaction as one unit.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from uuid import UUID

from walletwise.models.audit import AuditEvent
from walletwise.models.ledger import Account, LedgerSnapshot, Transaction


class AccountStorageInterface(ABC):
    """
    Abstract interface for account + transaction log storage.
    
    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """
    
    @abstractmethod
    async def create_account(self, account: Account) -> Account:
        """
        Persist a newly opened account.
        
        Raises:
            DuplicateError: If an account with this ID already exists
            StorageError: If save fails
        """
        pass
    
    @abstractmethod
    async def get_account(self, account_id: UUID) -> Account:
        """
        Retrieve an account by ID.
        
        Raises:
            NotFoundError: If no such account exists
        """
        pass
    
    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """All accounts, oldest first."""
        pass
    
    @abstractmethod
    async def load_snapshot(self, account_id: UUID) -> LedgerSnapshot:
        """
        Load balance and history as of a single commit point.
        
        Returns:
            Snapshot with transactions ordered newest-first
            
        Raises:
            NotFoundError: If no such account exists
        """
        pass
    
    @abstractmethod
    async def commit(
        self,
        account_id: UUID,
        expected_version: int,
        new_balance: Decimal,
        transaction: Transaction,
    ) -> Account:
        """
        Apply one balance change and its transaction atomically.
        
        Args:
            account_id: Account being changed
            expected_version: Version the caller read before deciding
            new_balance: Balance after the transaction
            transaction: Transaction whose sequence is expected_version + 1
            
        Returns:
            The account as stored after the commit
            
        Raises:
            NotFoundError: If no such account exists
            ConcurrencyConflictError: If the stored version moved on
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.
    
    Audit logs are append-only - we never delete or modify them.
    """
    
    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Returns True if logged successfully."""
        pass
    
    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for one user action, in chronological order."""
        pass
    
    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConcurrencyConflictError(StorageError):
    """The stored version changed between read and commit."""
    
    def __init__(self, account_id: UUID, expected: int, actual: int):
        self.account_id = account_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Account {account_id} is at version {actual}, expected {expected}"
        )


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
