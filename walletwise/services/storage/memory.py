"""
In-Memory Storage Implementation

Used by tests and when Google Sheets isn't configured. State lives
for the lifetime of the process only.

Every method does its reads and writes without awaiting in between,
so within one event loop each call is atomic.
"""

from decimal import Decimal
from uuid import UUID

from walletwise.models.audit import AuditEvent
from walletwise.models.ledger import Account, LedgerSnapshot, Transaction
from walletwise.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    ConcurrencyConflictError,
    DuplicateError,
    NotFoundError,
)


class InMemoryAccountStorage(AccountStorageInterface):
    """Dict-backed account storage."""
    
    def __init__(self):
        self._accounts: dict[UUID, Account] = {}
        # Oldest-first, index i holds sequence i + 1
        self._transactions: dict[UUID, list[Transaction]] = {}
    
    async def create_account(self, account: Account) -> Account:
        if account.id in self._accounts:
            raise DuplicateError(f"Account already exists: {account.id}")
        self._accounts[account.id] = account
        self._transactions[account.id] = []
        return account
    
    async def get_account(self, account_id: UUID) -> Account:
        try:
            return self._accounts[account_id]
        except KeyError:
            raise NotFoundError(f"Account not found: {account_id}")
    
    async def list_accounts(self) -> list[Account]:
        return sorted(self._accounts.values(), key=lambda a: a.created_at)
    
    async def load_snapshot(self, account_id: UUID) -> LedgerSnapshot:
        account = await self.get_account(account_id)
        history = self._transactions[account_id]
        return LedgerSnapshot(
            account=account,
            transactions=tuple(reversed(history)),
        )
    
    async def commit(
        self,
        account_id: UUID,
        expected_version: int,
        new_balance: Decimal,
        transaction: Transaction,
    ) -> Account:
        current = await self.get_account(account_id)
        if current.version != expected_version:
            raise ConcurrencyConflictError(
                account_id, expected_version, current.version
            )
        
        updated = current.model_copy(
            update={"balance": new_balance, "version": current.version + 1}
        )
        self._transactions[account_id].append(transaction)
        self._accounts[account_id] = updated
        return updated


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit storage."""
    
    def __init__(self):
        self._events: list[AuditEvent] = []
    
    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
    
    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True
    
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events
    
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
