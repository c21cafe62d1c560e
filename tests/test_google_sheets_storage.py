"""
Tests for the Google Sheets backend against an in-memory worksheet double.

A "restart" is a fresh storage + ledger on the same sheets.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from walletwise.audit import AuditLogger
from walletwise.ledger import AccountNotFoundError, InsufficientFundsError, LedgerStore
from walletwise.models.audit import AuditEventBuilder
from walletwise.models.ledger import Direction, Transaction, TransactionCategory, utcnow
from walletwise.services.storage import (
    ConcurrencyConflictError,
    DuplicateError,
    GoogleSheetsAccountStorage,
    GoogleSheetsAuditStorage,
    NotFoundError,
    StorageError,
)


def make_ledger(sheets_client):
    return LedgerStore(
        GoogleSheetsAccountStorage(sheets_client), retry_wait_multiplier=0,
    )


def make_tx(account_id, sequence, amount="100"):
    now = utcnow()
    return Transaction(
        account_id=account_id,
        counterparty="Deposit",
        amount=Decimal(amount),
        direction=Direction.CREDIT,
        category=TransactionCategory.INCOME,
        transaction_date=now.date(),
        created_at=now,
        sequence=sequence,
    )


class TestDurability:
    """Ledger state survives a process restart."""
    
    async def test_balance_and_history_survive_restart(self, sheets_client):
        """Test a new process sees the same balance and history."""
        ledger = make_ledger(sheets_client)
        account = await ledger.open_account("Asha")
        await ledger.credit(account.id, 5700)
        await ledger.debit(account.id, 1500, label="Lunch", category="Food")
        
        restarted = make_ledger(sheets_client)
        snapshot = await restarted.snapshot(account.id)
        
        assert snapshot.balance == Decimal("4200")
        assert snapshot.account.display_name == "Asha"
        assert [tx.counterparty for tx in snapshot.transactions] == ["Lunch", "Deposit"]
        assert snapshot.transactions[0].category is TransactionCategory.FOOD
        assert snapshot.balance == sum(
            (tx.signed_amount for tx in snapshot.transactions), Decimal("0")
        )
    
    async def test_restarted_process_keeps_enforcing_balance(self, sheets_client):
        """Test non-negativity holds across restarts."""
        ledger = make_ledger(sheets_client)
        account = await ledger.open_account("Asha")
        await ledger.credit(account.id, 4200)
        
        restarted = make_ledger(sheets_client)
        with pytest.raises(InsufficientFundsError):
            await restarted.debit(account.id, 10000)
        receipt = await restarted.debit(account.id, 200)
        assert receipt.new_balance == Decimal("4000")
    
    async def test_list_accounts(self, sheets_client):
        """Test accounts are listed from the sheet."""
        ledger = make_ledger(sheets_client)
        asha = await ledger.open_account("Asha")
        ravi = await ledger.open_account("Ravi")
        assert [a.id for a in await make_ledger(sheets_client).list_accounts()] == [
            asha.id, ravi.id,
        ]
    
    async def test_unknown_account(self, sheets_client):
        """Test a missing account raises AccountNotFound."""
        with pytest.raises(AccountNotFoundError):
            await make_ledger(sheets_client).snapshot(uuid4())


class TestCommit:
    """Tests for GoogleSheetsAccountStorage.commit."""
    
    async def test_stale_version_conflicts(self, sheets_client):
        """Test a commit based on an old version is refused."""
        storage = GoogleSheetsAccountStorage(sheets_client)
        ledger = LedgerStore(storage)
        account = await ledger.open_account("Asha")
        await ledger.credit(account.id, 100)
        
        with pytest.raises(ConcurrencyConflictError):
            await storage.commit(account.id, 0, Decimal("200"), make_tx(account.id, 1))
        
        assert len(sheets_client.transactions.rows) == 2
    
    async def test_failed_account_write_is_rolled_back(self, sheets_client):
        """Test the appended transaction row is removed when the account write fails."""
        ledger = make_ledger(sheets_client)
        account = await ledger.open_account("Asha")
        await ledger.credit(account.id, 100)
        sheets_client.accounts.fail_next_update = True
        
        with pytest.raises(StorageError):
            await ledger.credit(account.id, 50)
        
        snapshot = await ledger.snapshot(account.id)
        assert snapshot.balance == Decimal("100")
        assert len(snapshot.transactions) == 1
        assert len(sheets_client.transactions.rows) == 2
    
    async def test_half_written_commit_is_invisible(self, sheets_client):
        """Test a transaction row without its account update is not observed."""
        ledger = make_ledger(sheets_client)
        account = await ledger.open_account("Asha")
        await ledger.credit(account.id, 100)
        
        # Crash after the transaction append, before the account update
        orphan = make_tx(account.id, 2, "999")
        storage = GoogleSheetsAccountStorage(sheets_client)
        sheets_client.transactions.append_row(storage._transaction_to_row(orphan))
        
        snapshot = await ledger.snapshot(account.id)
        assert snapshot.balance == Decimal("100")
        assert len(snapshot.transactions) == 1
        
        # The next real commit reuses the sequence and replaces the orphan
        receipt = await ledger.credit(account.id, 25)
        snapshot = await ledger.snapshot(account.id)
        assert snapshot.balance == Decimal("125")
        assert snapshot.transactions[0].id == receipt.transaction.id
    
    async def test_duplicate_account(self, sheets_client):
        """Test an account can't be created twice."""
        storage = GoogleSheetsAccountStorage(sheets_client)
        account = await LedgerStore(storage).open_account("Asha")
        with pytest.raises(DuplicateError):
            await storage.create_account(account)
    
    async def test_get_missing_account(self, sheets_client):
        """Test get_account raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await GoogleSheetsAccountStorage(sheets_client).get_account(uuid4())


class TestAuditSheet:
    """Tests for GoogleSheetsAuditStorage."""
    
    async def test_events_round_trip_by_correlation(self, sheets_client):
        """Test events written through the logger can be read back."""
        storage = GoogleSheetsAuditStorage(sheets_client)
        logger = AuditLogger(storage)
        correlation_id = uuid4()
        account_id = uuid4()
        
        await logger.log_deposit_recorded(
            account_id=account_id,
            transaction_id=uuid4(),
            amount="5000",
            new_balance="5000",
            correlation_id=correlation_id,
        )
        await logger.log(AuditEventBuilder.account_opened(account_id, "Asha"))
        
        events = await storage.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert events[0].details["amount"] == "5000"
        assert len(await storage.get_recent_events()) == 2
    
    async def test_malformed_rows_are_skipped(self, sheets_client):
        """Test garbage rows in the audit sheet don't break reads."""
        sheets_client.audit.append_row(["not-a-uuid", "yesterday"])
        storage = GoogleSheetsAuditStorage(sheets_client)
        assert await storage.get_recent_events() == []
