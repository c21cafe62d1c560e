"""Tests for the ledger store: credits, debits, snapshots and validation."""

import pytest
from decimal import Decimal
from uuid import uuid4

from walletwise.ledger import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    MAX_LABEL_LENGTH,
    clean_label,
    parse_amount,
    resolve_category,
)
from walletwise.models.audit import AuditEventType
from walletwise.models.ledger import Direction, ErrorKind, TransactionCategory


class TestParseAmount:
    """Tests for amount validation."""
    
    @pytest.mark.parametrize("value, expected", [
        (1500, Decimal("1500")),
        ("1500", Decimal("1500")),
        (" 12.50 ", Decimal("12.50")),
        (0.1, Decimal("0.1")),
        (Decimal("99.99"), Decimal("99.99")),
    ])
    def test_accepts_positive_numbers(self, value, expected):
        """Test numbers and numeric strings are accepted."""
        assert parse_amount(value) == expected
    
    @pytest.mark.parametrize("value", [
        0, -1, "-5", "abc", "", None, True, float("nan"), float("inf"), "Infinity", [],
    ])
    def test_rejects_invalid_amounts(self, value):
        """Test zero, negatives, non-numbers and non-finite values are rejected."""
        with pytest.raises(InvalidAmountError) as exc:
            parse_amount(value)
        assert exc.value.kind is ErrorKind.INVALID_AMOUNT


class TestResolveCategory:
    """Tests for category mapping."""
    
    def test_defaults_per_direction(self):
        """Test a missing category falls back by direction."""
        assert resolve_category(None, Direction.CREDIT) is TransactionCategory.INCOME
        assert resolve_category("", Direction.DEBIT) is TransactionCategory.GENERAL
    
    def test_case_insensitive(self):
        """Test form input in any case maps to the enum."""
        assert resolve_category("food", Direction.DEBIT) is TransactionCategory.FOOD
    
    def test_unknown_category_falls_back(self):
        """Test unknown categories use the direction default."""
        assert resolve_category("Crypto", Direction.DEBIT) is TransactionCategory.GENERAL


class TestCleanLabel:
    """Tests for label clean-up."""
    
    def test_strips_and_truncates(self):
        """Test labels are stripped and cut to the stored maximum."""
        assert clean_label("  Lunch ") == "Lunch"
        assert clean_label("L" * 500) == "L" * MAX_LABEL_LENGTH
    
    def test_blank_uses_default(self):
        """Test a blank label falls back to the default."""
        assert clean_label("  ", "Expense") == "Expense"
        assert clean_label(None, "Deposit") == "Deposit"
    
    def test_blank_without_default(self):
        """Test a blank label with no default is rejected."""
        with pytest.raises(ValueError):
            clean_label("   ")


class TestCredit:
    """Tests for LedgerStore.credit."""
    
    async def test_deposit_on_new_account(self, ledger, account):
        """Test a 5000 deposit on a new account records one Income credit."""
        assert account.balance == Decimal("0")
        
        receipt = await ledger.credit(account.id, 5000)
        
        assert receipt.new_balance == Decimal("5000")
        assert receipt.transaction.direction is Direction.CREDIT
        assert receipt.transaction.category is TransactionCategory.INCOME
        assert receipt.transaction.counterparty == "Deposit"
        
        snapshot = await ledger.snapshot(account.id)
        assert snapshot.balance == Decimal("5000")
        assert len(snapshot.transactions) == 1
    
    async def test_sequence_follows_version(self, ledger, account):
        """Test each commit takes the next sequence number."""
        first = await ledger.credit(account.id, 100)
        second = await ledger.credit(account.id, 100)
        assert first.transaction.sequence == 1
        assert second.transaction.sequence == 2
    
    async def test_unknown_account(self, ledger):
        """Test crediting a missing account fails with AccountNotFound."""
        with pytest.raises(AccountNotFoundError):
            await ledger.credit(uuid4(), 100)
    
    async def test_unknown_account_leaves_no_lock(self, ledger):
        """Test failed lookups don't keep a lock per unknown id."""
        for _ in range(3):
            with pytest.raises(AccountNotFoundError):
                await ledger.credit(uuid4(), 100)
        assert ledger._locks == {}


class TestDebit:
    """Tests for LedgerStore.debit."""
    
    async def test_expense_succeeds(self, ledger, account):
        """Test a Lunch expense of 1500 on 5700 leaves 4200."""
        await ledger.credit(account.id, 5700)
        
        receipt = await ledger.debit(account.id, 1500, label="Lunch", category="Food")
        
        assert receipt.new_balance == Decimal("4200")
        assert receipt.transaction.direction is Direction.DEBIT
        assert receipt.transaction.category is TransactionCategory.FOOD
        assert receipt.transaction.counterparty == "Lunch"
    
    async def test_insufficient_funds_changes_nothing(self, ledger, account):
        """Test a 10000 expense on 4200 is rejected with no side effects."""
        await ledger.credit(account.id, 4200)
        before = await ledger.snapshot(account.id)
        
        with pytest.raises(InsufficientFundsError) as exc:
            await ledger.debit(account.id, 10000, label="TV")
        
        assert exc.value.kind is ErrorKind.INSUFFICIENT_FUNDS
        after = await ledger.snapshot(account.id)
        assert after.balance == Decimal("4200")
        assert after.transactions == before.transactions
    
    async def test_debit_to_exactly_zero(self, ledger, account):
        """Test the whole balance can be spent."""
        await ledger.credit(account.id, 500)
        receipt = await ledger.debit(account.id, 500)
        assert receipt.new_balance == Decimal("0")
    
    async def test_invalid_amount_touches_nothing(self, ledger, account, storage):
        """Test invalid amounts are rejected before any storage access."""
        with pytest.raises(InvalidAmountError):
            await ledger.debit(account.id, -10)
        stored = await storage.get_account(account.id)
        assert stored.version == 0
    
    async def test_blank_label_gets_default(self, ledger, account):
        """Test an empty label is stored as Expense."""
        await ledger.credit(account.id, 100)
        receipt = await ledger.debit(account.id, 10, label="   ")
        assert receipt.transaction.counterparty == "Expense"
        assert receipt.transaction.category is TransactionCategory.GENERAL
    
    async def test_long_label_is_truncated(self, ledger, account):
        """Test an over-long label is cut rather than failing the debit."""
        await ledger.credit(account.id, 5700)
        
        receipt = await ledger.debit(account.id, 1500, label="L" * 201, category="Food")
        
        assert receipt.new_balance == Decimal("4200")
        assert receipt.transaction.counterparty == "L" * MAX_LABEL_LENGTH


class TestSnapshot:
    """Tests for LedgerStore.snapshot and the balance invariants."""
    
    async def test_conservation(self, ledger, account):
        """Test balance equals credits minus debits after a mixed sequence."""
        operations = [
            ("credit", 5000), ("debit", 1200), ("debit", 300),
            ("credit", 250), ("debit", 9999), ("debit", 3750),
        ]
        for kind, amount in operations:
            try:
                if kind == "credit":
                    await ledger.credit(account.id, amount)
                else:
                    await ledger.debit(account.id, amount)
            except InsufficientFundsError:
                pass
            
            snapshot = await ledger.snapshot(account.id)
            assert snapshot.balance == sum(
                (tx.signed_amount for tx in snapshot.transactions), Decimal("0")
            )
            assert snapshot.balance >= 0
        
        assert snapshot.balance == Decimal("0")
        assert len(snapshot.transactions) == 5
    
    async def test_newest_first(self, ledger, account):
        """Test history is ordered newest-first."""
        await ledger.credit(account.id, 100, label="first")
        await ledger.credit(account.id, 100, label="second")
        snapshot = await ledger.snapshot(account.id)
        assert [tx.counterparty for tx in snapshot.transactions] == ["second", "first"]
        assert [tx.counterparty for tx in snapshot.oldest_first()] == ["first", "second"]
    
    async def test_unknown_account(self, ledger):
        """Test a missing account raises AccountNotFound."""
        with pytest.raises(AccountNotFoundError) as exc:
            await ledger.snapshot(uuid4())
        assert exc.value.kind is ErrorKind.ACCOUNT_NOT_FOUND
    
    async def test_list_accounts(self, ledger, account):
        """Test opened accounts are listed."""
        other = await ledger.open_account("Ravi")
        ids = [a.id for a in await ledger.list_accounts()]
        assert ids == [account.id, other.id]
    
    async def test_long_display_name_is_truncated(self, ledger):
        """Test an over-long name still opens an account."""
        opened = await ledger.open_account("N" * 250)
        assert opened.display_name == "N" * MAX_LABEL_LENGTH
    
    async def test_blank_display_name_rejected(self, ledger):
        """Test an account needs a name."""
        with pytest.raises(ValueError):
            await ledger.open_account("   ")
        assert await ledger.list_accounts() == []


class TestLedgerAudit:
    """Tests that ledger activity reaches the audit log."""
    
    async def test_account_opening_is_audited(self, ledger, audit_storage):
        """Test opening an account writes an audit event."""
        account = await ledger.open_account("Meera")
        events = audit_storage.events
        assert events[-1].event_type == AuditEventType.ACCOUNT_OPENED
        assert events[-1].entity_id == account.id
