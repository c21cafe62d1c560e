"""
Tests for WalletWise models

Test strategy:
1. Unit tests for individual components (models, ledger, advice)
2. Integration tests for flows (with fake external services)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from walletwise.models.ledger import (
    Account,
    Direction,
    ErrorKind,
    LedgerOutcome,
    LedgerSnapshot,
    Transaction,
    TransactionCategory,
    summarize_spending,
)
from walletwise.models.advice import (
    ChatReply,
    ChatRole,
    ForecastPoint,
    ForecastReport,
)
from walletwise.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


def make_tx(account_id, sequence, amount, direction=Direction.DEBIT,
            category=TransactionCategory.FOOD, counterparty="Lunch"):
    return Transaction(
        account_id=account_id,
        counterparty=counterparty,
        amount=Decimal(amount),
        direction=direction,
        category=category,
        transaction_date=date(2024, 5, sequence),
        sequence=sequence,
    )


class TestLedgerModels:
    """Tests for account and transaction models."""
    
    def test_account_defaults(self):
        """Test a new account starts empty at version 0."""
        account = Account(display_name="Asha")
        assert account.balance == Decimal("0")
        assert account.version == 0
    
    def test_account_strips_whitespace(self):
        """Test that whitespace is stripped from the display name."""
        account = Account(display_name="  Asha  ")
        assert account.display_name == "Asha"
    
    def test_account_rejects_negative_balance(self):
        """Test that a negative balance can't be represented."""
        with pytest.raises(ValueError):
            Account(display_name="Asha", balance=Decimal("-1"))
    
    def test_transaction_rejects_zero_amount(self):
        """Test that amounts must be strictly positive."""
        with pytest.raises(ValueError):
            make_tx(uuid4(), 1, "0")
    
    def test_transaction_is_immutable(self):
        """Test transactions can't be edited after creation."""
        tx = make_tx(uuid4(), 1, "100")
        with pytest.raises(ValueError):
            tx.amount = Decimal("1")
    
    def test_signed_amount(self):
        """Test debits count negative and credits positive."""
        account_id = uuid4()
        assert make_tx(account_id, 1, "100").signed_amount == Decimal("-100")
        assert make_tx(
            account_id, 2, "100", direction=Direction.CREDIT
        ).signed_amount == Decimal("100")
    
    def test_transaction_to_dict(self):
        """Test the boundary shape of a transaction."""
        tx = make_tx(uuid4(), 3, "1500")
        data = tx.to_dict()
        assert data["date"] == "2024-05-03"
        assert data["amount"] == 1500.0
        assert data["direction"] == "debit"
        assert data["category"] == "Food"
    
    def test_snapshot_must_match_version(self):
        """Test a snapshot can't mix history from another commit point."""
        account = Account(display_name="Asha", balance=Decimal("100"), version=2)
        with pytest.raises(ValueError, match="version"):
            LedgerSnapshot(
                account=account,
                transactions=(make_tx(account.id, 1, "100", Direction.CREDIT),),
            )
    
    def test_snapshot_to_response(self):
        """Test the snapshot boundary shape."""
        account = Account(display_name="Asha", balance=Decimal("100"), version=1)
        snapshot = LedgerSnapshot(
            account=account,
            transactions=(make_tx(account.id, 1, "100", Direction.CREDIT),),
        )
        response = snapshot.to_response()
        assert response["balance"] == 100.0
        assert len(response["transactions"]) == 1


class TestLedgerOutcome:
    """Tests for the deposit/expense response model."""
    
    def test_success_shape(self):
        """Test a successful outcome exposes newBalance and transaction."""
        tx = make_tx(uuid4(), 1, "100", Direction.CREDIT)
        outcome = LedgerOutcome(success=True, new_balance=Decimal("100"), transaction=tx)
        response = outcome.to_response()
        assert response["newBalance"] == 100.0
        assert response["transaction"]["id"] == str(tx.id)
    
    def test_failure_shape(self):
        """Test a failed outcome exposes only the error kind."""
        outcome = LedgerOutcome(
            success=False,
            error_kind=ErrorKind.INSUFFICIENT_FUNDS,
            message="Insufficient balance",
        )
        assert outcome.to_response() == {
            "errorKind": "InsufficientFunds",
            "message": "Insufficient balance",
        }
    
    def test_failure_requires_error_kind(self):
        """Test a failure without an error kind is rejected."""
        with pytest.raises(ValueError, match="error_kind"):
            LedgerOutcome(success=False)
    
    def test_success_requires_transaction(self):
        """Test a success without a transaction is rejected."""
        with pytest.raises(ValueError, match="new_balance and transaction"):
            LedgerOutcome(success=True, new_balance=Decimal("1"))


class TestCategories:
    """Tests for the transaction category enum."""
    
    def test_all_categories_exist(self):
        """Test that expected categories exist."""
        expected = [
            "Food", "Transport", "Shopping", "Bills",
            "Entertainment", "Health", "General", "Income",
        ]
        for cat in expected:
            assert TransactionCategory(cat) is not None
    
    def test_expense_categories_exclude_income(self):
        """Test Income is not offered for expenses."""
        assert TransactionCategory.INCOME not in TransactionCategory.expense_categories()
        assert len(TransactionCategory.expense_categories()) == 7
    
    def test_defaults_per_direction(self):
        """Test credits default to Income and debits to General."""
        assert TransactionCategory.default_for(Direction.CREDIT) is TransactionCategory.INCOME
        assert TransactionCategory.default_for(Direction.DEBIT) is TransactionCategory.GENERAL


class TestSpendingSummary:
    """Tests for summarize_spending."""
    
    def test_totals_by_category(self):
        """Test income, expenses and the per-category split."""
        account = Account(display_name="Asha", balance=Decimal("3200"), version=4)
        history = (
            make_tx(account.id, 4, "300", category=TransactionCategory.TRANSPORT),
            make_tx(account.id, 3, "500"),
            make_tx(account.id, 2, "1000"),
            make_tx(account.id, 1, "5000", Direction.CREDIT, TransactionCategory.INCOME),
        )
        summary = summarize_spending(LedgerSnapshot(account=account, transactions=history))
        
        assert summary.income_total == Decimal("5000")
        assert summary.expense_total == Decimal("1800")
        assert summary.net == Decimal("3200")
        assert summary.expenses_by_category == {
            "Transport": Decimal("300"),
            "Food": Decimal("1500"),
        }


class TestAdviceModels:
    """Tests for forecast and chat models."""
    
    def test_forecast_point_rejects_negative_balance(self):
        """Test projected balances are never negative."""
        with pytest.raises(ValueError):
            ForecastPoint(month="Jan", balance=-1)
    
    def test_forecast_point_month_is_three_letters(self):
        """Test month labels are abbreviations."""
        with pytest.raises(ValueError):
            ForecastPoint(month="January", balance=1)
    
    def test_forecast_report_response_shape(self):
        """Test the forecast boundary shape hides internal fields."""
        report = ForecastReport(
            analysis="a",
            tip="t",
            prediction="p",
            forecast=[ForecastPoint(month="Jan", balance=1050)],
            growth_rate=0.05,
        )
        assert report.to_response() == {
            "analysis": "a",
            "tip": "t",
            "prediction": "p",
            "forecast": [{"month": "Jan", "balance": 1050}],
        }
    
    def test_chat_reply_to_turn(self):
        """Test a reply becomes an assistant turn."""
        turn = ChatReply(reply="Hello").to_turn()
        assert turn.role is ChatRole.ASSISTANT
        assert turn.content == "Hello"


class TestAuditModels:
    """Tests for audit-related models."""
    
    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ACCOUNT_OPENED,
            description="Account opened",
        )
        assert event.event_type == AuditEventType.ACCOUNT_OPENED
        assert event.severity == AuditSeverity.INFO
    
    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.DEPOSIT_RECORDED,
            description="Deposit recorded",
            details={"amount": "5000"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "deposit_recorded"
        assert log_dict["details"]["amount"] == "5000"
    
    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            description="Expense recorded",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "expense_recorded"  # event_type
        assert row[10] == "True"  # is_user_action
    
    def test_audit_event_builder_mutation_rejected(self):
        """Test AuditEventBuilder.mutation_rejected."""
        account_id = uuid4()
        correlation_id = uuid4()
        
        event = AuditEventBuilder.mutation_rejected(
            account_id=account_id,
            operation="debit",
            error_kind="InsufficientFunds",
            error_message="Insufficient balance",
            correlation_id=correlation_id,
        )
        
        assert event.event_type == AuditEventType.MUTATION_REJECTED
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == account_id
        assert event.error_code == "InsufficientFunds"
        assert event.is_user_action is True
    
    def test_audit_event_builder_forecast_fallback(self):
        """Test AuditEventBuilder.forecast_fallback."""
        account_id = uuid4()
        
        event = AuditEventBuilder.forecast_fallback(
            account_id=account_id,
            reason="timeout",
            correlation_id=uuid4(),
        )
        
        assert event.event_type == AuditEventType.FORECAST_FALLBACK
        assert event.entity_id == account_id


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
