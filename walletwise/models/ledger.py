"""
Core Ledger Models for WalletWise

These models define the strict schemas for the account and its
transaction log. They are designed to:
1. Enforce type safety at runtime
2. Keep transactions immutable once created
3. Be serializable for storage, logging and the UI

Amounts are Decimal throughout; nothing in the ledger path touches floats.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Direction(str, Enum):
    """Whether a transaction adds to or takes from the balance."""
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionCategory(str, Enum):
    """
    Supported transaction categories.
    
    Debits default to GENERAL, credits to INCOME.
    """
    FOOD = "Food"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    BILLS = "Bills"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    GENERAL = "General"
    INCOME = "Income"
    
    @classmethod
    def expense_categories(cls) -> list["TransactionCategory"]:
        """Categories offered for expenses (everything except INCOME)."""
        return [cat for cat in cls if cat is not cls.INCOME]
    
    @classmethod
    def default_for(cls, direction: Direction) -> "TransactionCategory":
        return cls.INCOME if direction is Direction.CREDIT else cls.GENERAL


class ErrorKind(str, Enum):
    """Failure kinds reported across the request boundary."""
    INVALID_AMOUNT = "InvalidAmount"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    CONCURRENCY_CONFLICT = "ConcurrencyConflict"
    EXTERNAL_SERVICE_ERROR = "ExternalServiceError"


# =============================================================================
# ACCOUNT & TRANSACTION
# =============================================================================

class Account(BaseModel):
    """
    One account's balance.
    
    Owned by the ledger store. `version` counts committed transactions
    and is what optimistic concurrency checks compare against.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)
    
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique account ID"
    )
    display_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Account holder's display name"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Current balance, never negative"
    )
    version: int = Field(
        default=0,
        ge=0,
        description="Number of committed transactions"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the account was opened"
    )


class Transaction(BaseModel):
    """
    A single committed credit or debit.
    
    Immutable and append-only. `sequence` is the account version
    this transaction produced, so it doubles as the commit order.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)
    
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    account_id: UUID = Field(
        ...,
        description="Owning account"
    )
    counterparty: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Who the money went to or came from"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Always positive; direction carries the sign"
    )
    direction: Direction
    category: TransactionCategory
    transaction_date: date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="Commit timestamp"
    )
    sequence: int = Field(
        ...,
        ge=1,
        description="Account version after this transaction was committed"
    )
    
    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the balance."""
        return self.amount if self.direction is Direction.CREDIT else -self.amount
    
    def to_dict(self) -> dict:
        """Plain dict for the request boundary and the UI."""
        return {
            "id": str(self.id),
            "account_id": str(self.account_id),
            "counterparty": self.counterparty,
            "amount": float(self.amount),
            "direction": self.direction.value,
            "category": self.category.value,
            "date": self.transaction_date.isoformat(),
            "created_at": self.created_at.isoformat(),
        }


# =============================================================================
# READ / WRITE RESULTS
# =============================================================================

class LedgerSnapshot(BaseModel):
    """
    Balance and history as of one commit point.
    
    Transactions are newest-first.
    """
    model_config = ConfigDict(frozen=True)
    
    account: Account
    transactions: tuple[Transaction, ...] = ()
    
    @model_validator(mode='after')
    def check_commit_point(self) -> 'LedgerSnapshot':
        """The history must be exactly the transactions behind this version."""
        if len(self.transactions) != self.account.version:
            raise ValueError(
                f"Snapshot has {len(self.transactions)} transactions "
                f"but account is at version {self.account.version}"
            )
        return self
    
    @property
    def balance(self) -> Decimal:
        return self.account.balance
    
    def oldest_first(self) -> list[Transaction]:
        """History in replay order."""
        return list(reversed(self.transactions))
    
    def to_response(self) -> dict:
        """Boundary shape: {balance, transactions}."""
        return {
            "balance": float(self.account.balance),
            "transactions": [tx.to_dict() for tx in self.transactions],
        }


class LedgerReceipt(BaseModel):
    """Result of a successful credit or debit."""
    model_config = ConfigDict(frozen=True)
    
    new_balance: Decimal
    transaction: Transaction


class LedgerOutcome(BaseModel):
    """
    Boundary response for a deposit or expense request.
    
    Either (new_balance, transaction) or error_kind is set, never both.
    """
    
    success: bool
    new_balance: Optional[Decimal] = None
    transaction: Optional[Transaction] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    
    @model_validator(mode='after')
    def check_shape(self) -> 'LedgerOutcome':
        if self.success and (self.new_balance is None or self.transaction is None):
            raise ValueError("Successful outcome needs new_balance and transaction")
        if not self.success and self.error_kind is None:
            raise ValueError("Failed outcome needs an error_kind")
        return self
    
    def to_response(self) -> dict:
        if self.success:
            return {
                "newBalance": float(self.new_balance),
                "transaction": self.transaction.to_dict(),
            }
        return {"errorKind": self.error_kind.value, "message": self.message}


class SpendingSummary(BaseModel):
    """Income, expense and per-category spend for one snapshot."""
    
    income_total: Decimal = Decimal("0")
    expense_total: Decimal = Decimal("0")
    expenses_by_category: dict[str, Decimal] = Field(default_factory=dict)
    
    @property
    def net(self) -> Decimal:
        return self.income_total - self.expense_total


def summarize_spending(snapshot: LedgerSnapshot) -> SpendingSummary:
    """Aggregate a snapshot into income, expense and category totals."""
    summary = SpendingSummary()
    by_category: dict[str, Decimal] = {}
    
    for tx in snapshot.transactions:
        if tx.direction is Direction.CREDIT:
            summary.income_total += tx.amount
        else:
            summary.expense_total += tx.amount
            key = tx.category.value
            by_category[key] = by_category.get(key, Decimal("0")) + tx.amount
    
    summary.expenses_by_category = by_category
    return summary
