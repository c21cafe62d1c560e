"""
Ledger error taxonomy.

Validation errors (InvalidAmount, InsufficientFunds, AccountNotFound)
are terminal: retrying them cannot change the outcome. CommitConflict
is only raised after the bounded internal retries ran out.
"""

from decimal import Decimal
from uuid import UUID

from walletwise.models.ledger import ErrorKind


class LedgerError(Exception):
    """Base exception for ledger operations."""
    
    kind: ErrorKind


class InvalidAmountError(LedgerError):
    """Amount is non-numeric, non-finite, or not greater than zero."""
    
    kind = ErrorKind.INVALID_AMOUNT


class InsufficientFundsError(LedgerError):
    """A debit would take the balance below zero."""
    
    kind = ErrorKind.INSUFFICIENT_FUNDS
    
    def __init__(self, account_id: UUID, balance: Decimal, amount: Decimal):
        self.account_id = account_id
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance: {balance} available, {amount} requested"
        )


class AccountNotFoundError(LedgerError):
    """No account with this ID."""
    
    kind = ErrorKind.ACCOUNT_NOT_FOUND
    
    def __init__(self, account_id: UUID):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class CommitConflictError(LedgerError):
    """Concurrent writers kept winning until retries were exhausted."""
    
    kind = ErrorKind.CONCURRENCY_CONFLICT
    
    def __init__(self, account_id: UUID, attempts: int):
        self.account_id = account_id
        self.attempts = attempts
        super().__init__(
            f"Could not commit to account {account_id} after {attempts} attempts"
        )
