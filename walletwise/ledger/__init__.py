"""Ledger package: the balance + transaction log and its error taxonomy."""

from walletwise.ledger.errors import (
    AccountNotFoundError,
    CommitConflictError,
    InsufficientFundsError,
    InvalidAmountError,
    LedgerError,
)
from walletwise.ledger.store import (
    DEPOSIT_LABEL,
    EXPENSE_LABEL,
    LedgerStore,
    MAX_LABEL_LENGTH,
    clean_label,
    parse_amount,
    resolve_category,
)

__all__ = [
    "AccountNotFoundError",
    "CommitConflictError",
    "InsufficientFundsError",
    "InvalidAmountError",
    "LedgerError",
    "DEPOSIT_LABEL",
    "EXPENSE_LABEL",
    "LedgerStore",
    "MAX_LABEL_LENGTH",
    "clean_label",
    "parse_amount",
    "resolve_category",
]
