"""
Data Models Package

This package contains all Pydantic models used in WalletWise.
All data flowing through the system must conform to these schemas.
"""

from walletwise.models.ledger import (
    Account,
    Direction,
    ErrorKind,
    LedgerOutcome,
    LedgerReceipt,
    LedgerSnapshot,
    SpendingSummary,
    Transaction,
    TransactionCategory,
    summarize_spending,
    utcnow,
)
from walletwise.models.advice import (
    ChatReply,
    ChatRole,
    ChatTurn,
    ContextRecord,
    ForecastPoint,
    ForecastReport,
    GroundingContext,
    GrowthEstimate,
)
from walletwise.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "Direction",
    "ErrorKind",
    "LedgerOutcome",
    "LedgerReceipt",
    "LedgerSnapshot",
    "SpendingSummary",
    "Transaction",
    "TransactionCategory",
    "summarize_spending",
    "utcnow",
    # Advice models
    "ChatReply",
    "ChatRole",
    "ChatTurn",
    "ContextRecord",
    "ForecastPoint",
    "ForecastReport",
    "GroundingContext",
    "GrowthEstimate",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
