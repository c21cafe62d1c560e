"""
Audit Models for WalletWise

Every ledger mutation and every call to the reasoning service is
recorded. This provides:
1. Complete traceability of balance changes
2. Debugging information when AI calls fail or degrade
3. Ability to reconstruct what the user was shown

Audit logs are append-only. They are never deleted or modified.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from walletwise.models.ledger import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_OPENED = "account_opened"
    
    # Ledger mutations
    DEPOSIT_RECORDED = "deposit_recorded"
    EXPENSE_RECORDED = "expense_recorded"
    MUTATION_REJECTED = "mutation_rejected"
    COMMIT_CONFLICT = "commit_conflict"
    
    # AI views
    FORECAST_GENERATED = "forecast_generated"
    FORECAST_FALLBACK = "forecast_fallback"
    CHAT_ANSWERED = "chat_answered"
    CHAT_UNAVAILABLE = "chat_unavailable"
    
    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.
    
    Every significant action creates one of these.
    """
    
    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )
    
    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO
    
    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'transaction', 'forecast')"
    )
    entity_id: Optional[UUID] = None
    
    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one expense submission)"
    )
    
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    
    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )
    
    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }
    
    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.
        
        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.
    
    Usage:
        event = AuditEventBuilder.expense_recorded(account_id, tx_id, ...)
        event = AuditEventBuilder.forecast_fallback(account_id, reason, ...)
    """
    
    @staticmethod
    def account_opened(
        account_id: UUID,
        display_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_OPENED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account opened for {display_name}",
            details={"display_name": display_name},
            is_user_action=True,
        )
    
    @staticmethod
    def deposit_recorded(
        account_id: UUID,
        transaction_id: UUID,
        amount: str,
        new_balance: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEPOSIT_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Deposit of {amount} recorded",
            details={
                "account_id": str(account_id),
                "amount": amount,
                "new_balance": new_balance,
            },
            is_user_action=True,
        )
    
    @staticmethod
    def expense_recorded(
        account_id: UUID,
        transaction_id: UUID,
        counterparty: str,
        amount: str,
        category: str,
        new_balance: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Expense recorded: {counterparty} - {amount}",
            details={
                "account_id": str(account_id),
                "counterparty": counterparty,
                "amount": amount,
                "category": category,
                "new_balance": new_balance,
            },
            is_user_action=True,
        )
    
    @staticmethod
    def mutation_rejected(
        account_id: UUID,
        operation: str,
        error_kind: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"{operation.capitalize()} rejected: {error_kind}",
            details={"operation": operation},
            error_code=error_kind,
            error_message=error_message,
            is_user_action=True,
        )
    
    @staticmethod
    def commit_conflict(
        account_id: UUID,
        attempt: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMIT_CONFLICT,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Version conflict on commit (attempt {attempt})",
            details={"attempt": attempt},
        )
    
    @staticmethod
    def forecast_generated(
        account_id: UUID,
        growth_rate: float,
        periods: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_GENERATED,
            entity_type="forecast",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Forecast generated at {growth_rate:+.2%} per month",
            details={"growth_rate": growth_rate, "periods": periods},
        )
    
    @staticmethod
    def forecast_fallback(
        account_id: UUID,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type="forecast",
            entity_id=account_id,
            correlation_id=correlation_id,
            description="Forecast used a flat growth rate",
            details={"reason": reason},
        )
    
    @staticmethod
    def chat_answered(
        account_id: UUID,
        context_size: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAT_ANSWERED,
            entity_type="chat",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Chat answered from {context_size} transactions",
            details={"context_size": context_size},
            is_user_action=True,
        )
    
    @staticmethod
    def chat_unavailable(
        account_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAT_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            entity_type="chat",
            entity_id=account_id,
            correlation_id=correlation_id,
            description="Chat assistant unavailable",
            error_message=error_message,
        )
    
    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
    
    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
