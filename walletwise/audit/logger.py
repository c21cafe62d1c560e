"""
Audit Logger

Every ledger mutation and every reasoning call is logged.
The audit logger:
- Is async to not block main flow
- Gracefully handles failures (a failed audit write never fails a request)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from walletwise.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from walletwise.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.
    
    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (for persistence and user visibility)
    """
    
    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.
        
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)
    
    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.
        
        Always logs locally. Persists to storage if available.
        
        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()
        
        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)
        
        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False
        
        return True
    
    async def log_account_opened(
        self,
        account_id: UUID,
        display_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.account_opened(
            account_id=account_id,
            display_name=display_name,
            correlation_id=correlation_id,
        ))
    
    async def log_deposit_recorded(
        self,
        account_id: UUID,
        transaction_id: UUID,
        amount: str,
        new_balance: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.deposit_recorded(
            account_id=account_id,
            transaction_id=transaction_id,
            amount=amount,
            new_balance=new_balance,
            correlation_id=correlation_id,
        ))
    
    async def log_expense_recorded(
        self,
        account_id: UUID,
        transaction_id: UUID,
        counterparty: str,
        amount: str,
        category: str,
        new_balance: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_recorded(
            account_id=account_id,
            transaction_id=transaction_id,
            counterparty=counterparty,
            amount=amount,
            category=category,
            new_balance=new_balance,
            correlation_id=correlation_id,
        ))
    
    async def log_mutation_rejected(
        self,
        account_id: UUID,
        operation: str,
        error_kind: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.mutation_rejected(
            account_id=account_id,
            operation=operation,
            error_kind=error_kind,
            error_message=error_message,
            correlation_id=correlation_id,
        ))
    
    async def log_commit_conflict(
        self,
        account_id: UUID,
        attempt: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.commit_conflict(
            account_id=account_id,
            attempt=attempt,
            correlation_id=correlation_id,
        ))
    
    async def log_forecast_generated(
        self,
        account_id: UUID,
        growth_rate: float,
        periods: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.forecast_generated(
            account_id=account_id,
            growth_rate=growth_rate,
            periods=periods,
            correlation_id=correlation_id,
        ))
    
    async def log_forecast_fallback(
        self,
        account_id: UUID,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.forecast_fallback(
            account_id=account_id,
            reason=reason,
            correlation_id=correlation_id,
        ))
    
    async def log_chat_answered(
        self,
        account_id: UUID,
        context_size: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.chat_answered(
            account_id=account_id,
            context_size=context_size,
            correlation_id=correlation_id,
        ))
    
    async def log_chat_unavailable(
        self,
        account_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.chat_unavailable(
            account_id=account_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))
    
    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))
    
    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.
    
    Use this at the start of a new user action (e.g., an expense submission).
    Pass it through all subsequent operations.
    """
    return uuid4()
