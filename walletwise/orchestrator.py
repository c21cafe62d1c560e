"""
Main Orchestrator for WalletWise

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger (deposit / expense / read the account)
2. Advice (forecast and grounded chat over the same ledger)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only the ledger store changes balances
- The reasoning service only ever sees a windowed snapshot
- Every mutation and every AI call is audited

Ledger errors are turned into LedgerOutcome values here, so the UI
never has to know the exception taxonomy.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog

from walletwise.advice import (
    ASSISTANT_UNAVAILABLE,
    ChatResponder,
    ContextAssembler,
    ForecastGenerator,
)
from walletwise.agents import (
    ExternalServiceError,
    GeminiReasoningAgent,
    ReasoningCollaborator,
    UnavailableCollaborator,
)
from walletwise.audit import AuditLogger, create_correlation_id
from walletwise.config import get_settings
from walletwise.ledger import (
    DEPOSIT_LABEL,
    EXPENSE_LABEL,
    LedgerError,
    LedgerStore,
)
from walletwise.models.advice import ChatReply, ForecastReport
from walletwise.models.ledger import (
    Account,
    Direction,
    LedgerOutcome,
    LedgerSnapshot,
    SpendingSummary,
    TransactionCategory,
    summarize_spending,
)
from walletwise.services.storage import (
    AccountStorageInterface,
    GoogleSheetsAccountStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    InMemoryAccountStorage,
    StorageError,
)


logger = structlog.get_logger(__name__)

SERVICE_FAILURES = (
    ExternalServiceError.TIMEOUT,
    ExternalServiceError.UNAVAILABLE,
    ExternalServiceError.MALFORMED,
)


class LedgerFlow:
    """
    Orchestrates reads and writes against the ledger.
    
    record_expense() and record_deposit() never raise for ledger
    errors; they return a failed LedgerOutcome with an error_kind.
    """
    
    def __init__(
        self,
        ledger: LedgerStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._audit_logger = audit_logger
    
    @property
    def ledger(self) -> LedgerStore:
        return self._ledger
    
    async def open_account(self, display_name: str) -> Account:
        return await self._ledger.open_account(display_name)
    
    async def list_accounts(self) -> list[Account]:
        return await self._ledger.list_accounts()
    
    async def get_snapshot(self, account_id: UUID) -> LedgerSnapshot:
        """Balance and newest-first history. Raises AccountNotFoundError."""
        return await self._ledger.snapshot(account_id)
    
    async def get_spending_summary(self, account_id: UUID) -> SpendingSummary:
        return summarize_spending(await self._ledger.snapshot(account_id))
    
    async def record_expense(
        self,
        account_id: UUID,
        amount: Union[Decimal, int, float, str],
        counterparty: str = EXPENSE_LABEL,
        category: Optional[Union[TransactionCategory, str]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerOutcome:
        """Debit the account. Fails with InsufficientFunds rather than going negative."""
        correlation_id = correlation_id or create_correlation_id()
        
        try:
            receipt = await self._ledger.debit(account_id, amount, counterparty, category)
        except LedgerError as e:
            return await self._rejected(account_id, Direction.DEBIT, e, correlation_id)
        except StorageError as e:
            await self._storage_failed(account_id, Direction.DEBIT, e, correlation_id)
            raise
        
        if self._audit_logger:
            await self._audit_logger.log_expense_recorded(
                account_id=account_id,
                transaction_id=receipt.transaction.id,
                counterparty=receipt.transaction.counterparty,
                amount=str(receipt.transaction.amount),
                category=receipt.transaction.category.value,
                new_balance=str(receipt.new_balance),
                correlation_id=correlation_id,
            )
        
        return LedgerOutcome(
            success=True,
            new_balance=receipt.new_balance,
            transaction=receipt.transaction,
        )
    
    async def record_deposit(
        self,
        account_id: UUID,
        amount: Optional[Union[Decimal, int, float, str]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerOutcome:
        """Credit the account; amount defaults to the configured quick-deposit amount."""
        correlation_id = correlation_id or create_correlation_id()
        if amount is None:
            amount = get_settings().app.deposit_amount
        
        try:
            receipt = await self._ledger.credit(account_id, amount, DEPOSIT_LABEL)
        except LedgerError as e:
            return await self._rejected(account_id, Direction.CREDIT, e, correlation_id)
        except StorageError as e:
            await self._storage_failed(account_id, Direction.CREDIT, e, correlation_id)
            raise
        
        if self._audit_logger:
            await self._audit_logger.log_deposit_recorded(
                account_id=account_id,
                transaction_id=receipt.transaction.id,
                amount=str(receipt.transaction.amount),
                new_balance=str(receipt.new_balance),
                correlation_id=correlation_id,
            )
        
        return LedgerOutcome(
            success=True,
            new_balance=receipt.new_balance,
            transaction=receipt.transaction,
        )
    
    async def _storage_failed(
        self,
        account_id: UUID,
        direction: Direction,
        error: StorageError,
        correlation_id: UUID,
    ) -> None:
        logger.error(
            "ledger_storage_failed",
            account_id=str(account_id),
            direction=direction.value,
            error=str(error),
        )
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"account_id": str(account_id), "operation": direction.value},
                correlation_id=correlation_id,
            )
    
    async def _rejected(
        self,
        account_id: UUID,
        direction: Direction,
        error: LedgerError,
        correlation_id: UUID,
    ) -> LedgerOutcome:
        logger.info(
            "ledger_mutation_rejected",
            account_id=str(account_id),
            direction=direction.value,
            error_kind=error.kind.value,
        )
        if self._audit_logger:
            await self._audit_logger.log_mutation_rejected(
                account_id=account_id,
                operation=direction.value,
                error_kind=error.kind.value,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        return LedgerOutcome(
            success=False,
            error_kind=error.kind,
            message=str(error),
        )


class AdviceFlow:
    """
    Orchestrates the AI-grounded views.
    
    CRITICAL BOUNDARIES:
    1. Ledger -> snapshot (one read per request)
    2. Snapshot -> windowed GroundingContext
    3. Context -> reasoning service (bounded by a timeout)
    4. Reply -> forecast (parsed, with a flat fallback) or chat text (relayed)
    
    The reasoning service never touches the ledger.
    """
    
    def __init__(
        self,
        ledger: LedgerStore,
        collaborator: ReasoningCollaborator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        assembler = ContextAssembler(ledger)
        self._forecaster = ForecastGenerator(assembler, collaborator)
        self._responder = ChatResponder(assembler, collaborator)
        self._audit_logger = audit_logger
    
    async def generate_forecast(
        self,
        account_id: UUID,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ForecastReport:
        """Always returns a report for an existing account; AI failure means a flat one."""
        correlation_id = correlation_id or create_correlation_id()
        report = await self._forecaster.generate(account_id, today)
        
        if self._audit_logger:
            if report.fallback_used:
                await self._audit_logger.log_forecast_fallback(
                    account_id=account_id,
                    reason=report.fallback_reason or "unknown",
                    correlation_id=correlation_id,
                )
                if report.fallback_reason in SERVICE_FAILURES:
                    await self._audit_logger.log_external_service_error(
                        service="reasoning",
                        error_message=f"Forecast call failed: {report.fallback_reason}",
                        correlation_id=correlation_id,
                    )
            else:
                await self._audit_logger.log_forecast_generated(
                    account_id=account_id,
                    growth_rate=report.growth_rate,
                    periods=len(report.forecast),
                    correlation_id=correlation_id,
                )
        
        return report
    
    async def chat_turn(
        self,
        account_id: UUID,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> ChatReply:
        """
        Answer one chat message.
        
        A reasoning failure comes back as an unavailable reply instead
        of an exception. AccountNotFoundError and ValueError (blank
        message) propagate.
        """
        correlation_id = correlation_id or create_correlation_id()
        
        try:
            reply = await self._responder.respond(account_id, message)
        except ExternalServiceError as e:
            logger.warning(
                "chat_unavailable",
                account_id=str(account_id),
                reason=e.reason,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_chat_unavailable(
                    account_id=account_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                await self._audit_logger.log_external_service_error(
                    service="reasoning",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return ChatReply(reply=ASSISTANT_UNAVAILABLE, available=False)
        
        if self._audit_logger:
            await self._audit_logger.log_chat_answered(
                account_id=account_id,
                context_size=self._responder.window_size,
                correlation_id=correlation_id,
            )
        
        return ChatReply(reply=reply)


def create_collaborator() -> ReasoningCollaborator:
    """Gemini when an API key is configured, otherwise an always-unavailable stand-in."""
    try:
        return GeminiReasoningAgent()
    except Exception as e:
        logger.warning("reasoning_not_configured", error=str(e))
        return UnavailableCollaborator(f"Reasoning service is not configured: {e}")


def create_app_components(
    use_storage: bool = True,
    storage: Optional[AccountStorageInterface] = None,
    collaborator: Optional[ReasoningCollaborator] = None,
) -> tuple[LedgerFlow, AdviceFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.
    
    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.
        storage: Explicit account storage; overrides use_storage.
        collaborator: Explicit reasoning collaborator.
                    
    Returns:
        (ledger_flow, advice_flow, sheets_client)
    """
    sheets_client = None
    audit_logger = None
    
    if storage is None and use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsAccountStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = None
    
    if storage is None:
        storage = InMemoryAccountStorage()
    if audit_logger is None:
        audit_logger = AuditLogger()  # Local-only logging
    
    ledger = LedgerStore(storage, audit_logger=audit_logger)
    collaborator = collaborator or create_collaborator()
    
    ledger_flow = LedgerFlow(ledger, audit_logger=audit_logger)
    advice_flow = AdviceFlow(ledger, collaborator, audit_logger=audit_logger)
    
    return ledger_flow, advice_flow, sheets_client
