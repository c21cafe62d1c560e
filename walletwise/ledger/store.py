"""
Ledger Store

The only code path that changes an account's balance.

INVARIANTS:
1. balance == sum(credits) - sum(debits) over every committed transaction
2. balance never goes negative; a debit that would break this changes nothing
3. a snapshot is always taken at a single commit point

CONCURRENCY:
- Inside one process, a per-account asyncio.Lock makes
  check-balance -> compute -> commit one critical section.
  Different accounts have different locks and never wait on each other.
- Across processes, storage.commit() compares the account version the
  decision was based on. A mismatch is retried from a fresh read a
  bounded number of times before surfacing as CommitConflictError.
- Reads never take the lock; storage guarantees snapshot consistency.
"""

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from uuid import UUID

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from walletwise.audit import AuditLogger
from walletwise.config import get_settings
from walletwise.ledger.errors import (
    AccountNotFoundError,
    CommitConflictError,
    InsufficientFundsError,
    InvalidAmountError,
)
from walletwise.models.ledger import (
    Account,
    Direction,
    LedgerReceipt,
    LedgerSnapshot,
    Transaction,
    TransactionCategory,
    utcnow,
)
from walletwise.services.storage import (
    AccountStorageInterface,
    ConcurrencyConflictError,
    NotFoundError,
)


logger = structlog.get_logger(__name__)

AmountInput = Union[Decimal, int, float, str]

DEPOSIT_LABEL = "Deposit"
EXPENSE_LABEL = "Expense"

# Matches the max_length of Account.display_name and Transaction.counterparty
MAX_LABEL_LENGTH = 200


def clean_label(value: Optional[str], default: Optional[str] = None) -> str:
    """
    Strip a free-text label and cut it to MAX_LABEL_LENGTH.
    
    A blank label falls back to `default`; with no default it raises
    ValueError.
    """
    label = (value or "").strip()[:MAX_LABEL_LENGTH].rstrip()
    if label:
        return label
    if default is None:
        raise ValueError("Label must not be empty")
    return default


def parse_amount(value: AmountInput) -> Decimal:
    """
    Turn caller input into a positive Decimal.
    
    Raises InvalidAmountError for booleans, non-numeric strings,
    NaN/Infinity, zero and negatives.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Amount must be a number, got {value!r}")
    
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, int):
            amount = Decimal(value)
        elif isinstance(value, float):
            # Via str so 0.1 stays 0.1
            amount = Decimal(str(value))
        elif isinstance(value, str):
            amount = Decimal(value.strip())
        else:
            raise InvalidAmountError(f"Amount must be a number, got {value!r}")
    except InvalidOperation:
        raise InvalidAmountError(f"Amount must be a number, got {value!r}")
    
    if not amount.is_finite():
        raise InvalidAmountError(f"Amount must be finite, got {value!r}")
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {value!r}")
    
    return amount


def resolve_category(
    category: Optional[Union[TransactionCategory, str]],
    direction: Direction,
) -> TransactionCategory:
    """Map a caller-supplied category, falling back to the direction's default."""
    if category is None or category == "":
        return TransactionCategory.default_for(direction)
    if isinstance(category, TransactionCategory):
        return category
    try:
        return TransactionCategory(category)
    except ValueError:
        # Accept case-insensitive names from forms and the API
        for candidate in TransactionCategory:
            if candidate.value.lower() == str(category).strip().lower():
                return candidate
        return TransactionCategory.default_for(direction)


class LedgerStore:
    """
    Owns balance + transaction history for every account in a storage backend.
    
    All mutations go through credit() and debit(); both return the new
    balance together with the appended transaction.
    """
    
    def __init__(
        self,
        storage: AccountStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        retry_attempts: Optional[int] = None,
        retry_wait_multiplier: float = 0.05,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._retry_attempts = (
            retry_attempts
            if retry_attempts is not None
            else get_settings().app.commit_retry_attempts
        )
        self._retry_wait_multiplier = retry_wait_multiplier
        self._locks: dict[UUID, asyncio.Lock] = {}
    
    def _lock_for(self, account_id: UUID) -> asyncio.Lock:
        # setdefault is atomic with respect to the event loop
        return self._locks.setdefault(account_id, asyncio.Lock())
    
    def _forget_lock(self, account_id: UUID, lock: asyncio.Lock) -> None:
        # Unknown ids must not pile up; waiters already hold their reference
        if self._locks.get(account_id) is lock:
            del self._locks[account_id]
    
    async def open_account(self, display_name: str) -> Account:
        """
        Create an account with a zero balance.
        
        Long names are cut to MAX_LABEL_LENGTH; a blank name raises ValueError.
        """
        account = Account(display_name=clean_label(display_name))
        created = await self._storage.create_account(account)
        if self._audit_logger:
            await self._audit_logger.log_account_opened(
                account_id=created.id,
                display_name=created.display_name,
            )
        return created
    
    async def list_accounts(self) -> list[Account]:
        return await self._storage.list_accounts()
    
    async def snapshot(self, account_id: UUID) -> LedgerSnapshot:
        """Current balance and full history (newest-first) from one commit point."""
        try:
            return await self._storage.load_snapshot(account_id)
        except NotFoundError:
            raise AccountNotFoundError(account_id)
    
    async def credit(
        self,
        account_id: UUID,
        amount: AmountInput,
        label: str = DEPOSIT_LABEL,
        category: Optional[Union[TransactionCategory, str]] = None,
    ) -> LedgerReceipt:
        """Increase the balance by `amount` and append a credit."""
        return await self._apply(account_id, Direction.CREDIT, amount, label, category)
    
    async def debit(
        self,
        account_id: UUID,
        amount: AmountInput,
        label: str = EXPENSE_LABEL,
        category: Optional[Union[TransactionCategory, str]] = None,
    ) -> LedgerReceipt:
        """
        Decrease the balance by `amount` and append a debit.
        
        Raises InsufficientFundsError, leaving state untouched, when the
        balance is smaller than `amount`.
        """
        return await self._apply(account_id, Direction.DEBIT, amount, label, category)
    
    async def _apply(
        self,
        account_id: UUID,
        direction: Direction,
        amount: AmountInput,
        label: str,
        category: Optional[Union[TransactionCategory, str]],
    ) -> LedgerReceipt:
        # Validate before touching any state
        value = parse_amount(amount)
        resolved = resolve_category(category, direction)
        counterparty = clean_label(
            label,
            DEPOSIT_LABEL if direction is Direction.CREDIT else EXPENSE_LABEL,
        )
        
        lock = self._lock_for(account_id)
        async with lock:
            try:
                async for attempt in AsyncRetrying(
                    retry=retry_if_exception_type(ConcurrencyConflictError),
                    stop=stop_after_attempt(self._retry_attempts),
                    wait=wait_exponential(
                        multiplier=self._retry_wait_multiplier, max=1
                    ),
                    reraise=True,
                ):
                    with attempt:
                        receipt = await self._commit_once(
                            account_id,
                            direction,
                            value,
                            counterparty,
                            resolved,
                            attempt.retry_state.attempt_number,
                        )
            except ConcurrencyConflictError:
                raise CommitConflictError(account_id, self._retry_attempts)
            except NotFoundError:
                self._forget_lock(account_id, lock)
                raise AccountNotFoundError(account_id)
        
        logger.debug(
            "ledger_committed",
            account_id=str(account_id),
            direction=direction.value,
            amount=str(value),
            new_balance=str(receipt.new_balance),
        )
        return receipt
    
    async def _commit_once(
        self,
        account_id: UUID,
        direction: Direction,
        amount: Decimal,
        counterparty: str,
        category: TransactionCategory,
        attempt_number: int,
    ) -> LedgerReceipt:
        """One read-check-commit round against storage."""
        account = await self._storage.get_account(account_id)
        
        if direction is Direction.DEBIT:
            if account.balance < amount:
                raise InsufficientFundsError(account_id, account.balance, amount)
            new_balance = account.balance - amount
        else:
            new_balance = account.balance + amount
        
        now = utcnow()
        transaction = Transaction(
            account_id=account_id,
            counterparty=counterparty,
            amount=amount,
            direction=direction,
            category=category,
            transaction_date=now.date(),
            created_at=now,
            sequence=account.version + 1,
        )
        
        try:
            updated = await self._storage.commit(
                account_id,
                expected_version=account.version,
                new_balance=new_balance,
                transaction=transaction,
            )
        except ConcurrencyConflictError as e:
            logger.warning(
                "ledger_commit_conflict",
                account_id=str(account_id),
                attempt=attempt_number,
                expected=e.expected,
                actual=e.actual,
            )
            if self._audit_logger:
                await self._audit_logger.log_commit_conflict(
                    account_id=account_id,
                    attempt=attempt_number,
                )
            raise
        
        return LedgerReceipt(new_balance=updated.balance, transaction=transaction)
