"""
Google Sheets Storage Implementation

Google Sheets is the durable backend because:
1. The account holder can view their own ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions. A commit appends the transaction row first and
  only then moves the account row to the new version, so readers
  that filter by `sequence <= version` never see a half-applied
  commit. If the account update fails, the appended row is removed.
- Two processes racing on the same account are caught by re-reading
  the version right before the account row is written; the window
  between that read and the write is not closed.
- Limited query capabilities (we filter in Python)

gspread is synchronous, so every call runs in a worker thread to keep
the event loop (and other accounts' requests) moving.
"""

import asyncio
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import retry, stop_after_attempt, wait_exponential

from walletwise.config import get_settings
from walletwise.models.audit import AuditEvent, AuditEventType, AuditSeverity
from walletwise.models.ledger import (
    Account,
    Direction,
    LedgerSnapshot,
    Transaction,
    TransactionCategory,
)
from walletwise.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    ConcurrencyConflictError,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)


# Column mappings for Accounts sheet
ACCOUNT_COLUMNS = [
    "id",
    "display_name",
    "balance",
    "version",
    "created_at",
]

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "account_id",
    "sequence",
    "counterparty",
    "amount",
    "direction",
    "category",
    "transaction_date",
    "created_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.
    
    Handles authentication and provides retry logic for API calls.
    """
    
    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.
        
        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")
        
        return self._client
    
    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet
    
    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet
    
    def get_accounts_sheet(self) -> gspread.Worksheet:
        """Get or create the Accounts worksheet."""
        return self._get_or_create_sheet(
            self._settings.accounts_sheet_name, ACCOUNT_COLUMNS, rows=100
        )
    
    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
        )
    
    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _safe_getter(row: list):
    """Index into a row, tolerating short rows and blank cells."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsAccountStorage(AccountStorageInterface):
    """
    Google Sheets implementation of account storage.
    
    One row per account in the Accounts sheet; one row per
    transaction in the Transactions sheet.
    """
    
    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
    
    # -- row conversion ------------------------------------------------------
    
    def _account_to_row(self, account: Account) -> list:
        return [
            str(account.id),
            account.display_name,
            str(account.balance),
            str(account.version),
            account.created_at.isoformat(),
        ]
    
    def _row_to_account(self, row: list) -> Account:
        safe_get = _safe_getter(row)
        return Account(
            id=UUID(safe_get(0)),
            display_name=safe_get(1),
            balance=Decimal(safe_get(2, "0")),
            version=int(safe_get(3, "0")),
            created_at=datetime.fromisoformat(safe_get(4)),
        )
    
    def _transaction_to_row(self, tx: Transaction) -> list:
        return [
            str(tx.id),
            str(tx.account_id),
            str(tx.sequence),
            tx.counterparty,
            str(tx.amount),
            tx.direction.value,
            tx.category.value,
            tx.transaction_date.isoformat(),
            tx.created_at.isoformat(),
        ]
    
    def _row_to_transaction(self, row: list) -> Transaction:
        safe_get = _safe_getter(row)
        return Transaction(
            id=UUID(safe_get(0)),
            account_id=UUID(safe_get(1)),
            sequence=int(safe_get(2)),
            counterparty=safe_get(3),
            amount=Decimal(safe_get(4)),
            direction=Direction(safe_get(5)),
            category=TransactionCategory(safe_get(6)),
            transaction_date=date.fromisoformat(safe_get(7)),
            created_at=datetime.fromisoformat(safe_get(8)),
        )
    
    # -- sheet access --------------------------------------------------------
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _read_rows(self, sheet: gspread.Worksheet) -> list[list]:
        """All data rows (header excluded)."""
        return sheet.get_all_values()[1:]
    
    def _find_account_row(
        self,
        sheet: gspread.Worksheet,
        account_id: UUID,
    ) -> tuple[int, Account]:
        """Return (sheet row number, account). Row 1 is the header."""
        for idx, row in enumerate(self._read_rows(sheet), start=2):
            if row and row[0] == str(account_id):
                return idx, self._row_to_account(row)
        raise NotFoundError(f"Account not found: {account_id}")
    
    def _delete_transaction_row(
        self,
        sheet: gspread.Worksheet,
        transaction_id: UUID,
    ) -> None:
        for idx, row in enumerate(self._read_rows(sheet), start=2):
            if row and row[0] == str(transaction_id):
                sheet.delete_rows(idx)
                return
    
    # -- sync bodies (run in a worker thread) --------------------------------
    
    def _create_account_sync(self, account: Account) -> Account:
        sheet = self._client.get_accounts_sheet()
        try:
            self._find_account_row(sheet, account.id)
        except NotFoundError:
            sheet.append_row(self._account_to_row(account), value_input_option="RAW")
            return account
        raise DuplicateError(f"Account already exists: {account.id}")
    
    def _get_account_sync(self, account_id: UUID) -> Account:
        sheet = self._client.get_accounts_sheet()
        _, account = self._find_account_row(sheet, account_id)
        return account
    
    def _list_accounts_sync(self) -> list[Account]:
        sheet = self._client.get_accounts_sheet()
        return [self._row_to_account(row) for row in self._read_rows(sheet) if row and row[0]]
    
    def _load_snapshot_sync(self, account_id: UUID) -> LedgerSnapshot:
        # Account first: its version decides which transaction rows count
        account = self._get_account_sync(account_id)
        
        by_sequence: dict[int, Transaction] = {}
        for row in self._read_rows(self._client.get_transactions_sheet()):
            if not row or len(row) < 3 or row[1] != str(account_id):
                continue
            tx = self._row_to_transaction(row)
            if tx.sequence <= account.version:
                # Later rows win; an earlier row with the same sequence is
                # left over from a commit that never reached the account row
                by_sequence[tx.sequence] = tx
        
        history = sorted(by_sequence.values(), key=lambda t: t.sequence, reverse=True)
        return LedgerSnapshot(account=account, transactions=tuple(history))
    
    def _commit_sync(
        self,
        account_id: UUID,
        expected_version: int,
        new_balance: Decimal,
        transaction: Transaction,
    ) -> Account:
        accounts = self._client.get_accounts_sheet()
        transactions = self._client.get_transactions_sheet()
        
        _, current = self._find_account_row(accounts, account_id)
        if current.version != expected_version:
            raise ConcurrencyConflictError(account_id, expected_version, current.version)
        
        transactions.append_row(
            self._transaction_to_row(transaction), value_input_option="RAW"
        )
        
        try:
            idx, current = self._find_account_row(accounts, account_id)
            if current.version != expected_version:
                raise ConcurrencyConflictError(
                    account_id, expected_version, current.version
                )
            updated = current.model_copy(
                update={"balance": new_balance, "version": expected_version + 1}
            )
            accounts.update(
                range_name=(
                    f"{rowcol_to_a1(idx, 1)}:{rowcol_to_a1(idx, len(ACCOUNT_COLUMNS))}"
                ),
                values=[self._account_to_row(updated)],
                value_input_option="RAW",
            )
        except Exception:
            self._delete_transaction_row(transactions, transaction.id)
            raise
        
        return updated
    
    # -- interface -----------------------------------------------------------
    
    async def create_account(self, account: Account) -> Account:
        try:
            return await asyncio.to_thread(self._create_account_sync, account)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create account: {e}")
    
    async def get_account(self, account_id: UUID) -> Account:
        try:
            return await asyncio.to_thread(self._get_account_sync, account_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get account: {e}")
    
    async def list_accounts(self) -> list[Account]:
        try:
            return await asyncio.to_thread(self._list_accounts_sync)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}")
    
    async def load_snapshot(self, account_id: UUID) -> LedgerSnapshot:
        try:
            return await asyncio.to_thread(self._load_snapshot_sync, account_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load ledger: {e}")
    
    async def commit(
        self,
        account_id: UUID,
        expected_version: int,
        new_balance: Decimal,
        transaction: Transaction,
    ) -> Account:
        try:
            return await asyncio.to_thread(
                self._commit_sync,
                account_id,
                expected_version,
                new_balance,
                transaction,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to commit transaction: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.
    
    Audit events are append-only.
    """
    
    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
    
    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )
    
    def _load_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, json.JSONDecodeError):
                    continue  # Skip malformed rows
        return events
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append_row(self, row: list) -> None:
        self._client.get_audit_sheet().append_row(row, value_input_option="RAW")
    
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await asyncio.to_thread(self._append_row, event.to_sheets_row())
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")
    
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = await asyncio.to_thread(self._load_events)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events = [e for e in events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events
    
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = await asyncio.to_thread(self._load_events)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
