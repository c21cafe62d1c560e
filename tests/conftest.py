"""
Shared fixtures and fakes.

No real API calls in tests: the reasoning service is a scripted fake
and Google Sheets is an in-memory worksheet double.
"""

import asyncio
import re
from typing import Optional

import pytest

from walletwise.agents.reasoning import ReasoningCollaborator
from walletwise.audit import AuditLogger
from walletwise.config import get_settings
from walletwise.ledger import LedgerStore
from walletwise.models.advice import GroundingContext, GrowthEstimate
from walletwise.services.storage import InMemoryAccountStorage, InMemoryAuditStorage
from walletwise.services.storage.google_sheets import (
    ACCOUNT_COLUMNS,
    AUDIT_COLUMNS,
    TRANSACTION_COLUMNS,
)


# =============================================================================
# Reasoning service fakes
# =============================================================================

class FakeCollaborator(ReasoningCollaborator):
    """Returns scripted answers and remembers every context it was shown."""
    
    def __init__(
        self,
        estimate: Optional[GrowthEstimate] = None,
        reply: str = "You spent **₹500** on Food.",
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.estimate = estimate or GrowthEstimate(
            analysis="Healthy habits.",
            tip="Cook at home.",
            prediction="Balance will grow.",
            growth_rate=0.05,
        )
        self.reply = reply
        self.error = error
        self.delay = delay
        self.contexts: list[GroundingContext] = []
        self.messages: list[str] = []
    
    async def estimate_growth(self, context: GroundingContext) -> GrowthEstimate:
        self.contexts.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.estimate
    
    async def converse(self, context: GroundingContext, message: str) -> str:
        self.contexts.append(context)
        self.messages.append(message)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


class HangingCollaborator(ReasoningCollaborator):
    """Never answers."""
    
    async def estimate_growth(self, context: GroundingContext) -> GrowthEstimate:
        await asyncio.sleep(3600)
    
    async def converse(self, context: GroundingContext, message: str) -> str:
        await asyncio.sleep(3600)


# =============================================================================
# Google Sheets fakes
# =============================================================================

_A1_ROW = re.compile(r"^[A-Z]+(\d+)")


class FakeWorksheet:
    """Implements the slice of gspread.Worksheet the storage layer uses."""
    
    def __init__(self, header: list[str]):
        self.rows: list[list[str]] = [list(header)]
        self.fail_next_update = False
    
    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]
    
    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])
    
    def update(self, range_name=None, values=None, value_input_option=None):
        if self.fail_next_update:
            self.fail_next_update = False
            raise RuntimeError("quota exceeded")
        row_number = int(_A1_ROW.match(range_name).group(1))
        self.rows[row_number - 1] = [str(v) for v in values[0]]
    
    def delete_rows(self, index, end_index=None):
        del self.rows[index - 1:(end_index or index)]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient; the sheets outlive any storage object."""
    
    def __init__(self):
        self.accounts = FakeWorksheet(ACCOUNT_COLUMNS)
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)
    
    def get_accounts_sheet(self):
        return self.accounts
    
    def get_transactions_sheet(self):
        return self.transactions
    
    def get_audit_sheet(self):
        return self.audit


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage():
    return InMemoryAccountStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def ledger(storage, audit_logger):
    return LedgerStore(storage, audit_logger=audit_logger, retry_wait_multiplier=0)


@pytest.fixture
async def account(ledger):
    return await ledger.open_account("Asha")


@pytest.fixture
def collaborator():
    return FakeCollaborator()


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()
