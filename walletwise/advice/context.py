"""
Context Assembler

Turns a ledger snapshot into the bounded, newest-first window of
records the reasoning service is allowed to see. Pure read: it never
takes the ledger lock and never mutates anything.
"""

from uuid import UUID

from walletwise.ledger import LedgerStore
from walletwise.models.advice import ContextRecord, GroundingContext
from walletwise.models.ledger import LedgerSnapshot, Transaction


def to_record(tx: Transaction) -> ContextRecord:
    return ContextRecord(
        date=tx.transaction_date,
        direction=tx.direction,
        amount=tx.amount,
        category=tx.category,
        counterparty=tx.counterparty,
    )


def context_from_snapshot(snapshot: LedgerSnapshot, window_size: int) -> GroundingContext:
    """
    Window a snapshot down to its `window_size` most recent transactions.
    
    Balance and records come from the same snapshot, so they always
    describe the same commit point.
    """
    if window_size < 0:
        raise ValueError(f"window_size must be >= 0, got {window_size}")
    
    account = snapshot.account
    own = (tx for tx in snapshot.transactions if tx.account_id == account.id)
    records = []
    for tx in own:
        if len(records) >= window_size:
            break
        records.append(to_record(tx))
    
    return GroundingContext(
        account_id=account.id,
        display_name=account.display_name,
        balance=account.balance,
        records=tuple(records),
    )


class ContextAssembler:
    """Reads the ledger once per request and windows the result."""
    
    def __init__(self, ledger: LedgerStore):
        self._ledger = ledger
    
    async def build(self, account_id: UUID, window_size: int) -> GroundingContext:
        """Balance, holder name and the windowed records for one account."""
        snapshot = await self._ledger.snapshot(account_id)
        return context_from_snapshot(snapshot, window_size)
    
    async def assemble(self, account_id: UUID, window_size: int) -> list[ContextRecord]:
        """
        The `window_size` most recent transactions, newest-first.
        
        Returns an empty list for an account with no history.
        """
        context = await self.build(account_id, window_size)
        return list(context.records)
