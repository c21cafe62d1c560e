"""Derived views over the ledger: context windows, forecasts and chat."""

from walletwise.advice.context import (
    ContextAssembler,
    context_from_snapshot,
    to_record,
)
from walletwise.advice.forecast import (
    MONTH_LABELS,
    ForecastGenerator,
    month_labels,
    project,
)
from walletwise.advice.chat import ASSISTANT_UNAVAILABLE, ChatResponder

__all__ = [
    "ASSISTANT_UNAVAILABLE",
    "ChatResponder",
    "ContextAssembler",
    "ForecastGenerator",
    "MONTH_LABELS",
    "context_from_snapshot",
    "month_labels",
    "project",
    "to_record",
]
