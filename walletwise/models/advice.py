"""
Models for the AI-grounded views (forecast and chat).

Everything here is ephemeral: regenerated per request or kept only
for the lifetime of a chat session. Nothing is persisted.
"""

import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from walletwise.models.ledger import Direction, TransactionCategory


class ContextRecord(BaseModel):
    """One transaction as handed to the reasoning service."""
    model_config = ConfigDict(frozen=True)
    
    date: datetime.date
    direction: Direction
    amount: Decimal
    category: TransactionCategory
    counterparty: str


class GroundingContext(BaseModel):
    """
    Everything the reasoning service is allowed to see.
    
    Balance and records come from the same ledger snapshot.
    Records are newest-first.
    """
    model_config = ConfigDict(frozen=True)
    
    account_id: UUID
    display_name: str
    balance: Decimal
    records: tuple[ContextRecord, ...] = ()


class GrowthEstimate(BaseModel):
    """
    Structured reply of a forecast reasoning call.
    
    growth_rate is None when the reply omitted it or it could not be
    used; the forecast then falls back to a flat projection.
    """
    
    analysis: str = ""
    tip: str = ""
    prediction: str = ""
    growth_rate: Optional[float] = None


class ForecastPoint(BaseModel):
    """Projected balance for one calendar month."""
    model_config = ConfigDict(frozen=True)
    
    month: str = Field(
        ...,
        min_length=3,
        max_length=3,
        description="Three-letter month label"
    )
    balance: int = Field(
        ...,
        ge=0,
        description="Projected balance in whole currency units"
    )


class ForecastReport(BaseModel):
    """Boundary response for a forecast request."""
    
    analysis: str
    tip: str
    prediction: str
    forecast: list[ForecastPoint]
    growth_rate: float = 0.0
    fallback_used: bool = False
    fallback_reason: Optional[str] = None
    
    def to_response(self) -> dict:
        return {
            "analysis": self.analysis,
            "tip": self.tip,
            "prediction": self.prediction,
            "forecast": [point.model_dump() for point in self.forecast],
        }


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One message in a session-scoped conversation."""
    model_config = ConfigDict(frozen=True)
    
    role: ChatRole
    content: str


class ChatReply(BaseModel):
    """Boundary response for a chat turn."""
    
    reply: str
    available: bool = True
    
    def to_turn(self) -> ChatTurn:
        return ChatTurn(role=ChatRole.ASSISTANT, content=self.reply)
    
    def to_response(self) -> dict:
        return {"reply": self.reply}
