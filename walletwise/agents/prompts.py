"""
Prompt construction for the reasoning service.

Two prompts, both built only from a GroundingContext:
- the forecast prompt: balance + recent trend, asks for strict JSON
- the chat grounding instruction: restricts answers to the listed records
"""

from decimal import Decimal

from walletwise.models.advice import ContextRecord, GroundingContext
from walletwise.models.ledger import Direction


def _amount(value: Decimal) -> str:
    """Whole amounts without a trailing .00, everything else as-is."""
    if value == value.to_integral_value():
        return str(value.quantize(Decimal("1")))
    return str(value.normalize())


def format_trend_line(record: ContextRecord) -> str:
    """`2024-05-01: -1500 (Food)`"""
    sign = "+" if record.direction is Direction.CREDIT else "-"
    return f"{record.date.isoformat()}: {sign}{_amount(record.amount)} ({record.category.value})"


def format_history_line(record: ContextRecord, currency: str) -> str:
    """`- 2024-05-01: debit of ₹1500 for Food (to/from: Lunch)`"""
    return (
        f"- {record.date.isoformat()}: {record.direction.value} of "
        f"{currency}{_amount(record.amount)} for {record.category.value} "
        f"(to/from: {record.counterparty})"
    )


def build_forecast_prompt(context: GroundingContext, currency: str = "₹") -> str:
    trend = "\n".join(format_trend_line(r) for r in context.records) or "No transactions yet."
    
    return f"""Current Balance: {currency}{_amount(context.balance)}
Recent Transactions (newest first):
{trend}

Analyze the user's financial health and estimate a monthly growth rate for their savings.
- If they have good saving habits, give a positive decimal (e.g. 0.05 for 5% growth).
- If they overspend, give a negative decimal (e.g. -0.03 for a 3% loss).
- Be realistic and base it only on the transaction history above.

Respond with ONLY a JSON object with exactly these 4 keys (no markdown):
1. "analysis": Brief analysis of spending habits (max 1 sentence).
2. "tip": A specific, actionable savings tip.
3. "prediction": A prediction for next month.
4. "growthRate": A number, the estimated monthly growth rate (e.g. 0.04)."""


def build_chat_instruction(context: GroundingContext, currency: str = "₹") -> str:
    history = "\n".join(
        format_history_line(r, currency) for r in context.records
    ) or "- (no transactions recorded)"
    
    return f"""You are a smart financial assistant for a user named {context.display_name}.

USER CONTEXT:
- Current Balance: {currency}{_amount(context.balance)}
- Recent Transactions (last {len(context.records)}):
{history}

INSTRUCTIONS:
- Answer the user's question based strictly on the transaction history above.
- If they ask about spending, calculate totals from the list above.
- Do NOT use outside knowledge or invent transactions.
- If the answer isn't in the data, say you don't see that record.
- Be concise, friendly, and encouraging.
- Use bold for amounts (e.g., **{currency}500**)."""
