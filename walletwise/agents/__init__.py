"""AI Agents package."""

from walletwise.agents.reasoning import (
    ExternalServiceError,
    ReasoningCollaborator,
    UnavailableCollaborator,
    coerce_growth_rate,
    extract_json_object,
    parse_growth_estimate,
)
from walletwise.agents.prompts import (
    build_chat_instruction,
    build_forecast_prompt,
    format_history_line,
    format_trend_line,
)
from walletwise.agents.gemini_agent import GeminiReasoningAgent

__all__ = [
    "ExternalServiceError",
    "GeminiReasoningAgent",
    "ReasoningCollaborator",
    "UnavailableCollaborator",
    "build_chat_instruction",
    "build_forecast_prompt",
    "coerce_growth_rate",
    "extract_json_object",
    "format_history_line",
    "format_trend_line",
    "parse_growth_estimate",
]
