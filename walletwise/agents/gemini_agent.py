"""
Gemini implementation of the Reasoning Collaborator.

The LLM is an ADVISOR, not a LEDGER:
- It only ever sees a GroundingContext (balance + bounded history)
- Its forecast reply is parsed as untrusted structured data
- Its chat reply is relayed as text, never acted upon
"""

import asyncio
from typing import Optional

import google.generativeai as genai
import structlog

from walletwise.agents.prompts import build_chat_instruction, build_forecast_prompt
from walletwise.agents.reasoning import (
    ExternalServiceError,
    ReasoningCollaborator,
    parse_growth_estimate,
)
from walletwise.config import GeminiSettings, get_settings
from walletwise.models.advice import GroundingContext, GrowthEstimate


logger = structlog.get_logger(__name__)


class GeminiReasoningAgent(ReasoningCollaborator):
    """
    Reasoning collaborator backed by Google Gemini.
    
    Every call is bounded by `timeout_seconds`; timeouts, transport
    errors and blocked or empty replies all become ExternalServiceError.
    """
    
    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        currency_symbol: Optional[str] = None,
        max_growth_rate: Optional[float] = None,
    ):
        app_settings = get_settings().app
        self._settings = settings or get_settings().gemini
        self._currency = (
            currency_symbol
            if currency_symbol is not None
            else app_settings.currency_symbol
        )
        self._max_growth_rate = (
            max_growth_rate
            if max_growth_rate is not None
            else app_settings.max_growth_rate
        )
        self._configure_genai()
    
    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._forecast_model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )
    
    def _chat_model(self, instruction: str) -> "genai.GenerativeModel":
        # The grounding instruction differs per account, so it is bound per call
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=instruction,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )
    
    async def _generate(self, model: "genai.GenerativeModel", prompt: str) -> str:
        try:
            response = await asyncio.wait_for(
                model.generate_content_async(prompt),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ExternalServiceError(
                f"Gemini did not answer within {self._settings.timeout_seconds}s",
                reason=ExternalServiceError.TIMEOUT,
            )
        except Exception as e:
            logger.warning("gemini_call_failed", error=str(e))
            raise ExternalServiceError(f"Gemini call failed: {e}")
        
        try:
            text = response.text
        except ValueError as e:
            # Raised by the SDK when the candidate was blocked or empty
            raise ExternalServiceError(
                f"Gemini returned no text: {e}",
                reason=ExternalServiceError.MALFORMED,
            )
        
        if not text or not text.strip():
            raise ExternalServiceError(
                "Gemini returned an empty reply",
                reason=ExternalServiceError.MALFORMED,
            )
        return text.strip()
    
    async def estimate_growth(self, context: GroundingContext) -> GrowthEstimate:
        prompt = build_forecast_prompt(context, self._currency)
        text = await self._generate(self._forecast_model, prompt)
        return parse_growth_estimate(text, self._max_growth_rate)
    
    async def converse(self, context: GroundingContext, message: str) -> str:
        instruction = build_chat_instruction(context, self._currency)
        return await self._generate(self._chat_model(instruction), message)
