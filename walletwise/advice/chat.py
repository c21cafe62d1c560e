"""
Chat Responder

Assembles a grounding context, forwards the user's message and relays
the reply verbatim. The reply is not validated here: this is the trust
boundary, and the only safeguard is that the model was shown nothing
but the account's own records.

Unlike the forecast there is no safe default answer, so failures are
raised as ExternalServiceError for the caller to surface.
"""

import asyncio
from typing import Optional
from uuid import UUID

from walletwise.advice.context import ContextAssembler
from walletwise.agents.reasoning import ExternalServiceError, ReasoningCollaborator
from walletwise.config import get_settings


ASSISTANT_UNAVAILABLE = (
    "The assistant is unavailable right now. Please try again in a moment."
)


class ChatResponder:
    """One grounded question, one relayed answer."""
    
    def __init__(
        self,
        assembler: ContextAssembler,
        collaborator: ReasoningCollaborator,
        window_size: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        settings = get_settings().app
        self._assembler = assembler
        self._collaborator = collaborator
        self._window_size = window_size if window_size is not None else settings.chat_window
        self._timeout = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.reasoning_timeout_seconds
        )
    
    @property
    def window_size(self) -> int:
        return self._window_size
    
    async def respond(self, account_id: UUID, user_message: str) -> str:
        """
        Answer `user_message` from the account's recent history.
        
        Raises:
            ValueError: If the message is blank
            AccountNotFoundError: If the account doesn't exist
            ExternalServiceError: If the reasoning service fails or times out
        """
        if not user_message or not user_message.strip():
            raise ValueError("Message must not be empty")
        
        context = await self._assembler.build(account_id, self._window_size)
        
        try:
            return await asyncio.wait_for(
                self._collaborator.converse(context, user_message.strip()),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            raise ExternalServiceError(
                f"No reply within {self._timeout}s",
                reason=ExternalServiceError.TIMEOUT,
            )
        except ExternalServiceError:
            raise
        except Exception as e:
            raise ExternalServiceError(f"Reasoning call failed: {e}")
