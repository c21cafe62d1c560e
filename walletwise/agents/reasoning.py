"""
Reasoning Collaborator interface.

The reasoning service is an opaque, slow and fallible capability.
It gets one method per use case and nothing else:

- estimate_growth(context) -> GrowthEstimate
- converse(context, message) -> reply text

Implementations raise ExternalServiceError for anything that goes
wrong (unreachable, timed out, unparsable). Callers bound every call
with their own timeout as well, so a hanging implementation cannot
hold a request forever.

The collaborator never sees the ledger, only a GroundingContext built
from a snapshot, and it never mutates anything.
"""

import json
import math
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from walletwise.models.advice import GroundingContext, GrowthEstimate


class ExternalServiceError(Exception):
    """The reasoning service was unreachable, timed out, or replied with garbage."""
    
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    MALFORMED = "malformed"
    
    def __init__(self, message: str, reason: str = UNAVAILABLE):
        self.reason = reason
        super().__init__(message)


class ReasoningCollaborator(ABC):
    """Capability interface for the external reasoning service."""
    
    @abstractmethod
    async def estimate_growth(self, context: GroundingContext) -> GrowthEstimate:
        """
        Analyse recent history and estimate a monthly growth rate.
        
        Raises:
            ExternalServiceError: On any failure to get a usable reply
        """
        pass
    
    @abstractmethod
    async def converse(self, context: GroundingContext, message: str) -> str:
        """
        Answer `message` strictly from the given context.
        
        Raises:
            ExternalServiceError: On any failure to get a reply
        """
        pass


_FENCE = re.compile(r"```(?:json)?\s*|```")

GROWTH_RATE_KEYS = ("growthRate", "growth_rate")


def extract_json_object(text: Optional[str]) -> dict:
    """
    Pull the first {...} object out of a model reply.
    
    Tolerates markdown fences and chatter around the object.
    """
    if not text:
        raise ExternalServiceError("Empty reply", reason=ExternalServiceError.MALFORMED)
    
    cleaned = _FENCE.sub("", text).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}") + 1
    if start < 0 or end <= start:
        raise ExternalServiceError(
            "Reply contains no JSON object", reason=ExternalServiceError.MALFORMED
        )
    
    try:
        data = json.loads(cleaned[start:end])
    except json.JSONDecodeError as e:
        raise ExternalServiceError(
            f"Reply is not valid JSON: {e}", reason=ExternalServiceError.MALFORMED
        )
    
    if not isinstance(data, dict):
        raise ExternalServiceError(
            "Reply JSON is not an object", reason=ExternalServiceError.MALFORMED
        )
    return data


def coerce_growth_rate(value: Any, max_rate: float) -> Optional[float]:
    """
    Accept a growth rate only if it is a finite number within [-max_rate, max_rate].
    
    Zero is a legitimate rate and is returned as 0.0, not treated as missing.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        raw = value.strip()
        scale = 100.0 if raw.endswith("%") else 1.0
        try:
            value = float(raw.rstrip("%")) / scale
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    
    rate = float(value)
    if not math.isfinite(rate) or abs(rate) > max_rate:
        return None
    return rate


def parse_growth_estimate(text: Optional[str], max_rate: float = 1.0) -> GrowthEstimate:
    """
    Parse a forecast reply into a GrowthEstimate.
    
    A reply that isn't a JSON object raises ExternalServiceError.
    A reply without a usable growth rate still keeps its text fields;
    growth_rate is then None.
    """
    data = extract_json_object(text)
    
    growth_rate = None
    for key in GROWTH_RATE_KEYS:
        if key in data:
            growth_rate = coerce_growth_rate(data[key], max_rate)
            break
    
    def text_field(name: str) -> str:
        value = data.get(name)
        return str(value).strip() if value is not None else ""
    
    return GrowthEstimate(
        analysis=text_field("analysis"),
        tip=text_field("tip"),
        prediction=text_field("prediction"),
        growth_rate=growth_rate,
    )


class UnavailableCollaborator(ReasoningCollaborator):
    """Stand-in used when no reasoning service is configured."""
    
    def __init__(self, reason: str = "Reasoning service is not configured"):
        self._reason = reason
    
    async def estimate_growth(self, context: GroundingContext) -> GrowthEstimate:
        raise ExternalServiceError(self._reason)
    
    async def converse(self, context: GroundingContext, message: str) -> str:
        raise ExternalServiceError(self._reason)
