"""
Forecast Generator

Two halves:
1. project() - pure, deterministic compounding of a balance by a rate
2. ForecastGenerator - gets the rate from the reasoning service and
   falls back to a flat (0%) projection when that call fails

All non-determinism lives in the reasoning call. Given a rate, the
projection is always the same.
"""

import asyncio
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union
from uuid import UUID

import structlog

from walletwise.advice.context import ContextAssembler
from walletwise.agents.reasoning import ExternalServiceError, ReasoningCollaborator
from walletwise.config import get_settings
from walletwise.models.advice import ForecastPoint, ForecastReport, GrowthEstimate


logger = structlog.get_logger(__name__)

MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

FALLBACK_ANALYSIS = "Personalised analysis is unavailable right now."
FALLBACK_TIP = "Keep recording your expenses so the next analysis has more to work with."
FALLBACK_PREDICTION = "Assuming no change, your balance stays where it is."

_WHOLE = Decimal("1")


def month_labels(periods: int, today: Optional[date] = None) -> list[str]:
    """Labels for the `periods` months after `today`'s month, wrapping past December."""
    today = today or date.today()
    current = today.month - 1
    return [MONTH_LABELS[(current + i) % 12] for i in range(1, periods + 1)]


def project(
    current_balance: Union[Decimal, int, float],
    growth_rate: float,
    periods: int = 6,
    today: Optional[date] = None,
) -> list[ForecastPoint]:
    """
    Compound `current_balance` by `growth_rate` once per period.
    
    Each step is rounded half-up to whole units and clamped at zero
    before the next step compounds on it.
    
        >>> [p.balance for p in project(1000, 0.05, 2)]
        [1050, 1103]
    """
    if periods < 0:
        raise ValueError(f"periods must be >= 0, got {periods}")
    
    factor = Decimal(1) + Decimal(str(growth_rate))
    balance = Decimal(str(current_balance))
    points = []
    
    for label in month_labels(periods, today):
        balance = (balance * factor).quantize(_WHOLE, rounding=ROUND_HALF_UP)
        balance = max(balance, Decimal(0))
        points.append(ForecastPoint(month=label, balance=int(balance)))
    
    return points


class ForecastGenerator:
    """Builds a ForecastReport for one account."""
    
    def __init__(
        self,
        assembler: ContextAssembler,
        collaborator: ReasoningCollaborator,
        window_size: Optional[int] = None,
        periods: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        settings = get_settings().app
        self._assembler = assembler
        self._collaborator = collaborator
        self._window_size = window_size if window_size is not None else settings.forecast_window
        self._periods = periods if periods is not None else settings.forecast_periods
        self._timeout = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.reasoning_timeout_seconds
        )
    
    async def _estimate(self, context) -> tuple[Optional[GrowthEstimate], Optional[str]]:
        """Ask for a growth estimate; return (estimate, failure reason)."""
        try:
            estimate = await asyncio.wait_for(
                self._collaborator.estimate_growth(context),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            return None, ExternalServiceError.TIMEOUT
        except ExternalServiceError as e:
            logger.warning("forecast_estimate_failed", reason=e.reason, error=str(e))
            return None, e.reason
        except Exception as e:
            logger.warning("forecast_estimate_failed", reason="error", error=str(e))
            return None, ExternalServiceError.UNAVAILABLE
        return estimate, None
    
    async def generate(
        self,
        account_id: UUID,
        today: Optional[date] = None,
    ) -> ForecastReport:
        """
        Read the ledger once, ask for a growth rate, project.
        
        Ledger errors (AccountNotFound) propagate. Reasoning failures do
        not: the report falls back to a 0% rate and says so.
        """
        context = await self._assembler.build(account_id, self._window_size)
        estimate, failure = await self._estimate(context)
        
        if estimate is None:
            rate = 0.0
            reason = failure
            analysis, tip, prediction = FALLBACK_ANALYSIS, FALLBACK_TIP, FALLBACK_PREDICTION
        else:
            # Explicit presence check: a returned 0.0 is a real answer
            rate = estimate.growth_rate if estimate.growth_rate is not None else 0.0
            reason = None if estimate.growth_rate is not None else "missing_growth_rate"
            analysis = estimate.analysis or FALLBACK_ANALYSIS
            tip = estimate.tip or FALLBACK_TIP
            prediction = estimate.prediction or FALLBACK_PREDICTION
        
        return ForecastReport(
            analysis=analysis,
            tip=tip,
            prediction=prediction,
            forecast=project(context.balance, rate, self._periods, today),
            growth_rate=rate,
            fallback_used=reason is not None,
            fallback_reason=reason,
        )
