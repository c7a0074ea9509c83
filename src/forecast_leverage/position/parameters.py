"""Parameter Calculator: capital efficiency, runway, loop count.

Math (F = capital-efficiency factor, R = rS + rJ annual rate):

    max_leverage = 1 / (1 - F)
    loops        = ceil(ln(eps) / ln(F))       # F^loops <= eps
    runway       = (1 - F) / (F * R) * YEAR    # debt F*(1 + R*t) reaches $1
    safe_runway  = runway * 0.95

After `loops` iterations the geometric multiplier (1 - F^loops) / (1 - F)
has captured at least (1 - eps) of max_leverage. No leverage cap is applied
here; cap_leverage() is offered for callers that want one.
"""

import math
from dataclasses import replace
from decimal import Decimal

from forecast_leverage.config import LeverageSettings, ProtocolSettings
from forecast_leverage.exceptions import RunwayExceeded, ValidationError
from forecast_leverage.logging import get_logger
from forecast_leverage.models import SECONDS_PER_YEAR, LeverageParams, Quote, TargetPositionParams
from forecast_leverage.protocol.client import LendingProtocol
from forecast_leverage.protocol.types import convert_quote

logger = get_logger(__name__)

_ONE = Decimal("1")


def max_leverage(f: Decimal) -> Decimal:
    return _ONE / (_ONE - f)


def loop_count(f: Decimal, convergence_threshold: Decimal) -> int:
    """Iterations needed for F^n <= eps. Always at least 1."""
    return max(1, math.ceil(convergence_threshold.ln() / f.ln()))


def loop_multiplier(f: Decimal, loops: int) -> Decimal:
    """Geometric series sum 1 + F + ... + F^(loops-1)."""
    return (_ONE - f**loops) / (_ONE - f)


def runway_seconds(f: Decimal, r: Decimal) -> Decimal:
    """Seconds until debt F * (1 + R * t) reaches the $1 redemption value.

    Only defined for R > 0.
    """
    return (_ONE - f) / (f * r) * SECONDS_PER_YEAR


def cap_leverage(params: LeverageParams, leverage_cap: Decimal) -> LeverageParams:
    """Reduce loops so the loop multiplier stays at or under leverage_cap.

    Caller-side policy; the engine never applies a cap on its own.
    """
    if leverage_cap < _ONE:
        raise ValidationError(f"Invalid leverage cap: {leverage_cap} (must be >= 1)")
    loops = params.loops
    while loops > 1 and loop_multiplier(params.f, loops) > leverage_cap:
        loops -= 1
    return replace(params, loops=loops, max_leverage=min(params.max_leverage, leverage_cap))


class LeverageCalculator:
    """Queries the protocol and derives LeverageParams for a request.

    Args:
        protocol: Lending protocol binding (view calls only).
        settings: Convergence threshold and runway safety margin.
        protocol_settings: Unit decimals for quote conversion.
    """

    def __init__(
        self,
        protocol: LendingProtocol,
        settings: LeverageSettings | None = None,
        protocol_settings: ProtocolSettings | None = None,
    ) -> None:
        self._protocol = protocol
        self._settings = settings or LeverageSettings()
        self._protocol_settings = protocol_settings or ProtocolSettings()

    async def fetch_quote(self, params: TargetPositionParams) -> Quote:
        """One-set quote at the requested term, market and direction."""
        raw = await self._protocol.quote(
            1, params.timeframe_seconds, params.market_condition_id, params.long_yes
        )
        return convert_quote(raw, self._protocol_settings.usdc_decimals)

    def derive(self, quote: Quote, timeframe_seconds: int, token_id: str) -> LeverageParams:
        """Validate F and runway, then compute loops and max leverage.

        Raises:
            ValidationError: F outside (0, 1).
            RunwayExceeded: timeframe_seconds >= safe runway.
        """
        f = quote.f
        if f <= 0 or f >= 1:
            raise ValidationError(
                f"Invalid capital efficiency factor F={f}. Must be between 0 and 1."
            )

        r = quote.r_senior + quote.r_junior
        if r > 0:
            runway = runway_seconds(f, r)
            safe_runway = runway * self._settings.runway_safety_margin
            if timeframe_seconds >= safe_runway:
                raise RunwayExceeded(
                    f"Timeframe {timeframe_seconds}s exceeds safe runway "
                    f"{safe_runway:.0f}s (runway {runway:.0f}s at F={f}, R={r}): "
                    "debt would reach full collateral value before the position matures",
                    runway_seconds=runway,
                    safe_runway_seconds=safe_runway,
                )

        return LeverageParams(
            f=f,
            r=r,
            loops=loop_count(f, self._settings.convergence_threshold),
            max_leverage=max_leverage(f),
            token_id=token_id,
            r_senior=quote.r_senior,
            r_junior=quote.r_junior,
        )

    async def calculate(self, params: TargetPositionParams) -> LeverageParams:
        """Quote, resolve the outcome token id, and derive LeverageParams."""
        quote = await self.fetch_quote(params)
        if params.long_yes:
            token_id = await self._protocol.yes_position_id(params.market_condition_id)
        else:
            token_id = await self._protocol.no_position_id(params.market_condition_id)

        leverage_params = self.derive(quote, params.timeframe_seconds, str(token_id))
        logger.info(
            "leverage_params_calculated",
            f=str(leverage_params.f),
            r=str(leverage_params.r),
            loops=leverage_params.loops,
            max_leverage=str(leverage_params.max_leverage),
            converged=quote.converged,
        )
        return leverage_params
