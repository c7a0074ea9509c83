"""Input validation for TargetPositionParams.

Runs before any network call: a malformed request never reaches the venue
or the protocol.
"""

import re

from forecast_leverage.config import LeverageSettings
from forecast_leverage.exceptions import ValidationError
from forecast_leverage.models import OrderType, TargetPositionParams

_HEX_32_BYTES = re.compile(r"^[0-9a-fA-F]{64}$")


class ParamsValidator:
    """Checks request ranges and direction consistency.

    Args:
        settings: Input limits (minimum capital, timeframe bounds, slippage cap).
    """

    def __init__(self, settings: LeverageSettings | None = None) -> None:
        self._settings = settings or LeverageSettings()

    def validate(self, params: TargetPositionParams) -> None:
        """Raise ValidationError on the first violated constraint."""
        s = self._settings

        condition_id = params.market_condition_id or ""
        if not condition_id.startswith(s.condition_id_prefix):
            raise ValidationError(
                f"Invalid marketConditionId: must be a hex string starting with {s.condition_id_prefix}"
            )
        if not _HEX_32_BYTES.match(condition_id[len(s.condition_id_prefix):]):
            raise ValidationError(
                f"Invalid marketConditionId: {condition_id} is not a 32-byte hex value"
            )

        if not 0 < params.current_price < 1:
            raise ValidationError(
                f"Invalid currentPrice: {params.current_price} (must be between 0 and 1)"
            )
        if not 0 < params.target_price < 1:
            raise ValidationError(
                f"Invalid targetPrice: {params.target_price} (must be between 0 and 1)"
            )

        if params.long_yes and params.target_price <= params.current_price:
            raise ValidationError(
                "Invalid price direction: LONG YES requires targetPrice > currentPrice"
            )
        if not params.long_yes and params.target_price >= params.current_price:
            raise ValidationError(
                "Invalid price direction: LONG NO requires targetPrice < currentPrice"
            )

        if params.timeframe_seconds < s.min_timeframe_seconds:
            raise ValidationError(
                f"Invalid timeframe: {params.timeframe_seconds}s "
                f"(too short, min {s.min_timeframe_seconds}s)"
            )
        if params.timeframe_seconds > s.max_timeframe_seconds:
            raise ValidationError(
                f"Invalid timeframe: {params.timeframe_seconds}s "
                f"(too long, max {s.max_timeframe_seconds}s)"
            )

        if params.capital_usdc < s.min_capital_usdc:
            raise ValidationError(
                f"Invalid capital: {params.capital_usdc} (minimum ${s.min_capital_usdc})"
            )

        if not 0 <= params.max_slippage_bps <= s.max_slippage_bps:
            raise ValidationError(
                f"Invalid slippage: {params.max_slippage_bps}bps "
                f"(must be 0-{s.max_slippage_bps})"
            )

        if params.order_type not in tuple(OrderType):
            raise ValidationError(f"Invalid orderType: {params.order_type}")
        if params.max_retries < 0:
            raise ValidationError(f"Invalid maxRetries: {params.max_retries} (must be >= 0)")
        if params.retry_delay_ms < 0:
            raise ValidationError(f"Invalid retryDelayMs: {params.retry_delay_ms} (must be >= 0)")
