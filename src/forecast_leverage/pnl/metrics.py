"""Fee and PnL projection for a leverage position.

All calculations use Decimal arithmetic. Rates are annual; interest accrues
linearly over the leg term on the borrowed amount (sets * F):

    senior_interest = total_sets * avg_F * avg_rS * avg_term / YEAR
    junior_interest = total_sets * avg_F * avg_rJ * avg_term / YEAR
    gas             = legs * gas_per_leg * gas_price_wei / 1e18 * native_usd

A token redeems for at most $1 and the position is fully collateralised,
so the worst case is losing the deployed capital.
"""

import asyncio
import time
from collections.abc import Sequence
from decimal import Decimal

from forecast_leverage.config import GasSettings
from forecast_leverage.logging import get_logger
from forecast_leverage.models import (
    E18,
    SECONDS_PER_YEAR,
    FeeBreakdown,
    Leg,
    LeverageParams,
    LeveragePosition,
    PnlBreakdown,
    TargetPositionParams,
)
from forecast_leverage.protocol.client import LendingProtocol

logger = get_logger(__name__)

_ZERO = Decimal("0")


def _mean(values: Sequence[Decimal]) -> Decimal:
    return sum(values, _ZERO) / Decimal(len(values)) if values else _ZERO


def synthetic_leg(
    index: int,
    sets: int,
    leverage_params: LeverageParams,
    params: TargetPositionParams,
) -> Leg:
    """Rate snapshot a simulated iteration would receive from the current quote."""
    return Leg(
        leg_id=index,
        sets=sets,
        f_e18=int(leverage_params.f * E18),
        rs_e18=int(leverage_params.r_senior * E18),
        rj_e18=int(leverage_params.r_junior * E18),
        term=params.timeframe_seconds,
        opened=int(time.time()),
        borrower="",
        escrow="",
        long_position_id=0,
        short_position_id=0,
        condition_id=params.market_condition_id,
    )


class MetricsCalculator:
    """Aggregates per-leg interest, slippage and gas into a LeveragePosition.

    Args:
        protocol: Used for leg read-back and the current gas price.
        gas_settings: Gas per leg and native-asset USD price.
    """

    def __init__(self, protocol: LendingProtocol, gas_settings: GasSettings | None = None) -> None:
        self._protocol = protocol
        self._gas = gas_settings or GasSettings()

    async def fetch_legs(self, leg_ids: Sequence[int]) -> list[Leg]:
        """Read back leg snapshots. View calls only, so they run concurrently."""
        return list(await asyncio.gather(*(self._protocol.legs(leg_id) for leg_id in leg_ids)))

    def gas_cost(self, leg_count: int, gas_price_wei: int) -> Decimal:
        """Estimated gas for leg_count borrow transactions, in USD."""
        gas_units = Decimal(leg_count * self._gas.gas_per_leg)
        native = gas_units * Decimal(gas_price_wei) / E18
        return native * self._gas.native_usd_price

    def build(
        self,
        legs: Sequence[Leg],
        params: TargetPositionParams,
        total_tokens: Decimal,
        total_slippage: Decimal,
        gas_price_wei: int,
        is_simulated: bool = False,
        now: float | None = None,
    ) -> LeveragePosition:
        """Compute fees and PnL for an opened (or simulated) set of legs.

        Args:
            legs: Rate snapshots, in execution order. Must not be empty.
            params: The original request.
            total_tokens: Outcome tokens bought across all iterations.
            total_slippage: Summed slippage from the order fills.
            gas_price_wei: Observed gas price.
            is_simulated: Marks estimated positions.
            now: Clock override for auto_close_time (defaults to time.time()).

        Returns:
            Immutable LeveragePosition.
        """
        if not legs:
            raise ValueError("cannot build a position without legs")

        total_sets = Decimal(sum(leg.sets for leg in legs))
        avg_f = _mean([leg.f for leg in legs])
        avg_rs = _mean([leg.r_senior for leg in legs])
        avg_rj = _mean([leg.r_junior for leg in legs])
        avg_term = _mean([Decimal(leg.term) for leg in legs])
        year_fraction = avg_term / SECONDS_PER_YEAR

        fees = FeeBreakdown(
            protocol_senior=total_sets * avg_f * avg_rs * year_fraction,
            protocol_junior=total_sets * avg_f * avg_rj * year_fraction,
            slippage=total_slippage,
            gas=self.gas_cost(len(legs), gas_price_wei),
        )
        total_fees = fees.total

        capital = params.capital_usdc
        price_move = params.target_price - params.current_price
        pnl = PnlBreakdown(
            at_target=price_move * total_tokens - total_fees,
            breakeven=(
                params.current_price + total_fees / total_tokens
                if total_tokens > 0
                else params.current_price
            ),
            max_profit=(Decimal("1") - params.current_price) * total_tokens - total_fees,
            max_loss=-capital,
        )

        position = LeveragePosition(
            leg_ids=tuple(leg.leg_id for leg in legs),
            total_exposure=total_tokens,
            effective_leverage=total_tokens * params.current_price / capital,
            capital_deployed=capital,
            fees=fees,
            pnl=pnl,
            auto_close_time=(time.time() if now is None else now) + float(avg_term),
            f=avg_f,
            r=avg_rs + avg_rj,
            is_simulated=is_simulated,
        )

        logger.info(
            "position_metrics",
            legs=len(legs),
            simulated=is_simulated,
            total_exposure=str(total_tokens),
            effective_leverage=str(position.effective_leverage),
            total_fees=str(total_fees),
            pnl_at_target=str(pnl.at_target),
            breakeven=str(pnl.breakeven),
        )
        return position
