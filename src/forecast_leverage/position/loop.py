"""Loop Orchestrator: buy -> borrow -> buy ... with capital carried forward.

The loop is a fold over iteration index with an explicit LoopState
accumulator. Live execution seeds each step with the USDC balance observed
on-chain after the previous borrow, less whatever the wallet held beyond
the committed capital before the first buy; only simulation uses the
F * price estimate. Iterations are strictly sequential: every transaction comes from
the same signing identity and each step's input is the prior step's output.

Partial-failure policy:
- iteration 0 fails  -> the error propagates, no position exists
- iteration k>0 fails -> stop, keep the k legs already opened (no rollback;
  legs are independently closable)
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal

from forecast_leverage.config import LeverageSettings, ProtocolSettings
from forecast_leverage.exceptions import LeverageError, ProtocolError
from forecast_leverage.execution.leg_opener import LegOpener
from forecast_leverage.execution.order_executor import OrderExecutor
from forecast_leverage.logging import get_logger
from forecast_leverage.models import LeverageParams, TargetPositionParams
from forecast_leverage.protocol.client import TokenCustody
from forecast_leverage.protocol.types import from_base_units

logger = get_logger(__name__)


@dataclass(frozen=True)
class LoopState:
    """Fold accumulator for the leverage loop."""

    capital: Decimal
    leg_ids: tuple[int, ...] = ()
    total_tokens: Decimal = Decimal("0")
    total_slippage: Decimal = Decimal("0")
    iterations: int = 0
    halted: bool = False


@dataclass(frozen=True)
class SimulatedIteration:
    capital: Decimal
    tokens: Decimal


@dataclass(frozen=True)
class SimulatedLoop:
    """Estimated loop outcome; never used to drive live execution."""

    iterations: list[SimulatedIteration] = field(default_factory=list)

    @property
    def total_tokens(self) -> Decimal:
        return sum((it.tokens for it in self.iterations), Decimal("0"))


def simulate_loop(
    capital: Decimal,
    price: Decimal,
    f: Decimal,
    loops: int,
    min_loop_capital: Decimal = Decimal("1"),
) -> SimulatedLoop:
    """Estimate tokens bought per iteration without touching the chain.

    Each token pairs with its complement as $1 of collateral; the protocol
    lends F against it, and re-buying at the nominal price turns that into
    capital * F for the next iteration.

    Args:
        capital: Initial USDC.
        price: Nominal token price used for every iteration.
        f: Quoted capital-efficiency factor.
        loops: Maximum iterations.
        min_loop_capital: Stop once carried capital falls below this.
    """
    iterations: list[SimulatedIteration] = []
    remaining = capital
    for _ in range(loops):
        tokens = remaining / price
        iterations.append(SimulatedIteration(capital=remaining, tokens=tokens))
        remaining = tokens * f * price
        if remaining < min_loop_capital:
            break
    return SimulatedLoop(iterations=iterations)


class LoopOrchestrator:
    """Drives the live leverage loop for one position.

    Args:
        executor: Buys outcome tokens on the venue.
        leg_opener: Opens protocol legs against purchased tokens.
        custody: Reads the signer's USDC balance between iterations.
        settings: Minimal per-iteration capital.
        protocol_settings: USDC decimals.
    """

    def __init__(
        self,
        executor: OrderExecutor,
        leg_opener: LegOpener,
        custody: TokenCustody,
        settings: LeverageSettings | None = None,
        protocol_settings: ProtocolSettings | None = None,
    ) -> None:
        self._executor = executor
        self._leg_opener = leg_opener
        self._custody = custody
        self._settings = settings or LeverageSettings()
        self._protocol_settings = protocol_settings or ProtocolSettings()

    async def run(
        self,
        params: TargetPositionParams,
        leverage_params: LeverageParams,
        starting_balance: Decimal | None = None,
    ) -> LoopState:
        """Fold _step over range(loops) starting from the caller's capital.

        USDC the wallet held beyond capital_usdc before the first buy is a
        reserve: later iterations spend only the observed balance above it.

        Args:
            params: The request.
            leverage_params: Derived loop parameters.
            starting_balance: Wallet USDC already observed by the caller;
                read from custody when omitted.

        Returns:
            Final LoopState with at least one leg.

        Raises:
            LeverageError: Whatever failed in iteration 0.
            ProtocolError: No leg was opened at all.
        """
        if starting_balance is None:
            try:
                starting_balance = await self._read_balance()
            except Exception as exc:
                raise ProtocolError(f"failed to read USDC balance: {exc}") from exc
        reserve = max(starting_balance - params.capital_usdc, Decimal("0"))
        state = LoopState(capital=params.capital_usdc)

        for index in range(leverage_params.loops):
            try:
                state = await self._step(state, index, params, leverage_params, reserve)
            except Exception as exc:
                if index == 0:
                    raise
                logger.warning(
                    "loop_iteration_failed",
                    iteration=index + 1,
                    legs_opened=len(state.leg_ids),
                    error_kind=exc.kind.value if isinstance(exc, LeverageError) else "unclassified",
                    error=str(exc),
                )
                break
            if state.halted:
                break

        if not state.leg_ids:
            raise ProtocolError("failed to open any position legs")

        logger.info(
            "loop_completed",
            legs=len(state.leg_ids),
            planned_loops=leverage_params.loops,
            total_tokens=str(state.total_tokens),
            total_slippage=str(state.total_slippage),
        )
        return state

    async def _step(
        self,
        state: LoopState,
        index: int,
        params: TargetPositionParams,
        leverage_params: LeverageParams,
        reserve: Decimal,
    ) -> LoopState:
        fill = await self._executor.buy(
            leverage_params.token_id,
            state.capital,
            params.max_slippage_bps,
            order_type=params.order_type,
            max_retries=params.max_retries,
            retry_delay_ms=params.retry_delay_ms,
        )
        leg_id = await self._leg_opener.open_leg(
            fill.tokens_received,
            params.timeframe_seconds,
            params.market_condition_id,
            params.long_yes,
        )

        opened = replace(
            state,
            leg_ids=(*state.leg_ids, leg_id),
            total_tokens=state.total_tokens + fill.tokens_received,
            total_slippage=state.total_slippage + fill.slippage,
            iterations=index + 1,
        )

        # The leg exists on-chain now; a failed balance read must not drop it.
        try:
            balance = await self._read_balance()
        except Exception:
            logger.warning("loop_balance_read_failed", iteration=index + 1, exc_info=True)
            return replace(opened, capital=Decimal("0"), halted=True)

        capital = max(balance - reserve, Decimal("0"))
        halted = capital < self._settings.min_loop_capital_usdc

        logger.info(
            "loop_iteration_completed",
            iteration=index + 1,
            leg_id=leg_id,
            capital_in=str(state.capital),
            tokens=str(fill.tokens_received),
            capital_out=str(capital),
            wallet_balance=str(balance),
            halted=halted,
        )
        return replace(opened, capital=capital, halted=halted)

    async def _read_balance(self) -> Decimal:
        raw = await self._custody.usdc_balance()
        return from_base_units(raw, self._protocol_settings.usdc_decimals)
