"""SDK surface: simulate, execute and close leveraged target positions.

Component wiring (in __init__):
1. ParamsValidator (input checks, no I/O)
2. LeverageCalculator (quote, runway, loop count)
3. MetricsCalculator (fees, PnL)
4. PositionCloser (leg settlement)
5. OrderExecutor + LegOpener + LoopOrchestrator (only with a venue handle)

One SDK instance per signing identity: execute() and close() hold the
instance's transaction lock so that two flows never interleave transactions
(and nonces) from the same signer.
"""

import asyncio
from decimal import Decimal

from forecast_leverage.config import AppSettings
from forecast_leverage.exceptions import LeverageError, ProtocolError, ValidationError
from forecast_leverage.execution.leg_opener import LegOpener
from forecast_leverage.execution.order_executor import OrderExecutor
from forecast_leverage.execution.transactions import send_and_confirm
from forecast_leverage.logging import get_logger, position_context, setup_logging
from forecast_leverage.models import LeverageParams, LeveragePosition, TargetPositionParams
from forecast_leverage.pnl.metrics import MetricsCalculator, synthetic_leg
from forecast_leverage.position.closer import PositionCloser
from forecast_leverage.position.loop import LoopOrchestrator, simulate_loop
from forecast_leverage.position.parameters import LeverageCalculator
from forecast_leverage.position.validator import ParamsValidator
from forecast_leverage.protocol.client import LendingProtocol, TokenCustody
from forecast_leverage.protocol.types import from_base_units, to_base_units
from forecast_leverage.venue.client import VenueClient, VenueConnector

logger = get_logger(__name__)

MAX_UINT256 = 2**256 - 1


class ForecastLeverageSDK:
    """Leveraged target positions on binary prediction markets.

    Args:
        protocol: Lending protocol binding for the signer.
        custody: USDC / outcome-token custody for the same signer.
        venue: Authenticated venue handle; required for execute() only.
        settings: Application settings (defaults from environment).
    """

    def __init__(
        self,
        protocol: LendingProtocol,
        custody: TokenCustody,
        venue: VenueClient | None = None,
        settings: AppSettings | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._protocol = protocol
        self._custody = custody
        self._venue = venue
        self._tx_lock = asyncio.Lock()

        self._validator = ParamsValidator(self._settings.leverage)
        self._calculator = LeverageCalculator(
            protocol, self._settings.leverage, self._settings.protocol
        )
        self._metrics = MetricsCalculator(protocol, self._settings.gas)
        self._closer = PositionCloser(protocol, custody, self._settings.protocol)

        self._loop: LoopOrchestrator | None = None
        if venue is not None:
            executor = OrderExecutor(
                venue,
                self._settings.execution,
                tick_size=Decimal(self._settings.venue.tick_size),
                token_decimals=self._settings.protocol.token_decimals,
            )
            self._loop = LoopOrchestrator(
                executor,
                LegOpener(protocol, self._settings.protocol),
                custody,
                self._settings.leverage,
                self._settings.protocol,
            )

    @classmethod
    async def connect(
        cls,
        protocol: LendingProtocol,
        custody: TokenCustody,
        connector: VenueConnector,
        settings: AppSettings | None = None,
    ) -> "ForecastLeverageSDK":
        """Set up logging from settings, then authenticate and return a ready SDK."""
        settings = settings or AppSettings()
        setup_logging(settings.log_level)
        venue = await connector.connect()
        logger.info("sdk_connected", owner=custody.owner, protocol=protocol.address)
        return cls(protocol, custody, venue=venue, settings=settings)

    async def calculate_leverage_params(self, params: TargetPositionParams) -> LeverageParams:
        """Validate and derive loop parameters without simulating or executing.

        Callers that apply their own leverage cap (position.cap_leverage) start here.
        """
        self._validator.validate(params)
        return await self._calculator.calculate(params)

    async def simulate(self, params: TargetPositionParams) -> LeveragePosition:
        """Estimate a position without sending any transaction.

        Capital is carried forward as tokens * F * current_price per iteration
        instead of being read from the chain.

        Raises:
            ValidationError: Invalid input or F outside (0, 1).
            RunwayExceeded: Term too long for the quoted rates.
            ProtocolError: Quote or gas price could not be read.
        """
        self._validator.validate(params)

        with position_context(params.market_condition_id, params.long_yes, "simulation"):
            try:
                leverage_params = await self._calculator.calculate(params)
                simulated = simulate_loop(
                    params.capital_usdc,
                    params.current_price,
                    leverage_params.f,
                    leverage_params.loops,
                    self._settings.leverage.min_loop_capital_usdc,
                )
                legs = [
                    synthetic_leg(i, int(it.tokens), leverage_params, params)
                    for i, it in enumerate(simulated.iterations)
                ]
                gas_price = await self._protocol.gas_price()
            except LeverageError:
                raise
            except Exception as exc:
                raise ProtocolError(f"simulation failed: {exc}") from exc

            return self._metrics.build(
                legs,
                params,
                simulated.total_tokens,
                Decimal("0"),
                gas_price,
                is_simulated=True,
            )

    async def execute(self, params: TargetPositionParams) -> LeveragePosition:
        """Open a leveraged position by running the buy/borrow loop.

        Raises:
            ValidationError: Invalid input, no venue handle, insufficient
                USDC, or ineligible market. Raised before any transaction.
            RunwayExceeded: Term too long for the quoted rates.
            MarketError: The first buy failed.
            ProtocolError: The first leg failed, or no leg could be opened.
        """
        self._validator.validate(params)
        if self._loop is None:
            raise ValidationError("execute requires a connected venue handle")

        async with self._tx_lock:
            with position_context(params.market_condition_id, params.long_yes, "live"):
                logger.info(
                    "position_opening",
                    owner=self._custody.owner,
                    capital=str(params.capital_usdc),
                )
                try:
                    balance = await self._check_balance(params.capital_usdc)
                    await self._verify_market(params.market_condition_id)
                    leverage_params = await self._calculator.calculate(params)
                    await self.ensure_approvals(params.capital_usdc)
                    state = await self._loop.run(params, leverage_params, starting_balance=balance)
                except LeverageError:
                    raise
                except Exception as exc:
                    raise ProtocolError(f"position opening failed: {exc}") from exc

                try:
                    legs = await self._metrics.fetch_legs(state.leg_ids)
                    gas_price = await self._protocol.gas_price()
                except Exception as exc:
                    logger.critical(
                        "position_metrics_failed",
                        leg_ids=list(state.leg_ids),
                        error=str(exc),
                    )
                    raise ProtocolError(
                        f"legs {list(state.leg_ids)} opened but metrics read-back failed: {exc}"
                    ) from exc

                return self._metrics.build(
                    legs, params, state.total_tokens, state.total_slippage, gas_price
                )

    async def close(self, leg_ids: list[int] | tuple[int, ...]) -> Decimal:
        """Close legs in order and return realized USDC.

        Raises:
            ProtocolError: A leg failed to close; later legs were not attempted.
        """
        async with self._tx_lock:
            result = await self._closer.close_legs(leg_ids)
        return result.realized_usdc

    async def ensure_approvals(self, capital_usdc: Decimal) -> None:
        """Grant the protocol USDC allowance and outcome-token operator rights if missing."""
        spender = self._protocol.address
        needed = to_base_units(capital_usdc, self._settings.protocol.usdc_decimals)

        if await self._custody.usdc_allowance(spender) < needed:
            await send_and_confirm(
                self._protocol,
                self._custody.approve_usdc(spender, MAX_UINT256),
                "approve USDC",
            )
            logger.info("usdc_approved", spender=spender)

        if not await self._custody.is_approved_for_all(spender):
            await send_and_confirm(
                self._protocol,
                self._custody.set_approval_for_all(spender, True),
                "approve outcome tokens",
            )
            logger.info("outcome_tokens_approved", operator=spender)

    async def _check_balance(self, required: Decimal) -> Decimal:
        balance = from_base_units(
            await self._custody.usdc_balance(), self._settings.protocol.usdc_decimals
        )
        if balance < required:
            raise ValidationError(
                f"Insufficient USDC balance: have ${balance:.2f}, need ${required:.2f}"
            )
        return balance

    async def _verify_market(self, condition_id: str) -> None:
        try:
            await self._protocol.verify_market(condition_id)
        except Exception as exc:
            raise ValidationError(f"Invalid market: {condition_id} - {exc}") from exc
