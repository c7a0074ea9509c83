"""Order Executor: places and tracks one buy order on the matching venue.

State machine per attempt:

    PLACED -> POLLING -> FILLED
                      -> TIMED_OUT -> CANCELLED -> RETRY (back to PLACED)
                                                -> FAILED

A partial match reported as filled keeps the matched tokens and cancels the
resting remainder; its average price is the venue match price.

No-liquidity and invalid-price conditions are non-retryable: they fail the
order immediately regardless of the remaining retry budget. Everything else
retries with a fresh quote after retry_delay_ms * 1.5^attempt.
"""

import asyncio
import math
import time
from decimal import ROUND_DOWN, Decimal

from forecast_leverage.config import ExecutionSettings
from forecast_leverage.exceptions import MarketError
from forecast_leverage.logging import get_logger
from forecast_leverage.models import OrderAttempt, OrderFill, OrderState, OrderType
from forecast_leverage.venue.client import VenueClient
from forecast_leverage.venue.types import VenueOrder, VenueOrderStatus, round_to_tick

logger = get_logger(__name__)

_BPS = Decimal("10000")
_PASSIVE_BPS = Decimal("20000")  # limit orders use half the slippage allowance


class OrderExecutor:
    """Buys outcome tokens with fill polling, cancellation and retry/backoff.

    Args:
        venue: Authenticated matching-venue handle.
        settings: Poll interval, fill timeouts and backoff multiplier.
        tick_size: Venue price increment; limit prices are rounded down to it.
        token_decimals: Outcome token precision; received amounts are floored to it.
    """

    def __init__(
        self,
        venue: VenueClient,
        settings: ExecutionSettings | None = None,
        tick_size: Decimal = Decimal("0.001"),
        token_decimals: int = 6,
    ) -> None:
        self._venue = venue
        self._settings = settings or ExecutionSettings()
        self._tick = tick_size
        self._token_quantum = Decimal(1).scaleb(-token_decimals)

    def limit_price(
        self, best_ask: Decimal, max_slippage_bps: int, order_type: OrderType
    ) -> Decimal:
        """Worst acceptable price for a buy.

        FOK spends the full slippage allowance (aggressive); GTC/GTD use half
        of it since they can rest on the book.
        """
        divisor = _BPS if order_type == OrderType.FOK else _PASSIVE_BPS
        raw = best_ask * (Decimal("1") + Decimal(max_slippage_bps) / divisor)
        return min(round_to_tick(raw, self._tick), Decimal("1") - self._tick)

    def fill_timeout(self, order_type: OrderType) -> float:
        if order_type == OrderType.FOK:
            return self._settings.fok_fill_timeout_seconds
        return self._settings.limit_fill_timeout_seconds

    async def buy(
        self,
        token_id: str,
        usdc_amount: Decimal,
        max_slippage_bps: int,
        order_type: OrderType = OrderType.FOK,
        max_retries: int = 3,
        retry_delay_ms: int = 2000,
    ) -> OrderFill:
        """Spend usdc_amount on token_id, retrying unfilled orders.

        Args:
            token_id: Outcome token to buy.
            usdc_amount: USDC to spend.
            max_slippage_bps: Slippage allowance over the best ask.
            order_type: FOK, GTC or GTD.
            max_retries: Retries after the first attempt.
            retry_delay_ms: Base delay for exponential backoff.

        Returns:
            OrderFill with tokens received and realized slippage.

        Raises:
            MarketError: Non-retryable venue condition, or retries exhausted.
        """
        last_error: MarketError | None = None
        max_attempts = max_retries + 1

        for attempt in range(max_attempts):
            try:
                return await self._attempt(
                    token_id, usdc_amount, max_slippage_bps, order_type, attempt
                )
            except MarketError as exc:
                last_error = exc
            except Exception as exc:
                last_error = MarketError(f"order failed: {exc}")

            logger.warning(
                "order_attempt_failed",
                token_id=token_id,
                attempt=attempt + 1,
                max_attempts=max_attempts,
                retryable=last_error.retryable,
                error=last_error.message,
            )

            if not last_error.retryable:
                break

            if attempt < max_retries:
                delay_ms = Decimal(retry_delay_ms) * self._settings.backoff_multiplier**attempt
                logger.info(
                    "order_state",
                    state=OrderState.RETRY.value,
                    token_id=token_id,
                    next_attempt=attempt + 2,
                    delay_ms=str(delay_ms),
                )
                await asyncio.sleep(float(delay_ms / 1000))

        assert last_error is not None
        logger.error(
            "order_state",
            state=OrderState.FAILED.value,
            token_id=token_id,
            error=last_error.message,
        )
        raise last_error

    async def _attempt(
        self,
        token_id: str,
        usdc_amount: Decimal,
        max_slippage_bps: int,
        order_type: OrderType,
        attempt: int,
    ) -> OrderFill:
        book = await self._venue.get_order_book(token_id)
        best_ask = book.best_ask
        if best_ask is None:
            raise MarketError(f"no liquidity available for token {token_id}", retryable=False)
        if best_ask <= 0 or best_ask >= 1:
            raise MarketError(f"invalid orderbook price: {best_ask}", retryable=False)

        size = (usdc_amount / best_ask).quantize(self._token_quantum, rounding=ROUND_DOWN)
        record = OrderAttempt(
            token_id=token_id,
            size=size,
            limit_price=self.limit_price(best_ask, max_slippage_bps, order_type),
            order_type=order_type,
            attempt=attempt,
        )
        timeout = self.fill_timeout(order_type)

        expiration = None
        if order_type == OrderType.GTD:
            expiration = (
                int(time.time()) + self._settings.gtd_expiration_buffer_seconds + math.ceil(timeout)
            )

        order_id = await self._venue.post_order(
            token_id, record.limit_price, size, order_type, expiration=expiration
        )
        if not order_id:
            raise MarketError("failed to create order: no order ID returned")
        record.order_id = order_id
        self._transition(
            record,
            OrderState.PLACED,
            best_ask=str(best_ask),
            best_bid=str(book.best_bid) if book.best_bid is not None else None,
        )

        state, order = await self._poll_fill(record, timeout)
        if state != OrderState.FILLED or order is None:
            if state == OrderState.TIMED_OUT:
                await self._cancel(record)
            raise MarketError(f"order {order_id} failed to fill within {timeout}s")

        # A confirmed trade can report FILLED while part of the order still rests.
        ordered = order.original_size if order.original_size > 0 else size
        partial = Decimal("0") < order.size_matched < ordered
        if partial:
            await self._cancel(record)
            filled_size = order.size_matched
            avg_price = order.price if order.price > 0 else record.limit_price
        else:
            filled_size = order.size_matched if order.size_matched > 0 else size
            avg_price = usdc_amount / filled_size
        slippage = (avg_price - best_ask) * filled_size
        tokens_received = filled_size.quantize(self._token_quantum, rounding=ROUND_DOWN)

        self._transition(
            record,
            OrderState.FILLED,
            filled_size=str(filled_size),
            avg_price=str(avg_price),
            slippage=str(slippage),
            partial=partial,
        )
        return OrderFill(
            order_id=order_id,
            tokens_received=tokens_received,
            filled_size=filled_size,
            avg_price=avg_price,
            best_ask=best_ask,
            slippage=slippage,
            attempts=attempt + 1,
        )

    async def _poll_fill(
        self, record: OrderAttempt, timeout: float
    ) -> tuple[OrderState, VenueOrder | None]:
        """Poll until filled, closed by the venue, or timeout.

        Returns FILLED with the order, CANCELLED if the venue cancelled or
        rejected it, or TIMED_OUT if it is still resting.
        """
        assert record.order_id is not None
        self._transition(record, OrderState.POLLING, timeout_seconds=timeout)
        interval = self._settings.poll_interval_seconds
        max_polls = max(1, math.ceil(timeout / interval))

        for _ in range(max_polls):
            try:
                order = await self._venue.get_order(record.order_id)
            except Exception as exc:
                # Transient status errors do not abort the order.
                logger.warning("order_poll_failed", order_id=record.order_id, error=str(exc))
            else:
                if order.status == VenueOrderStatus.FILLED:
                    return OrderState.FILLED, order
                if order.status in (VenueOrderStatus.CANCELLED, VenueOrderStatus.REJECTED):
                    self._transition(record, OrderState.CANCELLED, venue_status=order.status.value)
                    return OrderState.CANCELLED, order
            await asyncio.sleep(interval)

        self._transition(record, OrderState.TIMED_OUT)
        return OrderState.TIMED_OUT, None

    async def _cancel(self, record: OrderAttempt) -> None:
        assert record.order_id is not None
        try:
            await self._venue.cancel_order(record.order_id)
        except Exception:
            logger.warning("order_cancel_failed", order_id=record.order_id, exc_info=True)
            return
        self._transition(record, OrderState.CANCELLED)

    @staticmethod
    def _transition(record: OrderAttempt, state: OrderState, **context: object) -> None:
        record.state = state
        logger.info(
            "order_state",
            state=state.value,
            order_id=record.order_id,
            token_id=record.token_id,
            attempt=record.attempt + 1,
            order_type=record.order_type.value,
            size=str(record.size),
            limit_price=str(record.limit_price),
            **context,
        )
