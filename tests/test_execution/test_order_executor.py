"""Tests for OrderExecutor -- fill polling, cancellation, retry/backoff.

asyncio.sleep is patched in every test that can reach a poll or a backoff
so the suite never waits on real timers.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from forecast_leverage.config import ExecutionSettings
from forecast_leverage.exceptions import ErrorKind, MarketError
from forecast_leverage.execution.order_executor import OrderExecutor
from forecast_leverage.models import OrderType
from forecast_leverage.venue.types import (
    BookLevel,
    OrderBook,
    VenueOrder,
    VenueOrderStatus,
    normalize_status,
)

SLEEP = "forecast_leverage.execution.order_executor.asyncio.sleep"
TOKEN = "1111"


def _book(*asks: str) -> OrderBook:
    return OrderBook(
        token_id=TOKEN,
        asks=[BookLevel(price=Decimal(p), size=Decimal("100000")) for p in asks],
    )


def _order(status: VenueOrderStatus, matched: str = "0", original: str = "0") -> VenueOrder:
    return VenueOrder(
        order_id="ord-1",
        status=status,
        original_size=Decimal(original),
        size_matched=Decimal(matched),
    )


@pytest.fixture
def executor(venue: AsyncMock) -> OrderExecutor:
    venue.get_order_book.return_value = _book("0.40")
    venue.post_order.return_value = "ord-1"
    venue.get_order.return_value = _order(VenueOrderStatus.FILLED)
    return OrderExecutor(venue, ExecutionSettings(), tick_size=Decimal("0.001"))


class TestLimitPrice:
    def test_fok_uses_full_slippage(self, executor: OrderExecutor) -> None:
        assert executor.limit_price(Decimal("0.40"), 100, OrderType.FOK) == Decimal("0.404")

    @pytest.mark.parametrize("order_type", [OrderType.GTC, OrderType.GTD])
    def test_limit_orders_use_half(self, executor: OrderExecutor, order_type: OrderType) -> None:
        assert executor.limit_price(Decimal("0.40"), 100, order_type) == Decimal("0.402")

    def test_capped_below_one(self, executor: OrderExecutor) -> None:
        assert executor.limit_price(Decimal("0.98"), 5000, OrderType.FOK) == Decimal("0.999")

    def test_fill_timeouts(self, executor: OrderExecutor) -> None:
        assert executor.fill_timeout(OrderType.FOK) == 10.0
        assert executor.fill_timeout(OrderType.GTC) == 30.0
        assert executor.fill_timeout(OrderType.GTD) == 30.0


class TestFill:
    @pytest.mark.asyncio
    async def test_immediate_fill(self, executor: OrderExecutor, venue: AsyncMock) -> None:
        fill = await executor.buy(TOKEN, Decimal("100"), 100)

        assert fill.order_id == "ord-1"
        assert fill.tokens_received == Decimal("250")
        assert fill.best_ask == Decimal("0.40")
        assert fill.slippage == Decimal("0")
        assert fill.attempts == 1
        venue.post_order.assert_awaited_once_with(
            TOKEN, Decimal("0.404"), Decimal("250"), OrderType.FOK, expiration=None
        )

    @pytest.mark.asyncio
    async def test_full_match_above_ask_sets_slippage(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        # Venue ordered size equals the match, but $100 only bought 200 tokens.
        venue.get_order.return_value = _order(
            VenueOrderStatus.FILLED, matched="200", original="200"
        )
        fill = await executor.buy(TOKEN, Decimal("100"), 100)

        assert fill.filled_size == Decimal("200")
        assert fill.avg_price == Decimal("0.5")
        assert fill.slippage == Decimal("20")
        venue.cancel_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_match_cancels_remainder(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        """A confirmed trade on part of a resting order: keep the part, cancel the rest."""
        venue.get_order.return_value = VenueOrder(
            order_id="ord-1",
            status=normalize_status("LIVE", ["CONFIRMED"]),
            original_size=Decimal("250"),
            size_matched=Decimal("100"),
            price=Decimal("0.404"),
        )
        fill = await executor.buy(TOKEN, Decimal("100"), 100)

        venue.cancel_order.assert_awaited_once_with("ord-1")
        assert fill.tokens_received == Decimal("100")
        assert fill.avg_price == Decimal("0.404")
        assert fill.slippage == Decimal("0.4")

    @pytest.mark.asyncio
    async def test_partial_match_without_price_uses_limit(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        venue.get_order.return_value = _order(VenueOrderStatus.FILLED, matched="100")
        venue.cancel_order.side_effect = RuntimeError("already matched")
        fill = await executor.buy(TOKEN, Decimal("100"), 100)

        # requested size 250 > 100 matched
        assert fill.avg_price == Decimal("0.404")
        assert fill.filled_size == Decimal("100")

    @pytest.mark.asyncio
    async def test_polls_until_filled(self, executor: OrderExecutor, venue: AsyncMock) -> None:
        venue.get_order.side_effect = [
            _order(VenueOrderStatus.OPEN),
            RuntimeError("transient"),
            _order(VenueOrderStatus.FILLED),
        ]
        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            fill = await executor.buy(TOKEN, Decimal("100"), 100)

        assert fill.tokens_received == Decimal("250")
        assert venue.get_order.await_count == 3
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(1.0)

    @pytest.mark.asyncio
    async def test_tokens_floored_to_base_unit(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        venue.get_order_book.return_value = _book("0.3")
        fill = await executor.buy(TOKEN, Decimal("100"), 0)
        assert fill.tokens_received == Decimal("333.333333")

    @pytest.mark.asyncio
    async def test_gtd_sets_expiration(self, executor: OrderExecutor, venue: AsyncMock) -> None:
        with patch("forecast_leverage.execution.order_executor.time.time", return_value=1000.0):
            await executor.buy(TOKEN, Decimal("100"), 100, order_type=OrderType.GTD)
        assert venue.post_order.await_args.kwargs["expiration"] == 1000 + 60 + 30


class TestNonRetryable:
    @pytest.mark.asyncio
    async def test_empty_book(self, executor: OrderExecutor, venue: AsyncMock) -> None:
        venue.get_order_book.return_value = _book()
        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(MarketError, match="no liquidity") as exc_info:
                await executor.buy(TOKEN, Decimal("100"), 100, max_retries=5)

        assert exc_info.value.retryable is False
        assert exc_info.value.kind == ErrorKind.MARKET
        assert venue.get_order_book.await_count == 1
        mock_sleep.assert_not_awaited()
        venue.post_order.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", ["0", "1", "1.2"])
    async def test_invalid_price(
        self, executor: OrderExecutor, venue: AsyncMock, price: str
    ) -> None:
        venue.get_order_book.return_value = _book(price)
        with patch(SLEEP, new_callable=AsyncMock):
            with pytest.raises(MarketError, match="invalid orderbook price"):
                await executor.buy(TOKEN, Decimal("100"), 100, max_retries=5)
        assert venue.get_order_book.await_count == 1


class TestRetry:
    @pytest.mark.asyncio
    async def test_timeout_cancels_and_retries_with_fresh_quote(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        venue.get_order_book.side_effect = [_book("0.40"), _book("0.42")]
        # 10 unfilled polls (FOK 10s timeout), then filled on the retry
        venue.get_order.side_effect = [_order(VenueOrderStatus.OPEN)] * 10 + [
            _order(VenueOrderStatus.FILLED)
        ]
        venue.post_order.side_effect = ["ord-1", "ord-2"]

        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            fill = await executor.buy(TOKEN, Decimal("84"), 100, retry_delay_ms=2000)

        venue.cancel_order.assert_awaited_once_with("ord-1")
        assert fill.order_id == "ord-2"
        assert fill.best_ask == Decimal("0.42")
        assert fill.tokens_received == Decimal("200")
        assert fill.attempts == 2
        mock_sleep.assert_any_await(2.0)  # backoff 2000ms * 1.5^0

    @pytest.mark.asyncio
    async def test_exponential_backoff_then_failure(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        venue.post_order.return_value = None  # venue never assigns an id

        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(MarketError, match="no order ID"):
                await executor.buy(TOKEN, Decimal("100"), 100, max_retries=3, retry_delay_ms=2000)

        assert venue.post_order.await_count == 4
        delays = [c.args[0] for c in mock_sleep.await_args_list]
        assert delays == [2.0, 3.0, 4.5]

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        venue.post_order.return_value = None
        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(MarketError):
                await executor.buy(TOKEN, Decimal("100"), 100, max_retries=0)
        assert venue.post_order.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_venue_rejection_skips_cancel(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        venue.get_order.return_value = _order(VenueOrderStatus.REJECTED)
        with patch(SLEEP, new_callable=AsyncMock):
            with pytest.raises(MarketError, match="failed to fill"):
                await executor.buy(TOKEN, Decimal("100"), 100, max_retries=1)
        venue.cancel_order.assert_not_awaited()
        assert venue.post_order.await_count == 2

    @pytest.mark.asyncio
    async def test_cancel_failure_does_not_abort_retry(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        venue.get_order.side_effect = [_order(VenueOrderStatus.OPEN)] * 10 + [
            _order(VenueOrderStatus.FILLED)
        ]
        venue.cancel_order.side_effect = RuntimeError("already gone")
        with patch(SLEEP, new_callable=AsyncMock):
            fill = await executor.buy(TOKEN, Decimal("100"), 100, max_retries=1)
        assert fill.attempts == 2

    @pytest.mark.asyncio
    async def test_unclassified_errors_wrapped(
        self, executor: OrderExecutor, venue: AsyncMock
    ) -> None:
        venue.get_order_book.side_effect = ConnectionError("socket closed")
        with patch(SLEEP, new_callable=AsyncMock):
            with pytest.raises(MarketError, match="order failed: socket closed") as exc_info:
                await executor.buy(TOKEN, Decimal("100"), 100, max_retries=2)
        assert exc_info.value.retryable is True
        assert venue.get_order_book.await_count == 3
