"""Tests for ParamsValidator -- input checks before any network call."""

from decimal import Decimal

import pytest

from conftest import make_params
from forecast_leverage.config import LeverageSettings
from forecast_leverage.exceptions import ErrorKind, ValidationError
from forecast_leverage.position.validator import ParamsValidator


@pytest.fixture
def validator() -> ParamsValidator:
    return ParamsValidator(LeverageSettings())


class TestAccepts:
    def test_long_yes(self, validator: ParamsValidator) -> None:
        validator.validate(make_params())

    def test_long_no(self, validator: ParamsValidator) -> None:
        validator.validate(
            make_params(long_yes=False, current_price=Decimal("0.60"), target_price=Decimal("0.55"))
        )

    def test_boundaries(self, validator: ParamsValidator) -> None:
        validator.validate(
            make_params(
                timeframe_seconds=60,
                capital_usdc=Decimal("10"),
                max_slippage_bps=0,
                max_retries=0,
            )
        )
        validator.validate(make_params(timeframe_seconds=31_536_000, max_slippage_bps=5000))


class TestMarketId:
    def test_missing_prefix(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="starting with 0x"):
            validator.validate(make_params(market_condition_id="invalid"))

    def test_wrong_length(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="32-byte"):
            validator.validate(make_params(market_condition_id="0xabc"))

    def test_non_hex(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError):
            validator.validate(make_params(market_condition_id="0x" + "zz" * 32))


class TestPrices:
    @pytest.mark.parametrize("price", ["0", "1", "1.5", "-0.1"])
    def test_current_price_out_of_range(self, validator: ParamsValidator, price: str) -> None:
        with pytest.raises(ValidationError, match="currentPrice"):
            validator.validate(make_params(current_price=Decimal(price)))

    def test_target_price_out_of_range(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="targetPrice"):
            validator.validate(make_params(target_price=Decimal("1")))

    def test_long_yes_requires_rising_target(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="price direction"):
            validator.validate(
                make_params(current_price=Decimal("0.50"), target_price=Decimal("0.40"))
            )

    def test_long_yes_rejects_equal_target(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="price direction"):
            validator.validate(
                make_params(current_price=Decimal("0.50"), target_price=Decimal("0.50"))
            )

    def test_long_no_requires_falling_target(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="price direction"):
            validator.validate(
                make_params(
                    long_yes=False, current_price=Decimal("0.40"), target_price=Decimal("0.44")
                )
            )


class TestRanges:
    def test_capital_below_minimum(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="minimum") as exc_info:
            validator.validate(make_params(capital_usdc=Decimal("5")))
        assert exc_info.value.kind == ErrorKind.VALIDATION

    @pytest.mark.parametrize("timeframe", [0, 59, 31_536_001])
    def test_timeframe_out_of_range(self, validator: ParamsValidator, timeframe: int) -> None:
        with pytest.raises(ValidationError, match="timeframe"):
            validator.validate(make_params(timeframe_seconds=timeframe))

    @pytest.mark.parametrize("bps", [-1, 5001, 10000])
    def test_slippage_out_of_range(self, validator: ParamsValidator, bps: int) -> None:
        with pytest.raises(ValidationError, match="slippage"):
            validator.validate(make_params(max_slippage_bps=bps))

    def test_negative_retries(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="maxRetries"):
            validator.validate(make_params(max_retries=-1))

    def test_negative_retry_delay(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="retryDelayMs"):
            validator.validate(make_params(retry_delay_ms=-5))

    def test_unknown_order_type(self, validator: ParamsValidator) -> None:
        with pytest.raises(ValidationError, match="orderType"):
            validator.validate(make_params(order_type="IOC"))
