"""Leveraged target positions on binary prediction markets."""

from forecast_leverage.exceptions import (
    ErrorKind,
    LeverageError,
    MarketError,
    ProtocolError,
    RevertReason,
    RunwayExceeded,
    ValidationError,
)
from forecast_leverage.models import (
    LeverageParams,
    LeveragePosition,
    OrderType,
    TargetPositionParams,
)
from forecast_leverage.sdk import ForecastLeverageSDK

__all__ = [
    "ErrorKind",
    "ForecastLeverageSDK",
    "LeverageError",
    "LeverageParams",
    "LeveragePosition",
    "MarketError",
    "OrderType",
    "ProtocolError",
    "RevertReason",
    "RunwayExceeded",
    "TargetPositionParams",
    "ValidationError",
]
