"""Position sizing, the leverage loop, and closing."""

from forecast_leverage.position.closer import PositionCloser
from forecast_leverage.position.loop import LoopOrchestrator, LoopState, simulate_loop
from forecast_leverage.position.parameters import LeverageCalculator, cap_leverage
from forecast_leverage.position.validator import ParamsValidator

__all__ = [
    "LeverageCalculator",
    "LoopOrchestrator",
    "LoopState",
    "ParamsValidator",
    "PositionCloser",
    "cap_leverage",
    "simulate_loop",
]
