"""Fee and PnL projection."""

from forecast_leverage.pnl.metrics import MetricsCalculator, synthetic_leg

__all__ = ["MetricsCalculator", "synthetic_leg"]
