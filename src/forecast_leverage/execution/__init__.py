"""Order execution on the venue and leg opening on the protocol."""

from forecast_leverage.execution.leg_opener import LegOpener
from forecast_leverage.execution.order_executor import OrderExecutor
from forecast_leverage.execution.transactions import send_and_confirm

__all__ = ["LegOpener", "OrderExecutor", "send_and_confirm"]
