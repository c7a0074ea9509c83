"""Position Closer: settle legs one by one and sum realized USDC.

Legs are closable in any order and any subset, so a failure stops here and
leaves the remaining legs open for the caller to retry individually.
"""

from decimal import Decimal

from forecast_leverage.config import ProtocolSettings
from forecast_leverage.exceptions import ProtocolError
from forecast_leverage.execution.transactions import send_and_confirm
from forecast_leverage.logging import get_logger
from forecast_leverage.models import CloseResult
from forecast_leverage.protocol.client import LendingProtocol, TokenCustody
from forecast_leverage.protocol.types import from_base_units

logger = get_logger(__name__)


class PositionCloser:
    """Closes legs sequentially, measuring proceeds by balance delta.

    Args:
        protocol: Lending protocol binding.
        custody: USDC balance reads for the signer.
        settings: USDC decimals.
    """

    def __init__(
        self,
        protocol: LendingProtocol,
        custody: TokenCustody,
        settings: ProtocolSettings | None = None,
    ) -> None:
        self._protocol = protocol
        self._custody = custody
        self._settings = settings or ProtocolSettings()

    async def close_legs(self, leg_ids: list[int] | tuple[int, ...]) -> CloseResult:
        """Close each leg in order.

        Returns:
            CloseResult with per-leg proceeds.

        Raises:
            ProtocolError: The first leg that fails to close; later legs are
                not attempted.
        """
        proceeds: dict[int, Decimal] = {}

        for leg_id in leg_ids:
            try:
                before = await self._custody.usdc_balance()
                await send_and_confirm(
                    self._protocol, self._protocol.close(leg_id), f"close leg {leg_id}"
                )
                after = await self._custody.usdc_balance()
            except ProtocolError as exc:
                logger.error(
                    "leg_close_failed",
                    leg_id=leg_id,
                    closed=len(proceeds),
                    remaining=len(leg_ids) - len(proceeds),
                    reason=exc.reason.value,
                    error=exc.message,
                )
                raise ProtocolError(
                    f"failed to close leg {leg_id}: {exc.message}", reason=exc.reason
                ) from exc
            except Exception as exc:
                logger.error("leg_close_failed", leg_id=leg_id, error=str(exc))
                raise ProtocolError(f"failed to close leg {leg_id}: {exc}") from exc

            delta = from_base_units(after - before, self._settings.usdc_decimals)
            proceeds[leg_id] = delta
            logger.info("leg_closed", leg_id=leg_id, proceeds=str(delta))

        result = CloseResult(proceeds=proceeds)
        logger.info("position_closed", legs=len(proceeds), realized_usdc=str(result.realized_usdc))
        return result
