"""Leg Opener: one borrow transaction against purchased outcome tokens."""

from decimal import Decimal

from forecast_leverage.config import ProtocolSettings
from forecast_leverage.exceptions import ProtocolError, RevertReason
from forecast_leverage.execution.transactions import send_and_confirm
from forecast_leverage.logging import get_logger
from forecast_leverage.protocol.client import LendingProtocol
from forecast_leverage.protocol.types import to_base_units

logger = get_logger(__name__)


class LegOpener:
    """Opens protocol legs and extracts their identifiers.

    One collateral unit (set) is one whole outcome token; fractional tokens
    left over stay in the wallet.

    Args:
        protocol: Lending protocol binding for the signer.
        settings: Token decimals and the LegOpened event name.
    """

    def __init__(self, protocol: LendingProtocol, settings: ProtocolSettings | None = None) -> None:
        self._protocol = protocol
        self._settings = settings or ProtocolSettings()

    def sets_for(self, tokens: Decimal) -> int:
        """Collateral units available from a token amount (integer division)."""
        unit_size = 10**self._settings.token_decimals
        return to_base_units(tokens, self._settings.token_decimals) // unit_size

    async def open_leg(
        self,
        tokens: Decimal,
        term: int,
        condition_id: str,
        long_yes: bool,
    ) -> int:
        """Borrow against tokens and return the new leg id.

        Args:
            tokens: Outcome tokens just purchased.
            term: Leg term in seconds.
            condition_id: Market condition id.
            long_yes: Direction of the held tokens.

        Returns:
            The leg id from the LegOpened event.

        Raises:
            ProtocolError: Insufficient tokens, revert (liquidity, paused),
                failed receipt, or missing event.
        """
        sets = self.sets_for(tokens)
        if sets < 1:
            raise ProtocolError(
                f"insufficient tokens: {tokens} (need at least 1 set)",
                reason=RevertReason.INSUFFICIENT_TOKENS,
            )

        receipt = await send_and_confirm(
            self._protocol,
            self._protocol.open(sets, term, condition_id, long_yes),
            "open position",
        )

        event_name = self._settings.leg_opened_event
        event = next((e for e in receipt.events if e.name == event_name), None)
        if event is None or "legId" not in event.args:
            raise ProtocolError(
                f"{event_name} event not found in transaction {receipt.tx_hash}",
                reason=RevertReason.EVENT_NOT_FOUND,
            )

        leg_id = int(event.args["legId"])
        logger.info(
            "leg_opened",
            leg_id=leg_id,
            sets=sets,
            term=term,
            tx_hash=receipt.tx_hash,
        )
        return leg_id
