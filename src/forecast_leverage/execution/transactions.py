"""Submit-and-confirm helper shared by every on-chain write.

Each write goes submit -> wait for finality -> check receipt status. Reverts
are classified through REVERT_REASONS; anything else unexpected becomes a
generic ProtocolError naming the action.
"""

from collections.abc import Awaitable

from forecast_leverage.exceptions import ContractRevert, ProtocolError, RevertReason
from forecast_leverage.logging import get_logger
from forecast_leverage.protocol.client import LendingProtocol
from forecast_leverage.protocol.types import TxReceipt, classify_revert

logger = get_logger(__name__)


async def send_and_confirm(
    protocol: LendingProtocol,
    submission: Awaitable[str],
    action: str,
) -> TxReceipt:
    """Await a transaction submission and its receipt.

    Args:
        protocol: Provides wait_for_receipt().
        submission: The pending write call (returns a tx hash).
        action: Short description for error messages, e.g. "open position".

    Returns:
        The successful receipt.

    Raises:
        ProtocolError: On revert, non-success receipt, or any other failure.
    """
    try:
        tx_hash = await submission
        receipt = await protocol.wait_for_receipt(tx_hash)
    except ProtocolError:
        raise
    except ContractRevert as exc:
        error = classify_revert(exc, action)
        logger.error("transaction_reverted", action=action, code=exc.code, reason=error.reason.value)
        raise error from exc
    except Exception as exc:
        raise ProtocolError(f"failed to {action}: {exc}") from exc

    if receipt is None or receipt.status != 1:
        logger.error(
            "transaction_failed",
            action=action,
            tx_hash=getattr(receipt, "tx_hash", None),
        )
        raise ProtocolError("transaction failed", reason=RevertReason.TRANSACTION_FAILED)

    logger.debug("transaction_confirmed", action=action, tx_hash=receipt.tx_hash)
    return receipt
