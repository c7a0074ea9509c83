"""Raw on-chain types and unit conversion for the lending protocol.

Contract values cross this boundary as integers: rates and F in e18 fixed
point, USDC and outcome tokens in 6-decimal base units. Conversion to Decimal
happens here and nowhere else.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from forecast_leverage.exceptions import ContractRevert, ProtocolError, RevertReason
from forecast_leverage.models import E18, Quote

# Custom-error names / revert strings emitted by the protocol contracts.
REVERT_REASONS: dict[str, RevertReason] = {
    "InsufficientLiquidity": RevertReason.INSUFFICIENT_LIQUIDITY,
    "InsufficientSeniorLiquidity": RevertReason.INSUFFICIENT_LIQUIDITY,
    "InsufficientJuniorLiquidity": RevertReason.INSUFFICIENT_LIQUIDITY,
    "insufficient liquidity": RevertReason.INSUFFICIENT_LIQUIDITY,
    "Paused": RevertReason.PAUSED,
    "EnforcedPause": RevertReason.PAUSED,
    "Pausable: paused": RevertReason.PAUSED,
}

_REASON_MESSAGES: dict[RevertReason, str] = {
    RevertReason.INSUFFICIENT_LIQUIDITY: "insufficient protocol liquidity",
    RevertReason.PAUSED: "protocol is paused",
}


@dataclass(frozen=True)
class RawQuote:
    """quote() return tuple, unconverted."""

    f_e18: int
    rs_e18: int
    rj_e18: int
    usdc_needed: int
    converged: bool


@dataclass(frozen=True)
class ContractEvent:
    """Decoded log emitted by a transaction."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TxReceipt:
    """Mined transaction receipt. status == 1 means success."""

    tx_hash: str
    status: int
    events: list[ContractEvent] = field(default_factory=list)
    gas_used: int = 0


def from_e18(value: int) -> Decimal:
    """Convert an e18 fixed-point integer to Decimal."""
    return Decimal(value) / E18


def from_base_units(amount: int, decimals: int) -> Decimal:
    """Convert token base units (e.g. 1_500_000 at 6 decimals) to Decimal (1.5)."""
    return Decimal(amount) / (Decimal(10) ** decimals)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Convert a Decimal token amount to integer base units, rounding down."""
    return int(amount * (Decimal(10) ** decimals))


def convert_quote(raw: RawQuote, usdc_decimals: int = 6) -> Quote:
    return Quote(
        f=from_e18(raw.f_e18),
        r_senior=from_e18(raw.rs_e18),
        r_junior=from_e18(raw.rj_e18),
        usdc_needed=from_base_units(raw.usdc_needed, usdc_decimals),
        converged=raw.converged,
    )


def classify_revert(exc: ContractRevert, action: str) -> ProtocolError:
    """Translate a contract revert into a ProtocolError via REVERT_REASONS.

    Args:
        exc: The revert raised by the protocol binding.
        action: What was being attempted, for the generic message
            (e.g. "open position").

    Returns:
        ProtocolError with a structured reason; unknown codes map to UNKNOWN.
    """
    reason = REVERT_REASONS.get(exc.code, RevertReason.UNKNOWN)
    message = _REASON_MESSAGES.get(reason, f"failed to {action}: {exc}")
    return ProtocolError(message, reason=reason)
