"""Error taxonomy for the leverage engine.

Every error surfaced to a caller is a LeverageError carrying an explicit
``kind`` tag, so integrators can dispatch with a single ``match err.kind``
instead of chaining isinstance checks:

    try:
        position = await sdk.execute(params)
    except LeverageError as err:
        match err.kind:
            case ErrorKind.VALIDATION | ErrorKind.RUNWAY: ...
            case ErrorKind.MARKET: ...
            case ErrorKind.PROTOCOL: ...
"""

from decimal import Decimal
from enum import Enum


class ErrorKind(str, Enum):
    """Error category exposed to callers."""

    VALIDATION = "validation"
    RUNWAY = "runway"
    MARKET = "market"
    PROTOCOL = "protocol"


class RevertReason(str, Enum):
    """Structured cause of an on-chain failure."""

    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    PAUSED = "paused"
    INSUFFICIENT_TOKENS = "insufficient_tokens"
    TRANSACTION_FAILED = "transaction_failed"
    EVENT_NOT_FOUND = "event_not_found"
    UNKNOWN = "unknown"


class LeverageError(Exception):
    """Base exception for all engine errors."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ValidationError(LeverageError):
    """Raised for malformed or out-of-range input, before any I/O side effect."""

    kind = ErrorKind.VALIDATION


class RunwayExceeded(ValidationError):
    """Raised when debt would reach full collateral value before the term ends."""

    kind = ErrorKind.RUNWAY

    def __init__(
        self,
        message: str,
        runway_seconds: Decimal,
        safe_runway_seconds: Decimal,
    ) -> None:
        super().__init__(message)
        self.runway_seconds = runway_seconds
        self.safe_runway_seconds = safe_runway_seconds


class MarketError(LeverageError):
    """Raised for matching-venue failures.

    ``retryable`` is False for no-liquidity and invalid-price conditions,
    which fail an order immediately regardless of remaining retry budget.
    """

    kind = ErrorKind.MARKET

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class ProtocolError(LeverageError):
    """Raised for on-chain failures (reverts, failed receipts, missing events)."""

    kind = ErrorKind.PROTOCOL

    def __init__(self, message: str, reason: RevertReason = RevertReason.UNKNOWN) -> None:
        super().__init__(message)
        self.reason = reason


class ContractRevert(Exception):
    """Raised by protocol bindings when a call or transaction reverts.

    ``code`` is the decoded custom-error name or revert string; it is mapped to
    a RevertReason through protocol.types.REVERT_REASONS.
    """

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.code = code
