"""Shared data models for the leverage engine.

CRITICAL: All monetary values and prices use Decimal. Never use float for
prices, token quantities, capital, or fees. On-chain fixed-point values stay
as int on the raw types and are converted once via protocol.types helpers.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

SECONDS_PER_YEAR = 365 * 24 * 3600

E18 = Decimal(10) ** 18


class OrderType(str, Enum):
    """Venue order type.

    FOK fills immediately or not at all; GTC rests until cancelled;
    GTD rests until an expiration time.
    """

    FOK = "FOK"
    GTC = "GTC"
    GTD = "GTD"


class OrderState(str, Enum):
    """Order Executor state machine states."""

    PLACED = "placed"
    POLLING = "polling"
    FILLED = "filled"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    RETRY = "retry"
    FAILED = "failed"


@dataclass
class TargetPositionParams:
    """Caller request: a price target on one side of a binary market."""

    market_condition_id: str  # bytes32 hex, "0x" + 64 hex chars
    long_yes: bool
    current_price: Decimal
    target_price: Decimal
    timeframe_seconds: int
    capital_usdc: Decimal
    max_slippage_bps: int
    order_type: OrderType = OrderType.FOK
    max_retries: int = 3
    retry_delay_ms: int = 2000


@dataclass(frozen=True)
class Quote:
    """Protocol quote converted out of e18 fixed point."""

    f: Decimal
    r_senior: Decimal
    r_junior: Decimal
    usdc_needed: Decimal
    converged: bool


@dataclass(frozen=True)
class LeverageParams:
    """Derived loop parameters. Read-only."""

    f: Decimal
    r: Decimal
    loops: int
    max_leverage: Decimal
    token_id: str
    r_senior: Decimal = Decimal("0")
    r_junior: Decimal = Decimal("0")


@dataclass(frozen=True)
class Leg:
    """One opened borrow position, as stored by the protocol."""

    leg_id: int
    sets: int
    f_e18: int
    rs_e18: int
    rj_e18: int
    term: int
    opened: int
    borrower: str
    escrow: str
    long_position_id: int
    short_position_id: int
    condition_id: str

    @property
    def f(self) -> Decimal:
        return Decimal(self.f_e18) / E18

    @property
    def r_senior(self) -> Decimal:
        return Decimal(self.rs_e18) / E18

    @property
    def r_junior(self) -> Decimal:
        return Decimal(self.rj_e18) / E18


@dataclass(frozen=True)
class FeeBreakdown:
    """Projected costs of a position in USDC."""

    protocol_senior: Decimal
    protocol_junior: Decimal
    slippage: Decimal
    gas: Decimal

    @property
    def total(self) -> Decimal:
        return self.protocol_senior + self.protocol_junior + self.slippage + self.gas


@dataclass(frozen=True)
class PnlBreakdown:
    """PnL scenarios in USDC; breakeven is a price."""

    at_target: Decimal
    breakeven: Decimal
    max_profit: Decimal
    max_loss: Decimal


@dataclass(frozen=True)
class LeveragePosition:
    """Result of a simulated or executed leverage loop. Never mutated."""

    leg_ids: tuple[int, ...]
    total_exposure: Decimal  # outcome tokens held across all legs
    effective_leverage: Decimal
    capital_deployed: Decimal
    fees: FeeBreakdown
    pnl: PnlBreakdown
    auto_close_time: float  # Unix seconds
    f: Decimal
    r: Decimal
    is_simulated: bool = False


@dataclass
class OrderAttempt:
    """One pass through the Order Executor state machine. Transient."""

    token_id: str
    size: Decimal
    limit_price: Decimal
    order_type: OrderType
    attempt: int
    state: OrderState = OrderState.PLACED
    order_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class OrderFill:
    """Resolved buy order."""

    order_id: str
    tokens_received: Decimal
    filled_size: Decimal
    avg_price: Decimal
    best_ask: Decimal
    slippage: Decimal
    attempts: int


@dataclass(frozen=True)
class CloseResult:
    """Realized proceeds from closing a set of legs."""

    proceeds: dict[int, Decimal] = field(default_factory=dict)

    @property
    def realized_usdc(self) -> Decimal:
        return sum(self.proceeds.values(), Decimal("0"))
