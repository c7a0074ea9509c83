"""Matching-venue type definitions and utility functions.

All prices and sizes use Decimal. Venue payloads deliver them as strings;
convert with Decimal(str(value)) and never via float.
"""

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from enum import Enum


class VenueOrderStatus(str, Enum):
    """Venue order status, normalised across venue spellings."""

    OPEN = "open"
    FILLED = "filled"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


_STATUS_ALIASES: dict[str, VenueOrderStatus] = {
    "matched": VenueOrderStatus.FILLED,
    "filled": VenueOrderStatus.FILLED,
    "cancelled": VenueOrderStatus.CANCELLED,
    "canceled": VenueOrderStatus.CANCELLED,
    "expired": VenueOrderStatus.CANCELLED,
    "rejected": VenueOrderStatus.REJECTED,
    "unmatched": VenueOrderStatus.REJECTED,
}


@dataclass(frozen=True)
class BookLevel:
    """One price level of an order book."""

    price: Decimal
    size: Decimal


@dataclass(frozen=True)
class OrderBook:
    """Order book snapshot. Asks ascending, bids descending."""

    token_id: str
    bids: list[BookLevel] = field(default_factory=list)
    asks: list[BookLevel] = field(default_factory=list)

    @property
    def best_ask(self) -> Decimal | None:
        return self.asks[0].price if self.asks else None

    @property
    def best_bid(self) -> Decimal | None:
        return self.bids[0].price if self.bids else None


@dataclass(frozen=True)
class VenueOrder:
    """Polled order status."""

    order_id: str
    status: VenueOrderStatus
    original_size: Decimal = Decimal("0")
    size_matched: Decimal = Decimal("0")
    price: Decimal = Decimal("0")


def normalize_status(raw_status: str, trade_statuses: list[str] | None = None) -> VenueOrderStatus:
    """Map a raw venue status onto VenueOrderStatus.

    An order counts as filled when the venue reports it matched, or when any
    associated trade has been confirmed, whatever the order status says.

    Args:
        raw_status: Status string from the venue (any case).
        trade_statuses: Statuses of trades associated with the order.

    Returns:
        The normalised status; unknown strings are treated as OPEN.
    """
    if any(str(s).upper() == "CONFIRMED" for s in trade_statuses or []):
        return VenueOrderStatus.FILLED
    return _STATUS_ALIASES.get(str(raw_status).lower(), VenueOrderStatus.OPEN)


def round_to_tick(price: Decimal, tick: Decimal) -> Decimal:
    """Round a price down to the venue tick size.

    Args:
        price: Raw limit price.
        tick: Minimum price increment (e.g., 0.001).

    Returns:
        The price rounded down to the nearest tick.
    """
    return (price / tick).quantize(Decimal("1"), rounding=ROUND_DOWN) * tick
