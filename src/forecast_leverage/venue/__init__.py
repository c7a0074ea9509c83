"""Matching venue layer -- Polymarket CLOB integration via py-clob-client."""

from forecast_leverage.venue.clob_client import ClobVenue, ClobVenueConnector
from forecast_leverage.venue.client import VenueClient, VenueConnector
from forecast_leverage.venue.types import (
    BookLevel,
    OrderBook,
    VenueOrder,
    VenueOrderStatus,
    normalize_status,
    round_to_tick,
)

__all__ = [
    "BookLevel",
    "ClobVenue",
    "ClobVenueConnector",
    "OrderBook",
    "VenueClient",
    "VenueConnector",
    "VenueOrder",
    "VenueOrderStatus",
    "normalize_status",
    "round_to_tick",
]
