"""Abstract matching-venue interface.

Construction is two-phase: a VenueConnector holds configuration only, and
its connect() authenticates and returns a ready VenueClient. A VenueClient
instance is therefore always usable; there is no "initialized" flag to check.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from forecast_leverage.models import OrderType
from forecast_leverage.venue.types import OrderBook, VenueOrder


class VenueClient(ABC):
    """Authenticated handle to the matching venue."""

    @abstractmethod
    async def get_order_book(self, token_id: str) -> OrderBook:
        """Fetch the current order book for an outcome token."""
        ...

    @abstractmethod
    async def post_order(
        self,
        token_id: str,
        price: Decimal,
        size: Decimal,
        order_type: OrderType,
        expiration: int | None = None,
    ) -> str | None:
        """Submit a BUY limit order. Returns the venue order id, or None if none was assigned."""
        ...

    @abstractmethod
    async def get_order(self, order_id: str) -> VenueOrder:
        """Poll the current status of an order."""
        ...

    @abstractmethod
    async def cancel_order(self, order_id: str) -> None:
        """Cancel an open order."""
        ...


class VenueConnector(ABC):
    """Venue configuration; connect() performs authentication."""

    @abstractmethod
    async def connect(self) -> VenueClient:
        """Authenticate and return a ready-to-use VenueClient."""
        ...
