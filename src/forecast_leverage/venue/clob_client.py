"""Polymarket CLOB venue implementation via py-clob-client.

py-clob-client is synchronous; every call is pushed to a worker thread with
asyncio.to_thread so the event loop is never blocked by HTTP round trips.
"""

import asyncio
from decimal import Decimal

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import OrderArgs, PartialCreateOrderOptions
from py_clob_client.clob_types import OrderType as ClobOrderType
from py_clob_client.order_builder.constants import BUY

from forecast_leverage.config import VenueSettings
from forecast_leverage.logging import get_logger
from forecast_leverage.models import OrderType
from forecast_leverage.venue.client import VenueClient, VenueConnector
from forecast_leverage.venue.types import BookLevel, OrderBook, VenueOrder, normalize_status

logger = get_logger(__name__)

_ORDER_TYPES: dict[OrderType, str] = {
    OrderType.FOK: ClobOrderType.FOK,
    OrderType.GTC: ClobOrderType.GTC,
    OrderType.GTD: ClobOrderType.GTD,
}


def _levels(raw_levels: list | None) -> list[BookLevel]:
    levels = []
    for level in raw_levels or []:
        price = level["price"] if isinstance(level, dict) else level.price
        size = level["size"] if isinstance(level, dict) else level.size
        levels.append(BookLevel(price=Decimal(str(price)), size=Decimal(str(size))))
    return levels


def _trade_statuses(payload: dict) -> list[str]:
    statuses = []
    for trade in payload.get("associate_trades") or []:
        if isinstance(trade, dict):
            statuses.append(str(trade.get("status", "")))
    return statuses


class ClobVenue(VenueClient):
    """Authenticated Polymarket CLOB handle. Built by ClobVenueConnector.connect()."""

    def __init__(self, client: ClobClient, settings: VenueSettings) -> None:
        self._client = client
        self._settings = settings

    async def get_order_book(self, token_id: str) -> OrderBook:
        """Fetch the book and sort it best-first (the venue returns asks highest-first)."""
        summary = await asyncio.to_thread(self._client.get_order_book, token_id)
        asks = sorted(_levels(getattr(summary, "asks", None)), key=lambda lvl: lvl.price)
        bids = sorted(
            _levels(getattr(summary, "bids", None)), key=lambda lvl: lvl.price, reverse=True
        )
        return OrderBook(token_id=token_id, bids=bids, asks=asks)

    async def post_order(
        self,
        token_id: str,
        price: Decimal,
        size: Decimal,
        order_type: OrderType,
        expiration: int | None = None,
    ) -> str | None:
        """Sign and post a BUY order."""
        args = OrderArgs(
            token_id=token_id,
            price=float(price),
            size=float(size),
            side=BUY,
            expiration=expiration or 0,
        )
        options = PartialCreateOrderOptions(
            tick_size=self._settings.tick_size,
            neg_risk=self._settings.neg_risk,
        )
        signed = await asyncio.to_thread(self._client.create_order, args, options)
        response = await asyncio.to_thread(
            self._client.post_order, signed, _ORDER_TYPES[order_type]
        )
        response = response or {}
        order_id = response.get("orderID") or response.get("orderId")
        if not order_id:
            logger.warning(
                "clob_order_not_accepted",
                token_id=token_id,
                error=response.get("errorMsg", ""),
            )
            return None
        return str(order_id)

    async def get_order(self, order_id: str) -> VenueOrder:
        payload = await asyncio.to_thread(self._client.get_order, order_id) or {}
        return VenueOrder(
            order_id=order_id,
            status=normalize_status(payload.get("status", ""), _trade_statuses(payload)),
            original_size=Decimal(str(payload.get("original_size") or 0)),
            size_matched=Decimal(str(payload.get("size_matched") or 0)),
            price=Decimal(str(payload.get("price") or 0)),
        )

    async def cancel_order(self, order_id: str) -> None:
        await asyncio.to_thread(self._client.cancel, order_id)


class ClobVenueConnector(VenueConnector):
    """Configuration for the Polymarket CLOB; connect() derives API credentials."""

    def __init__(self, settings: VenueSettings) -> None:
        self._settings = settings

    async def connect(self) -> ClobVenue:
        """Create or derive L2 API credentials and return an authenticated handle."""
        settings = self._settings
        logger.info("connecting_to_clob", host=settings.host, chain_id=settings.chain_id)

        key = settings.private_key.get_secret_value()
        bootstrap = ClobClient(settings.host, key=key, chain_id=settings.chain_id)
        creds = await asyncio.to_thread(bootstrap.create_or_derive_api_creds)

        client = ClobClient(
            settings.host,
            key=key,
            chain_id=settings.chain_id,
            creds=creds,
            signature_type=settings.signature_type,
            funder=settings.funder_address or None,
        )
        logger.info("clob_connected", funder=settings.funder_address)
        return ClobVenue(client, settings)
