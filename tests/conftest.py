"""Shared test fixtures for the leverage engine."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from forecast_leverage.config import (
    AppSettings,
    ExecutionSettings,
    GasSettings,
    LeverageSettings,
    ProtocolSettings,
    VenueSettings,
)
from forecast_leverage.models import E18, Leg, OrderType, TargetPositionParams
from forecast_leverage.protocol.client import LendingProtocol, TokenCustody
from forecast_leverage.protocol.types import ContractEvent, RawQuote, TxReceipt
from forecast_leverage.venue.client import VenueClient

CONDITION_ID = "0x" + "ab" * 32
PROTOCOL_ADDRESS = "0x00000000000000000000000000000000000000f0"
OWNER = "0x00000000000000000000000000000000000000aa"
YES_TOKEN = "1111"
NO_TOKEN = "2222"


def usdc(amount: str) -> int:
    """USDC amount -> 6-decimal base units."""
    return int(Decimal(amount) * 10**6)


def make_params(**overrides) -> TargetPositionParams:
    """Valid LONG YES request: 0.40 -> 0.44 in 1h with $1000."""
    values = dict(
        market_condition_id=CONDITION_ID,
        long_yes=True,
        current_price=Decimal("0.40"),
        target_price=Decimal("0.44"),
        timeframe_seconds=3600,
        capital_usdc=Decimal("1000"),
        max_slippage_bps=100,
        order_type=OrderType.FOK,
        max_retries=3,
        retry_delay_ms=2000,
    )
    values.update(overrides)
    return TargetPositionParams(**values)


def make_quote(f: str = "0.9", rs: str = "0.06", rj: str = "0.04") -> RawQuote:
    return RawQuote(
        f_e18=int(Decimal(f) * E18),
        rs_e18=int(Decimal(rs) * E18),
        rj_e18=int(Decimal(rj) * E18),
        usdc_needed=usdc("0.9"),
        converged=True,
    )


def make_leg(
    leg_id: int,
    sets: int = 1000,
    f: str = "0.9",
    rs: str = "0.06",
    rj: str = "0.04",
    term: int = 3600,
) -> Leg:
    return Leg(
        leg_id=leg_id,
        sets=sets,
        f_e18=int(Decimal(f) * E18),
        rs_e18=int(Decimal(rs) * E18),
        rj_e18=int(Decimal(rj) * E18),
        term=term,
        opened=1_700_000_000,
        borrower=OWNER,
        escrow="0x00000000000000000000000000000000000000e5",
        long_position_id=int(YES_TOKEN),
        short_position_id=int(NO_TOKEN),
        condition_id=CONDITION_ID,
    )


def leg_receipt(leg_id: int, status: int = 1) -> TxReceipt:
    return TxReceipt(
        tx_hash=f"0xtx{leg_id}",
        status=status,
        events=[ContractEvent(name="LegOpened", args={"legId": leg_id, "sets": 1, "borrower": OWNER})],
    )


@pytest.fixture
def settings() -> AppSettings:
    """AppSettings with defaults and no environment-derived secrets."""
    return AppSettings(
        log_level="DEBUG",
        leverage=LeverageSettings(),
        execution=ExecutionSettings(),
        protocol=ProtocolSettings(),
        gas=GasSettings(),
        venue=VenueSettings(private_key="0x" + "11" * 32),  # type: ignore[arg-type]
    )


@pytest.fixture
def protocol() -> AsyncMock:
    """LendingProtocol mock quoting F=0.9, R=0.10 and confirming every tx."""
    mock = AsyncMock(spec=LendingProtocol)
    mock.address = PROTOCOL_ADDRESS
    mock.quote.return_value = make_quote()
    mock.yes_position_id.return_value = YES_TOKEN
    mock.no_position_id.return_value = NO_TOKEN
    mock.gas_price.return_value = 30 * 10**9  # 30 gwei
    mock.verify_market.return_value = None
    mock.close.side_effect = lambda leg_id: f"0xclose{leg_id}"
    mock.wait_for_receipt.side_effect = lambda tx_hash: TxReceipt(tx_hash=tx_hash, status=1)
    mock.legs.side_effect = lambda leg_id: make_leg(leg_id)
    return mock


@pytest.fixture
def custody() -> AsyncMock:
    """TokenCustody mock with $1000 USDC and approvals already granted."""
    mock = AsyncMock(spec=TokenCustody)
    mock.owner = OWNER
    mock.usdc_balance.return_value = usdc("1000")
    mock.usdc_allowance.return_value = 2**256 - 1
    mock.is_approved_for_all.return_value = True
    return mock


@pytest.fixture
def venue() -> AsyncMock:
    return AsyncMock(spec=VenueClient)
