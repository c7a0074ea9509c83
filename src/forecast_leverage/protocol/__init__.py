"""Lending protocol and token custody boundary."""

from forecast_leverage.protocol.client import LendingProtocol, TokenCustody
from forecast_leverage.protocol.types import (
    REVERT_REASONS,
    ContractEvent,
    RawQuote,
    TxReceipt,
    classify_revert,
    convert_quote,
    from_base_units,
    from_e18,
    to_base_units,
)

__all__ = [
    "REVERT_REASONS",
    "ContractEvent",
    "LendingProtocol",
    "RawQuote",
    "TokenCustody",
    "TxReceipt",
    "classify_revert",
    "convert_quote",
    "from_base_units",
    "from_e18",
    "to_base_units",
]
