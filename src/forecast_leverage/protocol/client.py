"""Abstract on-chain interfaces: the lending protocol and token custody.

Concrete implementations wrap contract bindings for a given signer and
provider; the engine depends only on these interfaces. Write methods return
a transaction hash; callers wait for finality with wait_for_receipt().
Reverts must surface as exceptions.ContractRevert.
"""

from abc import ABC, abstractmethod

from forecast_leverage.models import Leg
from forecast_leverage.protocol.types import RawQuote, TxReceipt


class LendingProtocol(ABC):
    """Leverage lending protocol contract."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Contract address (spender/operator for approvals)."""
        ...

    @abstractmethod
    async def quote(
        self, sets: int, term: int, condition_id: str, long_yes: bool
    ) -> RawQuote:
        """View: capital-efficiency factor and rates for a prospective leg."""
        ...

    @abstractmethod
    async def open(
        self, sets: int, term: int, condition_id: str, long_yes: bool
    ) -> str:
        """Submit the borrow transaction. Emits LegOpened(legId, ...)."""
        ...

    @abstractmethod
    async def close(self, leg_id: int) -> str:
        """Submit the close transaction for one leg."""
        ...

    @abstractmethod
    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Block until the transaction is final and return its decoded receipt."""
        ...

    @abstractmethod
    async def legs(self, leg_id: int) -> Leg:
        """View: stored leg record with its rate snapshot."""
        ...

    @abstractmethod
    async def verify_market(self, condition_id: str) -> None:
        """Structural eligibility check (binary, unresolved). Reverts if ineligible."""
        ...

    @abstractmethod
    async def yes_position_id(self, condition_id: str) -> str:
        """Outcome token id of the YES side."""
        ...

    @abstractmethod
    async def no_position_id(self, condition_id: str) -> str:
        """Outcome token id of the NO side."""
        ...

    @abstractmethod
    async def gas_price(self) -> int:
        """Current gas price in wei of the native fee asset."""
        ...


class TokenCustody(ABC):
    """USDC (ERC-20) and outcome-token (ERC-1155) balances and approvals for the signer."""

    @property
    @abstractmethod
    def owner(self) -> str:
        """Address of the signing identity."""
        ...

    @abstractmethod
    async def usdc_balance(self) -> int:
        """USDC balance of the owner in base units."""
        ...

    @abstractmethod
    async def usdc_allowance(self, spender: str) -> int:
        ...

    @abstractmethod
    async def approve_usdc(self, spender: str, amount: int) -> str:
        """Submit an ERC-20 approval. Returns the tx hash."""
        ...

    @abstractmethod
    async def is_approved_for_all(self, operator: str) -> bool:
        ...

    @abstractmethod
    async def set_approval_for_all(self, operator: str, approved: bool) -> str:
        """Submit a blanket ERC-1155 approval. Returns the tx hash."""
        ...
