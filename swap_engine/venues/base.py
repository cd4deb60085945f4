"""Venue adapter interfaces.

The engine talks to the outside world through three capabilities: pricing a
swap (QuoteClient), submitting it on-chain (TransactionExecutor) and reading
balances (BalanceProvider). Production and paper implementations are
interchangeable.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Quote(BaseModel):
    """A priced route returned by the aggregator.

    Amounts are integer base units (lamports for SOL).
    """

    input_asset: str
    output_asset: str
    in_amount: int
    out_amount: int
    price_impact_pct: float = 0.0
    slippage_bps: int = 0
    route: dict[str, Any] = Field(default_factory=dict)  # Opaque, echoed back to build_swap


class SwapPayload(BaseModel):
    """Serialized swap transaction ready for signing and submission."""

    transaction: str  # base64
    last_valid_block_height: Optional[int] = None


class QuoteClient(ABC):
    """Abstract base class for swap aggregators."""

    @abstractmethod
    async def get_quote(
        self,
        input_asset: str,
        output_asset: str,
        amount: int,
        slippage_bps: int,
    ) -> Optional[Quote]:
        """Price a swap.

        Args:
            input_asset: Mint of the asset to sell
            output_asset: Mint of the asset to buy
            amount: Input amount in base units
            slippage_bps: Slippage tolerance in basis points

        Returns:
            Quote, or None when no route exists (normal no-liquidity case)

        Raises:
            QuoteError: On transport-level failure
        """
        pass

    @abstractmethod
    async def build_swap(self, quote: Quote) -> SwapPayload:
        """Request the swap transaction for a quote.

        Raises:
            QuoteError: On transport-level failure
        """
        pass

    @property
    @abstractmethod
    def venue_name(self) -> str:
        """Return venue name/identifier."""
        pass


class TransactionExecutor(ABC):
    """Abstract base class for on-chain submission."""

    @abstractmethod
    async def submit(self, payload: SwapPayload) -> str:
        """Sign, submit and confirm a swap transaction.

        Called at most once per trade; implementations must not retry a
        submission that may already have landed.

        Returns:
            Confirmed transaction signature

        Raises:
            ExecutionError: If the transaction is rejected, fails simulation
                            or is not confirmed in time
        """
        pass


class BalanceProvider(ABC):
    """Abstract base class for balance reads."""

    @abstractmethod
    async def get_balance(self, asset: str) -> float:
        """Return the wallet balance of an asset in whole units.

        Raises:
            VenueError: If the balance cannot be read
        """
        pass


class FailureReason(str, Enum):
    """Typed execution failure."""

    REJECTED = "REJECTED"
    TIMED_OUT = "TIMED_OUT"
    SIMULATION_FAILED = "SIMULATION_FAILED"


class VenueError(Exception):
    """Base exception for venue-related errors."""

    pass


class QuoteError(VenueError):
    """Raised when the aggregator cannot be reached or answers garbage."""

    pass


class ExecutionError(VenueError):
    """Raised when submission or confirmation fails."""

    def __init__(self, message: str, reason: FailureReason = FailureReason.REJECTED):
        super().__init__(message)
        self.reason = reason
