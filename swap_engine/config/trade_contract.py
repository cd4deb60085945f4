"""Request contracts for the Swap Engine.

Defines the payloads accepted by the trading bot operations. Structural
validation happens here; business validation (amounts, pair lookups, risk)
happens in the engine so that every failure comes back as a structured result.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from swap_engine.config.limits import DEFAULT_LIMITS, RiskLimits
from swap_engine.execution.trade_state import CascadePlan
from swap_engine.portfolio.registry import TradingPair


class TradeDirection(str, Enum):
    """Direction of a trade on the primary pair."""

    SOL_TO_TOKEN = "SOL_TO_TOKEN"
    TOKEN_TO_SOL = "TOKEN_TO_SOL"


class RiskLimitsConfig(BaseModel):
    """Per-pair risk limits as submitted over the API."""

    max_trade_notional: float = Field(gt=0, description="Max single trade size")
    max_daily_notional: float = Field(gt=0, description="Max volume per UTC day")
    max_slippage_bps: int = Field(ge=0, le=10_000, description="Slippage tolerance in bps")
    min_balance_reserve: float = Field(default=0.0, ge=0, description="Native balance kept for fees")
    min_trade_notional: float = Field(default=DEFAULT_LIMITS.min_trade_notional, ge=0)
    max_price_impact_pct: float = Field(default=DEFAULT_LIMITS.max_price_impact_pct, ge=0)

    def to_limits(self) -> RiskLimits:
        return RiskLimits.from_dict(self.model_dump())


class TradeExecutionRequest(BaseModel):
    """Single trade on the primary pair."""

    direction: TradeDirection = Field(..., description="SOL_TO_TOKEN or TOKEN_TO_SOL")
    amount_sol: float = Field(..., description="Trade notional in SOL")


class AddTradingPairRequest(BaseModel):
    """Registration payload for a new trading pair."""

    id: str = Field(..., description="Unique pair identifier (e.g. 'usdc-sol')")
    input_asset: str = Field(..., description="Mint of the asset spent on a forward trade")
    output_asset: str = Field(..., description="Mint of the asset received on a forward trade")
    rank: int = Field(default=0, description="Profitability rank, lower is better")
    enabled: bool = True
    input_decimals: int = Field(default=9, ge=0, le=18)
    output_decimals: int = Field(default=9, ge=0, le=18)
    risk_limits: Optional[RiskLimitsConfig] = None

    def validation_errors(self) -> list[str]:
        """Business validation; an empty list means the request is usable."""
        errors = []
        if not self.id.strip():
            errors.append("Pair id must not be empty")
        if not self.input_asset.strip() or not self.output_asset.strip():
            errors.append("Both assets must be set")
        elif self.input_asset == self.output_asset:
            errors.append("Input and output assets must differ")
        if self.risk_limits and self.risk_limits.max_trade_notional > self.risk_limits.max_daily_notional:
            errors.append("max_trade_notional must not exceed max_daily_notional")
        return errors

    def to_pair(self, default_limits: RiskLimits = DEFAULT_LIMITS) -> TradingPair:
        """Build the registry entry, falling back to the default limits."""
        return TradingPair(
            id=self.id,
            input_asset=self.input_asset,
            output_asset=self.output_asset,
            rank=self.rank,
            enabled=self.enabled,
            limits=self.risk_limits.to_limits() if self.risk_limits else default_limits,
            input_decimals=self.input_decimals,
            output_decimals=self.output_decimals,
        )


class UpdateRankRequest(BaseModel):
    new_rank: int


class SetEnabledRequest(BaseModel):
    enabled: bool


class CascadeExecutionRequest(BaseModel):
    """Cascade across ranked pairs."""

    initial_amount_sol: float = Field(..., description="Notional fed into the first step")
    pair_ids: Optional[list[str]] = Field(
        default=None, description="Explicit pairs to use, in order (default: all enabled, ranked)"
    )
    max_cascade_depth: int = Field(default=3, description="Maximum number of steps")
    stop_on_failure: bool = True

    def to_plan(self) -> CascadePlan:
        return CascadePlan(
            initial_amount=self.initial_amount_sol,
            pair_ids=self.pair_ids,
            max_depth=self.max_cascade_depth,
            stop_on_failure=self.stop_on_failure,
        )


class SwapAmountRequest(BaseModel):
    """Body of the fixed-direction swap shortcuts."""

    amount_sol: float
