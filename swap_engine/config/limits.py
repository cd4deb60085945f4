"""Risk limit definitions.

This module defines the per-pair risk limits enforced by the Swap Engine.
Every trading pair carries its own instance; pairs registered without
explicit limits fall back to the global default.
"""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class RiskLimits:
    """Risk limit configuration for a single trading pair.

    Amounts are expressed in the pair's base unit (SOL for SOL-quoted pairs).
    """

    # Notional limits
    max_trade_notional: float = 50.0  # Max single trade size
    max_daily_notional: float = 500.0  # Max volume per UTC day
    min_trade_notional: float = 0.01  # Min trade size (anti-dust)

    # Execution limits
    max_slippage_bps: int = 30  # Slippage tolerance passed to the aggregator
    max_price_impact_pct: float = 1.0  # Quotes above this impact are rejected

    # Balance limits
    min_balance_reserve: float = 0.1  # Native balance kept for fees

    @classmethod
    def from_dict(cls, config: dict) -> "RiskLimits":
        """Create RiskLimits from dictionary (for external config loading)."""
        return cls(**{k: v for k, v in config.items() if hasattr(cls, k)})

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)


# Global default limits instance, replaced by settings at startup
DEFAULT_LIMITS = RiskLimits()
